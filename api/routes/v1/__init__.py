"""v1 API routes with workspace scoping.

Workspace-scoped routes follow the pattern:
/api/v1/w/{workspace_id}/...

The catalog (features, permissions, system role grants) and the caller's
workspace list are not workspace-scoped.
"""

from api.routes.v1.workspaces import router as workspaces_router
from api.routes.v1.roles import router as roles_router
from api.routes.v1.catalog import router as catalog_router

__all__ = [
    "workspaces_router",
    "roles_router",
    "catalog_router",
]
