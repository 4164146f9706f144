"""FastAPI application for the workspace tenancy API."""

from fastapi import FastAPI

from api.error_handlers import register_error_handlers
from api.middleware import RequestContextMiddleware
from api.routes.v1 import catalog_router, roles_router, workspaces_router


app = FastAPI(
    title="Workspace Tenancy API",
    description="Workspaces, memberships, roles and permissions",
    version="0.1.0",
)

# Binds request_id to structured log entries
app.add_middleware(RequestContextMiddleware)

# Register global error handlers
register_error_handlers(app)

# v1 routes with workspace scoping
app.include_router(workspaces_router, prefix="/api", tags=["workspaces"])
app.include_router(roles_router, prefix="/api", tags=["roles"])
app.include_router(catalog_router, prefix="/api", tags=["catalog"])


@app.get("/api/health", include_in_schema=False)
async def health():
    return {"status": "ok"}
