"""Application-level authorization."""

from tenancy.authz.abilities import AbilityResolver, Grant, PermissionSet

__all__ = ["AbilityResolver", "Grant", "PermissionSet"]
