"""Multi-tenant workspace authorization core."""

__version__ = "0.1.0"
