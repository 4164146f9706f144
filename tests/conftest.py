"""Shared test configuration.

JWT_SECRET must be set before api.auth.jwt is imported anywhere.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-for-unit-tests")
