"""Dashboard Service: literacy metrics behind sign-in.

Per-subgroup statistics are suppression-marked (k=5) before leaving the
service; groups below the threshold keep their label but not their value.

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check
- POST /api/auth/login, /api/auth/logout - Session sign-in and sign-out
- GET /api/dashboard/overview - Overview page
- GET /api/dashboard/views/{view} - Detail pages
- POST /api/revalidate - Bearer-token cache invalidation
"""

from .config import DashboardConfig, UserCredential
from .auth import SessionUser, authenticate
from .handler import create_app

__all__ = [
    "DashboardConfig",
    "UserCredential",
    "SessionUser",
    "authenticate",
    "create_app",
]
