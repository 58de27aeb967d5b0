"""Dashboard Service HTTP API.

Serves the literacy dashboard as JSON view models. Every subgroup
statistic is suppression-marked (k=5) before it is returned.

Endpoints:
- GET /health - Health check
- GET /ready - Ready once every resource has loaded
- POST /api/auth/login - Sign in with email and password
- POST /api/auth/logout - Sign out
- GET /api/auth/session - Current user
- GET /api/dashboard/overview - KPIs, charts and breakdowns
- GET /api/dashboard/views/{view} - Detail breakdown for one KPI
- GET /api/dashboard/status - Cache status per resource (admin)
- GET /api/questions/{qid} - Full question text
- POST /api/revalidate - Invalidate cached data (bearer token)
"""
import hmac
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.sessions import SessionMiddleware

from literacy_dashboard.services.data_service import (
    DASHBOARD_DATA_TAG,
    DataCoordinator,
    DataServiceConfig,
    JsonFetcher,
    ResourcePoller,
    build_fetcher,
)
from literacy_dashboard.services.data_service.coordinator import utc_now
from literacy_dashboard.shared.utils import configure_identifier_salt

from . import auth
from .config import DashboardConfig
from .views import (
    UnknownViewError,
    build_detail_view,
    build_overview,
    lookup_question,
    parse_view,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "dashboard-service"


class LoginRequest(BaseModel):
    """Request body for sign-in."""
    email: str
    password: str


def _bearer_token(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _timestamp() -> str:
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_app(
    data_config: Optional[DataServiceConfig] = None,
    config: Optional[DashboardConfig] = None,
    fetcher: Optional[JsonFetcher] = None,
) -> FastAPI:
    """Create and configure the dashboard application.

    Args:
        data_config: Resource source and refresh settings
        config: Auth, session and suppression settings
        fetcher: Resource fetcher (injected for testing)

    Returns:
        FastAPI app; resources load on startup and poll until shutdown
    """
    data_config = data_config or DataServiceConfig.from_env()
    config = config or DashboardConfig.from_env()
    configure_identifier_salt(config.identifier_salt)

    coordinator = DataCoordinator(
        fetcher or build_fetcher(data_config.source, data_config.fetch_timeout_seconds),
        ttl_seconds=data_config.ttl_seconds,
    )
    threshold = config.suppression_threshold

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        results = await coordinator.refresh_all()
        logger.info(
            "DASHBOARD_STARTUP_REFRESH",
            extra={"loaded": sum(results.values()), "resources": len(results)}
        )
        async with ResourcePoller(
            coordinator,
            interval_seconds=data_config.refresh_interval_seconds,
            immediate=False,
        ):
            yield

    app = FastAPI(
        title="Mental Health Literacy Dashboard API",
        description="Survey results with small-group suppression",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.coordinator = coordinator
    app.state.config = config

    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session_secret,
        session_cookie="dashboard_session",
        max_age=config.session_max_age_seconds,
        https_only=config.session_https_only,
        same_site="lax",
    )

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "service": SERVICE_NAME}

    @app.get("/ready")
    async def ready():
        """Readiness check: every resource loaded at least once."""
        if not coordinator.all_loaded():
            return JSONResponse(
                {"status": "not_ready", "service": SERVICE_NAME},
                status_code=503,
            )
        return {"status": "ready", "service": SERVICE_NAME}

    @app.post("/api/auth/login")
    async def login(body: LoginRequest, request: Request):
        user = auth.authenticate(config.users, body.email, body.password)
        if user is None:
            return JSONResponse({"error": "Invalid email or password"}, status_code=401)
        auth.login(request, user)
        return {"user": user.to_dict()}

    @app.post("/api/auth/logout")
    async def logout(request: Request):
        auth.logout(request)
        return {"status": "signed_out"}

    @app.get("/api/auth/session")
    async def session(user: auth.SessionUser = Depends(auth.require_user)):
        return {"user": user.to_dict()}

    @app.get("/api/dashboard/overview")
    async def overview(
        category: str = "campus",
        user: auth.SessionUser = Depends(auth.require_user),
    ):
        """Overview page.

        Query params:
            category: Demographic breakdown (campus, year, housing, status)
        """
        try:
            return build_overview(coordinator, category=category, threshold=threshold)
        except UnknownViewError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.get("/api/dashboard/views/{view}")
    async def detail_view(
        view: str,
        user: auth.SessionUser = Depends(auth.require_user),
    ):
        """Detail page: literacy, crisis, afterhours or mentalhealth."""
        try:
            return build_detail_view(coordinator, parse_view(view), threshold=threshold)
        except UnknownViewError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @app.get("/api/dashboard/status")
    async def cache_status(user: auth.SessionUser = Depends(auth.require_admin)):
        return {"resources": coordinator.status()}

    @app.get("/api/questions/{qid}")
    async def question(
        qid: str,
        user: auth.SessionUser = Depends(auth.require_user),
    ):
        text = lookup_question(coordinator, qid)
        if text is None:
            raise HTTPException(
                status_code=404,
                detail=f"Question text not found for {qid}",
            )
        return {"qid": qid, "text": text}

    @app.post("/api/revalidate")
    async def revalidate(request: Request, background_tasks: BackgroundTasks):
        """Invalidate every cached resource.

        Headers:
            Authorization: Bearer <REVALIDATE_TOKEN>

        Response:
            {"revalidated": true, "timestamp": "2025-03-01T09:00:00.000Z"}
        """
        try:
            token = _bearer_token(request.headers.get("authorization"))
            expected = config.revalidate_token
            if not expected or token is None or not hmac.compare_digest(
                token.encode("utf-8"), expected.encode("utf-8")
            ):
                logger.warning(
                    "REVALIDATE_UNAUTHORIZED",
                    extra={"token_present": token is not None}
                )
                return JSONResponse({"error": "Unauthorized"}, status_code=401)

            names = coordinator.invalidate_tag(DASHBOARD_DATA_TAG)
            background_tasks.add_task(coordinator.refresh_stale)

            logger.info(
                "CACHE_REVALIDATED",
                extra={"tag": DASHBOARD_DATA_TAG, "resources": len(names)}
            )
            return {"revalidated": True, "timestamp": _timestamp()}

        except Exception as e:
            logger.error("REVALIDATE_ERROR", extra={"error": str(e)})
            return JSONResponse({"error": "Error revalidating cache"}, status_code=500)

    return app


def run_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the API server."""
    import uvicorn
    app = create_app()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_server()
