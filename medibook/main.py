"""ASGI entry point.

The app holds one process-wide client session: every request acts as the
same signed-in user. It is meant to back a single local user and must not be
exposed to untrusted callers.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response

from medibook.api.deps import RouteGateRedirect, ServicesFactory, build_services
from medibook.api.routers import admin, auth, notifications, pages
from medibook.domain.services.route_gate import LOGIN_ROUTE
from medibook.shared.config import Settings, get_settings


logger = logging.getLogger(__name__)


async def route_gate_redirect_handler(request: Request, exc: RouteGateRedirect) -> Response:
    decision = exc.decision
    if decision.outcome == "loading":
        return JSONResponse(status_code=202, content={"status": "loading"})
    location = decision.location or LOGIN_ROUTE
    if decision.pending_approval:
        location = f"{location}?status=pending-approval"
    logger.debug(
        "route_gate: redirect path=%s outcome=%s location=%s",
        request.url.path,
        decision.outcome,
        location,
    )
    return RedirectResponse(url=location, status_code=303)


def create_app(
    settings: Settings | None = None,
    *,
    services_factory: ServicesFactory = build_services,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with services_factory(settings) as services:
            app.state.services = services
            yield
            app.state.services = None

    app = FastAPI(title="MediBook API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RouteGateRedirect, route_gate_redirect_handler)
    app.include_router(auth.router)
    app.include_router(admin.router)
    app.include_router(notifications.router)
    app.include_router(pages.router)
    return app


app = create_app()
