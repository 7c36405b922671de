"""
FastAPI Application Factory

Creates and configures the action service.

Design decisions:
- Factory pattern for testability (settings and components injectable)
- Middleware composition
- Lifespan management for component lifecycle
- CORS configuration
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from actionhub import __version__
from actionhub.config import Settings, get_settings
from actionhub.core.types import LogSource
from actionhub.factory import close_components, create_components
from actionhub.observability.logging import configure_logging, get_logger

logger = get_logger("actionhub.api")


def create_app(
    settings: Settings | None = None,
    components: dict[str, Any] | None = None,
    **kwargs: Any,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to build from (defaults to get_settings())
        components: Prebuilt components; skips create_components()
        **kwargs: Additional FastAPI arguments
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[dict[str, Any]]:
        """
        Build the store, audit pipeline, dispatcher and tool server on
        startup; drain audit writes and close connections on shutdown.
        """
        state = components
        if state is None:
            state = create_components(
                settings,
                source=LogSource.MCP,
                run_bash=settings.execution.run_bash_on_server,
            )
        app.state.components = state

        logger.info(
            "Action service started",
            backend=settings.store.backend,
            run_bash_on_server=settings.execution.run_bash_on_server,
        )

        yield state

        await close_components(state)

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Named API, shell and composite actions for LLM agents",
        debug=settings.debug,
        lifespan=lifespan,
        **kwargs,
    )

    if components is not None:
        app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add custom middleware (last added runs first)
    from actionhub.api.middleware import (
        AuthMiddleware,
        ErrorHandlingMiddleware,
        TracingMiddleware,
    )

    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(
        AuthMiddleware,
        token=settings.api.token.get_secret_value() if settings.api.token else None,
    )
    app.add_middleware(TracingMiddleware)

    # Include routers
    from actionhub.api.routes import actions, health, logs, tools

    prefix = settings.api.prefix
    app.include_router(health.router, tags=["health"])
    app.include_router(actions.router, prefix=prefix, tags=["actions"])
    app.include_router(logs.router, prefix=prefix, tags=["action-logs"])
    app.include_router(tools.router, prefix=prefix, tags=["tools"])

    return app


def main() -> None:
    """Entry point for the actionhub-api script."""
    import uvicorn

    settings = get_settings()
    configure_logging(
        level=settings.observability.log_level,
        json_output=settings.observability.log_format == "json",
        log_file=settings.observability.log_file,
    )

    uvicorn.run(
        create_app(settings),
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.observability.log_level.lower(),
    )


if __name__ == "__main__":
    main()
