"""Sample web service deployed by kubelaunch.

A stub HTTP app: it serves static JSON and a health endpoint for
Kubernetes probes. Run it locally with `kubelaunch serve`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI

DEFAULT_APP_NAME = "sample"


def create_app(name: str | None = None, version: str | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        name: Service name reported by the app (default: $APP_NAME or "sample").
        version: Version reported by /api.

    Returns:
        Configured FastAPI app.
    """
    from . import __version__

    service_name = name or os.environ.get("APP_NAME", DEFAULT_APP_NAME)
    service_version = version or __version__

    app = FastAPI(title=service_name, version=service_version)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {"message": f"Hello from {service_name}"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/hello")
    async def hello(name: str = "world") -> dict[str, str]:
        return {"message": f"Hello, {name}!"}

    @app.get("/api")
    async def api_info() -> dict[str, str]:
        return {"service": service_name, "version": service_version}

    return app
