from __future__ import annotations

from typing import Dict

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .errors import CoreDataError
from .logging_config import configure_logging
from .routes import core_data_error_payload, router, status_for


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Core Data Service", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CoreDataError)
    async def handle_core_data_error(request: Request, exc: CoreDataError) -> JSONResponse:
        return JSONResponse(status_code=status_for(exc.code), content={"detail": core_data_error_payload(exc)})

    @app.get("/healthz")
    def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
        return {"status": "ok", "storage": settings.storage_backend}

    app.include_router(router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
