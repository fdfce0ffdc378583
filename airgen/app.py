from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from airgen.application import StudioService, configure_studio_service, get_studio_service
from airgen.core.logging import configure_logging
from airgen.core.settings import Settings
from airgen.infrastructure import (
    AirtableClient,
    GeminiClient,
    configure_generation_client,
    configure_record_store_factory,
)
from airgen.routes import connection, review, runs


@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_studio_service().restore()
    yield


def create_app() -> FastAPI:
    settings = Settings.from_env()
    configure_logging(json_output=settings.log_json, level=settings.log_level)

    if settings.gemini_api_key:
        client = GeminiClient(
            settings.gemini_api_key,
            model=settings.gemini_model,
            api_base=settings.gemini_api_base,
        )
        configure_generation_client(client)

    api_base = settings.airtable_api_base
    configure_record_store_factory(lambda credentials: AirtableClient(credentials, api_base=api_base))
    configure_studio_service(StudioService.from_settings(settings))

    app = FastAPI(title="Airgen Studio API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(connection.router, prefix="/api")
    app.include_router(runs.router, prefix="/api")
    app.include_router(review.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Airgen Studio API",
                "docs": "/docs",
                "health": "/api/runs/status",
            }
        )

    return app


app = create_app()
