from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from legal_clarify.api.routers import analysis, chat
from legal_clarify.config.logging_config import configure_logging
from legal_clarify.config.settings import settings as default_settings
from legal_clarify.llm_integration.exceptions import APIError, MissingInputError
from legal_clarify.services.resource_provider import ResourceProvider

logger = logging.getLogger(__name__)


async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("%s %s -> %d %s: %s", request.method, request.url.path, exc.status_code, exc.kind.value, exc.message)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reports a malformed request body with the same {"error": ...} shape as every other failure."""
    problems = []
    for error in exc.errors():
        field = ".".join(part for part in error.get("loc", ()) if isinstance(part, str) and part != "body")
        problems.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return await handle_api_error(request, MissingInputError(f"Invalid request body. {'; '.join(problems)}"))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Something went wrong. Please try again."}, status_code=500)


def create_app(resources: Optional[ResourceProvider] = None) -> FastAPI:
    resources = resources or ResourceProvider()
    configure_logging(resources.settings.log_level)

    app = FastAPI(
        title="LegalClarify API",
        description="Plain-language explanations of legal documents, with follow-up chat",
        version="0.1.0",
    )
    app.state.resources = resources

    # ---- CORS ----
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---- ERRORS ----
    app.add_exception_handler(APIError, handle_api_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    # ---- HEALTH CHECK ENDPOINT ----
    @app.get("/health", tags=["system"])
    def health():
        return {"status": "ok", "configured": resources.settings.is_configured}

    # ---- ROUTERS ----
    app.include_router(analysis.router)
    app.include_router(chat.router)

    if not resources.settings.is_configured:
        logger.warning("GOOGLE_GENERATIVE_AI_API_KEY is not set; analysis and chat requests will fail.")
    return app


app = create_app(ResourceProvider(default_settings))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("API_PORT", "8000")),
    )
