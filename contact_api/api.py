"""FastAPI app exposing contact submission ingestion and retrieval.

POST /api/contact stores a submission and attempts an email notification;
GET /api/contact lists every stored submission. Both answer with a
``{success, message?, data?}`` envelope.
"""
from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import CorsSettings, Settings, get_settings
from .logging_config import setup_logging
from .notifier import EmailNotifier
from .pipelines.ingest import SubmissionValidationError, SubmissionWorkflow
from .schemas import Submission, SubmissionIn
from .store import StoreReadError, StoreWriteError, build_store

logger = logging.getLogger(__name__)

SAVE_ERROR_MESSAGE = "Error saving submission"
READ_ERROR_MESSAGE = "Error reading submissions"
INVALID_PAYLOAD_MESSAGE = "Invalid submission payload"

router = APIRouter()


# Pydantic response models
class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class SubmitResponse(BaseModel):
    """Submission accepted response."""
    success: bool = True
    message: str
    data: Submission


class SubmissionListResponse(BaseModel):
    """All stored submissions."""
    success: bool = True
    data: list[Submission]


class ErrorResponse(BaseModel):
    """Error response."""
    success: bool = False
    message: str


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
    )


def build_workflow(config: Settings) -> SubmissionWorkflow:
    """Wire the configured store and notifier into a workflow."""
    return SubmissionWorkflow(
        store=build_store(config.store),
        notifier=EmailNotifier(config.email),
    )


def get_workflow(request: Request) -> SubmissionWorkflow:
    """FastAPI dependency returning the app's ingestion workflow."""
    return request.app.state.workflow


def cors_options(config: CorsSettings, *, production: bool) -> dict:
    """CORSMiddleware keyword arguments.

    Development accepts any origin. Production accepts the configured
    origins plus any origin ending with ``allowed_suffix``.
    """
    if not production:
        return {
            "allow_origin_regex": r".*",
            "allow_credentials": True,
            "allow_methods": ["*"],
            "allow_headers": ["*"],
        }
    options = {
        "allow_origins": config.allowed_origins(),
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }
    if config.allowed_suffix:
        options["allow_origin_regex"] = r"https?://.*" + re.escape(config.allowed_suffix)
    return options


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    config: Settings = app.state.settings
    # Startup
    setup_logging(config.logging)
    logger.info(f"{config.app_name} v{config.version} starting up ({config.environment.value})")

    if app.state.workflow is None:
        app.state.workflow = build_workflow(config)
    workflow: SubmissionWorkflow = app.state.workflow

    await workflow.store.init()
    logger.info(f"Submissions will be saved to: {workflow.store.location}")

    if config.email.verify_on_startup and isinstance(workflow.notifier, EmailNotifier):
        await workflow.notifier.verify()

    yield

    # Shutdown
    await workflow.store.close()
    logger.info("Application shutting down")


def create_app(
    config: Settings | None = None,
    workflow: SubmissionWorkflow | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Settings, defaults to the process settings
        workflow: Pre-built workflow; built from ``config`` at startup if omitted
    """
    config = config or get_settings()

    app = FastAPI(
        title=config.app_name,
        version=config.version,
        description="Contact form submissions with email notification",
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.workflow = workflow

    app.add_middleware(CORSMiddleware, **cors_options(config.cors, production=config.is_production))

    # Exception handlers
    @app.exception_handler(StoreWriteError)
    async def store_write_error_handler(request: Request, exc: StoreWriteError):
        """Handle submission persistence errors."""
        logger.error(f"Error saving submission: {exc}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, SAVE_ERROR_MESSAGE)

    @app.exception_handler(StoreReadError)
    async def store_read_error_handler(request: Request, exc: StoreReadError):
        """Handle submission retrieval errors."""
        logger.error(f"Error reading submissions: {exc}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, READ_ERROR_MESSAGE)

    @app.exception_handler(SubmissionValidationError)
    async def submission_validation_error_handler(request: Request, exc: SubmissionValidationError):
        """Handle payloads that are not contact form objects."""
        logger.warning(f"Rejected submission payload: {exc}")
        return error_response(status.HTTP_400_BAD_REQUEST, INVALID_PAYLOAD_MESSAGE)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        """Malformed JSON bodies share the submission validation envelope."""
        logger.warning(f"Rejected request body on {request.url.path}: {exc.errors()}")
        return error_response(status.HTTP_400_BAD_REQUEST, INVALID_PAYLOAD_MESSAGE)

    app.include_router(router)
    return app


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version=request.app.state.settings.version)


@router.get("/")
async def root(request: Request):
    """Root endpoint with API info."""
    config: Settings = request.app.state.settings
    return {
        "app": config.app_name,
        "version": config.version,
        "endpoints": {
            "health": "/health",
            "submit_contact": "POST /api/contact",
            "list_contacts": "GET /api/contact",
            "docs": "/docs",
        },
    }


@router.post(
    "/api/contact",
    response_model=SubmitResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def submit_contact(
    payload: SubmissionIn,
    workflow: SubmissionWorkflow = Depends(get_workflow),
):
    """Store a contact submission and attempt the notification email.

    The response reflects persistence only; a failed or disabled
    notification still returns success.
    """
    try:
        record = await workflow.submit(payload)
    except (StoreWriteError, SubmissionValidationError):
        # Re-raise to be caught by exception handlers
        raise
    except Exception as e:
        logger.error(f"Unexpected error saving submission: {e}", exc_info=True)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, SAVE_ERROR_MESSAGE)

    return SubmitResponse(message="Submission saved successfully", data=record)


@router.get(
    "/api/contact",
    response_model=SubmissionListResponse,
    status_code=status.HTTP_200_OK,
    responses={500: {"model": ErrorResponse}},
)
async def list_contacts(workflow: SubmissionWorkflow = Depends(get_workflow)):
    """Retrieve every stored submission, oldest first."""
    try:
        submissions = await workflow.list_all()
    except StoreReadError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error reading submissions: {e}", exc_info=True)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, READ_ERROR_MESSAGE)

    return SubmissionListResponse(data=submissions)


app = create_app()
