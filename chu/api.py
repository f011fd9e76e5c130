"""FastAPI endpoints for users and heart-rate readings."""

import logging
import traceback
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List

from bson import ObjectId
from fastapi import APIRouter, Body, Depends, FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from chu.config import (
    REQUIRED_HEART_RATE_FIELDS,
    REQUIRED_USER_FIELDS,
    USER_IDENTITY_FIELDS,
    WELCOME_MESSAGE,
    Settings,
)
from chu.errors import StoreOperationError, ValidationError
from chu.models import (
    DatabaseDump,
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    WriteResponse,
)
from chu.storage import DocumentStore
from chu.validation import validate_record

logger = logging.getLogger(__name__)

router = APIRouter()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the document store on startup and close it on shutdown."""
    opened = None
    if getattr(app.state, "store", None) is None:
        settings: Settings = app.state.settings
        opened = DocumentStore.from_url(
            settings.connection_string,
            settings.database_name,
            settings.server_selection_timeout_ms,
        )
        # Raising here aborts startup so no traffic is served without a store
        opened.connect()
        app.state.store = opened
    yield
    if opened is not None:
        opened.close()
        app.state.store = None


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def encode_documents(documents: Any) -> Any:
    """Make MongoDB documents JSON-safe (ObjectId as hex string)."""
    return jsonable_encoder(documents, custom_encoder={ObjectId: str})


async def store_error_handler(request: Request, exc: StoreOperationError) -> JSONResponse:
    """Render a store failure as a 500 with the driver error and traceback."""
    cause = exc.__cause__ or exc
    logger.error("%s: %s", exc.message, cause, exc_info=exc)
    body = ErrorResponse(
        message=exc.message,
        error=str(cause),
        stack="".join(traceback.format_exception(type(cause), cause, cause.__traceback__)),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(),
    )


def _rejected_response(message: str, exc: ValidationError) -> JSONResponse:
    logger.warning("Rejected record, %s", exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=MessageResponse(message=message).model_dump(),
    )


@router.get(
    "/",
    response_model=DatabaseDump,
    summary="Dump the database",
    description="Return the documents of every collection in the database",
)
def dump_database(
    request: Request, store: DocumentStore = Depends(get_store)
) -> DatabaseDump:
    """
    Return every collection with its documents.

    ROOT_DOCUMENT_LIMIT caps the documents per collection; unset means no cap.
    """
    settings: Settings = request.app.state.settings
    collections = store.dump_collections(limit=settings.root_document_limit)
    return DatabaseDump(
        message=WELCOME_MESSAGE,
        database=store.database_name,
        collections=encode_documents(collections),
    )


@router.get("/users", summary="List users")
def list_users(store: DocumentStore = Depends(get_store)) -> List[Dict[str, Any]]:
    return encode_documents(store.list_users())


@router.get("/heartrates", summary="List heart-rate readings")
def list_heart_rates(store: DocumentStore = Depends(get_store)) -> List[Dict[str, Any]]:
    return encode_documents(store.list_heart_rates())


@router.post(
    "/users",
    response_model=WriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create or update a user",
    description="Insert a user, or update the user with the same username and password",
    responses={
        200: {"model": WriteResponse, "description": "Existing user updated"},
        400: {"model": MessageResponse},
        500: {"model": ErrorResponse},
    },
)
def post_user(
    response: Response,
    user: Dict[str, Any] = Body(...),
    store: DocumentStore = Depends(get_store),
) -> WriteResponse:
    """
    Upsert a user keyed by (username, password).

    Answers 201 when a new document is inserted and 200 when an existing
    one is updated in place.
    """
    logger.info("Received user data for %r", user.get("username"))
    try:
        validate_record(user, REQUIRED_USER_FIELDS, string_fields=USER_IDENTITY_FIELDS)
    except ValidationError as e:
        if e.missing:
            return _rejected_response("Missing required fields", e)
        return _rejected_response("Username and password must be strings", e)

    result = store.upsert_user(user)

    if result.created:
        return WriteResponse(message="User created successfully", userId=str(result.user_id))

    response.status_code = status.HTTP_200_OK
    return WriteResponse(message="User updated successfully", userId=str(result.user_id))


@router.post(
    "/heartrates",
    response_model=WriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a heart-rate reading",
    responses={400: {"model": MessageResponse}, 500: {"model": ErrorResponse}},
)
def post_heart_rate(
    reading: Dict[str, Any] = Body(...),
    store: DocumentStore = Depends(get_store),
) -> WriteResponse:
    """Append a heart-rate reading; the id of the new reading is returned as userId."""
    try:
        validate_record(reading, REQUIRED_HEART_RATE_FIELDS)
    except ValidationError as e:
        return _rejected_response("Missing required fields (userId, rate, timestamp)", e)

    reading_id = store.insert_heart_rate(reading)
    return WriteResponse(message="Heart rate recorded successfully", userId=str(reading_id))


@router.get("/health", response_model=HealthResponse, summary="Health check endpoint")
def health_check() -> HealthResponse:
    """Health check endpoint for monitoring."""
    return HealthResponse()
