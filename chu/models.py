"""Pydantic models for response serialization."""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class WriteResponse(BaseModel):
    """Response model for a user or heart-rate write."""

    message: str = Field(..., description="Outcome of the write")
    userId: str = Field(..., description="Identifier of the written document")


class MessageResponse(BaseModel):
    """Response model for a rejected request."""

    message: str = Field(..., description="Reason the request was rejected")


class ErrorResponse(BaseModel):
    """Response model for a store failure."""

    message: str = Field(..., description="Summary of the failure")
    error: str = Field(..., description="Underlying driver error")
    stack: str = Field(..., description="Formatted traceback")


class DatabaseDump(BaseModel):
    """Response model for the root route."""

    message: str
    database: str = Field(..., description="Database name")
    collections: Dict[str, List[Dict[str, Any]]] = Field(
        ..., description="Documents keyed by collection name"
    )


class HealthResponse(BaseModel):
    """Response model for the health check."""

    status: str = Field(default="healthy", description="Service status")
    service: str = Field(default="chu-server", description="Service name")
