from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Acknowledgement for operations without a resource body (health, delete)."""
    message: str
    details: Optional[Dict[str, Any]] = Field(None, description="Identifiers touched by the operation")


class ErrorInfo(BaseModel):
    type: str = Field(..., description="http_error, validation_error, configuration_error or internal_error")
    message: str
    details: Optional[Any] = Field(None, description="Validation issues or a structured HTTP detail")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Error envelope shared by every exception handler of the API."""
    status: int
    error: ErrorInfo
    correlation_id: Optional[str] = Field(None, description="Echo of the X-Correlation-ID header")
    path: str
    method: str
    timestamp: datetime
