"""Common response schemas."""

from typing import Dict, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    detail: str
    code: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    checks: Dict[str, str] = {}
