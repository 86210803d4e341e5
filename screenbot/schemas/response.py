from pydantic import BaseModel
from typing import Dict, Optional, Any

class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None

class ReadinessResponse(BaseModel):
    """
    Readiness check body.
    """
    status: str
    checks: Dict[str, str] = {}
    reason: Optional[str] = None
