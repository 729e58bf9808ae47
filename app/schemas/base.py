"""
Response envelopes shared by every endpoint.

Successful calls return {success, message, data, timestamp}; failures are
raised as HTTPException whose detail is an ErrorDetail dump, so clients
read them from response["detail"].
"""
from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field
from datetime import datetime
from zoneinfo import ZoneInfo

# India Standard Time
IST = ZoneInfo("Asia/Kolkata")
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Generic type for data payload
DataType = TypeVar('DataType')


def ist_timestamp() -> str:
    return datetime.now(IST).strftime(TIMESTAMP_FORMAT)


class Envelope(BaseModel):
    success: bool = Field(True, description="Indicates if the request was successful")
    message: str = Field("Success", description="Human readable message")
    timestamp: str = Field(default_factory=ist_timestamp, description="IST wall time, YYYY-mm-dd HH:MM:SS")


class BaseResponse(Envelope, Generic[DataType]):
    data: Optional[DataType] = Field(None, description="Response data payload")


class ListResponse(Envelope, Generic[DataType]):
    """Unpaginated list response (calendar days, a student's bookings)"""
    data: List[DataType] = Field(default_factory=list, description="List of items")


class ErrorDetail(Envelope):
    success: bool = False
    error_code: Optional[str] = Field(None, description="Machine readable code, e.g. NO_SEATS")
    details: Optional[Dict[str, Any]] = Field(None, description="Outcome and every violated rule")


def create_success_response(data: Any = None, message: str = "Success") -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": ist_timestamp(),
    }


def create_error_response(message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return ErrorDetail(message=message, error_code=error_code, details=details).model_dump()
