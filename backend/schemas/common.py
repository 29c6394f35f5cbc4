from pydantic import BaseModel
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope wrapping every successful JSON response"""
    success: bool = True
    message: str = ""
    data: Optional[T] = None
