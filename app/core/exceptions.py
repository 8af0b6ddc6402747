# app/core/exceptions.py

from fastapi import HTTPException, status
from typing import Any, Dict, Optional

class APIException(HTTPException):
    """
    Base exception for API errors.
    Inherits from HTTPException so FastAPI renders it without extra wiring.
    """
    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        message: str = "An unexpected error occurred.",
        name: str = "Internal Server Error",
        headers: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.message = message
        self.name = name
        super().__init__(status_code=status_code, detail=message, headers=headers)

class unauthorized(APIException):
    """
    Authentication failed or credentials missing (401).
    """
    def __init__(self, message: str = "Please authenticate"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, "Unauthorized")

class not_found(APIException):
    """
    Resource not found (404).
    """
    def __init__(self, message: str = "Not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, message, "Not Found")

class bad_request(APIException):
    """
    Bad request (400).
    """
    def __init__(self, message: str = "Bad request."):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, "Bad Request")
