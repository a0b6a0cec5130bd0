# app/utils/error_handling.py

import logging
import traceback
from typing import Dict, Any, Optional

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)

class APIError(Exception):
    """Base class for API errors"""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

class ValidationError(APIError):
    """Error for invalid engine input (bad stage index, unusable viscometer readings...)"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="validation_error",
            details=details
        )

class NotFoundError(APIError):
    """Error for an unknown project, trip run or cement job"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="not_found",
            details=details
        )

class CalculationError(APIError):
    """Error for calculation failures"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="calculation_error",
            details=details
        )

def handle_api_error(error: Exception) -> HTTPException:
    """
    Convert any exception to an appropriate HTTPException.

    Args:
        error: The exception to handle

    Returns:
        HTTPException with appropriate status code and details
    """
    if isinstance(error, APIError):
        return HTTPException(
            status_code=error.status_code,
            detail={
                "error": error.error_code,
                "message": error.message,
                "details": error.details
            }
        )
    elif isinstance(error, HTTPException):
        return error
    else:
        tb = traceback.format_exc()
        logger.error(f"Unexpected error: {str(error)}\n{tb}")

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "calculation_error",
                "message": "An unexpected error occurred during the calculation",
                "details": {"error_type": type(error).__name__}
            }
        )
