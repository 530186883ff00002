"""HTTP error rendering

Use-case errors are raised as ClientError and rendered as
{"error": {"code": ..., "message": ...}}.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from libs.result import Error

STATUS_BY_CODE = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "INVOICE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_STATE": status.HTTP_409_CONFLICT,
    "IMMUTABILITY_VIOLATION": status.HTTP_409_CONFLICT,
    "BUSINESS_RULE_VIOLATION": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "INTEGRITY_VIOLATION": status.HTTP_423_LOCKED,
    "ALLOCATION_FAILED": status.HTTP_503_SERVICE_UNAVAILABLE,
    "LOCK_TIMEOUT": status.HTTP_503_SERVICE_UNAVAILABLE,
    "STORAGE_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
}


class ClientError(Exception):
    def __init__(self, error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code

    @classmethod
    def from_error(cls, error: Error) -> "ClientError":
        """ClientError with the HTTP status mapped from the error code"""
        status_code = STATUS_BY_CODE.get(error.code)
        if status_code is None:
            # Unexpected use-case failures (e.g. ISSUE_INVOICE_FAILED)
            status_code = (
                status.HTTP_500_INTERNAL_SERVER_ERROR
                if error.code.endswith("_FAILED")
                else status.HTTP_400_BAD_REQUEST
            )
        return cls(error, status_code=status_code)


async def client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.error.code, "message": exc.error.message}},
    )
