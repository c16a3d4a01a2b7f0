from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Optional


class ImageVaultError(Exception):
    """Base class for every expected failure of the vault core."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        # Workflow state in which the error surfaced, if raised inside a workflow
        self.failed_state: Optional[str] = None
        super().__init__(self.message)


class InvalidInput(ImageVaultError):
    status_code = 400
    default_message = "Invalid input"


class InvalidKeyInput(InvalidInput):
    default_message = "A passphrase is required"


class PayloadTooLarge(InvalidInput):
    status_code = 413
    default_message = "Request entity too large"


class NotFound(ImageVaultError):
    status_code = 404
    default_message = "Image not found"


class DecryptionFailed(ImageVaultError):
    """Wrong passphrase or tampered ciphertext. The two are deliberately indistinguishable."""

    status_code = 400
    default_message = "Decryption failed. Check your key."


class MalformedCiphertext(ImageVaultError):
    """Stored IV/ciphertext do not have a structurally valid shape."""

    status_code = 500
    default_message = "Stored ciphertext is malformed"


class StorageUnavailable(ImageVaultError):
    status_code = 503
    default_message = "Storage is temporarily unavailable"


def create_error_response(error_message: str, status_code: int = 400) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message
    }

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, exc.status_code)
    )

async def vault_exception_handler(request: Request, exc: ImageVaultError) -> JSONResponse:
    """Translate core errors into the standard error body. Messages never carry secrets."""
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, exc.status_code)
    )
