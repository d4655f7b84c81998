"""
Domain errors raised by module services.

Routes never build error responses by hand: the handlers registered in
`create_app()` translate any `AppError` into the JSON envelope
`{"success": false, "error": <message>}` with the error's status code.
"""

from __future__ import annotations


class AppError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class ValidationError(AppError):
    status_code = 400
    public_message = "Invalid request"


class NotFoundError(AppError):
    status_code = 404
    public_message = "Not found"


class ConflictError(AppError):
    # Duplicate unique keys answer 400, like other rejected writes.
    status_code = 400
    public_message = "Conflicting record already exists"


class StoreError(AppError):
    status_code = 500
    public_message = "Storage unavailable"
