"""
Error kinds surfaced to API callers.

Every request-scoped failure ends up as one of these. `main.py` converts
them into a JSON body: {"success": false, "error": "...", "code": "..."}.
"""

from __future__ import annotations


class ServiceError(RuntimeError):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SourceUnavailable(ServiceError):
    """The dataset could not be fetched or parsed."""

    status_code = 503
    code = "source_unavailable"


class ProvisionerUnavailable(ServiceError):
    """The remote store could not be reached while resolving or creating folders."""

    status_code = 503
    code = "provisioner_unavailable"


class MissingRequiredField(ServiceError):
    status_code = 400
    code = "missing_required_field"

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"Missing required field '{field}'.")
        self.field = field


class UploadTooLarge(ServiceError):
    status_code = 413
    code = "upload_too_large"

    def __init__(self, max_bytes: int) -> None:
        super().__init__(f"File too large. Max is {max_bytes} bytes.")
        self.max_bytes = max_bytes


class LengthRequired(ServiceError):
    """Upload sent without a usable Content-Length, so its size cannot be checked up front."""

    status_code = 411
    code = "length_required"


class UnsupportedBackend(ServiceError):
    code = "unsupported_backend"
