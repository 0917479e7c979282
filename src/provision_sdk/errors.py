"""SDK error types."""

from __future__ import annotations


class ProvisionSDKError(RuntimeError):
    """Base SDK error."""


class ValidationError(ProvisionSDKError, ValueError):
    """Input was rejected before any request was sent."""


class TransportError(ProvisionSDKError):
    """Provisioning API could not be reached or answered unusably."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: object | None = None,
        body: object | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
        self.body = body


class ApplicationError(ProvisionSDKError):
    """Provisioning API answered with success=false."""


class PersistenceError(ProvisionSDKError):
    """Local session storage could not be written."""


class ExportError(ProvisionSDKError):
    """Account export could not be produced."""
