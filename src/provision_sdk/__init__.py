"""Provisioning SDK public surface."""

from provision_sdk.client import ProvisioningAPI
from provision_sdk.errors import (
    ApplicationError,
    ExportError,
    PersistenceError,
    ProvisionSDKError,
    TransportError,
    ValidationError,
)
from provision_sdk.export import export_filename, render_export, write_export
from provision_sdk.persistence import SessionStore
from provision_sdk.presenter import ConsolePresenter, NullPresenter, Presenter
from provision_sdk.progress import ProgressReporter, ProgressUpdate, progress_percent
from provision_sdk.provisioning import (
    BatchSummary,
    OperationResult,
    ProvisioningClient,
    ProvisioningTransport,
)
from provision_sdk.schemas import Account, StoredSession
from provision_sdk.session import SessionSnapshot, SessionState

__all__ = [
    "ProvisionSDKError",
    "ValidationError",
    "TransportError",
    "ApplicationError",
    "PersistenceError",
    "ExportError",
    "ProvisioningAPI",
    "ProvisioningTransport",
    "ProvisioningClient",
    "OperationResult",
    "BatchSummary",
    "SessionState",
    "SessionSnapshot",
    "SessionStore",
    "StoredSession",
    "Account",
    "ProgressReporter",
    "ProgressUpdate",
    "progress_percent",
    "Presenter",
    "ConsolePresenter",
    "NullPresenter",
    "render_export",
    "export_filename",
    "write_export",
]
