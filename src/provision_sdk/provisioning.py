"""Provisioning workflow: remote batch creation, login and session reconciliation."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import Any, Callable, Literal, Protocol, TypeVar

from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from provision_sdk.errors import (
    ApplicationError,
    PersistenceError,
    ProvisionSDKError,
    TransportError,
    ValidationError,
)
from provision_sdk.persistence import SessionStore
from provision_sdk.presenter import NullPresenter, Presenter
from provision_sdk.progress import (
    DEFAULT_PROGRESS_INTERVAL,
    DEFAULT_PROGRESS_LINGER,
    ProgressReporter,
)
from provision_sdk.schemas import (
    MAX_BATCH_COUNT,
    MIN_BATCH_COUNT,
    Account,
    ApiStatus,
    CreateAccountsResponse,
    GetAccountsResponse,
)
from provision_sdk.session import SessionSnapshot, SessionState

ResultKind = Literal["success", "validation_error", "transport_error", "application_error"]

IDENTITY_NOT_FOUND = "identity not found"
CREATE_FAILED = "failed to create accounts"

_PROMO_CODE_RE = re.compile(r"[0-9]{6}")

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class ProvisioningTransport(Protocol):
    def get_status(self) -> dict: ...

    def create_accounts(self, *, promo_code: str, count: int, user_id: str | None) -> dict: ...

    def get_accounts(self, *, user_id: str) -> dict: ...


@dataclass(frozen=True)
class BatchSummary:
    identity: str
    accounts: tuple[Account, ...]
    created_count: int


@dataclass(frozen=True)
class OperationResult:
    kind: ResultKind
    summary: BatchSummary | None = None
    error: ProvisionSDKError | None = None

    @property
    def ok(self) -> bool:
        return self.kind == "success"

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    def unwrap(self) -> BatchSummary:
        if self.error is not None:
            raise self.error
        if self.summary is None:
            raise ProvisionSDKError(f"{self.kind} result carries no summary")
        return self.summary


def validate_promo_code(promo_code: object) -> str:
    if not isinstance(promo_code, str) or not _PROMO_CODE_RE.fullmatch(promo_code):
        raise ValidationError("promo code must be exactly 6 digits")
    return promo_code


def validate_count(count: object) -> int:
    if isinstance(count, bool) or not isinstance(count, int):
        raise ValidationError("account count must be an integer")
    if count < MIN_BATCH_COUNT or count > MAX_BATCH_COUNT:
        raise ValidationError(
            f"account count must be between {MIN_BATCH_COUNT} and {MAX_BATCH_COUNT}"
        )
    return count


def validate_identity(identity: object) -> str:
    candidate = identity.strip() if isinstance(identity, str) else ""
    if not candidate:
        raise ValidationError("identity must not be empty")
    return candidate


def _kind_for(exc: ProvisionSDKError) -> ResultKind:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, ApplicationError):
        return "application_error"
    return "transport_error"


def _parse(model: type[_ModelT], payload: object, endpoint: str) -> _ModelT:
    try:
        return model.model_validate(payload)
    except SchemaError as exc:
        raise TransportError(f"malformed {endpoint} response: {exc}", body=payload) from exc


def _call(endpoint: str, method: Callable[..., Any], **kwargs: Any) -> Any:
    try:
        return method(**kwargs)
    except ProvisionSDKError:
        raise
    except Exception as exc:
        raise TransportError(f"{endpoint} request failed: {exc}") from exc


def _require_identity(user_id: str | None, endpoint: str) -> str:
    if not user_id:
        raise TransportError(f"malformed {endpoint} response: missing user_id")
    return user_id


class ProvisioningClient:
    def __init__(
        self,
        api: ProvisioningTransport,
        session: SessionState | None = None,
        *,
        store: SessionStore | None = None,
        presenter: Presenter | None = None,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
        progress_linger: float = DEFAULT_PROGRESS_LINGER,
    ) -> None:
        self.api = api
        self.session = session if session is not None else SessionState()
        self.store = store
        self.presenter: Presenter = presenter if presenter is not None else NullPresenter()
        self.progress_interval = progress_interval
        self.progress_linger = progress_linger
        self._pending_clear: threading.Timer | None = None

    def _cancel_pending_clear(self) -> None:
        if self._pending_clear is not None:
            self._pending_clear.cancel()
            self._pending_clear = None

    def _settle_progress(self, reporter: ProgressReporter) -> None:
        self._pending_clear = reporter.schedule_clear(
            self.presenter.clear_progress, self.progress_linger
        )

    def _failure(self, context: str, exc: ProvisionSDKError) -> OperationResult:
        kind = _kind_for(exc)
        logger.info("{} rejected ({}): {}", context, kind, exc)
        self.presenter.render_error(context, str(exc))
        return OperationResult(kind=kind, error=exc)

    def _persist(self, snapshot: SessionSnapshot) -> None:
        if self.store is None:
            return
        try:
            self.store.save(snapshot)
        except PersistenceError as exc:
            logger.error("session kept in memory only: {}", exc)
            self.presenter.render_error("storage", str(exc))

    def _reconcile(self, identity: str, accounts: list[Account]) -> SessionSnapshot:
        snapshot = self.session.replace(identity, accounts)
        self._persist(snapshot)
        self.presenter.render(snapshot.accounts)
        self.presenter.render_stats(identity, snapshot.accounts)
        return snapshot

    def create_batch(
        self,
        promo_code: str,
        count: int,
        existing_identity: str | None = None,
    ) -> OperationResult:
        """Request ``count`` accounts under ``promo_code`` and adopt the returned set.

        ``existing_identity`` defaults to the current session identity. It is only a
        hint; whatever identity the server answers with becomes the session identity.
        """
        try:
            validate_promo_code(promo_code)
            validate_count(count)
        except ValidationError as exc:
            return self._failure("create", exc)

        user_id = existing_identity if existing_identity is not None else self.session.identity
        # A clear still pending from the previous batch must not blank this one.
        self._cancel_pending_clear()
        reporter = ProgressReporter(
            count,
            self.presenter.render_progress,
            interval=self.progress_interval,
        )
        reporter.start()
        try:
            payload = _call(
                "create-accounts",
                self.api.create_accounts,
                promo_code=promo_code,
                count=count,
                user_id=user_id,
            )
            response = _parse(CreateAccountsResponse, payload, "create-accounts")
            if not response.success:
                raise ApplicationError(response.error or CREATE_FAILED)
            identity = _require_identity(response.user_id, "create-accounts")
        except ProvisionSDKError as exc:
            reporter.fail()
            self._settle_progress(reporter)
            return self._failure("create", exc)
        finally:
            reporter.stop()

        reporter.complete()
        self._settle_progress(reporter)
        snapshot = self._reconcile(identity, response.accounts)

        summary = BatchSummary(
            identity=identity,
            accounts=snapshot.accounts,
            created_count=snapshot.success_count,
        )
        logger.info(
            "batch for promo {} created {}/{} accounts",
            promo_code,
            summary.created_count,
            count,
        )
        self.presenter.render_notice(
            "create",
            f"Successfully created {summary.created_count} out of {count} accounts! "
            f"Your User ID: {identity}",
        )
        return OperationResult(kind="success", summary=summary)

    def fetch_by_identity(self, identity: str) -> OperationResult:
        try:
            user_id = validate_identity(identity)
        except ValidationError as exc:
            return self._failure("login", exc)

        try:
            payload = _call("get-accounts", self.api.get_accounts, user_id=user_id)
            response = _parse(GetAccountsResponse, payload, "get-accounts")
            if not response.success:
                raise ApplicationError(response.error or IDENTITY_NOT_FOUND)
            fetched_identity = _require_identity(response.user_id, "get-accounts")
        except ProvisionSDKError as exc:
            return self._failure("login", exc)

        snapshot = self._reconcile(fetched_identity, response.accounts)
        self.presenter.render_notice("login", "Login successful!")
        return OperationResult(
            kind="success",
            summary=BatchSummary(
                identity=fetched_identity,
                accounts=snapshot.accounts,
                created_count=snapshot.success_count,
            ),
        )

    def restore(self, *, render: bool = True) -> SessionSnapshot | None:
        if self.store is None:
            return None
        stored = self.store.load_snapshot()
        if stored is None or stored.identity is None:
            return None
        snapshot = self.session.replace(stored.identity, stored.accounts)
        if render and snapshot.accounts:
            self.presenter.render(snapshot.accounts)
            self.presenter.render_stats(stored.identity, snapshot.accounts)
        return snapshot

    def check_online(self) -> bool:
        try:
            status = _parse(ApiStatus, _call("status", self.api.get_status), "status")
        except ProvisionSDKError as exc:
            logger.warning("API status check failed: {}", exc)
            return False
        return status.status == "online"


__all__ = [
    "BatchSummary",
    "OperationResult",
    "ProvisioningClient",
    "ProvisioningTransport",
    "validate_count",
    "validate_identity",
    "validate_promo_code",
]
