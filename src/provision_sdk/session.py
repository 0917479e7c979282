"""Working session owned by a provisioning client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from provision_sdk.schemas import Account


@dataclass(frozen=True)
class SessionSnapshot:
    identity: str | None = None
    accounts: tuple[Account, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.identity or not self.accounts

    @property
    def success_count(self) -> int:
        return sum(1 for account in self.accounts if account.status == "success")


class SessionState:
    """Single mutable holder of the current identity and account list.

    Readers get an immutable snapshot; writers replace the whole snapshot in one
    assignment, so identity and accounts are never observed from different
    updates.
    """

    def __init__(self, snapshot: SessionSnapshot | None = None) -> None:
        self._snapshot = snapshot or SessionSnapshot()

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def identity(self) -> str | None:
        return self._snapshot.identity

    @property
    def accounts(self) -> tuple[Account, ...]:
        return self._snapshot.accounts

    def replace(self, identity: str, accounts: Iterable[Account]) -> SessionSnapshot:
        snapshot = SessionSnapshot(identity=identity, accounts=tuple(accounts))
        self._snapshot = snapshot
        return snapshot
