"""Local persistence of the working session."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from provision_sdk.errors import PersistenceError
from provision_sdk.schemas import StoredSession
from provision_sdk.session import SessionSnapshot

DEFAULT_STORAGE_KEY = "provision_data"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SessionStore:
    """Stores one session record as JSON under a fixed key inside ``state_dir``."""

    def __init__(self, state_dir: str | Path, key: str = DEFAULT_STORAGE_KEY) -> None:
        if not key or "/" in key or "\\" in key:
            raise ValueError(f"invalid storage key: {key!r}")
        self.state_dir = Path(state_dir)
        self.key = key

    @property
    def path(self) -> Path:
        return self.state_dir / f"{self.key}.json"

    def save(self, snapshot: SessionSnapshot) -> bool:
        if snapshot.is_empty:
            return False

        payload = {
            "userId": snapshot.identity,
            "accounts": [account.model_dump(mode="json") for account in snapshot.accounts],
            "lastUpdated": _utc_now_iso(),
        }
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(payload, sort_keys=True, indent=2) + "\n",
                encoding="utf-8",
            )
        except OSError as exc:
            raise PersistenceError(f"failed to write session file: {self.path}") from exc
        logger.debug("saved session {} ({} accounts)", snapshot.identity, len(snapshot.accounts))
        return True

    def load(self) -> StoredSession | None:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return StoredSession.model_validate(payload)
        except (OSError, ValueError) as exc:
            logger.warning("ignoring unreadable session file {}: {}", self.path, exc)
            return None

    def load_snapshot(self) -> SessionSnapshot | None:
        stored = self.load()
        if stored is None:
            return None
        return SessionSnapshot(identity=stored.user_id, accounts=tuple(stored.accounts))

    def clear(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise PersistenceError(f"failed to remove session file: {self.path}") from exc
        return True
