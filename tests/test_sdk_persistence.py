from __future__ import annotations

import json

import pytest

from provision_sdk.persistence import SessionStore
from provision_sdk.schemas import Account
from provision_sdk.session import SessionSnapshot, SessionState


def _snapshot() -> SessionSnapshot:
    accounts = (
        Account(
            email="a@example.com",
            password="pw-a",
            promo_code="111111",
            status="success",
            created_at="2024-05-01T10:00:00Z",
        ),
        Account(
            email="b@example.com",
            password="pw-b",
            promo_code="111111",
            status="failed",
            created_at="2024-05-01T10:00:01Z",
            error="rejected",
        ),
    )
    return SessionSnapshot(identity="U1", accounts=accounts)


def test_save_then_load_round_trips(tmp_path) -> None:
    store = SessionStore(tmp_path)
    snapshot = _snapshot()

    assert store.save(snapshot) is True
    loaded = store.load_snapshot()

    assert loaded == snapshot


def test_saved_record_uses_storage_key_layout(tmp_path) -> None:
    store = SessionStore(tmp_path, key="custom_key")
    store.save(_snapshot())

    payload = json.loads((tmp_path / "custom_key.json").read_text(encoding="utf-8"))
    assert set(payload) == {"userId", "accounts", "lastUpdated"}
    assert payload["userId"] == "U1"
    assert payload["lastUpdated"].endswith("Z")
    assert [account["email"] for account in payload["accounts"]] == ["a@example.com", "b@example.com"]


def test_save_overwrites_previous_record(tmp_path) -> None:
    store = SessionStore(tmp_path)
    store.save(_snapshot())
    replacement = SessionState().replace("U2", _snapshot().accounts[:1])

    store.save(replacement)

    assert store.load_snapshot() == replacement


@pytest.mark.parametrize(
    "snapshot",
    [
        SessionSnapshot(),
        SessionSnapshot(identity="U1", accounts=()),
        SessionSnapshot(identity="", accounts=_snapshot().accounts),
    ],
)
def test_save_skips_incomplete_sessions(tmp_path, snapshot) -> None:
    store = SessionStore(tmp_path)

    assert store.save(snapshot) is False
    assert not store.path.exists()


def test_extra_account_fields_survive_round_trip(tmp_path) -> None:
    account = Account.model_validate(
        {
            "email": "a@example.com",
            "password": "pw",
            "promo_code": "111111",
            "status": "success",
            "created_at": "2024-05-01T10:00:00Z",
            "region": "eu",
        }
    )
    store = SessionStore(tmp_path)
    store.save(SessionSnapshot(identity="U1", accounts=(account,)))

    loaded = store.load_snapshot()

    assert loaded is not None
    assert loaded.accounts[0].model_dump()["region"] == "eu"


def test_load_missing_returns_none(tmp_path) -> None:
    assert SessionStore(tmp_path).load() is None


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        json.dumps({"userId": "U1"}),
        json.dumps({"userId": "", "accounts": [], "lastUpdated": "x"}),
        json.dumps({"userId": "U1", "accounts": [{"email": "x"}], "lastUpdated": "x"}),
    ],
)
def test_corrupt_record_is_treated_as_absent(tmp_path, content) -> None:
    store = SessionStore(tmp_path)
    store.path.write_text(content, encoding="utf-8")

    assert store.load() is None
    assert store.load_snapshot() is None


def test_clear_removes_record(tmp_path) -> None:
    store = SessionStore(tmp_path)
    store.save(_snapshot())

    assert store.clear() is True
    assert store.clear() is False
    assert store.load() is None


@pytest.mark.parametrize("key", ["", "../escape", "a\\b"])
def test_invalid_storage_key_rejected(tmp_path, key) -> None:
    with pytest.raises(ValueError):
        SessionStore(tmp_path, key=key)
