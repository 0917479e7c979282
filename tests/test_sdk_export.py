from __future__ import annotations

from datetime import datetime, timezone

import pytest

from provision_sdk.errors import ExportError
from provision_sdk.export import (
    EXPORT_MIME_TYPE,
    export_filename,
    format_timestamp,
    group_by_promo_code,
    render_export,
    write_export,
)
from provision_sdk.schemas import Account
from provision_sdk.session import SessionSnapshot

GENERATED_AT = datetime(2024, 5, 2, 8, 30, 0, tzinfo=timezone.utc)
REGISTRATION_URL = "https://example.com/register"
LOGIN_URL = "https://example.com/login"


def _account(email: str, promo_code: str, *, status: str = "success", error: str | None = None) -> Account:
    return Account(
        email=email,
        password=f"pw-{email.split('@')[0]}",
        promo_code=promo_code,
        status=status,
        created_at="2024-05-01T10:00:00Z",
        error=error,
    )


def _accounts() -> list[Account]:
    return [
        _account("a@example.com", "111111"),
        _account("b@example.com", "222222", status="failed", error="rejected"),
        _account("c@example.com", "111111"),
    ]


def _render(accounts: list[Account]) -> str:
    return render_export(
        "U1",
        accounts,
        GENERATED_AT,
        title="TEST EXPORT",
        registration_url=REGISTRATION_URL,
        login_url=LOGIN_URL,
        tz=timezone.utc,
    )


def test_render_export_exact_layout() -> None:
    accounts = [
        _account("a@example.com", "111111"),
        _account("b@example.com", "111111"),
        _account("c@example.com", "222222", status="failed", error="rejected"),
    ]

    expected = "\n".join(
        [
            "=" * 70,
            "TEST EXPORT",
            "=" * 70,
            "User ID: U1",
            "Generated: 2024-05-02 08:30:00",
            "Total Accounts: 3",
            "=" * 70,
            "",
            "",
            "=" * 70,
            "PROMO CODE: 111111",
            "Registration Link: https://example.com/register?code=111111",
            "Accounts: 2",
            "=" * 70,
            "",
            "Account #1:",
            "  Email:    a@example.com",
            "  Password: pw-a",
            "  Status:   success",
            "  Created:  2024-05-01 10:00:00",
            "  Login:    https://example.com/login",
            "  Format:   a@example.com:pw-a",
            "-" * 70,
            "Account #2:",
            "  Email:    b@example.com",
            "  Password: pw-b",
            "  Status:   success",
            "  Created:  2024-05-01 10:00:00",
            "  Login:    https://example.com/login",
            "  Format:   b@example.com:pw-b",
            "-" * 70,
            "",
            "=" * 70,
            "PROMO CODE: 222222",
            "Registration Link: https://example.com/register?code=222222",
            "Accounts: 1",
            "=" * 70,
            "",
            "Account #1:",
            "  Email:    c@example.com",
            "  Password: pw-c",
            "  Status:   failed",
            "  Created:  2024-05-01 10:00:00",
            "  Login:    https://example.com/login",
            "  Format:   c@example.com:pw-c",
            "  Error:    rejected",
            "-" * 70,
            "",
            "=" * 70,
            "END OF FILE",
            "=" * 70,
            "",
        ]
    )

    assert _render(accounts) == expected


def test_render_export_is_byte_stable() -> None:
    assert _render(_accounts()).encode("utf-8") == _render(_accounts()).encode("utf-8")


def test_groups_follow_first_appearance_with_local_indices() -> None:
    content = _render(_accounts())

    assert content.index("PROMO CODE: 111111") < content.index("PROMO CODE: 222222")
    first_group = content[content.index("PROMO CODE: 111111") : content.index("PROMO CODE: 222222")]
    second_group = content[content.index("PROMO CODE: 222222") :]
    assert "Account #1:" in first_group and "Account #2:" in first_group
    assert "c@example.com" in first_group
    assert "Account #1:" in second_group and "Account #2:" not in second_group
    assert "Total Accounts: 3" in content


def test_group_by_promo_code_is_not_sorted() -> None:
    accounts = [_account("z@example.com", "999999"), _account("a@example.com", "000000")]
    assert list(group_by_promo_code(accounts)) == ["999999", "000000"]


def test_error_line_only_for_failed_accounts() -> None:
    content = _render(_accounts())
    assert content.count("  Error:") == 1


def test_format_timestamp_handles_unparseable_values() -> None:
    assert format_timestamp("not-a-date", timezone.utc) == "not-a-date"
    assert format_timestamp("2024-05-01T10:00:00+02:00", timezone.utc) == "2024-05-01 08:00:00"


def test_export_filename_pattern() -> None:
    assert export_filename("provision", "U1", 1714638600000) == "provision_accounts_U1_1714638600000.txt"
    assert EXPORT_MIME_TYPE == "text/plain"


def test_write_export_creates_named_file(tmp_path) -> None:
    snapshot = SessionSnapshot(identity="U1", accounts=tuple(_accounts()))

    path = write_export(
        snapshot,
        tmp_path / "exports",
        registration_url=REGISTRATION_URL,
        login_url=LOGIN_URL,
        prefix="acme",
        generated_at=GENERATED_AT,
        tz=timezone.utc,
    )

    assert path.name == "acme_accounts_U1_1714638600000.txt"
    assert path.read_text(encoding="utf-8") == render_export(
        "U1",
        snapshot.accounts,
        GENERATED_AT,
        registration_url=REGISTRATION_URL,
        login_url=LOGIN_URL,
        tz=timezone.utc,
    )


def test_write_export_refuses_empty_session(tmp_path) -> None:
    with pytest.raises(ExportError):
        write_export(
            SessionSnapshot(),
            tmp_path,
            registration_url=REGISTRATION_URL,
            login_url=LOGIN_URL,
        )
