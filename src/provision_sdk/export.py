"""Plain-text export of a provisioned account set."""

from __future__ import annotations

from datetime import datetime, tzinfo
from pathlib import Path
from typing import Sequence

from provision_sdk.errors import ExportError
from provision_sdk.schemas import Account
from provision_sdk.session import SessionSnapshot

EXPORT_MIME_TYPE = "text/plain"
DEFAULT_EXPORT_TITLE = "PROVISIONED ACCOUNTS"
DEFAULT_EXPORT_PREFIX = "provision"

_RULE = "=" * 70
_SEPARATOR = "-" * 70
_DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(value: datetime | str, tz: tzinfo | None = None) -> str:
    """Render a timestamp for display, in ``tz`` or the local zone."""
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    else:
        parsed = value
    if parsed.tzinfo is None:
        return parsed.strftime(_DISPLAY_FORMAT)
    return parsed.astimezone(tz).strftime(_DISPLAY_FORMAT)


def group_by_promo_code(accounts: Sequence[Account]) -> dict[str, list[Account]]:
    groups: dict[str, list[Account]] = {}
    for account in accounts:
        groups.setdefault(account.promo_code, []).append(account)
    return groups


def registration_link(registration_url: str, promo_code: str) -> str:
    return f"{registration_url}?code={promo_code}"


def render_export(
    identity: str,
    accounts: Sequence[Account],
    generated_at: datetime,
    *,
    title: str = DEFAULT_EXPORT_TITLE,
    registration_url: str,
    login_url: str,
    tz: tzinfo | None = None,
) -> str:
    lines = [
        _RULE,
        title,
        _RULE,
        f"User ID: {identity}",
        f"Generated: {format_timestamp(generated_at, tz)}",
        f"Total Accounts: {len(accounts)}",
        _RULE,
        "",
    ]

    for promo_code, group in group_by_promo_code(accounts).items():
        lines.extend(
            [
                "",
                _RULE,
                f"PROMO CODE: {promo_code}",
                f"Registration Link: {registration_link(registration_url, promo_code)}",
                f"Accounts: {len(group)}",
                _RULE,
                "",
            ]
        )
        for index, account in enumerate(group, start=1):
            lines.extend(
                [
                    f"Account #{index}:",
                    f"  Email:    {account.email}",
                    f"  Password: {account.password}",
                    f"  Status:   {account.status}",
                    f"  Created:  {format_timestamp(account.created_at, tz)}",
                    f"  Login:    {login_url}",
                    f"  Format:   {account.email}:{account.password}",
                ]
            )
            if account.failed:
                lines.append(f"  Error:    {account.error or ''}")
            lines.append(_SEPARATOR)

    lines.extend(["", _RULE, "END OF FILE", _RULE])
    return "\n".join(lines) + "\n"


def export_filename(prefix: str, identity: str, timestamp_ms: int) -> str:
    return f"{prefix}_accounts_{identity}_{timestamp_ms}.txt"


def write_export(
    snapshot: SessionSnapshot,
    directory: str | Path,
    *,
    registration_url: str,
    login_url: str,
    title: str = DEFAULT_EXPORT_TITLE,
    prefix: str = DEFAULT_EXPORT_PREFIX,
    generated_at: datetime | None = None,
    tz: tzinfo | None = None,
) -> Path:
    if snapshot.is_empty:
        raise ExportError("no accounts to export")

    generated = generated_at or datetime.now().astimezone()
    content = render_export(
        snapshot.identity or "",
        snapshot.accounts,
        generated,
        title=title,
        registration_url=registration_url,
        login_url=login_url,
        tz=tz,
    )
    target_dir = Path(directory)
    timestamp_ms = int(generated.timestamp() * 1000)
    target = target_dir / export_filename(prefix, snapshot.identity or "", timestamp_ms)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ExportError(f"failed to write export file: {target}") from exc
    return target
