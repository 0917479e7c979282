"""Rendering contract used by the provisioning client."""

from __future__ import annotations

import sys
from typing import Protocol, Sequence, TextIO

from provision_sdk.progress import ProgressUpdate
from provision_sdk.schemas import Account

STATS_IDENTITY_WIDTH = 20


class Presenter(Protocol):
    def render(self, accounts: Sequence[Account]) -> None: ...

    def render_stats(self, identity: str, accounts: Sequence[Account]) -> None: ...

    def render_error(self, context: str, message: str) -> None: ...

    def render_notice(self, context: str, message: str) -> None: ...

    def render_progress(self, update: ProgressUpdate) -> None: ...

    def clear_progress(self) -> None: ...


class NullPresenter:
    def render(self, accounts: Sequence[Account]) -> None:
        return None

    def render_stats(self, identity: str, accounts: Sequence[Account]) -> None:
        return None

    def render_error(self, context: str, message: str) -> None:
        return None

    def render_notice(self, context: str, message: str) -> None:
        return None

    def render_progress(self, update: ProgressUpdate) -> None:
        return None

    def clear_progress(self) -> None:
        return None


def shorten_identity(identity: str, width: int = STATS_IDENTITY_WIDTH) -> str:
    return identity[:width] + "..."


class ConsolePresenter:
    """Text presenter for terminals; progress is redrawn in place on a TTY."""

    def __init__(self, stdout: TextIO | None = None, stderr: TextIO | None = None) -> None:
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        self._progress_width = 0

    def _end_progress_line(self) -> None:
        if self._progress_width:
            self.stdout.write("\n")
            self._progress_width = 0

    def _interactive(self) -> bool:
        isatty = getattr(self.stdout, "isatty", None)
        return bool(isatty and isatty())

    def render(self, accounts: Sequence[Account]) -> None:
        self._end_progress_line()
        if not accounts:
            print("No accounts yet. Create your first batch to get started.", file=self.stdout)
            return
        for index, account in enumerate(accounts, start=1):
            print(f"Account #{index} [{account.status.upper()}]", file=self.stdout)
            print(f"  email:      {account.email}", file=self.stdout)
            print(f"  password:   {account.password}", file=self.stdout)
            print(f"  promo_code: {account.promo_code}", file=self.stdout)
            print(f"  created:    {account.created_at}", file=self.stdout)
            if account.failed:
                print(f"  error:      {account.error}", file=self.stdout)

    def render_stats(self, identity: str, accounts: Sequence[Account]) -> None:
        success = sum(1 for account in accounts if account.status == "success")
        print(f"user: {shorten_identity(identity)}", file=self.stdout)
        print(f"total_accounts: {len(accounts)}", file=self.stdout)
        print(f"success_accounts: {success}", file=self.stdout)

    def render_error(self, context: str, message: str) -> None:
        self._end_progress_line()
        print(f"{context} error: {message}", file=self.stderr)

    def render_notice(self, context: str, message: str) -> None:
        self._end_progress_line()
        print(message, file=self.stdout)

    def render_progress(self, update: ProgressUpdate) -> None:
        line = f"[{update.percent:>3}%] {update.message}"
        if self._interactive():
            padding = " " * max(0, self._progress_width - len(line))
            self.stdout.write(f"\r{line}{padding}")
            self.stdout.flush()
            self._progress_width = len(line)
        else:
            print(line, file=self.stdout)

    def clear_progress(self) -> None:
        if self._interactive() and self._progress_width:
            self.stdout.write("\r" + " " * self._progress_width + "\r")
            self.stdout.flush()
        self._progress_width = 0


__all__ = ["Presenter", "NullPresenter", "ConsolePresenter", "shorten_identity"]
