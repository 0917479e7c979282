"""Command-line interface for the provisioning client."""

from __future__ import annotations

import argparse
import json
import sys
import time
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path
from typing import Sequence

from provision_sdk.cli.config import CLIConfig, ConfigError, load_cli_config
from provision_sdk.client import ProvisioningAPI
from provision_sdk.errors import ExportError, PersistenceError
from provision_sdk.export import write_export
from provision_sdk.logging_config import setup_logging
from provision_sdk.persistence import SessionStore
from provision_sdk.presenter import ConsolePresenter, NullPresenter, Presenter
from provision_sdk.provisioning import OperationResult, ProvisioningClient
from provision_sdk.session import SessionSnapshot, SessionState

EXIT_SUCCESS = 0
EXIT_VALIDATION_ERROR = 1
EXIT_NETWORK_ERROR = 2
EXIT_APPLICATION_ERROR = 3
EXIT_STORAGE_ERROR = 4

_RESULT_EXIT_CODES = {
    "success": EXIT_SUCCESS,
    "validation_error": EXIT_VALIDATION_ERROR,
    "transport_error": EXIT_NETWORK_ERROR,
    "application_error": EXIT_APPLICATION_ERROR,
}


def _sdk_version() -> str:
    try:
        return pkg_version("provision-sdk")
    except PackageNotFoundError:
        return "0.0.0+local"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="provision")
    parser.add_argument(
        "--version",
        action="version",
        version=f"provision {_sdk_version()}",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to CLI config TOML (default: ~/.provision_agent/config.toml)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version", help="Show CLI version and configured API")
    version.add_argument("--json", action="store_true", help="Print version details as JSON")

    status = sub.add_parser("status", help="Probe provisioning API liveness")
    status.add_argument("--watch", action="store_true", help="Keep polling until interrupted")
    status.add_argument(
        "--interval",
        type=float,
        default=30.0,
        help="Seconds between probes with --watch (default: 30)",
    )
    status.add_argument("--json", action="store_true")

    create = sub.add_parser("create", help="Create a batch of accounts under a promo code")
    create.add_argument("--promo-code", required=True, help="6-digit promo code")
    create.add_argument("--count", type=int, required=True, help="Number of accounts (1-50)")
    create_identity_group = create.add_mutually_exclusive_group()
    create_identity_group.add_argument(
        "--identity",
        default=None,
        help="Identity to append to (default: identity of the stored session)",
    )
    create_identity_group.add_argument(
        "--fresh",
        action="store_true",
        help="Do not send the stored identity; let the server issue a new one",
    )
    create.add_argument("--json", action="store_true")

    login = sub.add_parser("login", help="Load the accounts owned by an identity")
    login.add_argument("identity", help="Identity issued by a previous batch")
    login.add_argument("--json", action="store_true")

    show = sub.add_parser("show", help="Show the stored session")
    show.add_argument("--json", action="store_true")

    export = sub.add_parser("export", help="Write the stored accounts to a text file")
    export.add_argument(
        "--output-dir",
        default=".",
        help="Directory for the export file (default: current directory)",
    )
    export.add_argument("--json", action="store_true")

    logout = sub.add_parser("logout", help="Forget the stored session")
    logout.add_argument("--json", action="store_true")

    return parser


class _ErrorOnlyPresenter(NullPresenter):
    def __init__(self, stderr) -> None:  # noqa: ANN001
        self.stderr = stderr

    def render_error(self, context: str, message: str) -> None:
        print(f"{context} error: {message}", file=self.stderr)


def _print_error(stderr, prefix: str, message: str, *, code: int) -> int:
    print(f"{prefix}: {message}", file=stderr)
    return code


def _configure_logging(config: CLIConfig) -> None:
    consumers: list[dict] = [{"type": "console"}]
    if config.log_file:
        consumers.append({"type": "file", "path": config.log_file})
    setup_logging(config.log_level, consumers)


def _build_store(config: CLIConfig) -> SessionStore:
    return SessionStore(config.state_dir, config.storage_key)


def _build_client(*, config: CLIConfig, presenter: Presenter) -> ProvisioningClient:
    api = ProvisioningAPI(
        base_url=config.api_base,
        timeout=config.request_timeout,
        retries=config.retries,
    )
    return ProvisioningClient(
        api,
        SessionState(),
        store=_build_store(config),
        presenter=presenter,
        progress_interval=config.progress_interval,
        progress_linger=config.progress_linger,
    )


def _presenter_for(args, stdout, stderr) -> Presenter:  # noqa: ANN001
    if args.json:
        return _ErrorOnlyPresenter(stderr)
    return ConsolePresenter(stdout=stdout, stderr=stderr)


def _snapshot_payload(snapshot: SessionSnapshot) -> dict:
    return {
        "identity": snapshot.identity,
        "total_accounts": len(snapshot.accounts),
        "success_accounts": snapshot.success_count,
        "accounts": [account.model_dump(mode="json") for account in snapshot.accounts],
    }


def _print_result(result: OperationResult, *, as_json: bool, stdout) -> int:  # noqa: ANN001
    code = _RESULT_EXIT_CODES[result.kind]
    if not as_json or result.summary is None:
        return code
    summary = result.summary
    payload = {
        "identity": summary.identity,
        "created_count": summary.created_count,
        "total_accounts": len(summary.accounts),
        "accounts": [account.model_dump(mode="json") for account in summary.accounts],
    }
    print(json.dumps(payload, sort_keys=True), file=stdout)
    return code


def _run_version(*, config: CLIConfig, as_json: bool, stdout) -> int:  # noqa: ANN001
    payload = {
        "cli": "provision",
        "sdk_version": _sdk_version(),
        "api_base": config.api_base,
        "state_dir": config.state_dir,
    }
    if as_json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(f"provision {payload['sdk_version']}", file=stdout)
        print(f"api: {payload['api_base']}", file=stdout)
        print(f"state: {payload['state_dir']}", file=stdout)
    return EXIT_SUCCESS


def _run_status(*, args, config: CLIConfig, stdout, stderr) -> int:  # noqa: ANN001
    client = _build_client(config=config, presenter=NullPresenter())
    while True:
        online = client.check_online()
        if args.json:
            print(json.dumps({"api_base": config.api_base, "online": online}), file=stdout)
        else:
            print("API Online" if online else "API Offline", file=stdout)
        if not args.watch:
            return EXIT_SUCCESS if online else EXIT_NETWORK_ERROR
        try:
            time.sleep(max(0.1, args.interval))
        except KeyboardInterrupt:
            return EXIT_SUCCESS


def _run_create(*, args, config: CLIConfig, stdout, stderr) -> int:  # noqa: ANN001
    client = _build_client(config=config, presenter=_presenter_for(args, stdout, stderr))
    if not args.fresh:
        client.restore(render=False)
    existing_identity = (args.identity or "").strip() or None
    result = client.create_batch(args.promo_code.strip(), args.count, existing_identity)
    return _print_result(result, as_json=args.json, stdout=stdout)


def _run_login(*, args, config: CLIConfig, stdout, stderr) -> int:  # noqa: ANN001
    client = _build_client(config=config, presenter=_presenter_for(args, stdout, stderr))
    result = client.fetch_by_identity(args.identity)
    return _print_result(result, as_json=args.json, stdout=stdout)


def _run_show(*, args, config: CLIConfig, stdout, stderr) -> int:  # noqa: ANN001
    presenter = NullPresenter() if args.json else ConsolePresenter(stdout=stdout, stderr=stderr)
    client = _build_client(config=config, presenter=presenter)
    snapshot = client.restore()
    if args.json:
        payload = _snapshot_payload(snapshot or SessionSnapshot())
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return EXIT_SUCCESS
    if snapshot is None:
        print("no stored session", file=stdout)
    elif not snapshot.accounts:
        presenter.render(snapshot.accounts)
    return EXIT_SUCCESS


def _run_export(*, args, config: CLIConfig, stdout, stderr) -> int:  # noqa: ANN001
    snapshot = _build_store(config).load_snapshot()
    if snapshot is None:
        return _print_error(
            stderr, "export error", "no accounts to export", code=EXIT_STORAGE_ERROR
        )
    try:
        path = write_export(
            snapshot,
            Path(args.output_dir),
            registration_url=config.registration_url,
            login_url=config.login_url,
            title=config.export_title,
            prefix=config.export_prefix,
        )
    except ExportError as exc:
        return _print_error(stderr, "export error", str(exc), code=EXIT_STORAGE_ERROR)

    if args.json:
        payload = {"path": str(path), "total_accounts": len(snapshot.accounts)}
        print(json.dumps(payload, sort_keys=True), file=stdout)
    else:
        print(f"exported {len(snapshot.accounts)} accounts to {path}", file=stdout)
    return EXIT_SUCCESS


def _run_logout(*, args, config: CLIConfig, stdout, stderr) -> int:  # noqa: ANN001
    try:
        removed = _build_store(config).clear()
    except PersistenceError as exc:
        return _print_error(stderr, "storage error", str(exc), code=EXIT_STORAGE_ERROR)
    if args.json:
        print(json.dumps({"cleared": removed}), file=stdout)
    else:
        print("stored session cleared" if removed else "no stored session", file=stdout)
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None, *, stdout=sys.stdout, stderr=sys.stderr) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_cli_config(args.config)
    except ConfigError as exc:
        return _print_error(stderr, "config error", str(exc), code=EXIT_VALIDATION_ERROR)

    _configure_logging(config)

    if args.command == "version":
        return _run_version(config=config, as_json=args.json, stdout=stdout)

    if args.command == "status":
        return _run_status(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "create":
        return _run_create(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "login":
        return _run_login(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "show":
        return _run_show(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "export":
        return _run_export(args=args, config=config, stdout=stdout, stderr=stderr)

    if args.command == "logout":
        return _run_logout(args=args, config=config, stdout=stdout, stderr=stderr)

    print("unknown command", file=stderr)
    return EXIT_VALIDATION_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
