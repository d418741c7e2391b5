from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable

from control_combustible.bootstrap.container import AppContainer, build_container
from control_combustible.bootstrap.logging import configure_logging, install_exception_hook
from control_combustible.bootstrap.settings import load_settings, resolve_log_dir
from control_combustible.core.errors import AppError
from control_combustible.core.metrics import metrics_registry
from control_combustible.domain.models import SyncStatus
from control_combustible.domain.services import ValidacionError
from control_combustible.infrastructure.db import get_connection
from control_combustible.infrastructure.migrations import MigrationRunner

logger = logging.getLogger("control_combustible.cli")

EXIT_OK = 0
EXIT_HANDLED_ERROR = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="control_combustible", description="Control de combustible: sync offline")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Estado de la outbox y del transporte remoto")
    subparsers.add_parser("sync", help="Vacía la outbox ahora")

    import_parser = subparsers.add_parser("import", help="Importa repostajes desde la hoja remota")
    import_parser.add_argument("--email", required=True)
    import_parser.add_argument("--password", required=True)

    subparsers.add_parser("export", help="Exporta todos los repostajes locales")
    subparsers.add_parser("requeue", help="Reactiva las entradas de outbox en ERROR")

    config_parser = subparsers.add_parser("config", help="Configura la conexión remota")
    config_parser.add_argument("--spreadsheet", help="ID o URL de la hoja de Google")
    config_parser.add_argument("--webhook", help="URL del script publicado (vacío para quitarlo)")
    config_parser.add_argument("--credential-file", type=Path, help="JSON con la credencial de usuario autorizado")
    config_parser.add_argument("--disconnect", action="store_true", help="Olvida la cuenta de Google")

    subparsers.add_parser("migrate", help="Aplica las migraciones pendientes")
    return parser


def _print_json(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")


def _cmd_status(container: AppContainer, args: argparse.Namespace) -> int:
    fuel_events = container.session.fuel_events
    _print_json(
        {
            "outbox": container.outbox.counts(),
            "repostajes": {
                status.value: len(fuel_events.list_by_sync_status(status))
                for status in (SyncStatus.PENDING, SyncStatus.ERROR)
            },
            "remoto": container.sync_settings.describe().to_dict(),
        }
    )
    return EXIT_OK


def _cmd_sync(container: AppContainer, args: argparse.Namespace) -> int:
    report = container.sync_engine.sync_now()
    _print_json(report.to_dict())
    logger.info("Métricas tras sync manual", extra={"extra": metrics_registry.snapshot()})
    return EXIT_OK


def _cmd_import(container: AppContainer, args: argparse.Namespace) -> int:
    account = container.auth.login(args.email, args.password)
    inserted = container.remote_import.import_remote(account)
    _print_json({"importados": inserted})
    return EXIT_OK


def _cmd_export(container: AppContainer, args: argparse.Namespace) -> int:
    result = container.remote_export.export_all()
    _print_json({"ok": result.success, "spreadsheet_id": result.spreadsheet_id, "creada": result.created})
    return EXIT_OK


def _cmd_requeue(container: AppContainer, args: argparse.Namespace) -> int:
    _print_json({"reactivadas": container.outbox.requeue_stuck()})
    return EXIT_OK


def _cmd_config(container: AppContainer, args: argparse.Namespace) -> int:
    settings = container.sync_settings
    if args.spreadsheet is not None:
        settings.set_spreadsheet_id(args.spreadsheet)
    if args.webhook is not None:
        settings.set_webhook_url(args.webhook)
    if args.credential_file is not None:
        try:
            credential = json.loads(args.credential_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ValidacionError(f"No se pudo leer la credencial: {exc}") from exc
        settings.connect_google(credential)
    if args.disconnect:
        settings.disconnect()
    _print_json(settings.describe().to_dict())
    return EXIT_OK


_COMMANDS: dict[str, Callable[[AppContainer, argparse.Namespace], int]] = {
    "status": _cmd_status,
    "sync": _cmd_sync,
    "import": _cmd_import,
    "export": _cmd_export,
    "requeue": _cmd_requeue,
    "config": _cmd_config,
}


def _run_migrate() -> int:
    connection = get_connection(load_settings().db_path)
    try:
        runner = MigrationRunner(connection)
        applied = runner.apply_all()
        _print_json({"aplicadas": applied, "estado": runner.status()})
    finally:
        connection.close()
    return EXIT_OK


def main(
    argv: list[str] | None = None,
    *,
    container_factory: Callable[[], AppContainer] = build_container,
) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(resolve_log_dir())
    install_exception_hook()

    if args.command == "migrate":
        return _run_migrate()

    container = container_factory()
    try:
        return _COMMANDS[args.command](container, args)
    except AppError as exc:
        logger.error("Comando %s fallido: %s", args.command, exc)
        sys.stderr.write(f"Error: {exc}\n")
        return EXIT_HANDLED_ERROR
    finally:
        container.close()


if __name__ == "__main__":
    raise SystemExit(main())
