"""Command line interface for the scheduled SQL Server backup job."""
from __future__ import annotations

import argparse
import logging
import sys
from getpass import getpass
from pathlib import Path
from typing import Iterable, NoReturn, Optional

from mssql_backup.config import AppConfig, ConfigError, load_config, save_config
from mssql_backup.connection import PyodbcConnector
from mssql_backup.runner import BackupRunner
from mssql_backup.secrets import SecretError, SecretManager

EXIT_BACKUP_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Back up SQL Server databases and archive the backups as ZIP files.",
    )
    parser.add_argument("--config", default="config.yaml", help="Path to the configuration file.")
    parser.add_argument("--key", default="secrets/key.key", help="Path to the secrets encryption key.")
    parser.add_argument(
        "--secrets", default="secrets/secrets.json", help="Path to the encrypted secrets file."
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase logging verbosity.")

    subparsers = parser.add_subparsers(dest="command")

    parser_run = subparsers.add_parser("run", help="Back up the configured databases.")
    parser_run.add_argument(
        "-d",
        "--database",
        action="append",
        dest="databases",
        help="Database to back up instead of the configured list (repeatable).",
    )

    subparsers.add_parser("init-config", help="Write a configuration file with default values.")
    subparsers.add_parser("init-key", help="Create a new secrets encryption key.")

    parser_secret = subparsers.add_parser("set-secret", help="Store an encrypted secret.")
    parser_secret.add_argument("name", help="Secret name.")
    parser_secret.add_argument("--value", help="Secret value (prompted for when omitted).")
    parser_secret.add_argument(
        "--stdin",
        action="store_true",
        help="Read the secret value from STDIN without confirmation.",
    )

    subparsers.add_parser("list-secrets", help="List stored secret names.")

    return parser


def configure_logging(level: int) -> None:
    if level >= 2:
        log_level = logging.DEBUG
    elif level == 1:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING
    logging.basicConfig(level=log_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def create_secret_manager(args: argparse.Namespace) -> SecretManager:
    return SecretManager(key_path=Path(args.key), secrets_path=Path(args.secrets))


def die(message: str, code: int = EXIT_CONFIG_ERROR) -> NoReturn:
    """Print *message* to stderr and exit; setup problems default to the configuration exit code."""
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(code)


def load_application_config(path: Path) -> AppConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        die(f"cannot load configuration: {exc}")


def resolve_connection_string(config: AppConfig, secret_manager: SecretManager) -> None:
    """Fill ``config.connection_string`` from the secret store when it is referenced there."""

    if config.connection_string and config.connection_string.strip():
        return
    if not config.connection_string_secret:
        raise ConfigError(
            "Administrative connection string is missing: set 'connection_string' "
            "or 'connection_string_secret'."
        )
    try:
        config.connection_string = secret_manager.get_secret(config.connection_string_secret)
    except SecretError as exc:
        raise ConfigError(str(exc)) from exc


def handle_run(args: argparse.Namespace, config: AppConfig, secret_manager: SecretManager) -> None:
    databases = args.databases or config.databases
    if not databases:
        die("no databases configured.")
    try:
        resolve_connection_string(config, secret_manager)
        runner = BackupRunner(config, connector=PyodbcConnector())
    except ConfigError as exc:
        die(str(exc))

    print("Starting database backup...")
    succeeded = runner.run(databases)
    print("Backup process completed.")
    if not succeeded:
        sys.exit(EXIT_BACKUP_FAILED)


def handle_init_config(config_path: Path) -> None:
    if config_path.exists():
        die(f"configuration file '{config_path}' already exists.")
    save_config(AppConfig(connection_string_secret="mssql-admin"), config_path)
    print(f"Configuration written to {config_path}")


def handle_init_key(secret_manager: SecretManager) -> None:
    try:
        secret_manager.generate_key()
    except SecretError as exc:
        die(str(exc))
    print(f"Encryption key created: {secret_manager.key_path}")


def read_secret_value(value: Optional[str], from_stdin: bool) -> str:
    if value is not None:
        return value
    if from_stdin:
        return sys.stdin.read().rstrip("\n")
    first = getpass("Secret value: ")
    if first != getpass("Repeat value: "):
        die("values do not match.")
    return first


def handle_set_secret(secret_manager: SecretManager, name: str, value: Optional[str], from_stdin: bool) -> None:
    try:
        secret_manager.ensure_key_available()
        secret_manager.set_secret(name, read_secret_value(value, from_stdin))
    except SecretError as exc:
        die(f"cannot store secret '{name}': {exc}")
    print(f"Secret '{name}' stored in {secret_manager.secrets_path}")


def handle_list_secrets(secret_manager: SecretManager) -> None:
    try:
        names = secret_manager.list_secrets()
    except SecretError as exc:
        die(str(exc))

    if not names:
        print("No secrets stored.")
        return
    print("Stored secrets:")
    for name in names:
        print(f"  - {name}")


def main(argv: Optional[Iterable[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return

    configure_logging(args.verbose)
    secret_manager = create_secret_manager(args)
    config_path = Path(args.config)

    if args.command == "init-key":
        handle_init_key(secret_manager)
    elif args.command == "init-config":
        handle_init_config(config_path)
    elif args.command == "set-secret":
        handle_set_secret(secret_manager, args.name, args.value, args.stdin)
    elif args.command == "list-secrets":
        handle_list_secrets(secret_manager)
    elif args.command == "run":
        handle_run(args, load_application_config(config_path), secret_manager)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
