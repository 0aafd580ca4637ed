"""Command-line interface for the registration service."""

from __future__ import annotations
import argparse
import logging
import sys
from getpass import getpass
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

try:
    import httpx
except ImportError as exc:  # pragma: no cover - exercised in environments missing deps
    raise SystemExit(
        "The 'httpx' package is required. Execute `pip install -e .` to install dependencies."
    ) from exc

from registration.config import ServiceSettings, build_storage, load_settings
from registration.database import Database
from registration.models import RegistrationInput, UserRecord
from registration.storage import StorageError
from registration.store import RegistrationRejected, RegistrationStore
from registration.validation import validate_field

logger = logging.getLogger("registration.main")

_PROMPTS = (
    ("fullName", "Full name"),
    ("email", "Email address"),
    ("phone", "Phone number"),
    ("dateOfBirth", "Date of birth (YYYY-MM-DD)"),
)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Registration service utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (default: REGISTRATION_CONFIG or config/registration.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the configured storage backend")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP registration service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address for the service")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the HTTP service (default: 8000)",
    )

    users_parser = subparsers.add_parser("users", help="List registered users")
    users_parser.add_argument(
        "--service-url",
        default=None,
        help="Query a running service instead of the local storage backend",
    )

    remove_parser = subparsers.add_parser("remove", help="Remove a registered user by id")
    remove_parser.add_argument("user_id", help="Identifier of the user to remove")
    remove_parser.add_argument(
        "--service-url",
        default=None,
        help="Remove through a running service instead of the local storage backend",
    )

    subparsers.add_parser("register", help="Register a user interactively")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "users", "remove", "register"}

    global_args: list[str] = []
    if len(args_list) >= 2 and args_list[0] == "--config":
        global_args, args_list = args_list[:2], args_list[2:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args([*global_args, *args_list])
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args([*global_args, *args_list])
            args_list = ["serve", *args_list]

    return parser.parse_args([*global_args, *args_list])


def _load_settings(config: Optional[str]) -> ServiceSettings:
    return load_settings(Path(config).expanduser() if config else None)


def _open_store(settings: ServiceSettings) -> RegistrationStore:
    return RegistrationStore(build_storage(settings), key=settings.storage_key)


def _serve(*, settings: ServiceSettings, host: str, port: int) -> None:
    from registration.service import create_app
    import uvicorn

    logger.info("Starting registration service on http://%s:%s", host, port)
    app = create_app(settings=settings)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _initialise_storage(settings: ServiceSettings) -> None:
    storage = build_storage(settings)
    if isinstance(storage, Database):
        logger.info("Database initialised at %s", storage.path)
    print(f"Storage backend '{settings.storage_backend}' is ready.")


def _print_users(records: Sequence[UserRecord]) -> None:
    if not records:
        print("No users are currently registered.")
        return

    print(f"{len(records)} user(s) found:")
    print(f"{'ID':<15}  {'Name':<24}  {'Email':<32}  Registered")
    print("-" * 96)
    for record in records:
        print(f"{record.id:<15}  {record.full_name:<24}  {record.email:<32}  {record.registered_at}")


def _fetch_remote_users(service_url: str) -> Optional[list[UserRecord]]:
    endpoint = service_url.rstrip("/") + "/api/users"
    try:
        response = httpx.get(endpoint, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact registration service: {exc}")
        return None

    if response.status_code != 200:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return None

    try:
        payload = response.json()
        return [UserRecord.from_dict(item) for item in payload.get("users", [])]
    except (ValueError, AttributeError, TypeError):
        print("Service returned an unexpected response format.")
        return None


def _list_users(settings: ServiceSettings, service_url: Optional[str]) -> int:
    if service_url:
        records = _fetch_remote_users(service_url)
        if records is None:
            return 1
    else:
        records = _open_store(settings).load_all()
    _print_users(records)
    return 0


def _remove_user(settings: ServiceSettings, user_id: str, service_url: Optional[str]) -> int:
    if service_url:
        endpoint = service_url.rstrip("/") + f"/api/users/{user_id}"
        try:
            response = httpx.delete(endpoint, timeout=10.0)
        except httpx.HTTPError as exc:
            print(f"Failed to contact registration service: {exc}")
            return 1
        if response.status_code != 204:
            print(f"Service responded with {response.status_code}: {response.text.strip()}")
            return 1
        print(f"Removed user {user_id} (if it was registered).")
        return 0

    if _open_store(settings).remove_by_id(user_id):
        print(f"Removed user {user_id}.")
    else:
        print(f"No user with id {user_id} is registered.")
    return 0


def _prompt_field(
    field_name: str,
    label: str,
    *,
    reader: Callable[[str], str],
    context: Dict[str, str],
) -> Optional[str]:
    for _ in range(3):
        value = reader(f"{label}: ")
        error = validate_field(field_name, value, context)
        if error is None:
            return value
        print(error)
    return None


def _register_user(
    settings: ServiceSettings,
    *,
    reader: Callable[[str], str] = input,
    secret_reader: Callable[[str], str] = getpass,
) -> int:
    print("Register a new user. Each field is validated as you go.")
    values: Dict[str, str] = {}
    for field_name, label in _PROMPTS:
        value = _prompt_field(field_name, label, reader=reader, context=values)
        if value is None:
            print("Registration cancelled after three invalid attempts.")
            return 1
        values[field_name] = value

    password = _prompt_field("password", "Password", reader=secret_reader, context=values)
    if password is None:
        print("Registration cancelled after three invalid attempts.")
        return 1
    values["password"] = password

    confirmation = _prompt_field(
        "confirmPassword", "Confirm password", reader=secret_reader, context=values
    )
    if confirmation is None:
        print("Registration cancelled after three invalid attempts.")
        return 1
    values["confirmPassword"] = confirmation

    try:
        record = _open_store(settings).register(RegistrationInput.from_mapping(values))
    except RegistrationRejected as exc:
        for field_name, message in exc.errors.items():
            print(f"{field_name}: {message}")
        return 1

    print(f"Registered user {record.id}: {record.full_name} <{record.email}>")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    try:
        settings = _load_settings(args.config)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    try:
        if args.command == "serve":
            _serve(settings=settings, host=args.host, port=args.port)
        elif args.command == "init-db":
            _initialise_storage(settings)
        elif args.command == "users":
            return _list_users(settings, args.service_url)
        elif args.command == "remove":
            return _remove_user(settings, args.user_id, args.service_url)
        elif args.command == "register":
            return _register_user(settings)
    except StorageError as exc:
        print(f"Storage error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
