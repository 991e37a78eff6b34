"""Command-line console for the AppointMe user roster."""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import anyio

from appointme.application import Application, create_application
from appointme.config import AppConfig, load_config, resolve_config_path
from appointme.events import ServiceEvent
from appointme.models import PATCH_FIELDS, UserRecord, UserType
from appointme.service import UserService

logger = logging.getLogger("appointme.main")


def _add_field_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--first-name", dest="first_name", default=None, help="Given name")
    parser.add_argument("--last-name", dest="last_name", default=None, help="Family name")
    parser.add_argument("--email", default=None, help="Unique email address")
    parser.add_argument("--phone", default=None, help="Contact phone number")
    parser.add_argument(
        "--type",
        dest="user_type",
        default=None,
        help="One of: client, provider, admin",
    )
    parser.add_argument("--status", default=None, help="active or inactive")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="AppointMe user roster utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the YAML configuration (defaults to APPOINTME_CONFIG or config/appointme.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")
    parser.set_defaults(command="console")

    subparsers.add_parser("console", help="Launch the interactive roster console")

    list_parser = subparsers.add_parser("list", help="List users")
    list_parser.add_argument("--type", dest="user_type", default=None, help="Only list users of this type")

    show_parser = subparsers.add_parser("show", help="Show a single user")
    show_parser.add_argument("user_id", help="Numeric user id")

    add_parser = subparsers.add_parser("add", help="Create a user")
    _add_field_options(add_parser)

    update_parser = subparsers.add_parser("update", help="Update fields of an existing user")
    update_parser.add_argument("user_id", help="Numeric user id")
    _add_field_options(update_parser)

    delete_parser = subparsers.add_parser("delete", help="Delete a user")
    delete_parser.add_argument("user_id", help="Numeric user id")

    search_parser = subparsers.add_parser("search", help="Search names, emails and user types")
    search_parser.add_argument("query", nargs="?", default="", help="Case-insensitive search term")

    subparsers.add_parser("stats", help="Show roster statistics")

    import_parser = subparsers.add_parser("import", help="Import users from a JSON file")
    import_parser.add_argument("path", type=Path, help="JSON list of users or an export document")

    export_parser = subparsers.add_parser("export", help="Export users and statistics as JSON")
    export_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the export to this file instead of standard output",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    return parser.parse_args(args_list)


def _load_app_config(config_arg: str | None) -> AppConfig:
    config_path = resolve_config_path(config_arg or os.getenv("APPOINTME_CONFIG"))
    return load_config(config_path)


# ----------------------------------------------------------------------
# Rendering
# ----------------------------------------------------------------------
def _print_users(users: Sequence[UserRecord], *, empty_message: str = "No users found.") -> None:
    if not users:
        print(empty_message)
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Name':<24}  {'Email':<32}  {'Type':<9}  {'Status':<8}  Created")
    print("-" * 100)
    for user in users:
        created = user.created_at.astimezone().strftime("%Y-%m-%d %H:%M")
        print(
            f"{user.id:>4}  {user.full_name:<24}  {user.email:<32}  "
            f"{user.user_type.value:<9}  {user.status.value:<8}  {created}"
        )


def _print_user(user: UserRecord) -> None:
    print(f"User #{user.id}: {user.full_name} <{user.email}>")
    print(f"  Phone:    {user.phone}")
    print(f"  Type:     {user.user_type.value}")
    print(f"  Status:   {user.status.value}")
    print(f"  Created:  {user.created_at.isoformat()}")
    print(f"  Active:   {user.last_active.isoformat()}")
    if user.last_modified is not None:
        print(f"  Modified: {user.last_modified.isoformat()}")


def _print_stats(service: UserService) -> None:
    stats = service.get_stats()
    print(f"Total users:  {stats.total}")
    print(f"Active:       {stats.active}")
    print(f"Inactive:     {stats.inactive}")
    print(f"New today:    {stats.new_today}")
    for user_type in UserType:
        print(f"{user_type.value.capitalize() + 's:':<14}{stats.by_type.get(user_type.value, 0)}")


def _notify_console(event: ServiceEvent, payload: Any) -> None:
    """Print a short notice for each change, mirroring the web UI's toasts."""

    if event is ServiceEvent.USER_CREATED:
        print(f"User {payload.full_name} created successfully!")
    elif event is ServiceEvent.USER_UPDATED:
        print(f"User {payload['updated'].full_name} updated successfully!")
    elif event is ServiceEvent.USER_DELETED:
        print(f"User {payload.full_name} deleted successfully!")
    elif event is ServiceEvent.USERS_SAVED:
        logger.debug("Roster saved (%d user(s))", len(payload))
    elif event is ServiceEvent.ERROR:
        print(f"Error: {payload['message']}", file=sys.stderr)


# ----------------------------------------------------------------------
# Form helpers
# ----------------------------------------------------------------------
def _form_from_args(args: argparse.Namespace) -> Dict[str, str]:
    form: Dict[str, str] = {}
    for name, serialized in PATCH_FIELDS.items():
        value = getattr(args, name, None)
        if value is not None:
            form[serialized] = value
    return form


def _form_from_record(user: UserRecord) -> Dict[str, str]:
    """Pre-fill every field so partial edits still send a complete form."""

    return {
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "phone": user.phone,
        "userType": user.user_type.value,
        "status": user.status.value,
    }


def _read_import_file(path: Path) -> List[Any]:
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if isinstance(payload, dict) and "users" in payload:
        payload = payload["users"]
    if not isinstance(payload, list):
        raise ValueError("Import file must contain a list of users or an export document")
    return payload


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
async def _run_command(args: argparse.Namespace, app: Application) -> int:
    service = app.service
    command = args.command

    if command == "list":
        users = service.get_users_by_type(args.user_type) if args.user_type else service.get_all_users()
        _print_users(users)
        return 0

    if command == "show":
        user = service.get_user_by_id(args.user_id)
        if user is None:
            print(f"User {args.user_id} not found.", file=sys.stderr)
            return 1
        _print_user(user)
        return 0

    if command == "search":
        _print_users(service.search_users(args.query), empty_message="No users match your search.")
        return 0

    if command == "stats":
        _print_stats(service)
        return 0

    if command == "export":
        document = json.dumps(service.export_users().to_dict(), indent=2)
        if args.output is None:
            print(document)
        else:
            args.output.write_text(document + "\n", encoding="utf-8")
            print(f"Exported {len(service.get_all_users())} user(s) to {args.output}")
        return 0

    if command == "add":
        result = await service.create_user(_form_from_args(args))
        if not result.success:
            print(f"Failed to create user: {result.error}", file=sys.stderr)
            return 1
        print(f"Created user #{result.data.id}: {result.data.full_name} <{result.data.email}>")
        return 0

    if command == "update":
        existing = service.get_user_by_id(args.user_id)
        form = _form_from_record(existing) if existing is not None else {}
        form.update(_form_from_args(args))
        result = await service.update_user(args.user_id, form)
        if not result.success:
            print(f"Failed to update user: {result.error}", file=sys.stderr)
            return 1
        print(f"Updated user #{result.data.id}: {result.data.full_name} <{result.data.email}>")
        return 0

    if command == "delete":
        result = await service.delete_user(args.user_id)
        if not result.success:
            print(f"Failed to delete user: {result.error}", file=sys.stderr)
            return 1
        print(f"Deleted user #{result.data.id}: {result.data.full_name}")
        return 0

    if command == "import":
        try:
            entries = _read_import_file(args.path)
        except (OSError, ValueError) as exc:
            print(f"Failed to read {args.path}: {exc}", file=sys.stderr)
            return 1
        outcome = await service.import_users(entries)
        print(f"Imported {len(outcome.success)} user(s); {len(outcome.failed)} failed.")
        for failure in outcome.failed:
            print(f"  - {failure.input!r}: {failure.error}", file=sys.stderr)
        return 0 if not outcome.failed else 1

    raise ValueError(f"Unknown command: {command}")


async def _prompt(message: str) -> str:
    # Read in a worker thread so auto-save keeps running while waiting for input.
    return await anyio.to_thread.run_sync(input, message)


async def _prompt_for_fields(defaults: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    defaults = defaults or {}
    labels = {
        "firstName": "First name",
        "lastName": "Last name",
        "email": "Email",
        "phone": "Phone",
        "userType": "Type (client/provider/admin)",
        "status": "Status (active/inactive)",
    }
    form: Dict[str, str] = {}
    for name, label in labels.items():
        current = defaults.get(name)
        suffix = f" [{current}]" if current else ""
        value = (await _prompt(f"{label}{suffix}: ")).strip()
        if value:
            form[name] = value
        elif current:
            form[name] = current
    return form


async def _run_console(app: Application) -> int:
    """Provide an interactive roster console."""

    service = app.service
    subscription = service.subscribe(_notify_console)

    print("AppointMe User Management Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List all users")
            print("  2) Search users")
            print("  3) Add a new user")
            print("  4) Edit a user")
            print("  5) Delete a user")
            print("  6) Show statistics")
            print("  7) Save now")
            print("  8) Exit")

            choice = (await _prompt("Enter choice [1-8]: ")).strip()

            if choice == "1":
                _print_users(service.get_all_users())
            elif choice == "2":
                query = await _prompt("Search: ")
                _print_users(service.search_users(query), empty_message="No users match your search.")
            elif choice == "3":
                print("\nCreate a new user.")
                await service.create_user(await _prompt_for_fields())
            elif choice == "4":
                user = service.get_user_by_id(await _prompt("User id: "))
                if user is None:
                    print("User not found.")
                else:
                    form = await _prompt_for_fields(_form_from_record(user))
                    await service.update_user(user.id, form)
            elif choice == "5":
                user = service.get_user_by_id(await _prompt("User id: "))
                if user is None:
                    print("User not found.")
                else:
                    confirm = (await _prompt(f"Delete {user.full_name}? [y/N]: ")).strip().lower()
                    if confirm in {"y", "yes"}:
                        await service.delete_user(user.id)
            elif choice == "6":
                _print_stats(service)
            elif choice == "7":
                result = await service.save_users()
                if result.success:
                    print("All changes saved.")
            elif choice == "8":
                print("Goodbye!")
                return 0
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except (KeyboardInterrupt, EOFError):
        print("\nExiting roster console.")
        return 0
    finally:
        subscription.unsubscribe()


async def _run(args: argparse.Namespace, config: AppConfig) -> int:
    if args.command != "console":
        config = replace(config, autosave=replace(config.autosave, enabled=False))

    app = create_application(config)
    try:
        load_result = await app.start()
        if not load_result.success:
            print(f"Failed to load users: {load_result.error}", file=sys.stderr)
            return 1
        if args.command == "console":
            return await _run_console(app)
        return await _run_command(args, app)
    finally:
        saved = await app.shutdown()
        if saved is not None and not saved.success:
            print(f"Failed to save users: {saved.error}", file=sys.stderr)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    try:
        config = _load_app_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    return anyio.run(_run, args, config)


if __name__ == "__main__":
    raise SystemExit(main())
