import argparse
import os
import sys
from dataclasses import replace
from pathlib import Path

import anyio

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from appointme.application import create_storage
from appointme.config import load_config, resolve_config_path
from appointme.service import UserService
from appointme.storage import resolve_database_path


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Add a user to the AppointMe roster")
    parser.add_argument("first_name", help="Given name")
    parser.add_argument("last_name", help="Family name")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument("phone", help="Contact phone number")
    parser.add_argument(
        "--type",
        dest="user_type",
        default="client",
        choices=("client", "provider", "admin"),
        help="Role of the new user (default: client)",
    )
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to a SQLite database, overriding the configured storage",
    )
    return parser.parse_args(argv)


async def create_user(args: argparse.Namespace) -> int:
    config = load_config(resolve_config_path(os.getenv("APPOINTME_CONFIG")))
    if args.db_path:
        # An explicit database always means the SQLite backend.
        storage_config = replace(config.storage, backend="sqlite", path=resolve_database_path(args.db_path))
        config = replace(config, storage=storage_config)

    storage = create_storage(config)
    service = UserService(storage, storage_key=config.storage.key)

    loaded = await service.load_users()
    if not loaded.success:
        print(f"Error: {loaded.error}", file=sys.stderr)
        return 1

    result = await service.create_user(
        {
            "firstName": args.first_name.strip(),
            "lastName": args.last_name.strip(),
            "email": args.email.strip(),
            "phone": args.phone.strip(),
            "userType": args.user_type,
        }
    )
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    saved = await service.save_users()
    if not saved.success:
        print(f"Error: {saved.error}", file=sys.stderr)
        return 1

    user = result.data
    print(f"Created user #{user.id}: {user.full_name} <{user.email}> ({user.user_type.value})")
    return 0


def main(argv=None) -> int:
    return anyio.run(create_user, parse_args(argv))


if __name__ == "__main__":
    raise SystemExit(main())
