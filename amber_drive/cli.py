"""
Command-line administration for Amber Drive.

Usage:
    amber-drive init-db
    amber-drive create-admin --username admin --password secret
"""

import argparse
import asyncio
import getpass
import sys

from amber_drive.database.base import close_db, get_db_session, init_db
from amber_drive.exceptions import AmberDriveError
from amber_drive.services.auth_service import AuthService
from amber_drive.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def run_init_db() -> None:
    try:
        await init_db()
    finally:
        await close_db()
    logger.info("Database initialized")


async def run_create_admin(username: str, password: str, email: str | None) -> int:
    try:
        await init_db()
        async with get_db_session() as session:
            user = await AuthService(session).create_admin(username, password, email=email)
            user_id = user.id
    finally:
        await close_db()
    return user_id


def create_cli_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        description='Amber Drive admin tools',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Init DB command
    subparsers.add_parser(
        'init-db',
        help='Create database tables'
    )

    # Create admin command
    admin_parser = subparsers.add_parser(
        'create-admin',
        help='Create a back-office admin account'
    )
    admin_parser.add_argument(
        '--username', '-u',
        required=True,
        help='Admin username'
    )
    admin_parser.add_argument(
        '--password', '-p',
        help='Admin password (prompted when omitted)'
    )
    admin_parser.add_argument(
        '--email', '-e',
        help='Admin email address'
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI."""
    parser = create_cli_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging()

    try:
        if args.command == 'init-db':
            asyncio.run(run_init_db())
            print("Database initialized")

        elif args.command == 'create-admin':
            password = args.password or getpass.getpass("Password: ")
            user_id = asyncio.run(run_create_admin(args.username, password, args.email))
            print(f"Created admin {args.username} (id={user_id})")

    except AmberDriveError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
