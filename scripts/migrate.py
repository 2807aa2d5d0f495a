"""Script to run database migrations.

Usage:
    python scripts/migrate.py                  upgrade to head
    python scripts/migrate.py down <revision>  downgrade to a revision
    python scripts/migrate.py create <message> autogenerate a revision
"""

import sys

from alembic import command
from alembic.config import Config

ALEMBIC_INI = "alembic.ini"


def run_migrations(revision: str = "head") -> None:
    """Upgrade the schema to ``revision``."""
    try:
        print(f"Upgrading schema to {revision}...")
        command.upgrade(Config(ALEMBIC_INI), revision)
        print("✓ Migrations completed successfully!")
    except Exception as e:
        print(f"✗ Migration failed: {e}", file=sys.stderr)
        sys.exit(1)


def rollback(revision: str) -> None:
    """Downgrade the schema to ``revision``."""
    try:
        print(f"Downgrading schema to {revision}...")
        command.downgrade(Config(ALEMBIC_INI), revision)
        print("✓ Downgrade completed successfully!")
    except Exception as e:
        print(f"✗ Downgrade failed: {e}", file=sys.stderr)
        sys.exit(1)


def create_migration(message: str) -> None:
    """Autogenerate a revision from the table metadata."""
    try:
        print(f"Creating migration: {message}")
        command.revision(Config(ALEMBIC_INI), message=message, autogenerate=True)
        print("✓ Migration created successfully!")
    except Exception as e:
        print(f"✗ Migration creation failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    args = sys.argv[1:]
    if not args:
        run_migrations()
    elif args[0] == "create" and len(args) > 1:
        create_migration(" ".join(args[1:]))
    elif args[0] == "down" and len(args) == 2:
        rollback(args[1])
    else:
        print(__doc__)
        sys.exit(1)
