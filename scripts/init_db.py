#!/usr/bin/env python3
"""
Create the posts, comments and likes tables.

Uses the same settings as the API (environment variables or .env), so
it targets whatever database the service would connect to. Existing
tables are left alone.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --dry-run
"""

import sys
from pathlib import Path

# Add the project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.schema import CreateTable

from snapfeed.config.settings import get_settings
from snapfeed.infrastructure.database.client import (
    DatabaseConnectionError,
    create_database_engine,
    create_schema,
)
from snapfeed.infrastructure.database.schema import metadata


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Create the SnapFeed database schema')
    parser.add_argument('--dry-run', action='store_true', help='Print the DDL, don\'t execute it')
    args = parser.parse_args()

    settings = get_settings()

    if settings.database_mock_mode:
        print("ERROR: DATABASE_MOCK_MODE is set; there is no database to initialize")
        sys.exit(1)

    engine = create_database_engine(settings.database_config())

    if args.dry_run:
        for table in metadata.sorted_tables:
            print(str(CreateTable(table).compile(engine)).strip() + ";\n")
        sys.exit(0)

    print(f"Creating schema in: {engine.url.render_as_string(hide_password=True)}")

    try:
        create_schema(engine)
    except DatabaseConnectionError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    finally:
        engine.dispose()

    print("Tables ready: " + ", ".join(table.name for table in metadata.sorted_tables))


if __name__ == '__main__':
    main()
