#!/usr/bin/env python3
"""
Initialize the ledger database.

Run this script to create the users, accounts, categories and transactions tables.
The path comes from the ledger config (or LEDGER_DB_PATH).
"""
from pocket_ledger.config.settings import Settings
from pocket_ledger.database.connection import SCHEMA_PATH, DatabaseConfig, DatabaseManager

def main():
    """initialize the database."""

    settings = Settings.load()
    config = DatabaseConfig(settings.database_path)
    print(f"Initializing database at: {config.db_path}")

    with DatabaseManager(config) as db:
        print(f"Executing schema from: {SCHEMA_PATH}")
        db.initialize()

        row = db.schema_version()

        if row:
            print(f"✓ Database initialized successfully!")
            print(f"  Schema version: {row['version']}")
            print(f"  Description: {row['description']}")
        else:
            print("✗ Database initialization may have failed")

if __name__ == "__main__":
    main()
