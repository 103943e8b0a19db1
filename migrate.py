#!/usr/bin/env python3
"""
Manage the schema of the SQL ledger store.

Tables are created from the registered SQLAlchemy models (no migration history).
"""
import sys
from pathlib import Path

# Add project root to sys.path
root_dir = Path(__file__).parent
sys.path.insert(0, str(root_dir))

from app.database.database import Base, get_engine

# Register the models on Base.metadata
import app.modules.customers.models
import app.modules.inventory.models
import app.modules.invoices.models


def create_tables():
    """Create missing tables."""
    Base.metadata.create_all(bind=get_engine())
    print(f"Tables created: {', '.join(sorted(Base.metadata.tables))}")

def drop_tables():
    """Drop every ledger table."""
    Base.metadata.drop_all(bind=get_engine())
    print("Tables dropped")

def show_tables():
    """Show the registered tables."""
    for name, table in sorted(Base.metadata.tables.items()):
        print(f"{name}: {', '.join(c.name for c in table.columns)}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage:")
        print("  python migrate.py create   # Create tables")
        print("  python migrate.py drop     # Drop tables")
        print("  python migrate.py tables   # List tables")
        sys.exit(1)

    action = sys.argv[1]

    if action == "create":
        create_tables()
    elif action == "drop":
        drop_tables()
    elif action == "tables":
        show_tables()
    else:
        print(f"Unknown action: {action}")
        sys.exit(1)
