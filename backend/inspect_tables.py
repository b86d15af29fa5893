"""
Inspect the payments and payment_logs tables: existence, row counts, a sample row.

Usage:
    python inspect_tables.py
    python inspect_tables.py --create
"""
import argparse
import json
import sys

from sqlalchemy import inspect, select, func
from sqlalchemy.exc import SQLAlchemyError

from upi_tracker.config import get_settings
from upi_tracker.database import SessionLocal, engine, init_db
from upi_tracker.models import Payment, PaymentLog


def describe(db, model) -> None:
    table = model.__tablename__
    print(f"\nTable: {table}")

    if not inspect(engine).has_table(table):
        print("  [!] Table does not exist (run with --create)")
        return

    columns = [c["name"] for c in inspect(engine).get_columns(table)]
    print(f"  Columns: {', '.join(columns)}")

    count = db.execute(select(func.count()).select_from(model)).scalar_one()
    print(f"  Rows: {count}")

    sample = db.execute(select(model.__table__).limit(1)).mappings().first()
    if sample is None:
        print("  Table is empty (no rows yet)")
    else:
        row = dict(sample)
        if row.get("qr_data"):
            row["qr_data"] = row["qr_data"][:48] + "..."
        print("  Sample row:", json.dumps(row, indent=2, default=str))


def main():
    parser = argparse.ArgumentParser(description="Inspect UPI payment tracker tables")
    parser.add_argument("--create", action="store_true", help="Create missing tables first")
    args = parser.parse_args()

    settings = get_settings()
    print(f"Inspecting {settings.DATABASE_URL}")

    try:
        if args.create:
            init_db()
        db = SessionLocal()
        try:
            describe(db, Payment)
            describe(db, PaymentLog)
        finally:
            db.close()
    except SQLAlchemyError as exc:
        print(f"Error inspecting tables: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
