#!/usr/bin/env python3
"""Database overview and integrity checks for the asset tracker store."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine


EXPECTED_TABLES = [
    "assets",
    "assignments",
    "requests",
    "categories",
]

EXPECTED_COLUMNS: dict[str, list[str]] = {
    "assets": ["id", "asset_tag", "name", "category", "status", "assigned_to", "created_at", "updated_at"],
    "assignments": [
        "id",
        "asset_id",
        "assigned_to",
        "assigned_to_email",
        "assigned_to_department",
        "assigned_to_employee_id",
        "assignment_date",
        "assignee_signature",
        "assigned_by_signature",
        "status",
        "created_at",
        "returned_at",
    ],
    "requests": ["id", "request_id", "status", "priority", "approved_date", "approved_by"],
    "categories": ["id", "name", "description"],
}


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str


def _print_section(title: str) -> None:
    print(f"\n=== {title} ===")


def _get_engine(db_url: str) -> Engine:
    return create_engine(db_url, pool_pre_ping=True, future=True)


def _scalar(engine: Engine, sql: str, params: dict | None = None):
    with engine.connect() as conn:
        return conn.execute(text(sql), params or {}).scalar()


def _rows(engine: Engine, sql: str, params: dict | None = None):
    with engine.connect() as conn:
        return conn.execute(text(sql), params or {}).all()


def _table_exists(engine: Engine, table_name: str) -> bool:
    return inspect(engine).has_table(table_name)


def _column_names(engine: Engine, table_name: str) -> set[str]:
    return {column["name"] for column in inspect(engine).get_columns(table_name)}


def run_existence_checks(engine: Engine) -> list[CheckResult]:
    results: list[CheckResult] = []
    for table in EXPECTED_TABLES:
        exists = _table_exists(engine, table)
        results.append(CheckResult(f"table:{table}", exists, "present" if exists else "missing"))
    return results


def run_column_checks(engine: Engine) -> list[CheckResult]:
    results: list[CheckResult] = []
    for table, expected in EXPECTED_COLUMNS.items():
        if not _table_exists(engine, table):
            results.append(CheckResult(f"columns:{table}", False, "table missing"))
            continue
        actual = _column_names(engine, table)
        missing = [name for name in expected if name not in actual]
        results.append(
            CheckResult(
                f"columns:{table}",
                not missing,
                "ok" if not missing else f"missing={','.join(missing)}",
            )
        )
    return results


def _count_check(engine: Engine, name: str, sql: str) -> CheckResult:
    count = int(_scalar(engine, sql) or 0)
    return CheckResult(name, count == 0, f"count={count}")


def run_integrity_checks(engine: Engine) -> list[CheckResult]:
    if not (_table_exists(engine, "assets") and _table_exists(engine, "assignments")):
        return [CheckResult("integrity", False, "assets/assignments tables missing")]

    return [
        _count_check(
            engine,
            "assets:assigned_without_active_assignment",
            """
            SELECT COUNT(*)
            FROM assets a
            WHERE a.status = 'Assigned'
              AND NOT EXISTS (
                SELECT 1 FROM assignments s
                WHERE s.asset_id = a.id AND s.status = 'Active'
              )
            """,
        ),
        _count_check(
            engine,
            "assets:active_assignment_but_not_assigned",
            """
            SELECT COUNT(DISTINCT a.id)
            FROM assets a
            JOIN assignments s ON s.asset_id = a.id AND s.status = 'Active'
            WHERE a.status <> 'Assigned'
            """,
        ),
        _count_check(
            engine,
            "assignments:multiple_active_per_asset",
            """
            SELECT COUNT(*)
            FROM (
                SELECT asset_id
                FROM assignments
                WHERE status = 'Active'
                GROUP BY asset_id
                HAVING COUNT(*) > 1
            ) d
            """,
        ),
        _count_check(
            engine,
            "assignments:orphan_asset_id",
            """
            SELECT COUNT(*)
            FROM assignments s
            LEFT JOIN assets a ON a.id = s.asset_id
            WHERE a.id IS NULL
            """,
        ),
    ]


def _print_results(title: str, rows: Iterable[CheckResult]) -> None:
    _print_section(title)
    for row in rows:
        status = "OK" if row.ok else "FAIL"
        print(f"[{status}] {row.name} :: {row.detail}")


def _print_row_counts(engine: Engine) -> None:
    _print_section("Row Counts")
    for table in EXPECTED_TABLES:
        if not _table_exists(engine, table):
            print(f"{table}: missing")
            continue
        count = _scalar(engine, f"SELECT COUNT(*) FROM {table}")
        print(f"{table}: {int(count or 0)}")


def _print_samples(engine: Engine, sample_size: int) -> None:
    _print_section("Sample Values")
    sample_size = max(1, sample_size)

    if _table_exists(engine, "assignments"):
        rows = _rows(
            engine,
            """
            SELECT id, asset_id, assigned_to, status, created_at, returned_at
            FROM assignments
            ORDER BY id DESC
            LIMIT :n
            """,
            {"n": sample_size},
        )
        print("assignments (recent):")
        for row in rows:
            print(f"  - {tuple(row)}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Asset tracker DB overview")
    parser.add_argument("--db-url", default=os.environ.get("ASSET_TRACKER_DB_URL", ""))
    parser.add_argument("--samples", type=int, default=5)
    args = parser.parse_args(argv)

    db_url = (args.db_url or "").strip()
    if not db_url:
        print("ASSET_TRACKER_DB_URL is not set. Provide --db-url or export env first.")
        return 2

    try:
        engine = _get_engine(db_url)
        _scalar(engine, "SELECT 1")
    except Exception as exc:
        print(f"Could not connect to DB: {exc}")
        return 3

    _print_results("Table Existence", run_existence_checks(engine))
    _print_results("Column Checks", run_column_checks(engine))
    _print_results("Integrity Checks", run_integrity_checks(engine))
    _print_row_counts(engine)
    _print_samples(engine, args.samples)
    return 0


if __name__ == "__main__":
    sys.exit(main())
