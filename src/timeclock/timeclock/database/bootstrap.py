from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from werkzeug.security import generate_password_hash

from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)

_CREATE_DATABASE = re.compile(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$")
_USE_DATABASE = re.compile(r"(?im)^\s*USE\b.*?;\s*$")
_LINE_COMMENT = re.compile(r"(?m)^\s*--.*$")


def _factory(db_config: dict) -> DatabaseConnection:
    return DatabaseConnection(DBConfig.from_settings(db_config))


def _without_database_statements(sql: str) -> str:
    # schema.sql names a database; the configured one wins.
    for pattern in (_CREATE_DATABASE, _USE_DATABASE, _LINE_COMMENT):
        sql = pattern.sub("", sql)
    return sql


def _split_statements(sql: str) -> Iterable[str]:
    """Split a script on ``;`` that sit outside quoted strings."""
    start = 0
    quote = None
    escaped = False
    for pos, ch in enumerate(sql):
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            statement = sql[start:pos].strip()
            start = pos + 1
            if statement:
                yield statement
    rest = sql[start:].strip()
    if rest:
        yield rest


def _run_script(db_config: dict, path: Path) -> None:
    sql = _without_database_statements(Path(path).read_text(encoding="utf-8"))
    conn = _factory(db_config).connect()
    try:
        cur = conn.cursor()
        count = 0
        for statement in _split_statements(sql):
            cur.execute(statement)
            count += 1
        conn.commit()
    finally:
        conn.close()
    logger.debug("Executed %d statements from %s", count, path)


def ensure_database_exists(db_config: dict) -> None:
    factory = _factory(db_config)
    name = factory.config.database
    conn = DatabaseConnection(factory.config.without_database()).connect()
    try:
        conn.cursor().execute(
            f"CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    _run_script(db_config, Path(schema_path))
    logger.info("Applied schema %s", schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    _run_script(db_config, Path(seed_path))
    logger.info("Applied seed %s", seed_path)


def ensure_demo_employees(db_config: dict) -> None:
    """Create or refresh the demo accounts (admin, dispatcher, two employees)."""

    conn = _factory(db_config).connect()
    try:
        cur = conn.cursor(dictionary=True)

        def upsert(employee_number: str, first: str, last: str, email: str, role: str, rate, pin: str, password: str) -> None:
            pin_hash = generate_password_hash(pin)
            password_hash = generate_password_hash(password)
            cur.execute("SELECT employee_id FROM employees WHERE employee_number=%s", (employee_number,))
            if cur.fetchone():
                cur.execute(
                    """
                    UPDATE employees
                    SET first_name=%s, last_name=%s, email=%s, role=%s, hourly_rate=%s,
                        pin_hash=%s, password_hash=%s, is_active=1, archived_at=NULL
                    WHERE employee_number=%s
                    """,
                    (first, last, email, role, rate, pin_hash, password_hash, employee_number),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO employees
                        (employee_number, first_name, last_name, email, role, hourly_rate, pin_hash, password_hash)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (employee_number, first, last, email, role, rate, pin_hash, password_hash),
                )

        upsert("A001", "Ada", "Admin", "admin@example.com", "admin", None, "9999", "admin123")
        upsert("D001", "Dana", "Dispatch", "dispatch@example.com", "dispatcher", None, "8888", "dispatch123")
        upsert("E001", "Erik", "Mechanic", "erik@example.com", "employee", 42.50, "1234", "erik123")
        upsert("E002", "Mia", "Welder", "mia@example.com", "employee", 39.00, "4321", "mia123")

        conn.commit()
    finally:
        conn.close()
    logger.info("Demo employees ready")


def list_tables(db_config: dict) -> list[str]:
    conn = _factory(db_config).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
