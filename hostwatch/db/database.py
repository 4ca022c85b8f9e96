from __future__ import annotations

import csv
import io
import logging
import sqlite3
from pathlib import Path

import aiosqlite

from hostwatch.config import settings
from hostwatch.models import Sample, StorageSample

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).with_name("schema.sql")

# Columns introduced after the first release. Databases created by older
# versions get them on startup; existing ones raise "duplicate column name".
_COLUMN_UPGRADES: list[tuple[str, str, str]] = [
    ("samples", "mem_swap_used_mb", "INTEGER DEFAULT 0"),
    ("samples", "mem_swap_total_mb", "INTEGER DEFAULT 0"),
    ("samples", "mem_free_mb", "INTEGER DEFAULT 0"),
    ("samples", "mem_available_mb", "INTEGER DEFAULT 0"),
    ("samples", "mem_shared_mb", "INTEGER DEFAULT 0"),
    ("samples", "mem_buffers_mb", "INTEGER DEFAULT 0"),
    ("samples", "mem_cached_mb", "INTEGER DEFAULT 0"),
    ("samples", "mem_buffcache_mb", "INTEGER DEFAULT 0"),
    ("samples", "mem_used_pct", "REAL DEFAULT 0"),
]

_SAMPLE_COLUMNS = list(Sample.model_fields)
_STORAGE_COLUMNS = list(StorageSample.model_fields)


async def init_db() -> None:
    """Create tables if they don't exist and add any missing columns."""
    Path(settings.db_path).parent.mkdir(parents=True, exist_ok=True)
    schema = _SCHEMA_PATH.read_text()
    async with aiosqlite.connect(settings.db_path) as db:
        await db.execute("PRAGMA journal_mode=WAL")
        await db.executescript(schema)
        for table, column, decl in _COLUMN_UPGRADES:
            try:
                await db.execute(f"ALTER TABLE {table} ADD COLUMN {column} {decl}")
                logger.info("Added column %s.%s", table, column)
            except sqlite3.OperationalError as exc:
                if "duplicate column name" not in str(exc).lower():
                    raise
        await db.commit()


# ── writes ──────────────────────────────────────────────

async def insert_sample(sample: Sample) -> None:
    placeholders = ", ".join("?" for _ in _SAMPLE_COLUMNS)
    async with aiosqlite.connect(settings.db_path) as db:
        await db.execute(
            f"INSERT INTO samples ({', '.join(_SAMPLE_COLUMNS)}) VALUES ({placeholders})",
            [getattr(sample, col) for col in _SAMPLE_COLUMNS],
        )
        await db.commit()


async def insert_storage_samples(rows: list[StorageSample]) -> None:
    if not rows:
        return
    placeholders = ", ".join("?" for _ in _STORAGE_COLUMNS)
    async with aiosqlite.connect(settings.db_path) as db:
        await db.executemany(
            f"INSERT INTO storage_samples ({', '.join(_STORAGE_COLUMNS)}) VALUES ({placeholders})",
            [[_column_value(row, col) for col in _STORAGE_COLUMNS] for row in rows],
        )
        await db.commit()


# ── reads ───────────────────────────────────────────────

async def get_samples(limit: int = 360, since_ms: int | None = None) -> list[dict]:
    """System samples, oldest first.

    With ``since_ms`` every row at or after that instant is returned;
    otherwise the most recent ``limit`` rows.
    """
    return await _select("samples", [], [], limit, since_ms)


async def get_storage_samples(
    device_type: str | None = None,
    device_fs: str | None = None,
    since_ms: int | None = None,
    limit: int = 360,
) -> list[dict]:
    clauses: list[str] = []
    params: list = []
    if device_type:
        clauses.append("device_type = ?")
        params.append(device_type)
    if device_fs:
        clauses.append("device_fs = ?")
        params.append(device_fs)
    return await _select("storage_samples", clauses, params, limit, since_ms)


async def _select(
    table: str,
    clauses: list[str],
    params: list,
    limit: int,
    since_ms: int | None,
) -> list[dict]:
    clauses = list(clauses)
    params = list(params)
    if since_ms is not None:
        clauses.append("ts_ms >= ?")
        params.append(since_ms)

    query = f"SELECT * FROM {table}"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)

    if since_ms is not None:
        query += " ORDER BY ts_ms ASC, rowid ASC"
    else:
        query += " ORDER BY ts_ms DESC, rowid DESC LIMIT ?"
        params.append(limit)

    async with aiosqlite.connect(settings.db_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute(query, params)
        rows = [dict(r) for r in await cursor.fetchall()]

    if since_ms is None:
        rows.reverse()
    return rows


# ── export ──────────────────────────────────────────────

def to_delimited(rows: list[dict], delimiter: str = ",") -> str:
    """Render rows as delimited text with a header row."""
    if not rows:
        return ""
    buf = io.StringIO()
    writer = csv.DictWriter(
        buf,
        fieldnames=list(rows[0].keys()),
        delimiter=delimiter,
        lineterminator="\n",
        extrasaction="ignore",
    )
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


async def export_samples(
    limit: int = 360,
    since_ms: int | None = None,
    delimiter: str = ",",
) -> str:
    return to_delimited(await get_samples(limit=limit, since_ms=since_ms), delimiter)


async def export_storage_samples(
    device_type: str | None = None,
    device_fs: str | None = None,
    since_ms: int | None = None,
    limit: int = 360,
    delimiter: str = ",",
) -> str:
    rows = await get_storage_samples(
        device_type=device_type, device_fs=device_fs, since_ms=since_ms, limit=limit
    )
    return to_delimited(rows, delimiter)


# ── helpers ─────────────────────────────────────────────

def _column_value(row: StorageSample, column: str):
    value = getattr(row, column)
    return value.value if column == "device_type" else value
