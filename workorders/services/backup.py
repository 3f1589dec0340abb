"""Database backup service.

Exports every table to a timestamped CSV file plus a plain-text summary,
prunes old backup files, and delivers the result by email.
"""

import asyncio
import csv
import enum
import io
import json
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from workorders.config import settings
from workorders.database import get_db_session
from workorders.logging_config import get_logger
from workorders.models.activity_log import ActivityLog
from workorders.models.invoice import Invoice
from workorders.models.user import User
from workorders.models.work_order import WorkOrder
from workorders.services.email import EmailSendError, send_backup_email

logger = get_logger(__name__)

# (collection name, model, columns left out of the export)
BACKUP_COLLECTIONS: list[tuple[str, type, frozenset[str]]] = [
    ("users", User, frozenset({"hashed_password"})),
    ("work_orders", WorkOrder, frozenset()),
    ("invoices", Invoice, frozenset()),
    ("activity_logs", ActivityLog, frozenset()),
]


class BackupExportError(Exception):
    """A table could not be exported."""


@dataclass
class BackupFile:
    name: str
    path: Path
    collection: str


@dataclass
class BackupResult:
    """Outcome of one backup run."""

    success: bool
    timestamp: str
    backup_dir: Path | None = None
    files: list[BackupFile] = field(default_factory=list)
    record_counts: dict[str, int] = field(default_factory=dict)
    summary: str | None = None
    error: str | None = None


def backup_directory() -> Path:
    return Path(settings.backup_path)


def _backup_timestamp(now: datetime) -> str:
    """File-name-safe UTC timestamp, e.g. 2026-10-19T06-00-00-123Z."""
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


def _format_value(value: Any) -> str:
    """Flatten a column value into a single CSV cell."""
    if value is None:
        return ""
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, list):
        return "; ".join(
            json.dumps(item, default=str) if isinstance(item, (dict, list)) else str(item)
            for item in value
        )
    if isinstance(value, dict):
        return json.dumps(value, default=str)
    return str(value)


def rows_to_csv(rows: list[dict[str, Any]]) -> str:
    """Render rows as CSV using the sorted union of their keys as header."""
    headers = sorted({key for row in rows for key in row})
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_format_value(row.get(h)) for h in headers])
    return buffer.getvalue()


def _row_to_dict(obj: Any, excluded: frozenset[str]) -> dict[str, Any]:
    return {
        attr.key: getattr(obj, attr.key)
        for attr in inspect(obj).mapper.column_attrs
        if attr.key not in excluded
    }


async def export_collection(
    db: AsyncSession,
    name: str,
    model: type,
    excluded: frozenset[str] = frozenset(),
) -> tuple[str, int]:
    """Export one table.

    Returns:
        Tuple of (csv_text, record_count).

    Raises:
        BackupExportError: If the table could not be read.
    """
    try:
        result = await db.execute(select(model))
        records = result.scalars().all()
    except Exception as e:
        logger.error("Failed to export collection", collection=name, error=str(e))
        raise BackupExportError(f"Error exporting {name}: {e}") from e

    if not records:
        return f"No {name.replace('_', ' ')} data available\n", 0

    rows = [_row_to_dict(record, excluded) for record in records]
    return rows_to_csv(rows), len(rows)


def _render_summary(
    local_time: datetime,
    timestamp: str,
    counts: dict[str, int],
    files: list[BackupFile],
    backup_dir: Path,
) -> str:
    lines = [
        "Database Backup Summary",
        "=======================",
        f"Backup Date: {local_time.strftime('%Y-%m-%d %H:%M:%S %Z')}",
        f"Timestamp: {timestamp}",
        "",
        "Collections Backed Up:",
    ]
    lines += [
        f"- {name.replace('_', ' ').title()}: {count} records"
        for name, count in counts.items()
    ]
    lines += ["", "Files Created:"]
    lines += [f"- {f.name} ({f.collection})" for f in files]
    lines += [
        "",
        f"Total Files: {len(files) + 1}",
        f"Backup Directory: {backup_dir}",
    ]
    return "\n".join(lines) + "\n"


def _write_files(backup_dir: Path, contents: dict[str, str]) -> None:
    backup_dir.mkdir(parents=True, exist_ok=True)
    for file_name, text in contents.items():
        (backup_dir / file_name).write_text(text, encoding="utf-8")


async def create_database_backup(backup_dir: Path | None = None) -> BackupResult:
    """Export all collections to CSV files in the backup directory.

    Never raises; failures are reported through BackupResult.success/error.
    """
    now = datetime.now(UTC)
    timestamp = _backup_timestamp(now)
    backup_dir = backup_dir or backup_directory()

    logger.info("Starting database backup", backup_dir=str(backup_dir))

    try:
        contents: dict[str, str] = {}
        counts: dict[str, int] = {}
        files: list[BackupFile] = []

        async with get_db_session() as db:
            for name, model, excluded in BACKUP_COLLECTIONS:
                csv_text, count = await export_collection(db, name, model, excluded)
                file_name = f"{name}_{timestamp}.csv"
                contents[file_name] = csv_text
                counts[name] = count
                files.append(BackupFile(file_name, backup_dir / file_name, name))

        local_time = now.astimezone(ZoneInfo(settings.backup_timezone))
        summary = _render_summary(local_time, timestamp, counts, files, backup_dir)
        summary_name = f"backup_summary_{timestamp}.txt"
        contents[summary_name] = summary
        files.append(BackupFile(summary_name, backup_dir / summary_name, "summary"))

        await asyncio.to_thread(_write_files, backup_dir, contents)
    except Exception as e:
        logger.exception("Database backup failed", error=str(e))
        return BackupResult(success=False, timestamp=timestamp, error=str(e))

    logger.info(
        "Database backup completed",
        files=len(files),
        records=sum(counts.values()),
    )
    return BackupResult(
        success=True,
        timestamp=timestamp,
        backup_dir=backup_dir,
        files=files,
        record_counts=counts,
        summary=summary,
    )


async def get_backup_stats(db: AsyncSession) -> dict[str, int]:
    """Count records per collection, plus a total."""
    stats: dict[str, int] = {}
    for name, model, _excluded in BACKUP_COLLECTIONS:
        result = await db.execute(select(func.count()).select_from(model))
        stats[name] = result.scalar_one()
    stats["total"] = sum(stats.values())
    return stats


def _delete_files_older_than(backup_dir: Path, cutoff: datetime) -> int:
    if not backup_dir.is_dir():
        return 0

    deleted = 0
    cutoff_ts = cutoff.timestamp()
    try:
        paths = list(backup_dir.iterdir())
    except OSError as e:
        logger.error(
            "Could not list backup directory", path=str(backup_dir), error=str(e)
        )
        return 0

    for path in paths:
        try:
            if path.is_file() and path.stat().st_mtime < cutoff_ts:
                path.unlink()
                deleted += 1
        except OSError as e:
            logger.warning(
                "Skipped old backup file", file=path.name, error=str(e)
            )
    return deleted


async def clean_old_backups(
    backup_dir: Path | None = None,
    retention_days: int | None = None,
) -> int:
    """Delete backup files older than the retention period.

    Returns:
        Number of files deleted.
    """
    backup_dir = backup_dir or backup_directory()
    days = retention_days if retention_days is not None else settings.backup_retention_days
    cutoff = datetime.now(UTC) - timedelta(days=days)

    deleted = await asyncio.to_thread(_delete_files_older_than, backup_dir, cutoff)
    logger.info(
        "Cleaned old backup files",
        deleted_count=deleted,
        retention_days=days,
    )
    return deleted


async def run_backup_job() -> BackupResult | None:
    """Full backup routine: export, prune, email.

    Used by the scheduler and the manual trigger. Every failure is
    logged and swallowed; the caller never sees an exception.
    """
    logger.info(
        "Starting backup routine",
        local_time=datetime.now(ZoneInfo(settings.backup_timezone)).isoformat(),
    )

    try:
        result = await create_database_backup()

        if not result.success:
            logger.error("Backup routine failed during export", error=result.error)
            try:
                await send_backup_email(result)
            except EmailSendError as e:
                logger.error("Failed to send backup failure notice", error=str(e))
            return result

        try:
            await clean_old_backups()
        except OSError as e:
            logger.error("Backup cleanup failed", error=str(e))

        try:
            await send_backup_email(result)
            logger.info("Backup email sent", files=len(result.files))
        except EmailSendError as e:
            logger.error("Failed to send backup email", error=str(e))

        logger.info("Backup routine completed", timestamp=result.timestamp)
        return result
    except Exception as e:
        logger.exception("Unexpected error in backup routine", error=str(e))
        return None
