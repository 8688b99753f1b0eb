# File: dispatchwatch/features/scanner_intake/data/sql_source.py
import logging
from datetime import datetime, timezone
from typing import List, Sequence, Tuple, Union
from sqlalchemy import Column, Integer, LargeBinary, MetaData, String, Table, and_, or_, select
from sqlalchemy.engine import Engine
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.database.base import utc_now
from dispatchwatch.core.database.connection import create_scanner_engine
from ..domain.interfaces import IScannerSource
from ..domain.models import ScannerRecord

logger = logging.getLogger(__name__)


def scanner_table(name: str = None, metadata: MetaData = None) -> Table:
    """Column subset of the scanner server's calls table that intake reads."""
    return Table(
        name or settings.SCANNER_TABLE,
        metadata or MetaData(),
        Column("id", Integer, primary_key=True),
        Column("audio", LargeBinary),
        Column("audioType", String),
        Column("dateTime", String),
        Column("system", Integer),
        Column("talkgroup", Integer),
        Column("frequency", Integer),
        Column("source", Integer),
    )


def parse_scanner_time(value: Union[str, int, float, datetime, None]) -> datetime:
    """
    The scanner stores capture time as text ("2024-05-01 12:34:56.789+00:00"
    or ISO with a Z); older databases hold epoch milliseconds. Anything else
    is stamped with the current time rather than holding up the batch.
    """
    if value is None:
        return utc_now()
    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, (int, float)):
            parsed = datetime.fromtimestamp(value / 1000 if value > 1e11 else value, tz=timezone.utc)
        else:
            text = str(value).strip()
            if text.isdigit():
                return parse_scanner_time(int(text))
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except (ValueError, OverflowError, OSError):
        logger.warning(f"⚠️ Unparseable scanner dateTime {value!r}, using current time")
        return utc_now()
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class SqlScannerSource(IScannerSource):
    """
    Polls the scanner store through SQLAlchemy Core. Never writes.
    """
    def __init__(self, engine: Engine = None, table_name: str = None):
        self.engine = engine or create_scanner_engine()
        self.table = scanner_table(table_name)

    def _channel_filter(self, channels: Sequence[Tuple[int, int]]):
        t = self.table
        return or_(*[and_(t.c.system == system, t.c.talkgroup == talkgroup) for system, talkgroup in channels])

    def _record(self, row) -> ScannerRecord:
        return ScannerRecord(
            id=row.id,
            audio=bytes(row.audio or b""),
            audio_type=row.audioType,
            timestamp=parse_scanner_time(row.dateTime),
            system=row.system,
            talkgroup=row.talkgroup,
            frequency=row.frequency,
            source=row.source
        )

    def fetch_after(self, watermark: int, channels: Sequence[Tuple[int, int]], limit: int) -> List[ScannerRecord]:
        if not channels:
            return []
        stmt = (
            select(self.table)
            .where(self.table.c.id > watermark, self._channel_filter(channels))
            .order_by(self.table.c.id.asc())
            .limit(limit)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [self._record(r) for r in rows]

    def fetch_ids(self, ids: Sequence[int], channels: Sequence[Tuple[int, int]]) -> List[ScannerRecord]:
        if not ids or not channels:
            return []
        stmt = (
            select(self.table)
            .where(self.table.c.id.in_(list(ids)), self._channel_filter(channels))
            .order_by(self.table.c.id.asc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [self._record(r) for r in rows]
