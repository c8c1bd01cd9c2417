"""Permanent row store tier (SQLAlchemy)."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from flightwall.cache.entries import CacheEntry
from flightwall.db_models import EnrichmentRow

logger = logging.getLogger("flightwall.cache.rows")


def _to_epoch(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


class RowStore:
    """Authoritative store for positive enrichment results; rows never expire.

    SQLAlchemy sessions are synchronous, so each call runs in a worker thread
    to keep the event loop free.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[CacheEntry]:
        return await asyncio.to_thread(self._get, key)

    async def put(self, key: str, entry: CacheEntry, kind: str) -> None:
        await asyncio.to_thread(self._put, key, entry, kind)

    def _get(self, key: str) -> Optional[CacheEntry]:
        session: Session = self.session_factory()
        try:
            row = session.get(EnrichmentRow, key)
            if row is None:
                return None
            return CacheEntry(
                payload=dict(row.payload),
                ttl=row.ttl,
                status=row.status,
                found=row.found,
                verified=row.verified,
                provider=row.provider,
                stored_at=_to_epoch(row.stored_at),
            )
        finally:
            session.close()

    def _put(self, key: str, entry: CacheEntry, kind: str) -> None:
        session: Session = self.session_factory()
        try:
            row = session.get(EnrichmentRow, key) or EnrichmentRow(key=key, kind=kind)
            row.kind = kind
            row.payload = entry.payload
            row.status = entry.status
            row.found = entry.found
            row.verified = entry.verified
            row.provider = entry.provider
            row.ttl = entry.ttl
            row.stored_at = datetime.fromtimestamp(entry.stored_at, tz=timezone.utc).replace(tzinfo=None)
            session.add(row)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


__all__ = ["RowStore"]
