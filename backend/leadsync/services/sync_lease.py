"""Expiring per-source lease so only one sync run writes at a time."""

import logging
import os
import socket
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, insert, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leadsync.config import get_settings
from leadsync.errors import SyncAlreadyRunningError
from leadsync.models import SyncLease

logger = logging.getLogger(__name__)
settings = get_settings()

lease_table = SyncLease.__table__


def default_holder() -> str:
    """Identify this process: host, pid and a random suffix."""
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class SyncLeaseManager:
    """
    Acquire, renew and release the SyncLease row for one source.

    The row carries an expiry so a crashed holder cannot block later runs
    for longer than the TTL. The holder renews after every page.
    """

    def __init__(
        self,
        db: AsyncSession,
        source_type: str,
        ttl_seconds: int = settings.sync_lease_ttl_seconds,
        holder: str | None = None,
    ):
        self.db = db
        self.source_type = source_type
        self.ttl = timedelta(seconds=ttl_seconds)
        self.holder = holder or default_holder()

    async def acquire(self) -> None:
        """
        Take the lease, or take over an expired one.

        Raises:
            SyncAlreadyRunningError: Another holder has a live lease
        """
        now = datetime.now(UTC)
        result = await self.db.execute(
            update(lease_table)
            .where(
                lease_table.c.source_type == self.source_type,
                or_(lease_table.c.expires_at < now, lease_table.c.holder == self.holder),
            )
            .values(holder=self.holder, acquired_at=now, expires_at=now + self.ttl)
        )
        if result.rowcount == 1:
            await self.db.commit()
            logger.info(f"Took over sync lease for {self.source_type} as {self.holder}")
            return

        try:
            await self.db.execute(
                insert(lease_table).values(
                    source_type=self.source_type,
                    holder=self.holder,
                    acquired_at=now,
                    expires_at=now + self.ttl,
                )
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise SyncAlreadyRunningError(
                f"A {self.source_type} sync is already running"
            ) from e
        logger.info(f"Acquired sync lease for {self.source_type} as {self.holder}")

    async def renew(self) -> None:
        """
        Push the expiry out by another TTL.

        Raises:
            SyncAlreadyRunningError: The lease expired and another holder took it
        """
        result = await self.db.execute(
            update(lease_table)
            .where(lease_table.c.source_type == self.source_type, lease_table.c.holder == self.holder)
            .values(expires_at=datetime.now(UTC) + self.ttl)
        )
        await self.db.commit()
        if result.rowcount != 1:
            logger.error(f"Lost sync lease for {self.source_type}; {self.holder} stops here")
            raise SyncAlreadyRunningError(
                f"Sync lease for {self.source_type} was taken over by another run"
            )

    async def release(self) -> None:
        await self.db.execute(
            delete(lease_table).where(
                lease_table.c.source_type == self.source_type, lease_table.c.holder == self.holder
            )
        )
        await self.db.commit()
        logger.info(f"Released sync lease for {self.source_type}")

    @asynccontextmanager
    async def hold(self) -> AsyncIterator["SyncLeaseManager"]:
        """Hold the lease for the duration of a block."""
        await self.acquire()
        try:
            yield self
        except BaseException:
            # A failed page may leave the session mid-transaction
            await self.db.rollback()
            raise
        finally:
            await self.release()
