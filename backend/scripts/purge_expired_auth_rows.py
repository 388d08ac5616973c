"""Delete expired verification codes and sessions.

Standalone maintenance script, safe to run from cron. Expired rows are
never valid, so removing them only reclaims space.

Usage:
    cd backend && python -m scripts.purge_expired_auth_rows
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.session_repository import SessionRepository
from app.repositories.verification_code_repository import VerificationCodeRepository

logger = logging.getLogger(__name__)


@dataclass
class PurgeStats:
    """Row counts from a purge run."""

    codes_deleted: int = 0
    sessions_deleted: int = 0


async def run_purge(
    session: AsyncSession, *, now: datetime | None = None
) -> PurgeStats:
    """Delete expired codes and sessions.

    The caller commits.

    Args:
        session: Async database session.
        now: Reference time (defaults to the current UTC time).

    Returns:
        PurgeStats with deleted row counts.
    """
    now = now or datetime.now(UTC)
    stats = PurgeStats(
        codes_deleted=await VerificationCodeRepository.delete_expired(session, now=now),
        sessions_deleted=await SessionRepository.delete_expired(session, now=now),
    )
    logger.info(
        "Purge complete: %d codes, %d sessions deleted",
        stats.codes_deleted,
        stats.sessions_deleted,
    )
    return stats


async def main() -> None:
    """CLI entry point: purge against the configured database."""
    from app.core.database import async_session_factory, engine

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    async with async_session_factory() as session:
        await run_purge(session)
        await session.commit()

    await engine.dispose()


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
