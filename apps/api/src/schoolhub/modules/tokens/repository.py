"""
Long Session Repository

Database operations for long-lived sessions. Tokens are looked up by the
SHA-256 hash of their value; plain token values never reach this layer.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import LongSession, SessionStatus


async def create(
    db: AsyncSession,
    *,
    token_hash: str,
    user_id: str,
    device: str | None,
    ip: str | None,
    expires_at: datetime,
) -> LongSession:
    """Create a new active long session."""

    session = LongSession(
        token_hash=token_hash,
        user_id=str(user_id),
        device=device,
        ip=ip,
        status=SessionStatus.ACTIVE,
        expires_at=expires_at,
    )

    db.add(session)
    await db.commit()
    await db.refresh(session)

    return session


async def get_by_token_hash(db: AsyncSession, token_hash: str) -> LongSession | None:
    """Get a long session by the hash of its token."""

    result = await db.execute(select(LongSession).where(LongSession.token_hash == token_hash))
    return result.scalar_one_or_none()


async def mark_revoked(db: AsyncSession, session: LongSession) -> LongSession:
    """Transition an active session to REVOKED."""

    session.status = SessionStatus.REVOKED

    await db.commit()
    await db.refresh(session)

    return session
