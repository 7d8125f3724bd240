"""
Audit Trail

Fire-and-forget sink for audit entries. Each entry is written on its own
session and transaction, after the business operation has committed, so a
failing audit write can never roll back or fail the operation it describes.
Failures are logged with traceback and swallowed.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolhub.modules.audit.models import AuditAction, AuditLog, AuditResource

logger = logging.getLogger(__name__)


class AuditTrail:
    """
    Writes audit log entries.

    Args:
        session_maker: Factory for the sessions entries are written on
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def record(
        self,
        *,
        actor_id: str,
        action: AuditAction,
        resource: AuditResource,
        resource_id: str,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """
        Record one change. Never raises.

        Args:
            actor_id: User performing the change
            action: What happened
            resource: Kind of resource changed
            resource_id: ID of the resource changed
            before: State before the change (JSON-serializable)
            after: State after the change (JSON-serializable)
            ip: Client network address
            user_agent: Client User-Agent header
        """
        entry = AuditLog(
            actor_id=str(actor_id),
            action=action,
            resource=resource,
            resource_id=str(resource_id),
            changes={"before": before, "after": after},
            ip=ip,
            user_agent=user_agent,
        )

        try:
            async with self._session_maker() as session:
                session.add(entry)
                await session.commit()
        except Exception as e:
            logger.error(
                f"Audit log failed for {action.value} {resource.value} {resource_id}: {e}",
                exc_info=True,
            )
