"""
Unit tests for the audit trail.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from schoolhub.modules.audit import AuditAction, AuditLog, AuditResource, AuditTrail


def _session_maker(session):
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=context)


class TestAuditTrail:
    @pytest.mark.asyncio
    async def test_record_writes_entry(self, mock_db):
        trail = AuditTrail(_session_maker(mock_db))

        await trail.record(
            actor_id="actor-1",
            action=AuditAction.UPDATE,
            resource=AuditResource.CLASSROOM,
            resource_id="classroom-1",
            before={"capacity": 30},
            after={"capacity": 35},
            ip="10.0.0.1",
            user_agent="pytest",
        )

        entry = mock_db.add.call_args.args[0]
        assert isinstance(entry, AuditLog)
        assert entry.action is AuditAction.UPDATE
        assert entry.resource is AuditResource.CLASSROOM
        assert entry.changes == {"before": {"capacity": 30}, "after": {"capacity": 35}}
        assert entry.ip == "10.0.0.1"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_creation_has_no_before(self, mock_db):
        trail = AuditTrail(_session_maker(mock_db))

        await trail.record(
            actor_id="actor-1",
            action=AuditAction.CREATE,
            resource=AuditResource.SCHOOL,
            resource_id="school-1",
            after={"name": "Greenwood High"},
        )

        entry = mock_db.add.call_args.args[0]
        assert entry.changes["before"] is None

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, mock_db, caplog):
        mock_db.commit.side_effect = OperationalError("INSERT", {}, Exception("db down"))
        trail = AuditTrail(_session_maker(mock_db))

        await trail.record(
            actor_id="actor-1",
            action=AuditAction.DELETE,
            resource=AuditResource.STUDENT,
            resource_id="student-1",
        )

        assert "Audit log failed" in caplog.text

    def test_resource_values(self):
        assert AuditResource.TRANSFER_REQUEST.value == "transferRequest"
        assert {action.value for action in AuditAction} == {
            "create",
            "update",
            "delete",
            "approve",
            "reject",
            "transfer",
        }
