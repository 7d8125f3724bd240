"""
Unit tests for the transfer request workflow.

These tests cover:
- Proposal (tenant check, destination validation, one pending per student)
- Approval and rejection (destination side only, exactly-once resolution)
- Moving the student together with the status change
- Visibility of requests from either side
"""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from schoolhub.core.authorization import Principal
from schoolhub.core.errors import ForbiddenError
from schoolhub.core.pagination import Pagination
from schoolhub.modules.audit import AuditAction, AuditResource
from schoolhub.modules.classrooms.service import ClassroomNotFoundError
from schoolhub.modules.schools.service import SchoolNotFoundError
from schoolhub.modules.students.service import StudentNotFoundError
from schoolhub.modules.transfer_requests.models import TransferStatus
from schoolhub.modules.transfer_requests.schemas import TransferRequestCreate
from schoolhub.modules.transfer_requests.service import (
    TransferRequestAlreadyPendingError,
    TransferRequestNotFoundError,
    TransferRequestNotPendingError,
    TransferService,
)
from schoolhub.modules.users.models import UserRole

SERVICE = "schoolhub.modules.transfer_requests.service"
RESPONDED_AT = datetime(2026, 5, 4, 9, 30, tzinfo=UTC)


@pytest.fixture
def transfers(audit):
    return TransferService(audit, clock=lambda: RESPONDED_AT)


@pytest.fixture
def destination_ctx(make_ctx, other_school_id):
    return make_ctx(
        Principal(user_id="dest-admin", role=UserRole.SCHOOL_ADMIN, school_id=other_school_id)
    )


@pytest.fixture
def destination_school(make_school, other_school_id):
    return make_school(id=other_school_id, name="Hilltop Academy", code="HTA")


def _resolved(transfer, status, user_id):
    return SimpleNamespace(
        **{**vars(transfer), "status": status, "responded_by": user_id, "responded_at": RESPONDED_AT}
    )


class TestPropose:
    @pytest.mark.asyncio
    async def test_propose_success(
        self,
        transfers,
        mock_db,
        school_admin_ctx,
        make_student,
        make_classroom,
        make_transfer,
        destination_school,
        audit,
    ):
        classroom = make_classroom(name="Form 2B")
        student = make_student(classroom_id=classroom.id)
        transfer = make_transfer(student_id=student.id)
        data = TransferRequestCreate(student_id=student.id, to_school_id=destination_school.id)

        with (
            patch(f"{SERVICE}.get_live_student", new=AsyncMock(return_value=student)),
            patch(f"{SERVICE}.get_live_school", new=AsyncMock(return_value=destination_school)),
            patch(f"{SERVICE}.ClassroomRepository") as mock_classrooms,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_classrooms.get_by_id = AsyncMock(return_value=classroom)
            mock_repo.get_pending_for_student = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock(return_value=transfer)

            result = await transfers.propose(mock_db, school_admin_ctx, data)

            kwargs = mock_repo.create.await_args.kwargs
            assert kwargs["from_school_id"] == student.school_id
            assert kwargs["to_school_id"] == destination_school.id
            assert kwargs["to_classroom_id"] is None
            assert kwargs["snapshot"] == {
                "first_name": "Ama",
                "last_name": "Mensah",
                "email": "ama.mensah@example.com",
                "student_number": "GWH-2026-0001",
                "classroom_name": "Form 2B",
            }

        assert result is transfer
        mock_db.commit.assert_awaited_once()
        audit_kwargs = audit.record.await_args.kwargs
        assert audit_kwargs["action"] is AuditAction.CREATE
        assert audit_kwargs["resource"] is AuditResource.TRANSFER_REQUEST

    @pytest.mark.asyncio
    async def test_propose_validates_destination_classroom(
        self, transfers, mock_db, school_admin_ctx, make_student, destination_school
    ):
        student = make_student()
        data = TransferRequestCreate(
            student_id=student.id,
            to_school_id=destination_school.id,
            to_classroom_id="classroom-elsewhere",
        )

        with (
            patch(f"{SERVICE}.get_live_student", new=AsyncMock(return_value=student)),
            patch(f"{SERVICE}.get_live_school", new=AsyncMock(return_value=destination_school)),
            patch(
                f"{SERVICE}.get_live_classroom_in_school",
                new=AsyncMock(side_effect=ClassroomNotFoundError("classroom-elsewhere")),
            ) as mock_lookup,
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_repo.create = AsyncMock()

            with pytest.raises(ClassroomNotFoundError):
                await transfers.propose(mock_db, school_admin_ctx, data)

            mock_lookup.assert_awaited_once_with(
                mock_db, "classroom-elsewhere", destination_school.id
            )
            mock_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_propose_for_other_schools_student_is_forbidden(
        self, transfers, mock_db, school_admin_ctx, make_student, other_school_id
    ):
        student = make_student(school_id=other_school_id)
        data = TransferRequestCreate(student_id=student.id, to_school_id=str(uuid4()))

        with (
            patch(f"{SERVICE}.get_live_student", new=AsyncMock(return_value=student)),
            patch(f"{SERVICE}.get_live_school", new=AsyncMock()) as mock_school,
        ):
            with pytest.raises(ForbiddenError):
                await transfers.propose(mock_db, school_admin_ctx, data)

            mock_school.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_propose_when_already_pending(
        self,
        transfers,
        mock_db,
        school_admin_ctx,
        make_student,
        make_transfer,
        destination_school,
    ):
        student = make_student()
        data = TransferRequestCreate(student_id=student.id, to_school_id=destination_school.id)

        with (
            patch(f"{SERVICE}.get_live_student", new=AsyncMock(return_value=student)),
            patch(f"{SERVICE}.get_live_school", new=AsyncMock(return_value=destination_school)),
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_repo.get_pending_for_student = AsyncMock(return_value=make_transfer())
            mock_repo.create = AsyncMock()

            with pytest.raises(TransferRequestAlreadyPendingError) as exc_info:
                await transfers.propose(mock_db, school_admin_ctx, data)

            mock_repo.create.assert_not_awaited()
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_concurrent_proposal_loses_on_unique_index(
        self, transfers, mock_db, school_admin_ctx, make_student, destination_school, audit
    ):
        student = make_student()
        data = TransferRequestCreate(student_id=student.id, to_school_id=destination_school.id)

        with (
            patch(f"{SERVICE}.get_live_student", new=AsyncMock(return_value=student)),
            patch(f"{SERVICE}.get_live_school", new=AsyncMock(return_value=destination_school)),
            patch(f"{SERVICE}.repository") as mock_repo,
        ):
            mock_repo.get_pending_for_student = AsyncMock(return_value=None)
            mock_repo.create = AsyncMock(
                side_effect=IntegrityError("INSERT", {}, Exception("duplicate key"))
            )

            with pytest.raises(TransferRequestAlreadyPendingError):
                await transfers.propose(mock_db, school_admin_ctx, data)

        mock_db.rollback.assert_awaited_once()
        audit.record.assert_not_awaited()


class TestApprove:
    @pytest.fixture(autouse=True)
    def live_destination(self, destination_school):
        with patch(
            f"{SERVICE}.get_live_school", new=AsyncMock(return_value=destination_school)
        ) as mock_school:
            yield mock_school

    @pytest.mark.asyncio
    async def test_approve_moves_student(
        self, transfers, mock_db, destination_ctx, make_transfer, audit
    ):
        transfer = make_transfer()
        resolved = _resolved(transfer, TransferStatus.APPROVED, "dest-admin")

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.StudentRepository") as mock_students,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=transfer)
            mock_repo.resolve = AsyncMock(return_value=resolved)
            mock_students.move_to_school = AsyncMock(return_value=True)

            result = await transfers.approve(mock_db, destination_ctx, transfer.id)

            mock_repo.resolve.assert_awaited_once_with(
                mock_db,
                transfer.id,
                TransferStatus.APPROVED,
                responded_by="dest-admin",
                responded_at=RESPONDED_AT,
            )
            mock_students.move_to_school.assert_awaited_once_with(
                mock_db,
                transfer.student_id,
                school_id=transfer.to_school_id,
                classroom_id=None,
            )

        assert result.status is TransferStatus.APPROVED
        assert result.responded_at == RESPONDED_AT
        mock_db.commit.assert_awaited_once()
        mock_db.rollback.assert_not_awaited()

        actions = [call.kwargs["action"] for call in audit.record.await_args_list]
        assert actions == [AuditAction.APPROVE, AuditAction.TRANSFER]
        student_entry = audit.record.await_args_list[1].kwargs
        assert student_entry["resource"] is AuditResource.STUDENT
        assert student_entry["before"] == {"school_id": transfer.from_school_id}

    @pytest.mark.asyncio
    async def test_approve_into_named_classroom(
        self, transfers, mock_db, destination_ctx, make_transfer, make_classroom, other_school_id
    ):
        classroom = make_classroom(school_id=other_school_id)
        transfer = make_transfer(to_classroom_id=classroom.id)
        resolved = _resolved(transfer, TransferStatus.APPROVED, "dest-admin")

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.StudentRepository") as mock_students,
            patch(
                f"{SERVICE}.get_live_classroom_in_school", new=AsyncMock(return_value=classroom)
            ),
        ):
            mock_repo.get_by_id = AsyncMock(return_value=transfer)
            mock_repo.resolve = AsyncMock(return_value=resolved)
            mock_students.move_to_school = AsyncMock(return_value=True)

            await transfers.approve(mock_db, destination_ctx, transfer.id)

            assert mock_students.move_to_school.await_args.kwargs["classroom_id"] == classroom.id

    @pytest.mark.asyncio
    async def test_source_side_cannot_approve(
        self, transfers, mock_db, school_admin_ctx, make_transfer
    ):
        transfer = make_transfer()

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=transfer)
            mock_repo.resolve = AsyncMock()

            with pytest.raises(ForbiddenError):
                await transfers.approve(mock_db, school_admin_ctx, transfer.id)

            mock_repo.resolve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_superadmin_can_approve(
        self, transfers, mock_db, superadmin_ctx, make_transfer
    ):
        transfer = make_transfer()
        resolved = _resolved(transfer, TransferStatus.APPROVED, superadmin_ctx.principal.user_id)

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.StudentRepository") as mock_students,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=transfer)
            mock_repo.resolve = AsyncMock(return_value=resolved)
            mock_students.move_to_school = AsyncMock(return_value=True)

            result = await transfers.approve(mock_db, superadmin_ctx, transfer.id)

        assert result.status is TransferStatus.APPROVED

    @pytest.mark.asyncio
    async def test_approve_unknown_request(self, transfers, mock_db, destination_ctx):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(TransferRequestNotFoundError) as exc_info:
                await transfers.approve(mock_db, destination_ctx, "missing")

        assert exc_info.value.error_code == "transfer_request_not_found"

    @pytest.mark.asyncio
    async def test_approve_already_resolved(
        self, transfers, mock_db, destination_ctx, make_transfer
    ):
        transfer = make_transfer(status=TransferStatus.REJECTED)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=transfer)
            mock_repo.resolve = AsyncMock()

            with pytest.raises(TransferRequestNotPendingError) as exc_info:
                await transfers.approve(mock_db, destination_ctx, transfer.id)

            mock_repo.resolve.assert_not_awaited()
        assert "rejected" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_approve_loses_race(
        self, transfers, mock_db, destination_ctx, make_transfer, audit
    ):
        """The conditional update matched nothing: someone else resolved it first."""
        transfer = make_transfer()

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.StudentRepository") as mock_students,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=transfer)
            mock_repo.resolve = AsyncMock(return_value=None)
            mock_students.move_to_school = AsyncMock()

            with pytest.raises(TransferRequestNotPendingError):
                await transfers.approve(mock_db, destination_ctx, transfer.id)

            mock_students.move_to_school.assert_not_awaited()

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()
        audit.record.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_approve_rolls_back_when_student_is_gone(
        self, transfers, mock_db, destination_ctx, make_transfer
    ):
        transfer = make_transfer()
        resolved = _resolved(transfer, TransferStatus.APPROVED, "dest-admin")

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.StudentRepository") as mock_students,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=transfer)
            mock_repo.resolve = AsyncMock(return_value=resolved)
            mock_students.move_to_school = AsyncMock(return_value=False)

            with pytest.raises(StudentNotFoundError):
                await transfers.approve(mock_db, destination_ctx, transfer.id)

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_approve_with_deleted_destination_classroom(
        self, transfers, mock_db, destination_ctx, make_transfer
    ):
        transfer = make_transfer(to_classroom_id="gone")

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(
                f"{SERVICE}.get_live_classroom_in_school",
                new=AsyncMock(side_effect=ClassroomNotFoundError("gone")),
            ),
        ):
            mock_repo.get_by_id = AsyncMock(return_value=transfer)
            mock_repo.resolve = AsyncMock()

            with pytest.raises(ClassroomNotFoundError):
                await transfers.approve(mock_db, destination_ctx, transfer.id)

            mock_repo.resolve.assert_not_awaited()


    @pytest.mark.asyncio
    async def test_approve_into_deleted_school(
        self, transfers, mock_db, destination_ctx, make_transfer, live_destination, audit
    ):
        transfer = make_transfer()
        live_destination.side_effect = SchoolNotFoundError(transfer.to_school_id)

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.StudentRepository") as mock_students,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=transfer)
            mock_repo.resolve = AsyncMock()
            mock_students.move_to_school = AsyncMock()

            with pytest.raises(SchoolNotFoundError):
                await transfers.approve(mock_db, destination_ctx, transfer.id)

            live_destination.assert_awaited_once_with(mock_db, transfer.to_school_id)
            mock_repo.resolve.assert_not_awaited()
            mock_students.move_to_school.assert_not_awaited()

        mock_db.commit.assert_not_awaited()
        audit.record.assert_not_awaited()


class TestReject:
    @pytest.mark.asyncio
    async def test_reject_leaves_student_alone(
        self, transfers, mock_db, destination_ctx, make_transfer, audit
    ):
        transfer = make_transfer()
        resolved = _resolved(transfer, TransferStatus.REJECTED, "dest-admin")

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.StudentRepository") as mock_students,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=transfer)
            mock_repo.resolve = AsyncMock(return_value=resolved)
            mock_students.move_to_school = AsyncMock()

            result = await transfers.reject(mock_db, destination_ctx, transfer.id)

            mock_students.move_to_school.assert_not_awaited()

        assert result.status is TransferStatus.REJECTED
        mock_db.commit.assert_awaited_once()
        assert audit.record.await_args.kwargs["action"] is AuditAction.REJECT

    @pytest.mark.asyncio
    async def test_reject_loses_race(self, transfers, mock_db, destination_ctx, make_transfer):
        transfer = make_transfer()

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=transfer)
            mock_repo.resolve = AsyncMock(return_value=None)

            with pytest.raises(TransferRequestNotPendingError):
                await transfers.reject(mock_db, destination_ctx, transfer.id)

        mock_db.rollback.assert_awaited_once()


class TestVisibility:
    @pytest.mark.asyncio
    async def test_source_side_can_read(self, transfers, mock_db, school_admin_ctx, make_transfer):
        transfer = make_transfer()

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=transfer)

            assert await transfers.get(mock_db, school_admin_ctx, transfer.id) is transfer

    @pytest.mark.asyncio
    async def test_unrelated_school_cannot_read(
        self, transfers, mock_db, make_ctx, make_transfer
    ):
        outsider = make_ctx(
            Principal(user_id="x", role=UserRole.SCHOOL_ADMIN, school_id="third-school")
        )
        transfer = make_transfer()

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=transfer)

            with pytest.raises(ForbiddenError):
                await transfers.get(mock_db, outsider, transfer.id)

    @pytest.mark.asyncio
    async def test_school_admin_list_is_scoped(
        self, transfers, mock_db, school_admin_ctx, school_id
    ):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.list_page = AsyncMock(return_value=([], 0))

            await transfers.list(
                mock_db, school_admin_ctx, Pagination(page=2, limit=10), TransferStatus.PENDING
            )

            mock_repo.list_page.assert_awaited_once_with(
                mock_db, school_id=school_id, status=TransferStatus.PENDING, skip=10, limit=10
            )

    @pytest.mark.asyncio
    async def test_superadmin_list_is_unscoped(self, transfers, mock_db, superadmin_ctx):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.list_page = AsyncMock(return_value=([], 0))

            await transfers.list(mock_db, superadmin_ctx, Pagination(page=1, limit=20))

            assert mock_repo.list_page.await_args.kwargs["school_id"] is None

    @pytest.mark.asyncio
    async def test_school_admin_without_school_cannot_list(self, transfers, mock_db, make_ctx):
        orphan = make_ctx(Principal(user_id="x", role=UserRole.SCHOOL_ADMIN, school_id=None))

        with pytest.raises(ForbiddenError):
            await transfers.list(mock_db, orphan, Pagination(page=1, limit=20))
