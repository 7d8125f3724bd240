"""
Transfer Request Service Layer

Workflow moving a student from one school to another.

State machine:
    PENDING --approve--> APPROVED   (terminal)
    PENDING --reject---> REJECTED   (terminal)

1. Propose (source side):
   - Student must be live; school admins may only propose for their own students
   - Destination school must be live; the destination classroom, if given,
     must be live and belong to the destination school
   - At most one PENDING request per student. The pre-check gives the common
     case a clean error; the partial unique index settles concurrent proposals
   - A snapshot of the student (names, email, student number, classroom name)
     is stored with the request and never changes afterwards

2. Approve / Reject (destination side):
   - School admins may only resolve requests addressed to their school
   - The request leaves PENDING through a conditional UPDATE, so of two
     concurrent resolutions only one succeeds; the loser gets
     transfer_request_not_pending
   - Approval re-checks that the destination school and classroom are live
   - Approval moves the student in the same transaction as the status change;
     if either write fails, neither is committed

3. Get / List:
   - School admins see requests where their school is source or destination
   - Superadmins see all requests
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.auth import RequestContext
from schoolhub.core.authorization import ensure_school_access
from schoolhub.core.errors import ConflictError, ForbiddenError, NotFoundError
from schoolhub.core.pagination import Pagination
from schoolhub.modules.audit import AuditAction, AuditResource, AuditTrail
from schoolhub.modules.classrooms.repository import ClassroomRepository
from schoolhub.modules.classrooms.service import get_live_classroom_in_school
from schoolhub.modules.schools.service import get_live_school
from schoolhub.modules.students.models import Student
from schoolhub.modules.students.repository import StudentRepository
from schoolhub.modules.students.service import StudentNotFoundError, get_live_student
from schoolhub.modules.transfer_requests import repository
from schoolhub.modules.transfer_requests.models import TransferRequest, TransferStatus
from schoolhub.modules.transfer_requests.schemas import (
    TransferRequestCreate,
    TransferRequestResponse,
    TransferSnapshot,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TransferRequestNotFoundError(NotFoundError):
    """Raised when a transfer request does not exist."""

    def __init__(self, transfer_id: str | None = None):
        super().__init__("transfer_request", transfer_id)


class TransferRequestAlreadyPendingError(ConflictError):
    """Raised when the student already has a pending transfer request."""

    def __init__(self):
        super().__init__(
            error_code="transfer_request_already_pending",
            message="This student already has a pending transfer request.",
        )


class TransferRequestNotPendingError(ConflictError):
    """Raised when approving or rejecting a request that was already resolved."""

    def __init__(self, current_status: TransferStatus | None = None):
        message = "Transfer request is no longer pending."
        if current_status is not None:
            message = f"Transfer request is already {current_status.value}."
        super().__init__(error_code="transfer_request_not_pending", message=message)


class TransferService:
    """
    Transfer request workflow.

    Args:
        audit: Audit trail the workflow reports to
        clock: Returns the current aware UTC datetime (responded_at)
    """

    def __init__(self, audit: AuditTrail, clock: Callable[[], datetime] = _utcnow):
        self._audit = audit
        self._clock = clock

    async def _get(self, db: AsyncSession, transfer_id: str) -> TransferRequest:
        transfer = await repository.get_by_id(db, transfer_id)
        if not transfer:
            raise TransferRequestNotFoundError(transfer_id)
        return transfer

    async def _snapshot(self, db: AsyncSession, student: Student) -> dict:
        """Capture the student as it is now."""
        classroom_name = None
        if student.classroom_id:
            classroom = await ClassroomRepository.get_by_id(db, student.classroom_id)
            classroom_name = classroom.name if classroom else None

        return TransferSnapshot(
            first_name=student.first_name,
            last_name=student.last_name,
            email=student.email,
            student_number=student.student_number,
            classroom_name=classroom_name,
        ).model_dump()

    async def propose(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        data: TransferRequestCreate,
    ) -> TransferRequest:
        """
        Propose moving a student to another school.

        Raises:
            StudentNotFoundError: If the student is absent or deleted
            ForbiddenError: If a school admin proposes for another school's student
            SchoolNotFoundError: If the destination school is absent or deleted
            ClassroomNotFoundError: If the destination classroom is absent,
                deleted or not in the destination school
            TransferRequestAlreadyPendingError: If a pending request exists
        """
        principal = ctx.require_principal()

        student = await get_live_student(db, str(data.student_id))
        ensure_school_access(principal, student.school_id)

        to_school = await get_live_school(db, str(data.to_school_id))

        to_classroom_id = None
        if data.to_classroom_id:
            to_classroom = await get_live_classroom_in_school(
                db, str(data.to_classroom_id), to_school.id
            )
            to_classroom_id = to_classroom.id

        if await repository.get_pending_for_student(db, student.id):
            logger.warning(f"Transfer already pending for student {student.id}")
            raise TransferRequestAlreadyPendingError()

        student_id = student.id
        snapshot = await self._snapshot(db, student)

        try:
            transfer = await repository.create(
                db,
                student_id=student.id,
                from_school_id=student.school_id,
                to_school_id=to_school.id,
                to_classroom_id=to_classroom_id,
                requested_by=principal.user_id,
                snapshot=snapshot,
            )
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"Concurrent transfer proposal for student {student_id} rejected")
            raise TransferRequestAlreadyPendingError() from e

        logger.info(
            f"Transfer {transfer.id} proposed for student {student.id}: "
            f"{student.school_id} -> {to_school.id} by {principal.user_id}"
        )

        await self._audit.record(
            actor_id=principal.user_id,
            action=AuditAction.CREATE,
            resource=AuditResource.TRANSFER_REQUEST,
            resource_id=transfer.id,
            after=TransferRequestResponse.model_validate(transfer).model_dump(mode="json"),
            ip=ctx.client_ip,
            user_agent=ctx.user_agent,
        )
        return transfer

    async def _load_for_resolution(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        transfer_id: str,
    ) -> TransferRequest:
        """Fetch -> destination ownership -> still pending."""
        principal = ctx.require_principal()

        transfer = await self._get(db, transfer_id)
        ensure_school_access(principal, transfer.to_school_id)

        if transfer.status != TransferStatus.PENDING:
            logger.warning(f"Transfer {transfer.id} already {transfer.status.value}")
            raise TransferRequestNotPendingError(transfer.status)

        return transfer

    async def approve(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        transfer_id: str,
    ) -> TransferRequest:
        """
        Approve a pending transfer and move the student.

        Raises:
            TransferRequestNotFoundError: If the request does not exist
            ForbiddenError: If a school admin is not on the destination side
            TransferRequestNotPendingError: If the request was already resolved
            SchoolNotFoundError: If the destination school was deleted
            ClassroomNotFoundError: If the destination classroom was deleted
            StudentNotFoundError: If the student was deleted meanwhile
        """
        principal = ctx.require_principal()
        transfer = await self._load_for_resolution(db, ctx, transfer_id)

        # The destination may have been deleted since the proposal
        await get_live_school(db, transfer.to_school_id)
        if transfer.to_classroom_id:
            await get_live_classroom_in_school(db, transfer.to_classroom_id, transfer.to_school_id)

        student_id = transfer.student_id
        from_school_id = transfer.from_school_id

        resolved = await repository.resolve(
            db,
            transfer.id,
            TransferStatus.APPROVED,
            responded_by=principal.user_id,
            responded_at=self._clock(),
        )
        if resolved is None:
            await db.rollback()
            logger.warning(f"Transfer {transfer_id} resolved concurrently, approval dropped")
            raise TransferRequestNotPendingError()

        moved = await StudentRepository.move_to_school(
            db,
            student_id,
            school_id=resolved.to_school_id,
            classroom_id=resolved.to_classroom_id,
        )
        if not moved:
            await db.rollback()
            logger.warning(f"Transfer {transfer_id}: student {student_id} no longer exists")
            raise StudentNotFoundError(student_id)

        await db.commit()

        logger.info(
            f"Transfer {resolved.id} approved by {principal.user_id}: student {student_id} "
            f"moved {from_school_id} -> {resolved.to_school_id}"
        )

        await self._audit.record(
            actor_id=principal.user_id,
            action=AuditAction.APPROVE,
            resource=AuditResource.TRANSFER_REQUEST,
            resource_id=resolved.id,
            before={"status": TransferStatus.PENDING.value},
            after={"status": TransferStatus.APPROVED.value},
            ip=ctx.client_ip,
            user_agent=ctx.user_agent,
        )
        await self._audit.record(
            actor_id=principal.user_id,
            action=AuditAction.TRANSFER,
            resource=AuditResource.STUDENT,
            resource_id=student_id,
            before={"school_id": from_school_id},
            after={"school_id": resolved.to_school_id, "classroom_id": resolved.to_classroom_id},
            ip=ctx.client_ip,
            user_agent=ctx.user_agent,
        )
        return resolved

    async def reject(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        transfer_id: str,
    ) -> TransferRequest:
        """
        Reject a pending transfer. The student is not touched.

        Raises:
            TransferRequestNotFoundError: If the request does not exist
            ForbiddenError: If a school admin is not on the destination side
            TransferRequestNotPendingError: If the request was already resolved
        """
        principal = ctx.require_principal()
        transfer = await self._load_for_resolution(db, ctx, transfer_id)

        resolved = await repository.resolve(
            db,
            transfer.id,
            TransferStatus.REJECTED,
            responded_by=principal.user_id,
            responded_at=self._clock(),
        )
        if resolved is None:
            await db.rollback()
            logger.warning(f"Transfer {transfer_id} resolved concurrently, rejection dropped")
            raise TransferRequestNotPendingError()

        await db.commit()

        logger.info(f"Transfer {resolved.id} rejected by {principal.user_id}")

        await self._audit.record(
            actor_id=principal.user_id,
            action=AuditAction.REJECT,
            resource=AuditResource.TRANSFER_REQUEST,
            resource_id=resolved.id,
            before={"status": TransferStatus.PENDING.value},
            after={"status": TransferStatus.REJECTED.value},
            ip=ctx.client_ip,
            user_agent=ctx.user_agent,
        )
        return resolved

    async def get(self, db: AsyncSession, ctx: RequestContext, transfer_id: str) -> TransferRequest:
        """
        Get a transfer request visible to the caller.

        Raises:
            TransferRequestNotFoundError: If the request does not exist
            ForbiddenError: If a school admin is on neither side
        """
        principal = ctx.require_principal()
        transfer = await self._get(db, transfer_id)
        ensure_school_access(principal, transfer.from_school_id, transfer.to_school_id)
        return transfer

    async def list(
        self,
        db: AsyncSession,
        ctx: RequestContext,
        pagination: Pagination,
        status: TransferStatus | None = None,
    ) -> tuple[list[TransferRequest], int]:
        """List transfer requests visible to the caller, newest first."""
        principal = ctx.require_principal()

        school_id = None
        if principal.is_tenant_scoped:
            if not principal.school_id:
                raise ForbiddenError()
            school_id = principal.school_id

        return await repository.list_page(
            db,
            school_id=school_id,
            status=status,
            skip=pagination.skip,
            limit=pagination.limit,
        )
