"""
Transfer Request Repository

Database operations for transfer requests.

Resolution (approve/reject) is a conditional UPDATE ... WHERE status =
'pending' RETURNING: of two concurrent resolutions, exactly one gets the
row back and the other gets None.
"""

from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import TransferRequest, TransferStatus

# Valid status transitions - PENDING is resolved once, both outcomes are terminal
VALID_STATUS_TRANSITIONS: dict[TransferStatus, set[TransferStatus]] = {
    TransferStatus.PENDING: {
        TransferStatus.APPROVED,
        TransferStatus.REJECTED,
    },
    # Terminal states - no transitions allowed
    TransferStatus.APPROVED: set(),
    TransferStatus.REJECTED: set(),
}


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, current_status: TransferStatus, new_status: TransferStatus):
        self.current_status = current_status
        self.new_status = new_status
        valid_transitions = VALID_STATUS_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def can_transition(current_status: TransferStatus, new_status: TransferStatus) -> bool:
    return new_status in VALID_STATUS_TRANSITIONS.get(current_status, set())


async def create(
    db: AsyncSession,
    *,
    student_id: str,
    from_school_id: str,
    to_school_id: str,
    to_classroom_id: str | None,
    requested_by: str,
    snapshot: dict,
) -> TransferRequest:
    """
    Insert a PENDING transfer request.

    Raises:
        IntegrityError: If the student already has a pending request
    """
    transfer = TransferRequest(
        student_id=str(student_id),
        from_school_id=str(from_school_id),
        to_school_id=str(to_school_id),
        to_classroom_id=str(to_classroom_id) if to_classroom_id else None,
        requested_by=str(requested_by),
        status=TransferStatus.PENDING,
        snapshot=snapshot,
    )

    db.add(transfer)
    await db.flush()
    await db.refresh(transfer)

    return transfer


async def get_by_id(db: AsyncSession, transfer_id: str) -> TransferRequest | None:
    result = await db.execute(select(TransferRequest).where(TransferRequest.id == str(transfer_id)))
    return result.scalar_one_or_none()


async def get_pending_for_student(db: AsyncSession, student_id: str) -> TransferRequest | None:
    """Get the pending request of a student, if any."""
    result = await db.execute(
        select(TransferRequest).where(
            TransferRequest.student_id == str(student_id),
            TransferRequest.status == TransferStatus.PENDING,
        )
    )
    return result.scalar_one_or_none()


async def list_page(
    db: AsyncSession,
    *,
    school_id: str | None = None,
    status: TransferStatus | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[TransferRequest], int]:
    """
    List transfer requests, newest first.

    Args:
        db: Database session
        school_id: Only requests where this school is source or destination
        status: Only requests in this status
        skip: Number of records to skip
        limit: Maximum records to return

    Returns:
        Tuple of (requests on this page, total matching requests)
    """
    query = select(TransferRequest)

    if school_id:
        query = query.where(
            or_(
                TransferRequest.from_school_id == str(school_id),
                TransferRequest.to_school_id == str(school_id),
            )
        )

    if status:
        query = query.where(TransferRequest.status == status)

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(
        query.order_by(TransferRequest.created_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total


async def resolve(
    db: AsyncSession,
    transfer_id: str,
    status: TransferStatus,
    *,
    responded_by: str,
    responded_at: datetime,
) -> TransferRequest | None:
    """
    Move a PENDING request to a terminal status.

    The UPDATE only matches while the row is still PENDING. Runs in the
    caller's transaction; nothing is committed here.

    Returns:
        The updated request, or None if it was no longer PENDING

    Raises:
        InvalidStatusTransitionError: If status is not reachable from PENDING
    """
    if not can_transition(TransferStatus.PENDING, status):
        raise InvalidStatusTransitionError(TransferStatus.PENDING, status)

    stmt = (
        update(TransferRequest)
        .where(
            TransferRequest.id == str(transfer_id),
            TransferRequest.status == TransferStatus.PENDING,
        )
        .values(
            status=status,
            responded_by=str(responded_by),
            responded_at=responded_at,
        )
        .returning(TransferRequest)
        .execution_options(populate_existing=True)
    )

    result = await db.execute(stmt)
    return result.scalar_one_or_none()
