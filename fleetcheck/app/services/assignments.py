"""
Assignment service.

Creates and toggles driver <-> vehicle [<-> trailer] assignments while keeping
at most one ACTIVE assignment per driver, per vehicle and per trailer.

Activating an assignment is one transaction:
1. lock the driver, vehicle and trailer rows (always in that order)
2. mark every ACTIVE row sharing any of them as SUPERSEDED
3. insert / activate the target row
4. commit

The row locks serialize concurrent writers touching the same keys on
PostgreSQL; the partial unique indexes on ``assignments`` reject anything
that still slips through (SQLite has no row locks and relies on them alone).
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from fleetcheck.app.core.exceptions import ResourceNotFoundError, AssignmentConflictError
from fleetcheck.app.models.assignment import Assignment
from fleetcheck.app.models.enums import AssignmentStatus, UserRole
from fleetcheck.app.models.user import User
from fleetcheck.app.models.vehicle import Vehicle, Trailer

logger = logging.getLogger(__name__)


def _with_display_fields(query):
    return query.options(
        joinedload(Assignment.user),
        joinedload(Assignment.vehicle),
        joinedload(Assignment.trailer),
    ).execution_options(populate_existing=True)


async def _lock_parents(
    db: AsyncSession,
    user_id: int,
    vehicle_id: int,
    trailer_id: Optional[int],
) -> None:
    """
    Load and row-lock the driver, vehicle and trailer of an assignment.

    Raises:
        ResourceNotFoundError: unknown driver (or not a driver), vehicle or trailer
    """
    user = (await db.execute(
        select(User).where(User.id == user_id).with_for_update()
    )).scalar_one_or_none()
    if not user or user.role != UserRole.DRIVER:
        raise ResourceNotFoundError("Driver", user_id)

    vehicle = (await db.execute(
        select(Vehicle).where(Vehicle.id == vehicle_id).with_for_update()
    )).scalar_one_or_none()
    if not vehicle:
        raise ResourceNotFoundError("Vehicle", vehicle_id)

    if trailer_id is not None:
        trailer = (await db.execute(
            select(Trailer).where(Trailer.id == trailer_id).with_for_update()
        )).scalar_one_or_none()
        if not trailer:
            raise ResourceNotFoundError("Trailer", trailer_id)


async def _supersede_active(
    db: AsyncSession,
    user_id: int,
    vehicle_id: int,
    trailer_id: Optional[int],
    exclude_id: Optional[int] = None,
) -> list[int]:
    """Mark ACTIVE rows sharing the driver, vehicle or trailer as SUPERSEDED."""
    shared_keys = [Assignment.user_id == user_id, Assignment.vehicle_id == vehicle_id]
    if trailer_id is not None:
        shared_keys.append(Assignment.trailer_id == trailer_id)

    query = select(Assignment).where(
        Assignment.status == AssignmentStatus.ACTIVE,
        or_(*shared_keys),
    )
    if exclude_id is not None:
        query = query.where(Assignment.id != exclude_id)

    result = await db.execute(query.with_for_update())
    superseded = list(result.scalars().all())
    for row in superseded:
        row.status = AssignmentStatus.SUPERSEDED

    # The old rows must leave ACTIVE before the new one enters it
    await db.flush()
    return [row.id for row in superseded]


async def get_assignment(db: AsyncSession, assignment_id: int) -> Assignment:
    result = await db.execute(
        _with_display_fields(select(Assignment).where(Assignment.id == assignment_id))
    )
    assignment = result.scalar_one_or_none()
    if not assignment:
        raise ResourceNotFoundError("Assignment", assignment_id)
    return assignment


async def create_assignment(
    db: AsyncSession,
    user_id: int,
    vehicle_id: int,
    trailer_id: Optional[int] = None,
    active: bool = True,
) -> Assignment:
    """
    Create an assignment.

    When ``active`` is true every other ACTIVE assignment of the same driver,
    vehicle or trailer is superseded in the same transaction. When false the
    row is stored INACTIVE and nothing else changes.

    Returns:
        The new assignment with user, vehicle and trailer loaded

    Raises:
        ResourceNotFoundError: unknown driver, vehicle or trailer
        AssignmentConflictError: a concurrent writer activated a conflicting row
    """
    try:
        await _lock_parents(db, user_id, vehicle_id, trailer_id)

        superseded_ids: list[int] = []
        if active:
            superseded_ids = await _supersede_active(db, user_id, vehicle_id, trailer_id)

        assignment = Assignment(
            user_id=user_id,
            vehicle_id=vehicle_id,
            trailer_id=trailer_id,
            status=AssignmentStatus.ACTIVE if active else AssignmentStatus.INACTIVE,
        )
        db.add(assignment)
        await db.flush()
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise AssignmentConflictError()
    except ResourceNotFoundError:
        await db.rollback()
        raise

    logger.info(
        f"Assignment {assignment.id} created (driver={user_id}, vehicle={vehicle_id}, "
        f"trailer={trailer_id}, active={active}); superseded={superseded_ids}"
    )
    return await get_assignment(db, assignment.id)


async def set_assignment_active(db: AsyncSession, assignment_id: int, active: bool) -> Assignment:
    """
    Deactivate (``active=False``) or reactivate (``active=True``) an assignment.

    Reactivation applies the same exclusivity sweep as creation, excluding the
    row itself. Deactivation only flips the row. Repeating the current state
    is a no-op.

    Raises:
        ResourceNotFoundError: unknown assignment id
        AssignmentConflictError: a concurrent writer activated a conflicting row
    """
    assignment = await db.get(Assignment, assignment_id)
    if not assignment:
        raise ResourceNotFoundError("Assignment", assignment_id)

    if active == assignment.active:
        return await get_assignment(db, assignment_id)

    try:
        if active:
            await _lock_parents(db, assignment.user_id, assignment.vehicle_id, assignment.trailer_id)
            superseded_ids = await _supersede_active(
                db,
                assignment.user_id,
                assignment.vehicle_id,
                assignment.trailer_id,
                exclude_id=assignment.id,
            )
            assignment.status = AssignmentStatus.ACTIVE
            logger.info(f"Assignment {assignment_id} reactivated; superseded={superseded_ids}")
        else:
            assignment.status = AssignmentStatus.INACTIVE
            logger.info(f"Assignment {assignment_id} deactivated")
        await db.flush()
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise AssignmentConflictError()
    except ResourceNotFoundError:
        await db.rollback()
        raise

    return await get_assignment(db, assignment_id)


async def get_active_assignment_for_driver(db: AsyncSession, user_id: int) -> Optional[Assignment]:
    """
    The driver's active assignment, or None.

    Latest ``created_at`` wins should the invariant ever be broken.
    """
    result = await db.execute(
        _with_display_fields(
            select(Assignment)
            .where(Assignment.user_id == user_id, Assignment.status == AssignmentStatus.ACTIVE)
            .order_by(Assignment.created_at.desc(), Assignment.id.desc())
            .limit(1)
        )
    )
    return result.scalars().first()


async def list_assignments(db: AsyncSession, active_only: bool = False) -> list[Assignment]:
    query = select(Assignment).order_by(Assignment.created_at.desc(), Assignment.id.desc())
    if active_only:
        query = query.where(Assignment.status == AssignmentStatus.ACTIVE)
    result = await db.execute(_with_display_fields(query))
    return list(result.scalars().unique().all())
