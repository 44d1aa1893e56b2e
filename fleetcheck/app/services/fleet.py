"""
Vehicle and trailer store helpers.
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from fleetcheck.app.core.exceptions import DuplicateResourceError, ValidationFailedError
from fleetcheck.app.models.vehicle import Vehicle, Trailer

logger = logging.getLogger(__name__)


async def create_vehicle(db: AsyncSession, registration: str, model: str) -> Vehicle:
    """
    Register a vehicle.

    Raises:
        ValidationFailedError: registration or model blank
        DuplicateResourceError: registration already registered
    """
    registration = (registration or "").strip()
    model = (model or "").strip()
    if not registration:
        raise ValidationFailedError("registration is required", field="registration")
    if not model:
        raise ValidationFailedError("model is required", field="model")

    existing = await db.execute(select(Vehicle.id).where(Vehicle.registration == registration))
    if existing.scalar_one_or_none() is not None:
        raise DuplicateResourceError("Vehicle", "registration", registration)

    vehicle = Vehicle(registration=registration, model=model)
    db.add(vehicle)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateResourceError("Vehicle", "registration", registration)

    await db.refresh(vehicle)
    logger.info(f"Registered vehicle {vehicle.id} ({registration})")
    return vehicle


async def list_vehicles(db: AsyncSession) -> list[Vehicle]:
    result = await db.execute(select(Vehicle).order_by(Vehicle.created_at.desc(), Vehicle.id.desc()))
    return list(result.scalars().all())


async def create_trailer(db: AsyncSession, number: str) -> Trailer:
    """
    Register a trailer.

    Raises:
        ValidationFailedError: number blank
        DuplicateResourceError: number already registered
    """
    number = (number or "").strip()
    if not number:
        raise ValidationFailedError("number is required", field="number")

    existing = await db.execute(select(Trailer.id).where(Trailer.number == number))
    if existing.scalar_one_or_none() is not None:
        raise DuplicateResourceError("Trailer", "number", number)

    trailer = Trailer(number=number)
    db.add(trailer)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateResourceError("Trailer", "number", number)

    await db.refresh(trailer)
    logger.info(f"Registered trailer {trailer.id} ({number})")
    return trailer


async def list_trailers(db: AsyncSession) -> list[Trailer]:
    result = await db.execute(select(Trailer).order_by(Trailer.created_at.desc(), Trailer.id.desc()))
    return list(result.scalars().all())
