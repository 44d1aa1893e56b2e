"""
Checklist template store helpers.

The current template is the most recently created active template. Nothing
prevents several templates from being active at once; in that case the
newest one wins.
"""

import logging
from typing import Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from fleetcheck.app.core.exceptions import ResourceNotFoundError, ValidationFailedError
from fleetcheck.app.models.checklist import ChecklistTemplate

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_NAME = "Standard Daily Check"
DEFAULT_TEMPLATE_ITEMS = [
    "Lights working (headlights, indicators, brake lights)",
    "Tyres condition & pressure",
    "Mirrors and windscreen clean & intact",
    "Brakes functional",
    "Horn working",
    "Fluids (oil, coolant, washer) at proper levels",
    "Tachograph functioning",
    "Fire extinguisher present",
    "First aid kit present",
    "Trailer coupling secure",
]


def _clean_items(items: Optional[Sequence[str]]) -> list[str]:
    if not isinstance(items, (list, tuple)):
        raise ValidationFailedError("items must be a list of labels", field="items")
    cleaned = [str(item).strip() for item in items if item is not None and str(item).strip()]
    if not cleaned:
        raise ValidationFailedError("items must contain at least one label", field="items")
    return cleaned


async def create_template(db: AsyncSession, name: str, items: Sequence[str], active: bool = True) -> ChecklistTemplate:
    name = (name or "").strip()
    if not name:
        raise ValidationFailedError("name is required", field="name")

    template = ChecklistTemplate(name=name, items=_clean_items(items), active=active)
    db.add(template)
    await db.commit()
    await db.refresh(template)
    logger.info(f"Created checklist template {template.id} '{name}' with {len(template.items)} items")
    return template


async def get_template(db: AsyncSession, template_id: int) -> ChecklistTemplate:
    template = await db.get(ChecklistTemplate, template_id)
    if not template:
        raise ResourceNotFoundError("Checklist template", template_id)
    return template


async def get_current_template(db: AsyncSession) -> Optional[ChecklistTemplate]:
    """Most recently created active template, or None."""
    result = await db.execute(
        select(ChecklistTemplate)
        .where(ChecklistTemplate.active.is_(True))
        .order_by(ChecklistTemplate.created_at.desc(), ChecklistTemplate.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_templates(db: AsyncSession, active_only: bool = True) -> list[ChecklistTemplate]:
    query = select(ChecklistTemplate).order_by(ChecklistTemplate.created_at.desc(), ChecklistTemplate.id.desc())
    if active_only:
        query = query.where(ChecklistTemplate.active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_template(
    db: AsyncSession,
    template_id: int,
    name: Optional[str] = None,
    items: Optional[Sequence[str]] = None,
    active: Optional[bool] = None,
) -> ChecklistTemplate:
    """
    Edit a template in place.

    Past submissions are unaffected: they carry their own copy of the labels.
    """
    template = await get_template(db, template_id)

    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationFailedError("name cannot be blank", field="name")
        template.name = name
    if items is not None:
        template.items = _clean_items(items)
    if active is not None:
        template.active = active

    await db.commit()
    await db.refresh(template)
    return template


async def ensure_default_template(db: AsyncSession) -> Optional[ChecklistTemplate]:
    """Seed the standard template when the table is empty."""
    count = await db.scalar(select(func.count(ChecklistTemplate.id)))
    if count:
        return None
    logger.info(f"No checklist templates found, seeding '{DEFAULT_TEMPLATE_NAME}'")
    return await create_template(db, DEFAULT_TEMPLATE_NAME, DEFAULT_TEMPLATE_ITEMS)
