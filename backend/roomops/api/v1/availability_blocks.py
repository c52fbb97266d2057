"""Availability blocks CRUD API router.

Blocks record occupancy that did not come through the marketplace: other
booking channels, walk-ins, or rooms the owner holds back. Ownership rule:
owners only ever see and change blocks they created.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from roomops.api.deps import get_current_owner, get_db
from roomops.models.availability_block import AvailabilityBlock
from roomops.models.property import Property
from roomops.models.user import User
from roomops.schemas.availability_block import (
    AvailabilityBlockCreate,
    AvailabilityBlockListResponse,
    AvailabilityBlockResponse,
    AvailabilityBlockUpdate,
    MessageResponse,
)
from roomops.services.store import as_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/availability/blocks", tags=["availability-blocks"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_response(block: AvailabilityBlock) -> AvailabilityBlockResponse:
    response = AvailabilityBlockResponse.model_validate(block)
    response.property_name = block.property.name if block.property is not None else None
    return response


async def _get_block_with_ownership(
    block_id: int,
    current_user: User,
    db: AsyncSession,
) -> AvailabilityBlock:
    """Fetch a block created by the current user.

    Raises ``HTTPException 404`` when the block does not exist or belongs to
    another owner.
    """
    result = await db.execute(
        select(AvailabilityBlock).where(
            AvailabilityBlock.id == block_id,
            AvailabilityBlock.owner_id == current_user.id,
        )
    )
    block = result.scalar_one_or_none()

    if block is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Availability block not found",
        )
    return block


def _invalid_range() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="End date must be after start date",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=AvailabilityBlockListResponse,
    summary="List availability blocks for the current owner's properties",
)
async def list_blocks(
    property_id: int | None = Query(None, description="Filter by property"),
    start_date: datetime | None = Query(None, description="Blocks ending on or after this instant"),
    end_date: datetime | None = Query(None, description="Blocks starting on or before this instant"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_owner),
) -> dict:
    """Return the owner's blocks ordered by start date."""
    filters = [AvailabilityBlock.owner_id == current_user.id]
    if property_id is not None:
        filters.append(AvailabilityBlock.property_id == property_id)
    if start_date is not None:
        filters.append(AvailabilityBlock.end_date >= as_utc(start_date))
    if end_date is not None:
        filters.append(AvailabilityBlock.start_date <= as_utc(end_date))

    total_result = await db.execute(select(func.count()).select_from(AvailabilityBlock).where(*filters))
    total = total_result.scalar_one()

    result = await db.execute(
        select(AvailabilityBlock)
        .where(*filters)
        .order_by(AvailabilityBlock.start_date.asc(), AvailabilityBlock.id.asc())
    )
    items = [_to_response(block) for block in result.scalars().all()]

    return {"items": items, "total": total}


@router.post(
    "",
    response_model=AvailabilityBlockResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an availability block",
)
async def create_block(
    body: AvailabilityBlockCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_owner),
) -> AvailabilityBlockResponse:
    """Block rooms of a property owned by the current user for a date window."""
    prop_result = await db.execute(
        select(Property).where(
            Property.id == body.property_id,
            Property.owner_id == current_user.id,
        )
    )
    prop = prop_result.scalar_one_or_none()
    if prop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Property not found",
        )

    block = AvailabilityBlock(
        property_id=prop.id,
        owner_id=current_user.id,
        start_date=as_utc(body.start_date),
        end_date=as_utc(body.end_date),
        room_code=body.room_code,
        source=body.source,
        beds_blocked=body.beds_blocked or 1,
        notes=body.notes,
    )
    block.property = prop
    db.add(block)
    await db.flush()
    await db.refresh(block, attribute_names=["created_at", "updated_at"])

    logger.info(
        "Owner %s blocked %d room(s) on property %s (room_code=%r)",
        current_user.id,
        block.beds_blocked,
        prop.id,
        block.room_code,
    )
    return _to_response(block)


@router.put(
    "/{block_id}",
    response_model=AvailabilityBlockResponse,
    summary="Update an availability block",
)
async def update_block(
    block_id: int,
    body: AvailabilityBlockUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_owner),
) -> AvailabilityBlockResponse:
    """Partially update a block.

    When only one of the dates changes, the new value is checked against
    the stored counterpart.
    """
    block = await _get_block_with_ownership(block_id, current_user, db)

    update_data = body.model_dump(exclude_unset=True)
    for key in ("start_date", "end_date"):
        if update_data.get(key) is not None:
            update_data[key] = as_utc(update_data[key])
        else:
            update_data.pop(key, None)

    effective_start = update_data.get("start_date", as_utc(block.start_date))
    effective_end = update_data.get("end_date", as_utc(block.end_date))
    if effective_end <= effective_start:
        raise _invalid_range()

    if "beds_blocked" in update_data and update_data["beds_blocked"] is None:
        update_data["beds_blocked"] = 1

    for field, value in update_data.items():
        setattr(block, field, value)

    db.add(block)
    await db.flush()
    await db.refresh(block, attribute_names=["created_at", "updated_at"])

    logger.info("Owner %s updated availability block %s: %s", current_user.id, block.id, sorted(update_data))
    return _to_response(block)


@router.delete(
    "/{block_id}",
    response_model=MessageResponse,
    summary="Delete an availability block",
)
async def delete_block(
    block_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_owner),
) -> dict:
    """Delete a block created by the current user."""
    block = await _get_block_with_ownership(block_id, current_user, db)

    await db.delete(block)
    await db.flush()

    logger.info("Owner %s deleted availability block %s", current_user.id, block_id)
    return {"message": "Availability block deleted"}
