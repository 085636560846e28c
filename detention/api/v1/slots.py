"""
Detention slot endpoints.
"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from detention.api import deps
from detention.schemas.detention.slot import SlotCreate, SlotResponse, SlotUpdate
from detention.services.base.base_service import Actor
from detention.services.detention.slot_registry import SlotRegistry

router = APIRouter(prefix="/slots", tags=["Detention Slots"])


@router.post("", response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
def create_slot(
    payload: SlotCreate,
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    result = SlotRegistry(db).create_slot(
        payload.slot_date,
        actor,
        capacity=payload.capacity,
        location=payload.location,
    )
    return deps.unwrap_result(result)


@router.get("/available", response_model=List[SlotResponse])
def list_available_slots(
    after: date = Query(..., description="Only slots strictly after this date"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    """Slots with a free seat, earliest first."""
    return deps.unwrap_result(SlotRegistry(db).list_available_slots(after, limit))


@router.patch("/{slot_id}", response_model=SlotResponse)
def update_slot(
    slot_id: str,
    payload: SlotUpdate,
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    result = SlotRegistry(db).update_slot(
        slot_id,
        actor,
        capacity=payload.capacity,
        location=payload.location,
    )
    return deps.unwrap_result(result)


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_slot(
    slot_id: str,
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    deps.unwrap_result(SlotRegistry(db).delete_slot(slot_id, actor))


@router.get("/{slot_id}", response_model=SlotResponse)
def get_slot(
    slot_id: str,
    db: Session = Depends(deps.get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    return deps.unwrap_result(SlotRegistry(db).get_slot(slot_id))
