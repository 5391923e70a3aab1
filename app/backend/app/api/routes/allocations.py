"""Allocation ledger endpoints."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import ok, ok_list
from app.core.auth import RequestUserContext, get_current_user_context
from app.db.dependencies import get_db_session
from app.models.entities import AllocationStatus
from app.services.allocation_service import (
    AllocationCreateData,
    AllocationFilters,
    AllocationService,
    AllocationUpdateData,
)

router = APIRouter(prefix="/allocations", tags=["allocations"])


class AllocationCreatePayload(BaseModel):
    resource_id: UUID
    work_type_id: UUID
    project_id: UUID | None = None
    project_name: str | None = Field(default=None, max_length=255)
    week_start: date | datetime | None = None
    days: Decimal | None = None
    notes: str | None = Field(default=None, max_length=2000)
    status: AllocationStatus = AllocationStatus.CONFIRMED
    role: str | None = Field(default=None, max_length=255)
    quantity: int | None = None
    days_per_week: int | None = None
    num_weeks: int | None = None
    start_date: date | datetime | None = None


class AllocationUpdatePayload(BaseModel):
    resource_id: UUID | None = None
    project_id: UUID | None = None
    work_type_id: UUID | None = None
    week_start: date | datetime | None = None
    days: Decimal | None = None
    notes: str | None = Field(default=None, max_length=2000)
    status: AllocationStatus | None = None
    role: str | None = Field(default=None, max_length=255)
    quantity: int | None = None
    days_per_week: int | None = None
    num_weeks: int | None = None
    start_date: date | datetime | None = None


class AllocationMovePayload(BaseModel):
    week_start: date | datetime
    resource_id: UUID | None = None


def _service(db: Session) -> AllocationService:
    return AllocationService(db)


def _parse_role_ids(raw: str | None) -> list[UUID] | None:
    if not raw:
        return None
    role_ids: list[UUID] = []
    for part in raw.split(","):
        value = part.strip()
        if not value:
            continue
        try:
            role_ids.append(UUID(value))
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"role_ids contains an invalid id: {value!r}.",
            ) from exc
    return role_ids or None


@router.get("")
def list_allocations(
    project_id: UUID | None = Query(default=None),
    resource_id: UUID | None = Query(default=None),
    status_filter: AllocationStatus | None = Query(default=None, alias="status"),
    week_start: date | None = Query(default=None),
    week_end: date | None = Query(default=None),
    role_ids: str | None = Query(default=None),
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    rows = service.list_allocations(
        AllocationFilters(
            project_id=project_id,
            resource_id=resource_id,
            status=status_filter,
            week_from=week_start,
            week_to=week_end,
            role_ids=_parse_role_ids(role_ids),
        )
    )
    return ok_list(service.serialize_many(rows))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_allocation(
    payload: AllocationCreatePayload,
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    allocation = service.create(AllocationCreateData(**payload.model_dump()))
    return ok(service.serialize_allocation(allocation))


@router.get("/{allocation_id}")
def get_allocation(
    allocation_id: UUID,
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return ok(service.serialize_allocation(service.get(allocation_id)))


@router.patch("/{allocation_id}")
def update_allocation(
    allocation_id: UUID,
    payload: AllocationUpdatePayload,
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    allocation = service.update(allocation_id, AllocationUpdateData(**payload.model_dump(exclude_unset=True)))
    return ok(service.serialize_allocation(allocation))


@router.post("/{allocation_id}/move")
def move_allocation(
    allocation_id: UUID,
    payload: AllocationMovePayload,
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    allocation = service.move(allocation_id, week_start=payload.week_start, resource_id=payload.resource_id)
    return ok(service.serialize_allocation(allocation))


@router.delete("/{allocation_id}")
def delete_allocation(
    allocation_id: UUID,
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    _service(db).delete(allocation_id)
    return ok({"id": str(allocation_id)})
