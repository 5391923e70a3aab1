"""Availability, summary and week listing endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.responses import ok_list
from app.core.auth import RequestUserContext, get_current_user_context
from app.db.dependencies import get_db_session
from app.models.entities import AllocationStatus
from app.services.reporting_service import ReportingService

router = APIRouter(tags=["reports"])


def _service(db: Session) -> ReportingService:
    return ReportingService(db)


@router.get("/availability")
def availability(
    resource_id: UUID | None = Query(default=None),
    week_start: date | None = Query(default=None),
    status_filter: AllocationStatus | None = Query(default=None, alias="status"),
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Remaining capacity per resource and week."""

    rows = _service(db).availability(resource_id=resource_id, week_start=week_start, status_filter=status_filter)
    return ok_list(rows)


@router.get("/summary")
def summary(
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return ok_list(_service(db).summary())


@router.get("/weeks")
def weeks(
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return ok_list(_service(db).weeks())
