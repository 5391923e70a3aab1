"""Allocation ledger: uniqueness-checked create, update, move and delete."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.entities import Allocation, AllocationStatus, Project, Role
from app.repositories.planning_repository import PlanningRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")
HALF_DAY = Decimal("0.5")
MAX_DAYS = Decimal("9999.99")

CONFLICT_DETAIL = "An allocation already exists for this resource, project, work type and week."


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def normalize_week_start(value: date | datetime) -> date:
    """Return the Monday of the week containing ``value``."""

    if isinstance(value, datetime):
        value = value.date()
    return value - timedelta(days=value.weekday())


def forecast_weeks(start_date: date | datetime, num_weeks: int) -> list[date]:
    first = normalize_week_start(start_date)
    return [first + timedelta(weeks=offset) for offset in range(max(num_weeks, 0))]


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _validate_days(days: Decimal) -> Decimal:
    days = Decimal(days)
    if days < ZERO:
        raise _bad_request("days must be a non-negative number.")
    if days > MAX_DAYS:
        raise _bad_request(f"days must be at most {MAX_DAYS}.")
    if (days / HALF_DAY) % 1 != 0:
        raise _bad_request("days must be a multiple of 0.5.")
    return _q2(days)


def _validate_days_per_week(value: int) -> int:
    if value < 1 or value > 5:
        raise _bad_request("days_per_week must be between 1 and 5.")
    return value


def _validate_quantity(value: int) -> int:
    if value < 1:
        raise _bad_request("quantity must be a positive number.")
    return value


def _validate_num_weeks(value: int) -> int:
    if value < 1:
        raise _bad_request("num_weeks must be a positive number.")
    return value


@dataclass(slots=True)
class AllocationCreateData:
    resource_id: UUID
    work_type_id: UUID
    project_id: UUID | None = None
    project_name: str | None = None
    week_start: date | None = None
    days: Decimal | None = None
    notes: str | None = None
    status: AllocationStatus = AllocationStatus.CONFIRMED
    role: str | None = None
    quantity: int | None = None
    days_per_week: int | None = None
    num_weeks: int | None = None
    start_date: date | None = None


@dataclass(slots=True)
class AllocationUpdateData:
    """Partial update. Fields left as ``UNSET`` are not touched."""

    resource_id: UUID | None = UNSET
    project_id: UUID | None = UNSET
    work_type_id: UUID | None = UNSET
    week_start: date | None = UNSET
    days: Decimal | None = UNSET
    notes: str | None = UNSET
    status: AllocationStatus | None = UNSET
    role: str | None = UNSET
    quantity: int | None = UNSET
    days_per_week: int | None = UNSET
    num_weeks: int | None = UNSET
    start_date: date | None = UNSET

    def provided(self) -> set[str]:
        return {field.name for field in fields(self) if getattr(self, field.name) is not UNSET}


@dataclass(slots=True)
class AllocationFilters:
    project_id: UUID | None = None
    resource_id: UUID | None = None
    status: AllocationStatus | None = None
    week_from: date | None = None
    week_to: date | None = None
    role_ids: list[UUID] | None = None


class AllocationService:
    """Ledger of allocations keyed by (resource, project, work type, week)."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)

    # ---------- Serialization ----------
    @staticmethod
    def _serialize_role(role: Role) -> dict[str, object]:
        return {
            "id": str(role.id),
            "name": role.name,
            "label": role.label,
            "is_admin": role.is_admin,
            "is_plannable": role.is_plannable,
        }

    def serialize_many(self, allocations: list[Allocation]) -> list[dict[str, object]]:
        resource_ids = {row.resource_id for row in allocations}
        resources = self.repo.get_resources(resource_ids)
        roles = self.repo.roles_by_resource(resource_ids)
        projects = self.repo.get_projects({row.project_id for row in allocations if row.project_id is not None})
        work_types = self.repo.get_work_types({row.work_type_id for row in allocations})

        payload: list[dict[str, object]] = []
        for row in allocations:
            resource = resources.get(row.resource_id)
            project = projects.get(row.project_id) if row.project_id is not None else None
            work_type = work_types.get(row.work_type_id)
            payload.append(
                {
                    "id": str(row.id),
                    "resource_id": str(row.resource_id),
                    "project_id": str(row.project_id) if row.project_id is not None else None,
                    "work_type_id": str(row.work_type_id),
                    "week_start": row.week_start.isoformat() if row.week_start is not None else None,
                    "days": str(_q2(Decimal(row.days))),
                    "notes": row.notes,
                    "status": row.status.value,
                    "role": row.role,
                    "quantity": row.quantity,
                    "days_per_week": row.days_per_week,
                    "num_weeks": row.num_weeks,
                    "start_date": row.start_date.isoformat() if row.start_date is not None else None,
                    "created_at": row.created_at.isoformat() if row.created_at is not None else None,
                    "updated_at": row.updated_at.isoformat() if row.updated_at is not None else None,
                    "resource": {
                        "id": str(resource.id),
                        "name": resource.name,
                        "roles": [self._serialize_role(role) for role in roles.get(resource.id, [])],
                    }
                    if resource is not None
                    else None,
                    "project": {
                        "id": str(project.id),
                        "name": project.name,
                        "customer": project.customer,
                    }
                    if project is not None
                    else None,
                    "work_type": {
                        "id": str(work_type.id),
                        "name": work_type.name,
                        "color": work_type.color,
                    }
                    if work_type is not None
                    else None,
                }
            )
        return payload

    def serialize_allocation(self, allocation: Allocation) -> dict[str, object]:
        return self.serialize_many([allocation])[0]

    # ---------- Lookups ----------
    def _get_allocation(self, allocation_id: UUID) -> Allocation:
        allocation = self.repo.get_allocation(allocation_id)
        if allocation is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Allocation not found.")
        return allocation

    def _ensure_resource(self, resource_id: UUID) -> None:
        if self.repo.get_resource(resource_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found.")

    def _ensure_work_type(self, work_type_id: UUID) -> None:
        if self.repo.get_work_type(work_type_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Work type not found.")

    def _ensure_project(self, project_id: UUID) -> None:
        if self.repo.get_project(project_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")

    def resolve_project(self, name: str) -> Project:
        """Reuse the project with exactly this name, or create an active one."""

        if not name.strip():
            raise _bad_request("project_name must not be empty.")
        project = self.repo.get_project_by_name(name)
        if project is not None:
            return project

        now = datetime.utcnow()
        try:
            project = self.repo.add_project(Project(name=name, is_active=True, created_at=now, updated_at=now))
        except IntegrityError:
            # Created concurrently under the same name.
            self.db.rollback()
            project = self.repo.get_project_by_name(name)
            if project is None:
                raise
            return project
        logger.info("Created project id=%s name=%r from allocation request", project.id, name)
        return project

    def _ensure_no_conflict(
        self,
        *,
        resource_id: UUID,
        project_id: UUID | None,
        work_type_id: UUID,
        week_start: date | None,
        exclude_id: UUID | None = None,
    ) -> None:
        # Week-less forecast rows are not part of the uniqueness key.
        if week_start is None:
            return
        existing = self.repo.find_allocation_by_key(
            resource_id=resource_id,
            project_id=project_id,
            work_type_id=work_type_id,
            week_start=week_start,
        )
        if existing is not None and existing.id != exclude_id:
            logger.warning(
                "Allocation conflict resource=%s project=%s work_type=%s week=%s existing=%s",
                resource_id,
                project_id,
                work_type_id,
                week_start,
                existing.id,
            )
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CONFLICT_DETAIL)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("Allocation write rejected by unique constraint: %s", exc.orig)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CONFLICT_DETAIL) from exc

    # ---------- Queries ----------
    def get(self, allocation_id: UUID) -> Allocation:
        return self._get_allocation(allocation_id)

    def list_allocations(self, filters: AllocationFilters) -> list[Allocation]:
        return self.repo.list_allocations(
            project_id=filters.project_id,
            resource_id=filters.resource_id,
            status=filters.status,
            week_from=filters.week_from,
            week_to=filters.week_to,
            role_ids=filters.role_ids,
        )

    # ---------- Mutations ----------
    def create(self, data: AllocationCreateData) -> Allocation:
        if data.status == AllocationStatus.CONFIRMED:
            if data.week_start is None:
                raise _bad_request("week_start is required for confirmed allocations.")
            if data.days is None:
                raise _bad_request("days is required for confirmed allocations.")
        else:
            if data.start_date is None:
                raise _bad_request("start_date is required for forecast allocations.")
            if data.num_weeks is None:
                raise _bad_request("num_weeks is required for forecast allocations.")
            if data.days_per_week is None:
                raise _bad_request("days_per_week is required for forecast allocations.")

        days = _validate_days(data.days if data.days is not None else ZERO)
        if data.days_per_week is not None:
            _validate_days_per_week(data.days_per_week)
        if data.quantity is not None:
            _validate_quantity(data.quantity)
        if data.num_weeks is not None:
            _validate_num_weeks(data.num_weeks)

        self._ensure_resource(data.resource_id)
        self._ensure_work_type(data.work_type_id)
        project_id = data.project_id
        if project_id is not None:
            self._ensure_project(project_id)
        elif data.project_name:
            project_id = self.resolve_project(data.project_name).id

        week_start = normalize_week_start(data.week_start) if data.week_start is not None else None
        self._ensure_no_conflict(
            resource_id=data.resource_id,
            project_id=project_id,
            work_type_id=data.work_type_id,
            week_start=week_start,
        )

        now = datetime.utcnow()
        allocation = Allocation(
            resource_id=data.resource_id,
            project_id=project_id,
            work_type_id=data.work_type_id,
            week_start=week_start,
            days=days,
            notes=data.notes,
            status=data.status,
            role=data.role,
            quantity=data.quantity,
            days_per_week=data.days_per_week,
            num_weeks=data.num_weeks,
            start_date=_as_date(data.start_date) if data.start_date is not None else None,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_allocation(allocation)
        self._commit()
        self.db.refresh(allocation)
        logger.info(
            "Created allocation id=%s resource=%s week=%s status=%s",
            allocation.id,
            allocation.resource_id,
            allocation.week_start,
            allocation.status.value,
        )
        return allocation

    def update(self, allocation_id: UUID, data: AllocationUpdateData) -> Allocation:
        allocation = self._get_allocation(allocation_id)
        provided = data.provided()
        changes: dict[str, object] = {}

        for name in ("resource_id", "work_type_id", "days", "status"):
            if name in provided and getattr(data, name) is None:
                raise _bad_request(f"{name} must not be null.")

        if "days" in provided:
            changes["days"] = _validate_days(data.days)
        if "status" in provided:
            changes["status"] = AllocationStatus(data.status)
        if "quantity" in provided:
            changes["quantity"] = _validate_quantity(data.quantity) if data.quantity is not None else None
        if "days_per_week" in provided:
            changes["days_per_week"] = (
                _validate_days_per_week(data.days_per_week) if data.days_per_week is not None else None
            )
        if "num_weeks" in provided:
            changes["num_weeks"] = _validate_num_weeks(data.num_weeks) if data.num_weeks is not None else None
        for name in ("notes", "role"):
            if name in provided:
                changes[name] = getattr(data, name)
        if "start_date" in provided:
            changes["start_date"] = _as_date(data.start_date) if data.start_date is not None else None
        if "week_start" in provided:
            changes["week_start"] = normalize_week_start(data.week_start) if data.week_start is not None else None

        if "project_id" in provided:
            if data.project_id is not None:
                self._ensure_project(data.project_id)
            changes["project_id"] = data.project_id
        if "work_type_id" in provided:
            self._ensure_work_type(data.work_type_id)
            changes["work_type_id"] = data.work_type_id
        if "resource_id" in provided:
            self._ensure_resource(data.resource_id)
            changes["resource_id"] = data.resource_id

        if {"week_start", "work_type_id", "resource_id", "project_id"} & changes.keys():
            self._ensure_no_conflict(
                resource_id=changes.get("resource_id", allocation.resource_id),
                project_id=changes.get("project_id", allocation.project_id),
                work_type_id=changes.get("work_type_id", allocation.work_type_id),
                week_start=changes.get("week_start", allocation.week_start),
                exclude_id=allocation.id,
            )

        for name, value in changes.items():
            setattr(allocation, name, value)
        allocation.updated_at = datetime.utcnow()

        self._commit()
        self.db.refresh(allocation)
        logger.info("Updated allocation id=%s fields=%s", allocation.id, sorted(changes))
        return allocation

    def move(self, allocation_id: UUID, *, week_start: date, resource_id: UUID | None = None) -> Allocation:
        data = AllocationUpdateData(week_start=week_start)
        if resource_id is not None:
            data.resource_id = resource_id
        return self.update(allocation_id, data)

    def delete(self, allocation_id: UUID) -> None:
        allocation = self._get_allocation(allocation_id)
        self.repo.delete_allocation(allocation)
        self.db.commit()
        logger.info("Deleted allocation id=%s", allocation_id)
