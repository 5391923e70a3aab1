"""Availability, summary and project planning reports computed from allocation rows."""

from __future__ import annotations

import csv
import io
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models.entities import Allocation, AllocationStatus, Role
from app.repositories.planning_repository import PlanningRepository
from app.services.allocation_service import AllocationService, forecast_weeks, normalize_week_start

logger = logging.getLogger(__name__)

DEFAULT_WEEKLY_CAPACITY = Decimal("5")
HOLIDAY_WORK_TYPE = "holiday"

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")

EXPORT_FORMATS = {"csv", "xlsx"}
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2, rounding=ROUND_HALF_UP)


def _fmt(value: Decimal) -> str:
    return str(_q2(value))


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


@dataclass(slots=True)
class _WeekBucket:
    resource_id: UUID
    week_start: date
    total_allocated: Decimal = ZERO
    holiday_days: Decimal = ZERO


class ReportingService:
    """Read-only reports. Nothing is cached; every call recomputes from rows."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)

    @staticmethod
    def _serialize_roles(roles: list[Role]) -> list[dict[str, object]]:
        return [
            {
                "id": str(role.id),
                "name": role.name,
                "label": role.label,
                "is_admin": role.is_admin,
                "is_plannable": role.is_plannable,
            }
            for role in roles
        ]

    # ---------- Availability ----------
    def availability(
        self,
        *,
        resource_id: UUID | None = None,
        week_start: date | None = None,
        status_filter: AllocationStatus | None = None,
    ) -> list[dict[str, object]]:
        """Per (resource, week) remaining capacity.

        Holiday rows reduce the remaining capacity but are left out of
        ``total_allocated``, so they never make a week overbooked.
        """

        rows = self.repo.list_allocations(
            resource_id=resource_id,
            week_start=normalize_week_start(week_start) if week_start is not None else None,
            status=status_filter,
            dated_only=True,
        )
        work_types = self.repo.get_work_types({row.work_type_id for row in rows})
        holiday_ids = {
            work_type_id
            for work_type_id, work_type in work_types.items()
            if work_type.name.strip().lower() == HOLIDAY_WORK_TYPE
        }

        buckets: dict[tuple[UUID, date], _WeekBucket] = {}
        for row in rows:
            key = (row.resource_id, row.week_start)
            bucket = buckets.get(key)
            if bucket is None:
                bucket = _WeekBucket(resource_id=row.resource_id, week_start=row.week_start)
                buckets[key] = bucket
            if row.work_type_id in holiday_ids:
                bucket.holiday_days += Decimal(row.days)
            else:
                bucket.total_allocated += Decimal(row.days)

        resource_ids = {bucket.resource_id for bucket in buckets.values()}
        resources = self.repo.get_resources(resource_ids)
        roles = self.repo.roles_by_resource(resource_ids)

        ordered = sorted(
            buckets.values(),
            key=lambda item: (resources[item.resource_id].name, item.week_start),
        )
        return [
            {
                "resource_id": str(bucket.resource_id),
                "resource_name": resources[bucket.resource_id].name,
                "resource_roles": self._serialize_roles(roles.get(bucket.resource_id, [])),
                "week_start": bucket.week_start.isoformat(),
                "total_allocated": _fmt(bucket.total_allocated),
                "holiday_days": _fmt(bucket.holiday_days),
                "availability_left": _fmt(DEFAULT_WEEKLY_CAPACITY - bucket.total_allocated - bucket.holiday_days),
                "overbooked": bucket.total_allocated > DEFAULT_WEEKLY_CAPACITY,
            }
            for bucket in ordered
        ]

    # ---------- Summary ----------
    def summary(self) -> list[dict[str, object]]:
        """Aggregate capacity per active resource across every allocated week.

        Unlike :meth:`availability`, holiday days count towards
        ``total_allocated`` here.
        """

        resources = self.repo.list_resources(is_active=True)
        resource_ids = {resource.id for resource in resources}
        roles = self.repo.roles_by_resource(resource_ids)

        rows_by_resource: dict[UUID, list[Allocation]] = defaultdict(list)
        for row in self.repo.list_allocations_for_resources(resource_ids):
            rows_by_resource[row.resource_id].append(row)

        payload: list[dict[str, object]] = []
        for resource in resources:
            rows = rows_by_resource.get(resource.id, [])
            total_allocated = sum((Decimal(row.days) for row in rows), ZERO)
            distinct_weeks = len({row.week_start for row in rows})
            total_capacity = DEFAULT_WEEKLY_CAPACITY * distinct_weeks
            payload.append(
                {
                    "resource_id": str(resource.id),
                    "resource_name": resource.name,
                    "resource_roles": self._serialize_roles(roles.get(resource.id, [])),
                    "total_allocated": _fmt(total_allocated),
                    "total_capacity": _fmt(total_capacity),
                    "availability_left": _fmt(total_capacity - total_allocated),
                    "overbooked": total_allocated > total_capacity,
                    "distinct_weeks": distinct_weeks,
                    "default_availability": int(DEFAULT_WEEKLY_CAPACITY),
                }
            )
        return payload

    def weeks(self) -> list[str]:
        return [week.isoformat() for week in self.repo.list_distinct_weeks()]

    # ---------- Project planning ----------
    def _get_project_or_404(self, project_id: UUID):
        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    def project_planning(self, project_id: UUID) -> dict[str, object]:
        project = self._get_project_or_404(project_id)
        allocations = self.repo.list_allocations(project_id=project.id)
        forecasts = [row for row in allocations if row.status == AllocationStatus.FORECAST]
        confirmed = [row for row in allocations if row.status == AllocationStatus.CONFIRMED]

        ledger = AllocationService(self.db)
        forecast_items: list[dict[str, object]] = []
        forecast_week_set: set[date] = set()
        for row, serialized in zip(forecasts, ledger.serialize_many(forecasts)):
            weeks: list[date] = []
            if row.start_date is not None and row.num_weeks:
                weeks = forecast_weeks(row.start_date, row.num_weeks)
            forecast_week_set.update(weeks)
            serialized["weeks"] = [week.isoformat() for week in weeks]
            forecast_items.append(serialized)

        confirmed_weeks = sorted({row.week_start for row in confirmed if row.week_start is not None})
        return {
            "project": {"id": str(project.id), "name": project.name, "customer": project.customer},
            "forecasts": forecast_items,
            "forecast_weeks": [week.isoformat() for week in sorted(forecast_week_set)],
            "confirmed_weeks": [week.isoformat() for week in confirmed_weeks],
        }

    def _planning_table(self, project_id: UUID) -> tuple[list[str], list[list[object]]]:
        project = self._get_project_or_404(project_id)
        allocations = self.repo.list_allocations(project_id=project.id)
        if not allocations:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No allocations found for project.",
            )

        resource_ids = list(dict.fromkeys(row.resource_id for row in allocations))
        resources = self.repo.get_resources(set(resource_ids))
        roles = self.repo.roles_by_resource(set(resource_ids))
        weeks = sorted({row.week_start for row in allocations if row.week_start is not None})

        days_by_cell: dict[tuple[UUID, date], Decimal] = defaultdict(lambda: ZERO)
        for row in allocations:
            if row.week_start is not None:
                days_by_cell[(row.resource_id, row.week_start)] += Decimal(row.days)

        header = ["Resource Name", "Roles", "Project", *[week.strftime("%d-%m-%Y") for week in weeks]]
        table: list[list[object]] = []
        for resource_id in resource_ids:
            resource = resources[resource_id]
            role_labels = ", ".join(role.label or role.name for role in roles.get(resource_id, []))
            cells: list[object] = [resource.name, role_labels, project.name]
            for week in weeks:
                key = (resource_id, week)
                cells.append(_q2(days_by_cell[key]) if key in days_by_cell else None)
            table.append(cells)
        return header, table

    def export_project_planning(self, *, project_id: UUID, format_name: str) -> ExportFilePayload:
        normalized_format = format_name.strip().lower()
        if normalized_format not in EXPORT_FORMATS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="format must be one of: csv, xlsx.",
            )

        header, table = self._planning_table(project_id)
        base_filename = f"project-planning-{project_id}"
        logger.info("Exporting project planning project=%s format=%s rows=%d", project_id, normalized_format, len(table))

        if normalized_format == "csv":
            sio = io.StringIO()
            writer = csv.writer(sio, quoting=csv.QUOTE_ALL)
            writer.writerow(header)
            for cells in table:
                writer.writerow(["" if value is None else str(value) for value in cells])
            return ExportFilePayload(
                media_type="text/csv; charset=utf-8",
                filename=f"{base_filename}.csv",
                content=sio.getvalue().encode("utf-8"),
            )

        from openpyxl import Workbook

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "planning"
        sheet.append(header)
        for cells in table:
            sheet.append(cells)

        output = io.BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type=XLSX_MEDIA_TYPE,
            filename=f"{base_filename}.xlsx",
            content=output.getvalue(),
        )
