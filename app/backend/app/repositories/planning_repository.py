"""Repository helpers for the allocation ledger and admin catalog."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from app.models.entities import (
    Allocation,
    AllocationStatus,
    Project,
    Resource,
    ResourceRole,
    ResourceSkill,
    Role,
    Skill,
    WorkType,
)


class PlanningRepository:
    """Persistence operations used by ledger, reporting and catalog services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Resources and roles ----------
    def list_resources(self, *, is_active: bool | None = None) -> list[Resource]:
        query = select(Resource).order_by(Resource.name.asc())
        if is_active is not None:
            query = query.where(Resource.is_active.is_(is_active))
        return self.db.scalars(query).all()

    def get_resource(self, resource_id: UUID) -> Resource | None:
        return self.db.scalar(select(Resource).where(Resource.id == resource_id))

    def get_resource_by_email(self, email: str) -> Resource | None:
        return self.db.scalar(select(Resource).where(func.lower(Resource.email) == email.strip().lower()))

    def get_resources(self, resource_ids: set[UUID]) -> dict[UUID, Resource]:
        if not resource_ids:
            return {}
        rows = self.db.scalars(select(Resource).where(Resource.id.in_(resource_ids))).all()
        return {row.id: row for row in rows}

    def add_resource(self, resource: Resource) -> Resource:
        self.db.add(resource)
        self.db.flush()
        return resource

    def list_roles(self) -> list[Role]:
        return self.db.scalars(select(Role).order_by(Role.label.asc(), Role.name.asc())).all()

    def get_role_by_name(self, name: str) -> Role | None:
        return self.db.scalar(select(Role).where(Role.name == name))

    def get_roles(self, role_ids: set[UUID]) -> dict[UUID, Role]:
        if not role_ids:
            return {}
        rows = self.db.scalars(select(Role).where(Role.id.in_(role_ids))).all()
        return {row.id: row for row in rows}

    def add_role(self, role: Role) -> Role:
        self.db.add(role)
        self.db.flush()
        return role

    def roles_by_resource(self, resource_ids: set[UUID]) -> dict[UUID, list[Role]]:
        if not resource_ids:
            return {}
        rows = self.db.execute(
            select(ResourceRole.resource_id, Role)
            .join(Role, Role.id == ResourceRole.role_id)
            .where(ResourceRole.resource_id.in_(resource_ids))
            .order_by(Role.label.asc(), Role.name.asc())
        ).all()
        grouped: dict[UUID, list[Role]] = {resource_id: [] for resource_id in resource_ids}
        for resource_id, role in rows:
            grouped[resource_id].append(role)
        return grouped

    def replace_resource_roles(self, resource_id: UUID, role_ids: list[UUID]) -> None:
        existing = self.db.scalars(select(ResourceRole).where(ResourceRole.resource_id == resource_id)).all()
        for row in existing:
            self.db.delete(row)
        self.db.flush()
        for role_id in dict.fromkeys(role_ids):
            self.db.add(ResourceRole(resource_id=resource_id, role_id=role_id))
        self.db.flush()

    # ---------- Projects ----------
    def list_projects(self, *, is_active: bool | None = None, customer: str | None = None) -> list[Project]:
        conditions = []
        if is_active is not None:
            conditions.append(Project.is_active.is_(is_active))
        if customer:
            conditions.append(func.lower(Project.customer).contains(customer.strip().lower()))

        query = select(Project).order_by(Project.name.asc())
        if conditions:
            query = query.where(and_(*conditions))
        return self.db.scalars(query).all()

    def get_project(self, project_id: UUID) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def get_project_by_name(self, name: str) -> Project | None:
        return self.db.scalar(select(Project).where(Project.name == name))

    def get_projects(self, project_ids: set[UUID]) -> dict[UUID, Project]:
        if not project_ids:
            return {}
        rows = self.db.scalars(select(Project).where(Project.id.in_(project_ids))).all()
        return {row.id: row for row in rows}

    def add_project(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    def delete_project(self, project: Project) -> None:
        self.db.delete(project)
        self.db.flush()

    # ---------- Work types ----------
    def list_work_types(self, *, is_active: bool | None = None) -> list[WorkType]:
        query = select(WorkType).order_by(WorkType.name.asc())
        if is_active is not None:
            query = query.where(WorkType.is_active.is_(is_active))
        return self.db.scalars(query).all()

    def get_work_type(self, work_type_id: UUID) -> WorkType | None:
        return self.db.scalar(select(WorkType).where(WorkType.id == work_type_id))

    def get_work_type_by_name(self, name: str) -> WorkType | None:
        return self.db.scalar(select(WorkType).where(WorkType.name == name))

    def get_work_types(self, work_type_ids: set[UUID]) -> dict[UUID, WorkType]:
        if not work_type_ids:
            return {}
        rows = self.db.scalars(select(WorkType).where(WorkType.id.in_(work_type_ids))).all()
        return {row.id: row for row in rows}

    def add_work_type(self, work_type: WorkType) -> WorkType:
        self.db.add(work_type)
        self.db.flush()
        return work_type

    def delete_work_type(self, work_type: WorkType) -> None:
        self.db.delete(work_type)
        self.db.flush()

    # ---------- Allocations ----------
    def get_allocation(self, allocation_id: UUID) -> Allocation | None:
        return self.db.scalar(select(Allocation).where(Allocation.id == allocation_id))

    def find_allocation_by_key(
        self,
        *,
        resource_id: UUID,
        project_id: UUID | None,
        work_type_id: UUID,
        week_start: date | None,
    ) -> Allocation | None:
        conditions = [
            Allocation.resource_id == resource_id,
            Allocation.work_type_id == work_type_id,
            Allocation.project_id.is_(None) if project_id is None else Allocation.project_id == project_id,
            Allocation.week_start.is_(None) if week_start is None else Allocation.week_start == week_start,
        ]
        return self.db.scalar(select(Allocation).where(and_(*conditions)).limit(1))

    def list_allocations(
        self,
        *,
        project_id: UUID | None = None,
        resource_id: UUID | None = None,
        status: AllocationStatus | None = None,
        week_from: date | None = None,
        week_to: date | None = None,
        week_start: date | None = None,
        role_ids: list[UUID] | None = None,
        dated_only: bool = False,
    ) -> list[Allocation]:
        conditions = []
        if project_id is not None:
            conditions.append(Allocation.project_id == project_id)
        if resource_id is not None:
            conditions.append(Allocation.resource_id == resource_id)
        if status is not None:
            conditions.append(Allocation.status == status)
        if week_start is not None:
            conditions.append(Allocation.week_start == week_start)
        if week_from is not None:
            conditions.append(Allocation.week_start >= week_from)
        if week_to is not None:
            conditions.append(Allocation.week_start <= week_to)
        if dated_only:
            conditions.append(Allocation.week_start.is_not(None))
        if role_ids:
            conditions.append(
                Allocation.resource_id.in_(
                    select(ResourceRole.resource_id).where(ResourceRole.role_id.in_(role_ids))
                )
            )

        query = (
            select(Allocation)
            .join(Resource, Resource.id == Allocation.resource_id)
            .order_by(Resource.name.asc(), Allocation.week_start.asc(), Allocation.created_at.asc())
        )
        if conditions:
            query = query.where(and_(*conditions))
        return self.db.scalars(query).all()

    def list_allocations_for_resources(self, resource_ids: set[UUID]) -> list[Allocation]:
        if not resource_ids:
            return []
        return self.db.scalars(
            select(Allocation)
            .where(and_(Allocation.resource_id.in_(resource_ids), Allocation.week_start.is_not(None)))
            .order_by(Allocation.week_start.asc())
        ).all()

    def list_distinct_weeks(self) -> list[date]:
        return self.db.scalars(
            select(Allocation.week_start)
            .where(Allocation.week_start.is_not(None))
            .distinct()
            .order_by(Allocation.week_start.asc())
        ).all()

    def add_allocation(self, allocation: Allocation) -> Allocation:
        self.db.add(allocation)
        return allocation

    def delete_allocation(self, allocation: Allocation) -> None:
        self.db.delete(allocation)
        self.db.flush()

    # ---------- Skills ----------
    def list_skills(self) -> list[Skill]:
        return self.db.scalars(select(Skill).order_by(Skill.name.asc())).all()

    def get_skill(self, skill_id: UUID) -> Skill | None:
        return self.db.scalar(select(Skill).where(Skill.id == skill_id))

    def get_skill_by_name(self, name: str) -> Skill | None:
        return self.db.scalar(select(Skill).where(func.lower(Skill.name) == name.strip().lower()))

    def add_skill(self, skill: Skill) -> Skill:
        self.db.add(skill)
        self.db.flush()
        return skill

    def delete_skill(self, skill: Skill) -> None:
        self.db.delete(skill)
        self.db.flush()

    def list_resource_skills(self, *, resource_id: UUID | None = None) -> list[ResourceSkill]:
        query = (
            select(ResourceSkill)
            .join(Resource, Resource.id == ResourceSkill.resource_id)
            .join(Skill, Skill.id == ResourceSkill.skill_id)
            .order_by(Resource.name.asc(), Skill.name.asc())
        )
        if resource_id is not None:
            query = query.where(ResourceSkill.resource_id == resource_id)
        return self.db.scalars(query).all()

    def get_resource_skill(self, resource_skill_id: UUID) -> ResourceSkill | None:
        return self.db.scalar(select(ResourceSkill).where(ResourceSkill.id == resource_skill_id))

    def find_resource_skill(self, *, resource_id: UUID, skill_id: UUID) -> ResourceSkill | None:
        return self.db.scalar(
            select(ResourceSkill).where(
                and_(ResourceSkill.resource_id == resource_id, ResourceSkill.skill_id == skill_id)
            )
        )

    def add_resource_skill(self, resource_skill: ResourceSkill) -> ResourceSkill:
        self.db.add(resource_skill)
        self.db.flush()
        return resource_skill

    def delete_resource_skill(self, resource_skill: ResourceSkill) -> None:
        self.db.delete(resource_skill)
        self.db.flush()

    # ---------- Existence checks used for safe deletes ----------
    def allocation_count_for_project(self, project_id: UUID) -> int:
        return (
            self.db.scalar(
                select(func.count()).select_from(Allocation).where(Allocation.project_id == project_id)
            )
            or 0
        )

    def allocation_count_for_work_type(self, work_type_id: UUID) -> int:
        return (
            self.db.scalar(
                select(func.count()).select_from(Allocation).where(Allocation.work_type_id == work_type_id)
            )
            or 0
        )

    def assignment_count_for_skill(self, skill_id: UUID) -> int:
        return (
            self.db.scalar(
                select(func.count()).select_from(ResourceSkill).where(ResourceSkill.skill_id == skill_id)
            )
            or 0
        )

    def allocation_counts_by(self, column) -> dict[UUID, int]:
        rows = self.db.execute(
            select(column, func.count()).select_from(Allocation).where(column.is_not(None)).group_by(column)
        ).all()
        return {key: count for key, count in rows}
