"""Admin catalog: resources, projects, work types, roles and skills."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TypeVar
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import MIN_PASSWORD_LENGTH, get_password_hash
from app.models.entities import Allocation, Project, Resource, ResourceSkill, Role, Skill, WorkType
from app.repositories.planning_repository import PlanningRepository

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT")


@dataclass(slots=True)
class ResourceCreateData:
    name: str
    email: str
    role_ids: list[UUID]
    job_title: str | None = None
    password: str | None = None
    is_active: bool = True


@dataclass(slots=True)
class ResourceUpdateData:
    name: str | None = None
    email: str | None = None
    job_title: str | None = None
    is_active: bool | None = None
    role_ids: list[UUID] | None = None
    password: str | None = None


@dataclass(slots=True)
class ProjectCreateData:
    name: str
    customer: str | None = None
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool = True


@dataclass(slots=True)
class ProjectUpdateData:
    name: str | None = None
    customer: str | None = None
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool | None = None


@dataclass(slots=True)
class WorkTypeCreateData:
    name: str
    description: str | None = None
    color: str | None = None
    is_active: bool = True


@dataclass(slots=True)
class WorkTypeUpdateData:
    name: str | None = None
    description: str | None = None
    color: str | None = None
    is_active: bool | None = None


@dataclass(slots=True)
class RoleCreateData:
    name: str
    label: str
    is_admin: bool = False
    is_plannable: bool = True


@dataclass(slots=True)
class ResourceSkillCreateData:
    resource_id: UUID
    skill_id: UUID
    proficiency: str | None = None
    expires_at: date | None = None
    notes: str | None = None


@dataclass(slots=True)
class ResourceSkillUpdateData:
    proficiency: str | None = None
    expires_at: date | None = None
    notes: str | None = None
    provided: set[str] = field(default_factory=set)


def _validate_password(password: str) -> str:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"password must be at least {MIN_PASSWORD_LENGTH} characters.",
        )
    return get_password_hash(password)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class CatalogService:
    """Admin reference-data management."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)

    def _commit_or_conflict(self, detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc

    def _add_or_conflict(self, add: Callable[[RowT], RowT], row: RowT, detail: str) -> RowT:
        """Stage ``row`` through a flushing repository add, mapping unique violations to 409."""

        try:
            return add(row)
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("Catalog insert rejected by unique constraint: %s", exc.orig)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc

    # ---------- Serialization ----------
    @staticmethod
    def serialize_role(role: Role) -> dict[str, object]:
        return {
            "id": str(role.id),
            "name": role.name,
            "label": role.label,
            "is_admin": role.is_admin,
            "is_plannable": role.is_plannable,
        }

    def serialize_resources(self, resources: list[Resource]) -> list[dict[str, object]]:
        roles = self.repo.roles_by_resource({resource.id for resource in resources})
        counts = self.repo.allocation_counts_by(Allocation.resource_id)
        return [
            {
                "id": str(resource.id),
                "name": resource.name,
                "email": resource.email,
                "job_title": resource.job_title,
                "is_active": resource.is_active,
                "has_password": resource.password_hash is not None,
                "roles": [self.serialize_role(role) for role in roles.get(resource.id, [])],
                "allocation_count": counts.get(resource.id, 0),
                "created_at": resource.created_at.isoformat(),
                "updated_at": resource.updated_at.isoformat(),
            }
            for resource in resources
        ]

    def serialize_projects(self, projects: list[Project]) -> list[dict[str, object]]:
        counts = self.repo.allocation_counts_by(Allocation.project_id)
        return [
            {
                "id": str(project.id),
                "name": project.name,
                "customer": project.customer,
                "description": project.description,
                "start_date": project.start_date.isoformat() if project.start_date else None,
                "end_date": project.end_date.isoformat() if project.end_date else None,
                "is_active": project.is_active,
                "allocation_count": counts.get(project.id, 0),
                "created_at": project.created_at.isoformat(),
                "updated_at": project.updated_at.isoformat(),
            }
            for project in projects
        ]

    def serialize_work_types(self, work_types: list[WorkType]) -> list[dict[str, object]]:
        counts = self.repo.allocation_counts_by(Allocation.work_type_id)
        return [
            {
                "id": str(work_type.id),
                "name": work_type.name,
                "description": work_type.description,
                "color": work_type.color,
                "is_active": work_type.is_active,
                "allocation_count": counts.get(work_type.id, 0),
            }
            for work_type in work_types
        ]

    @staticmethod
    def serialize_skill(skill: Skill) -> dict[str, object]:
        return {"id": str(skill.id), "name": skill.name, "description": skill.description}

    def serialize_resource_skills(self, rows: list[ResourceSkill]) -> list[dict[str, object]]:
        resources = self.repo.get_resources({row.resource_id for row in rows})
        skills = {skill.id: skill for skill in self.repo.list_skills()}
        payload: list[dict[str, object]] = []
        for row in rows:
            resource = resources.get(row.resource_id)
            skill = skills.get(row.skill_id)
            payload.append(
                {
                    "id": str(row.id),
                    "resource_id": str(row.resource_id),
                    "resource_name": resource.name if resource is not None else None,
                    "skill_id": str(row.skill_id),
                    "skill": self.serialize_skill(skill) if skill is not None else None,
                    "proficiency": row.proficiency,
                    "expires_at": row.expires_at.isoformat() if row.expires_at else None,
                    "notes": row.notes,
                }
            )
        return payload

    # ---------- Resources ----------
    def list_resources(self, *, is_active: bool | None = None) -> list[Resource]:
        return self.repo.list_resources(is_active=is_active)

    def get_resource(self, resource_id: UUID) -> Resource:
        resource = self.repo.get_resource(resource_id)
        if resource is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found.")
        return resource

    def _validate_role_ids(self, role_ids: list[UUID]) -> list[UUID]:
        if not role_ids:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="role_ids must contain at least one role.",
            )
        known = self.repo.get_roles(set(role_ids))
        missing = [role_id for role_id in role_ids if role_id not in known]
        if missing:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Role not found: {missing[0]}.")
        return role_ids

    def create_resource(self, data: ResourceCreateData) -> Resource:
        name = data.name.strip()
        email = data.email.strip().lower()
        if not name or not email:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="name and email are required.",
            )
        role_ids = self._validate_role_ids(data.role_ids)
        password_hash = _validate_password(data.password) if data.password else None

        if self.repo.get_resource_by_email(email) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Resource with this email already exists.",
            )

        now = datetime.utcnow()
        resource = self._add_or_conflict(
            self.repo.add_resource,
            Resource(
                name=name,
                email=email,
                job_title=_clean(data.job_title),
                password_hash=password_hash,
                is_active=data.is_active,
                created_at=now,
                updated_at=now,
            ),
            "Resource with this email already exists.",
        )
        self.repo.replace_resource_roles(resource.id, role_ids)
        self._commit_or_conflict("Resource with this email already exists.")
        self.db.refresh(resource)
        logger.info("Created resource id=%s email=%s roles=%d", resource.id, resource.email, len(role_ids))
        return resource

    def update_resource(self, resource_id: UUID, data: ResourceUpdateData) -> Resource:
        resource = self.get_resource(resource_id)

        if data.email is not None:
            email = data.email.strip().lower()
            existing = self.repo.get_resource_by_email(email)
            if existing is not None and existing.id != resource.id:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Resource with this email already exists.",
                )
            resource.email = email
        if data.role_ids is not None:
            self.repo.replace_resource_roles(resource.id, self._validate_role_ids(data.role_ids))
        if data.password:
            resource.password_hash = _validate_password(data.password)
        if data.name is not None:
            resource.name = data.name.strip()
        if data.job_title is not None:
            resource.job_title = _clean(data.job_title)
        if data.is_active is not None:
            resource.is_active = data.is_active
        resource.updated_at = datetime.utcnow()

        self._commit_or_conflict("Resource with this email already exists.")
        self.db.refresh(resource)
        logger.info("Updated resource id=%s", resource.id)
        return resource

    def set_password(self, resource_id: UUID, password: str) -> Resource:
        resource = self.get_resource(resource_id)
        resource.password_hash = _validate_password(password)
        resource.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(resource)
        logger.info("Password changed for resource id=%s", resource.id)
        return resource

    # ---------- Projects ----------
    def list_projects(self, *, is_active: bool | None = None, customer: str | None = None) -> list[Project]:
        return self.repo.list_projects(is_active=is_active, customer=customer)

    def get_project(self, project_id: UUID) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    @staticmethod
    def _check_date_range(start_date: date | None, end_date: date | None) -> None:
        if start_date is not None and end_date is not None and end_date < start_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="end_date must be greater than or equal to start_date.",
            )

    def create_project(self, data: ProjectCreateData) -> Project:
        name = data.name.strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="name is required.")
        self._check_date_range(data.start_date, data.end_date)
        if self.repo.get_project_by_name(name) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Project name already exists.")

        now = datetime.utcnow()
        project = self._add_or_conflict(
            self.repo.add_project,
            Project(
                name=name,
                customer=_clean(data.customer),
                description=_clean(data.description),
                start_date=data.start_date,
                end_date=data.end_date,
                is_active=data.is_active,
                created_at=now,
                updated_at=now,
            ),
            "Project name already exists.",
        )
        self._commit_or_conflict("Project name already exists.")
        self.db.refresh(project)
        logger.info("Created project id=%s name=%r", project.id, project.name)
        return project

    def update_project(self, project_id: UUID, data: ProjectUpdateData) -> Project:
        project = self.get_project(project_id)
        start_date = data.start_date if data.start_date is not None else project.start_date
        end_date = data.end_date if data.end_date is not None else project.end_date
        self._check_date_range(start_date, end_date)

        if data.name is not None:
            name = data.name.strip()
            existing = self.repo.get_project_by_name(name)
            if existing is not None and existing.id != project.id:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Project name already exists.")
            project.name = name
        if data.customer is not None:
            project.customer = _clean(data.customer)
        if data.description is not None:
            project.description = _clean(data.description)
        if data.is_active is not None:
            project.is_active = data.is_active
        project.start_date = start_date
        project.end_date = end_date
        project.updated_at = datetime.utcnow()

        self._commit_or_conflict("Project name already exists.")
        self.db.refresh(project)
        return project

    def delete_project(self, project_id: UUID) -> None:
        project = self.get_project(project_id)
        if self.repo.allocation_count_for_project(project.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete project with existing allocations.",
            )
        self.repo.delete_project(project)
        self.db.commit()
        logger.info("Deleted project id=%s", project_id)

    # ---------- Work types ----------
    def list_work_types(self, *, is_active: bool | None = None) -> list[WorkType]:
        return self.repo.list_work_types(is_active=is_active)

    def _get_work_type(self, work_type_id: UUID) -> WorkType:
        work_type = self.repo.get_work_type(work_type_id)
        if work_type is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Work type not found.")
        return work_type

    def create_work_type(self, data: WorkTypeCreateData) -> WorkType:
        name = data.name.strip()
        if self.repo.get_work_type_by_name(name) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Work type name already exists.")
        work_type = self._add_or_conflict(
            self.repo.add_work_type,
            WorkType(
                name=name,
                description=_clean(data.description),
                color=_clean(data.color),
                is_active=data.is_active,
            ),
            "Work type name already exists.",
        )
        self._commit_or_conflict("Work type name already exists.")
        self.db.refresh(work_type)
        return work_type

    def update_work_type(self, work_type_id: UUID, data: WorkTypeUpdateData) -> WorkType:
        work_type = self._get_work_type(work_type_id)
        if data.name is not None:
            name = data.name.strip()
            existing = self.repo.get_work_type_by_name(name)
            if existing is not None and existing.id != work_type.id:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Work type name already exists.")
            work_type.name = name
        if data.description is not None:
            work_type.description = _clean(data.description)
        if data.color is not None:
            work_type.color = _clean(data.color)
        if data.is_active is not None:
            work_type.is_active = data.is_active

        self._commit_or_conflict("Work type name already exists.")
        self.db.refresh(work_type)
        return work_type

    def delete_work_type(self, work_type_id: UUID) -> None:
        work_type = self._get_work_type(work_type_id)
        if self.repo.allocation_count_for_work_type(work_type.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete work type with existing allocations.",
            )
        self.repo.delete_work_type(work_type)
        self.db.commit()

    # ---------- Roles ----------
    def list_roles(self) -> list[Role]:
        return self.repo.list_roles()

    def create_role(self, data: RoleCreateData) -> Role:
        name = data.name.strip()
        if self.repo.get_role_by_name(name) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Role name already exists.")
        role = self._add_or_conflict(
            self.repo.add_role,
            Role(name=name, label=data.label.strip(), is_admin=data.is_admin, is_plannable=data.is_plannable),
            "Role name already exists.",
        )
        self._commit_or_conflict("Role name already exists.")
        self.db.refresh(role)
        return role

    # ---------- Skills ----------
    def list_skills(self) -> list[Skill]:
        return self.repo.list_skills()

    def create_skill(self, *, name: str, description: str | None = None) -> Skill:
        if self.repo.get_skill_by_name(name) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Skill name already exists.")
        skill = self._add_or_conflict(
            self.repo.add_skill,
            Skill(name=name.strip(), description=_clean(description)),
            "Skill name already exists.",
        )
        self._commit_or_conflict("Skill name already exists.")
        self.db.refresh(skill)
        return skill

    def delete_skill(self, skill_id: UUID) -> None:
        skill = self.repo.get_skill(skill_id)
        if skill is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Skill not found.")
        if self.repo.assignment_count_for_skill(skill.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete skill assigned to resources.",
            )
        self.repo.delete_skill(skill)
        self.db.commit()

    # ---------- Resource skills ----------
    def list_resource_skills(self, *, resource_id: UUID | None = None) -> list[ResourceSkill]:
        return self.repo.list_resource_skills(resource_id=resource_id)

    def _get_resource_skill(self, resource_skill_id: UUID) -> ResourceSkill:
        row = self.repo.get_resource_skill(resource_skill_id)
        if row is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource skill not found.")
        return row

    def create_resource_skill(self, data: ResourceSkillCreateData) -> ResourceSkill:
        self.get_resource(data.resource_id)
        if self.repo.get_skill(data.skill_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Skill not found.")
        if self.repo.find_resource_skill(resource_id=data.resource_id, skill_id=data.skill_id) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Resource already has this skill.")
        row = self._add_or_conflict(
            self.repo.add_resource_skill,
            ResourceSkill(
                resource_id=data.resource_id,
                skill_id=data.skill_id,
                proficiency=_clean(data.proficiency),
                expires_at=data.expires_at,
                notes=_clean(data.notes),
            ),
            "Resource already has this skill.",
        )
        self._commit_or_conflict("Resource already has this skill.")
        self.db.refresh(row)
        return row

    def update_resource_skill(self, resource_skill_id: UUID, data: ResourceSkillUpdateData) -> ResourceSkill:
        row = self._get_resource_skill(resource_skill_id)
        if "proficiency" in data.provided:
            row.proficiency = _clean(data.proficiency)
        if "expires_at" in data.provided:
            row.expires_at = data.expires_at
        if "notes" in data.provided:
            row.notes = _clean(data.notes)
        self.db.commit()
        self.db.refresh(row)
        return row

    def delete_resource_skill(self, resource_skill_id: UUID) -> None:
        row = self._get_resource_skill(resource_skill_id)
        self.repo.delete_resource_skill(row)
        self.db.commit()
