"""Administration endpoints for work types, roles and skills."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import ok, ok_list
from app.core.auth import RequestUserContext, get_current_user_context, require_admin
from app.db.dependencies import get_db_session
from app.services.catalog_service import (
    CatalogService,
    RoleCreateData,
    WorkTypeCreateData,
    WorkTypeUpdateData,
)

router = APIRouter(tags=["admin"])


class WorkTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=2000)
    color: str | None = Field(default=None, max_length=32)
    is_active: bool = True


class WorkTypeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=2000)
    color: str | None = Field(default=None, max_length=32)
    is_active: bool | None = None


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    label: str = Field(min_length=1, max_length=255)
    is_admin: bool = False
    is_plannable: bool = True


class SkillCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)


def _catalog(db: Session) -> CatalogService:
    return CatalogService(db)


# ---------- Work types ----------
@router.get("/work-types")
def list_work_types(
    is_active: bool | None = Query(default=None),
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    return ok_list(service.serialize_work_types(service.list_work_types(is_active=is_active)))


@router.post("/work-types", status_code=status.HTTP_201_CREATED)
def create_work_type(
    payload: WorkTypeCreate,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    work_type = service.create_work_type(WorkTypeCreateData(**payload.model_dump()))
    return ok(service.serialize_work_types([work_type])[0])


@router.patch("/work-types/{work_type_id}")
def update_work_type(
    work_type_id: UUID,
    payload: WorkTypeUpdate,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    work_type = service.update_work_type(work_type_id, WorkTypeUpdateData(**payload.model_dump()))
    return ok(service.serialize_work_types([work_type])[0])


@router.delete("/work-types/{work_type_id}")
def delete_work_type(
    work_type_id: UUID,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    _catalog(db).delete_work_type(work_type_id)
    return ok({"id": str(work_type_id)})


# ---------- Roles ----------
@router.get("/roles")
def list_roles(
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    return ok_list([service.serialize_role(role) for role in service.list_roles()])


@router.post("/roles", status_code=status.HTTP_201_CREATED)
def create_role(
    payload: RoleCreate,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    return ok(service.serialize_role(service.create_role(RoleCreateData(**payload.model_dump()))))


# ---------- Skills ----------
@router.get("/skills")
def list_skills(
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    return ok_list([service.serialize_skill(skill) for skill in service.list_skills()])


@router.post("/skills", status_code=status.HTTP_201_CREATED)
def create_skill(
    payload: SkillCreate,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    return ok(service.serialize_skill(service.create_skill(name=payload.name, description=payload.description)))


@router.delete("/skills/{skill_id}")
def delete_skill(
    skill_id: UUID,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    _catalog(db).delete_skill(skill_id)
    return ok({"id": str(skill_id)})
