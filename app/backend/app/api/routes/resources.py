"""Resource and resource-skill endpoints."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.responses import ok, ok_list
from app.core.auth import RequestUserContext, get_current_user_context, require_admin
from app.core.rate_limit import rate_limit
from app.db.dependencies import get_db_session
from app.services.catalog_service import (
    CatalogService,
    ResourceCreateData,
    ResourceSkillCreateData,
    ResourceSkillUpdateData,
    ResourceUpdateData,
)

router = APIRouter(tags=["resources"])


class ResourceCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320)
    role_ids: list[UUID] = Field(default_factory=list)
    job_title: str | None = Field(default=None, max_length=255)
    password: str | None = Field(default=None, max_length=128)
    is_active: bool = True


class ResourceUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, min_length=3, max_length=320)
    job_title: str | None = Field(default=None, max_length=255)
    is_active: bool | None = None
    role_ids: list[UUID] | None = None
    password: str | None = Field(default=None, max_length=128)


class PasswordPayload(BaseModel):
    password: str = Field(max_length=128)


class ResourceSkillCreatePayload(BaseModel):
    resource_id: UUID
    skill_id: UUID
    proficiency: str | None = Field(default=None, max_length=64)
    expires_at: date | None = None
    notes: str | None = Field(default=None, max_length=2000)


class ResourceSkillUpdatePayload(BaseModel):
    proficiency: str | None = Field(default=None, max_length=64)
    expires_at: date | None = None
    notes: str | None = Field(default=None, max_length=2000)


def _catalog(db: Session) -> CatalogService:
    return CatalogService(db)


@router.get("/resources", dependencies=[Depends(rate_limit())])
def list_resources(
    is_active: bool | None = Query(default=None),
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    return ok_list(service.serialize_resources(service.list_resources(is_active=is_active)))


@router.post("/resources", status_code=status.HTTP_201_CREATED)
def create_resource(
    payload: ResourceCreatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    resource = service.create_resource(ResourceCreateData(**payload.model_dump()))
    return ok(service.serialize_resources([resource])[0])


@router.get("/resources/{resource_id}")
def get_resource(
    resource_id: UUID,
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    return ok(service.serialize_resources([service.get_resource(resource_id)])[0])


@router.patch("/resources/{resource_id}")
def update_resource(
    resource_id: UUID,
    payload: ResourceUpdatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    resource = service.update_resource(resource_id, ResourceUpdateData(**payload.model_dump()))
    return ok(service.serialize_resources([resource])[0])


@router.patch("/resources/{resource_id}/password")
def set_resource_password(
    resource_id: UUID,
    payload: PasswordPayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    resource = service.set_password(resource_id, payload.password)
    return ok(service.serialize_resources([resource])[0])


# ---------- Resource skills ----------
@router.get("/resource-skills")
def list_resource_skills(
    resource_id: UUID | None = Query(default=None),
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    return ok_list(service.serialize_resource_skills(service.list_resource_skills(resource_id=resource_id)))


@router.post("/resource-skills", status_code=status.HTTP_201_CREATED)
def create_resource_skill(
    payload: ResourceSkillCreatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    row = service.create_resource_skill(ResourceSkillCreateData(**payload.model_dump()))
    return ok(service.serialize_resource_skills([row])[0])


@router.patch("/resource-skills/{resource_skill_id}")
def update_resource_skill(
    resource_skill_id: UUID,
    payload: ResourceSkillUpdatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    provided = payload.model_dump(exclude_unset=True)
    row = service.update_resource_skill(
        resource_skill_id,
        ResourceSkillUpdateData(**provided, provided=set(provided)),
    )
    return ok(service.serialize_resource_skills([row])[0])


@router.delete("/resource-skills/{resource_skill_id}")
def delete_resource_skill(
    resource_skill_id: UUID,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    _catalog(db).delete_resource_skill(resource_skill_id)
    return ok({"id": str(resource_skill_id)})
