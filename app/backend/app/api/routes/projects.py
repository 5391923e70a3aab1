"""Project catalog and planning view endpoints."""

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
from app.services.catalog_service import CatalogService, ProjectCreateData, ProjectUpdateData
from app.services.reporting_service import ReportingService

router = APIRouter(prefix="/projects", tags=["projects"])


class ProjectCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    customer: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool = True


class ProjectUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    customer: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool | None = None


def _catalog(db: Session) -> CatalogService:
    return CatalogService(db)


@router.get("", dependencies=[Depends(rate_limit())])
def list_projects(
    is_active: bool | None = Query(default=None),
    customer: str | None = Query(default=None),
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    return ok_list(service.serialize_projects(service.list_projects(is_active=is_active, customer=customer)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    project = service.create_project(ProjectCreateData(**payload.model_dump()))
    return ok(service.serialize_projects([project])[0])


@router.get("/{project_id}")
def get_project(
    project_id: UUID,
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    return ok(service.serialize_projects([service.get_project(project_id)])[0])


@router.patch("/{project_id}")
def update_project(
    project_id: UUID,
    payload: ProjectUpdatePayload,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _catalog(db)
    project = service.update_project(project_id, ProjectUpdateData(**payload.model_dump()))
    return ok(service.serialize_projects([project])[0])


@router.delete("/{project_id}")
def delete_project(
    project_id: UUID,
    _: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    _catalog(db).delete_project(project_id)
    return ok({"id": str(project_id)})


@router.get("/{project_id}/planning")
def project_planning(
    project_id: UUID,
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Forecast rows with their expanded weeks plus confirmed weeks."""

    return ok(ReportingService(db).project_planning(project_id))
