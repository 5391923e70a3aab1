"""Export endpoint for project planning sheets."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, get_current_user_context
from app.core.rate_limit import rate_limit
from app.db.dependencies import get_db_session
from app.services.reporting_service import ReportingService

router = APIRouter(prefix="/exports", tags=["exports"])


@router.get("/project-planning", dependencies=[Depends(rate_limit("export"))])
def export_project_planning(
    project_id: UUID = Query(...),
    format: str = Query(default="csv"),
    _: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    exported = ReportingService(db).export_project_planning(project_id=project_id, format_name=format)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
