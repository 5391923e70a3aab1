"""Request principal extraction and admin guard utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.dependencies import get_db_session
from app.models.entities import Resource, ResourceRole, Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrincipalRole:
    """Role held by the request principal."""

    role_id: UUID
    name: str
    is_admin: bool


@dataclass(frozen=True)
class RequestUserContext:
    """Request actor resolved from trusted proxy headers and DB state."""

    resource_id: UUID | None
    email: str
    display_name: str
    roles: tuple[PrincipalRole, ...]
    dev_admin: bool = False

    @property
    def role_names(self) -> tuple[str, ...]:
        """Unique role names assigned to this principal."""

        return tuple(dict.fromkeys(role.name for role in self.roles))

    @property
    def is_admin(self) -> bool:
        """Whether any held role grants admin access."""

        return self.dev_admin or any(role.is_admin for role in self.roles)


def _load_roles(db: Session, *, resource_id: UUID) -> tuple[PrincipalRole, ...]:
    rows = db.scalars(
        select(Role)
        .join(ResourceRole, ResourceRole.role_id == Role.id)
        .where(ResourceRole.resource_id == resource_id)
        .order_by(Role.name.asc())
    ).all()
    return tuple(PrincipalRole(role_id=row.id, name=row.name, is_admin=row.is_admin) for row in rows)


def _find_active_resource(db: Session, email: str) -> Resource | None:
    return db.scalar(
        select(Resource).where(
            and_(func.lower(Resource.email) == email.strip().lower(), Resource.is_active.is_(True))
        )
    )


def resolve_principal(db: Session, *, email: str, display_name: str | None = None) -> RequestUserContext:
    """Resolve an authenticated email to the matching active resource.

    Utility exported for tests and scripts.
    """

    resource = _find_active_resource(db, email)
    if resource is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or inactive resource for authenticated principal.",
        )

    return RequestUserContext(
        resource_id=resource.id,
        email=resource.email,
        display_name=display_name or resource.name,
        roles=_load_roles(db, resource_id=resource.id),
    )


def _dev_principal(db: Session) -> RequestUserContext:
    settings = get_settings()
    email = settings.auth_dev_email.strip().lower()
    resource = _find_active_resource(db, email)
    roles = _load_roles(db, resource_id=resource.id) if resource is not None else ()
    return RequestUserContext(
        resource_id=resource.id if resource is not None else None,
        email=email,
        display_name=settings.auth_dev_display_name.strip(),
        roles=roles,
        dev_admin=settings.auth_dev_is_admin,
    )


def get_current_user_context(
    x_user_email: str | None = Header(default=None, alias="X-USER-EMAIL"),
    x_user_name: str | None = Header(default=None, alias="X-USER-NAME"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request principal.

    Header strategy:
    - Credentials are verified upstream; the proxy forwards X-USER-EMAIL.
    - Without the header, a development principal is used when enabled.
    """

    if x_user_email and x_user_email.strip():
        return resolve_principal(db, email=x_user_email, display_name=x_user_name)

    if get_settings().auth_allow_dev_principal:
        return _dev_principal(db)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing identity header. Expected X-USER-EMAIL or enable development principal fallback.",
    )


def require_admin(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
    """Dependency requiring an admin role."""

    if not context.is_admin:
        logger.warning("Admin access denied email=%s roles=%s", context.email, ",".join(context.role_names) or "-")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required for this operation.",
        )
    return context
