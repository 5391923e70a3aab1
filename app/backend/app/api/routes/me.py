"""Current user endpoint."""

from fastapi import APIRouter, Depends

from app.api.responses import ok
from app.core.auth import PrincipalRole, RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


def _serialize_role(role: PrincipalRole) -> dict[str, object]:
    return {"id": str(role.role_id), "name": role.name, "is_admin": role.is_admin}


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return the resolved principal and its roles."""

    return ok(
        {
            "resource_id": str(context.resource_id) if context.resource_id is not None else None,
            "email": context.email,
            "display_name": context.display_name,
            "is_admin": context.is_admin,
            "roles": [_serialize_role(role) for role in context.roles],
        }
    )
