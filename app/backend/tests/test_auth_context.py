from __future__ import annotations

import uuid

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core import auth as auth_module
from app.core.auth import PrincipalRole, RequestUserContext, resolve_principal
from app.core.config import Settings


def _headers(email: str) -> dict[str, str]:
    return {"X-USER-EMAIL": email}


def test_is_admin_follows_role_flags() -> None:
    consultant = PrincipalRole(role_id=uuid.uuid4(), name="Consultant", is_admin=False)
    admin = PrincipalRole(role_id=uuid.uuid4(), name="admin", is_admin=True)

    regular = RequestUserContext(
        resource_id=uuid.uuid4(),
        email="user@test.local",
        display_name="User",
        roles=(consultant,),
    )
    elevated = RequestUserContext(
        resource_id=uuid.uuid4(),
        email="boss@test.local",
        display_name="Boss",
        roles=(consultant, admin),
    )

    assert regular.is_admin is False
    assert elevated.is_admin is True
    assert elevated.role_names == ("Consultant", "admin")


def test_dev_admin_flag_grants_admin_without_roles() -> None:
    context = RequestUserContext(
        resource_id=None,
        email="dev.user@local.test",
        display_name="Dev User",
        roles=(),
        dev_admin=True,
    )

    assert context.is_admin is True
    assert context.role_names == ()


def test_resolve_principal_matches_email_case_insensitively(db_session: Session, seed) -> None:
    admin_role = seed.role("admin", label="Administrator", is_admin=True)
    resource = seed.resource("Alice Admin", email="alice@test.local", roles=(admin_role,))

    context = resolve_principal(db_session, email="  ALICE@test.local ")

    assert context.resource_id == resource.id
    assert context.display_name == "Alice Admin"
    assert context.is_admin is True


def test_resolve_principal_rejects_inactive_resource(db_session: Session, seed) -> None:
    seed.resource("Gone", email="gone@test.local", is_active=False)

    with pytest.raises(HTTPException) as exc_info:
        resolve_principal(db_session, email="gone@test.local")

    assert exc_info.value.status_code == 401


def test_me_endpoint_returns_header_principal(client: TestClient, seed) -> None:
    consultant = seed.role("Consultant")
    seed.resource("Bob", email="bob@test.local", roles=(consultant,))

    response = client.get("/api/v1/me", headers=_headers("bob@test.local"))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "bob@test.local"
    assert data["is_admin"] is False
    assert [role["name"] for role in data["roles"]] == ["Consultant"]


def test_me_endpoint_falls_back_to_dev_principal(client: TestClient) -> None:
    response = client.get("/api/v1/me")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "dev.user@local.test"
    assert data["resource_id"] is None
    assert data["is_admin"] is True


def test_unknown_email_is_unauthorized(client: TestClient) -> None:
    response = client.get("/api/v1/me", headers=_headers("nobody@test.local"))

    assert response.status_code == 401
    assert response.json()["code"] == "unauthorized"


def test_missing_header_without_dev_fallback_is_unauthorized(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(auth_module, "get_settings", lambda: Settings(auth_allow_dev_principal=False))

    response = client.get("/api/v1/allocations")

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_non_admin_cannot_mutate_catalog(
    client: TestClient, seed, monkeypatch: pytest.MonkeyPatch
) -> None:
    warnings: list[tuple[object, ...]] = []
    monkeypatch.setattr(auth_module.logger, "warning", lambda *args: warnings.append(args))
    consultant = seed.role("Consultant")
    seed.resource("Carol", email="carol@test.local", roles=(consultant,))

    response = client.post(
        "/api/v1/work-types",
        headers=_headers("carol@test.local"),
        json={"name": "Training"},
    )

    assert response.status_code == 403
    assert response.json() == {
        "success": False,
        "error": "Admin role required for this operation.",
        "code": "forbidden",
    }
    assert warnings == [("Admin access denied email=%s roles=%s", "carol@test.local", "Consultant")]
