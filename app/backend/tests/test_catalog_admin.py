from __future__ import annotations

import uuid
from datetime import date

import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.entities import Resource
from app.repositories.planning_repository import PlanningRepository


@pytest.fixture()
def roles(seed):
    return {
        "admin": seed.role("admin", label="Administrator", is_admin=True),
        "consultant": seed.role("Consultant"),
        "architect": seed.role("Architect"),
    }


def test_create_resource_hashes_password_and_flattens_roles(
    client: TestClient, roles, db_session: Session
) -> None:
    response = client.post(
        "/api/v1/resources",
        json={
            "name": "Dana",
            "email": "Dana@Test.Local",
            "role_ids": [str(roles["consultant"].id)],
            "job_title": "Engineer",
            "password": "s3cret-pw",
        },
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["email"] == "dana@test.local"
    assert data["has_password"] is True
    assert [role["name"] for role in data["roles"]] == ["Consultant"]
    assert "password_hash" not in data

    stored = db_session.get(Resource, uuid.UUID(data["id"]))
    assert bcrypt.checkpw(b"s3cret-pw", stored.password_hash.encode("utf-8"))


def test_create_resource_validations(client: TestClient, roles) -> None:
    base = {"name": "Eve", "email": "eve@test.local", "role_ids": [str(roles["consultant"].id)]}

    assert client.post("/api/v1/resources", json={**base, "role_ids": []}).status_code == 400
    assert client.post("/api/v1/resources", json={**base, "password": "short"}).status_code == 400
    assert client.post("/api/v1/resources", json=base).status_code == 201

    duplicate = client.post("/api/v1/resources", json={**base, "email": "EVE@test.local"})
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "conflict"


def test_update_resource_replaces_roles_and_archives(client: TestClient, roles) -> None:
    created = client.post(
        "/api/v1/resources",
        json={"name": "Finn", "email": "finn@test.local", "role_ids": [str(roles["consultant"].id)]},
    ).json()["data"]

    response = client.patch(
        f"/api/v1/resources/{created['id']}",
        json={"role_ids": [str(roles["architect"].id), str(roles["admin"].id)], "is_active": False},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert sorted(role["name"] for role in data["roles"]) == ["Architect", "admin"]
    assert data["is_active"] is False

    active = client.get("/api/v1/resources", params={"is_active": True}).json()
    assert created["id"] not in [row["id"] for row in active["data"]]


def test_set_password_endpoint(client: TestClient, roles) -> None:
    created = client.post(
        "/api/v1/resources",
        json={"name": "Gus", "email": "gus@test.local", "role_ids": [str(roles["consultant"].id)]},
    ).json()["data"]
    assert created["has_password"] is False

    too_short = client.patch(f"/api/v1/resources/{created['id']}/password", json={"password": "abc"})
    ok = client.patch(f"/api/v1/resources/{created['id']}/password", json={"password": "longenough"})

    assert too_short.status_code == 400
    assert ok.status_code == 200
    assert ok.json()["data"]["has_password"] is True


def test_project_lifecycle(client: TestClient, seed) -> None:
    created = client.post(
        "/api/v1/projects",
        json={"name": "Hermes", "customer": "Globex", "start_date": "2025-01-01", "end_date": "2025-12-31"},
    )
    assert created.status_code == 201
    project_id = created.json()["data"]["id"]

    assert client.post("/api/v1/projects", json={"name": "Hermes"}).status_code == 409
    bad_range = client.post(
        "/api/v1/projects",
        json={"name": "Backwards", "start_date": "2025-12-31", "end_date": "2025-01-01"},
    )
    assert bad_range.status_code == 400

    archived = client.patch(f"/api/v1/projects/{project_id}", json={"is_active": False})
    assert archived.json()["data"]["is_active"] is False

    filtered = client.get("/api/v1/projects", params={"customer": "glob"}).json()
    assert [row["name"] for row in filtered["data"]] == ["Hermes"]
    assert filtered["data"][0]["allocation_count"] == 0

    assert client.delete(f"/api/v1/projects/{project_id}").status_code == 200
    assert client.get(f"/api/v1/projects/{project_id}").status_code == 404


def test_project_with_allocations_cannot_be_deleted(client: TestClient, seed) -> None:
    resource = seed.resource("Ivy")
    work_type = seed.work_type("Project")
    project = seed.project("Iris")
    seed.allocation(resource, work_type, date(2025, 6, 9), "2", project=project)

    response = client.delete(f"/api/v1/projects/{project.id}")

    assert response.status_code == 409
    listed = client.get("/api/v1/projects").json()["data"]
    assert listed[0]["allocation_count"] == 1


def test_work_type_lifecycle(client: TestClient, seed) -> None:
    created = client.post("/api/v1/work-types", json={"name": "Training", "color": "#111111"})
    assert created.status_code == 201
    work_type_id = created.json()["data"]["id"]

    assert client.post("/api/v1/work-types", json={"name": "Training"}).status_code == 409

    updated = client.patch(f"/api/v1/work-types/{work_type_id}", json={"color": "#222222", "is_active": False})
    assert updated.json()["data"]["color"] == "#222222"
    assert client.get("/api/v1/work-types", params={"is_active": True}).json()["count"] == 0

    used = seed.work_type("Project")
    seed.allocation(seed.resource("Jay"), used, date(2025, 6, 9), "1")
    assert client.delete(f"/api/v1/work-types/{used.id}").status_code == 409
    assert client.delete(f"/api/v1/work-types/{work_type_id}").status_code == 200


def test_roles_listing_and_creation(client: TestClient, roles) -> None:
    created = client.post("/api/v1/roles", json={"name": "PM", "label": "Project Manager"})
    assert created.status_code == 201
    assert client.post("/api/v1/roles", json={"name": "PM", "label": "Again"}).status_code == 409

    labels = [row["label"] for row in client.get("/api/v1/roles").json()["data"]]
    assert labels == sorted(labels)


def test_skills_and_resource_skills(client: TestClient, seed) -> None:
    resource = seed.resource("Kim")
    skill = client.post("/api/v1/skills", json={"name": "Python"}).json()["data"]
    assert client.post("/api/v1/skills", json={"name": "python"}).status_code == 409

    assignment = client.post(
        "/api/v1/resource-skills",
        json={"resource_id": str(resource.id), "skill_id": skill["id"], "proficiency": "expert"},
    )
    assert assignment.status_code == 201
    assignment_id = assignment.json()["data"]["id"]
    duplicate = client.post(
        "/api/v1/resource-skills",
        json={"resource_id": str(resource.id), "skill_id": skill["id"]},
    )
    assert duplicate.status_code == 409

    assert client.delete(f"/api/v1/skills/{skill['id']}").status_code == 409

    updated = client.patch(
        f"/api/v1/resource-skills/{assignment_id}",
        json={"expires_at": "2026-01-31", "notes": None},
    ).json()["data"]
    assert updated["proficiency"] == "expert"
    assert updated["expires_at"] == "2026-01-31"

    listed = client.get("/api/v1/resource-skills", params={"resource_id": str(resource.id)}).json()
    assert listed["count"] == 1
    assert listed["data"][0]["skill"]["name"] == "Python"

    assert client.delete(f"/api/v1/resource-skills/{assignment_id}").status_code == 200
    assert client.delete(f"/api/v1/skills/{skill['id']}").status_code == 200


def test_unique_violation_on_insert_is_a_conflict(
    client: TestClient, roles, monkeypatch: pytest.MonkeyPatch
) -> None:
    assert client.post("/api/v1/projects", json={"name": "Hermes"}).status_code == 201
    assert client.post("/api/v1/work-types", json={"name": "Training"}).status_code == 201
    resource = {"name": "Lou", "email": "lou@test.local", "role_ids": [str(roles["consultant"].id)]}
    assert client.post("/api/v1/resources", json=resource).status_code == 201

    # Lookups miss, as when another request inserts the same row in between.
    monkeypatch.setattr(PlanningRepository, "get_project_by_name", lambda self, name: None)
    monkeypatch.setattr(PlanningRepository, "get_work_type_by_name", lambda self, name: None)
    monkeypatch.setattr(PlanningRepository, "get_resource_by_email", lambda self, email: None)

    responses = [
        client.post("/api/v1/projects", json={"name": "Hermes"}),
        client.post("/api/v1/work-types", json={"name": "Training"}),
        client.post("/api/v1/resources", json=resource),
    ]

    assert [response.status_code for response in responses] == [409, 409, 409]
    assert [response.json()["error"] for response in responses] == [
        "Project name already exists.",
        "Work type name already exists.",
        "Resource with this email already exists.",
    ]
    monkeypatch.undo()
    assert client.get("/api/v1/projects").json()["count"] == 1
