from __future__ import annotations

import csv
import io
from datetime import date

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from app.models.entities import AllocationStatus

EXPORT_URL = "/api/v1/exports/project-planning"


@pytest.fixture()
def apollo(seed):
    consultant = seed.role("consultant", label="Consultant")
    architect = seed.role("architect", label="Architect")
    alice = seed.resource("Alice", roles=(consultant, architect))
    bob = seed.resource("Bob", roles=(consultant,))
    project_type = seed.work_type("Project")
    project = seed.project("Apollo", customer="Acme")

    seed.allocation(alice, project_type, date(2025, 6, 16), "2", project=project)
    seed.allocation(alice, project_type, date(2025, 6, 9), "1.5", project=project)
    seed.allocation(bob, project_type, date(2025, 6, 16), "3", project=project)
    seed.allocation(
        bob,
        project_type,
        None,
        "0",
        project=project,
        status=AllocationStatus.FORECAST,
        start_date=date(2025, 6, 25),
        num_weeks=3,
        days_per_week=2,
    )
    return project


def test_csv_export_pivots_days_by_week(client: TestClient, apollo) -> None:
    response = client.get(EXPORT_URL, params={"project_id": str(apollo.id)})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert f'filename="project-planning-{apollo.id}.csv"' in response.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["Resource Name", "Roles", "Project", "09-06-2025", "16-06-2025"]
    assert rows[1] == ["Alice", "Architect, Consultant", "Apollo", "1.50", "2.00"]
    assert rows[2] == ["Bob", "Consultant", "Apollo", "", "3.00"]
    assert response.text.startswith('"Resource Name"')


def test_xlsx_export_writes_planning_sheet(client: TestClient, apollo) -> None:
    response = client.get(EXPORT_URL, params={"project_id": str(apollo.id), "format": "XLSX"})

    assert response.status_code == 200
    assert f'filename="project-planning-{apollo.id}.xlsx"' in response.headers["content-disposition"]

    workbook = load_workbook(io.BytesIO(response.content))
    sheet = workbook["planning"]
    rows = [list(row) for row in sheet.iter_rows(values_only=True)]
    assert rows[0] == ["Resource Name", "Roles", "Project", "09-06-2025", "16-06-2025"]
    assert rows[1][:3] == ["Alice", "Architect, Consultant", "Apollo"]
    assert rows[1][3:] == [1.5, 2]
    assert rows[2][3] is None


def test_export_errors(client: TestClient, seed, apollo) -> None:
    empty = seed.project("Empty")

    bad_format = client.get(EXPORT_URL, params={"project_id": str(apollo.id), "format": "pdf"})
    no_rows = client.get(EXPORT_URL, params={"project_id": str(empty.id)})
    unknown = client.get(EXPORT_URL, params={"project_id": "00000000-0000-0000-0000-000000000000"})

    assert bad_format.status_code == 400
    assert bad_format.json()["code"] == "validation_error"
    assert no_rows.status_code == 404
    assert no_rows.json()["error"] == "No allocations found for project."
    assert unknown.status_code == 404
    assert unknown.json()["error"] == "Project not found."


def test_project_planning_view(client: TestClient, apollo) -> None:
    response = client.get(f"/api/v1/projects/{apollo.id}/planning")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["project"] == {"id": str(apollo.id), "name": "Apollo", "customer": "Acme"}
    assert data["confirmed_weeks"] == ["2025-06-09", "2025-06-16"]
    assert data["forecast_weeks"] == ["2025-06-23", "2025-06-30", "2025-07-07"]

    (forecast,) = data["forecasts"]
    assert forecast["resource"]["name"] == "Bob"
    assert forecast["status"] == "forecast"
    assert forecast["weeks"] == data["forecast_weeks"]


def test_project_planning_unknown_project(client: TestClient) -> None:
    response = client.get("/api/v1/projects/00000000-0000-0000-0000-000000000000/planning")

    assert response.status_code == 404
