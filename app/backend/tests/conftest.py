from __future__ import annotations

from collections.abc import Generator
from datetime import date, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.rate_limit import InMemoryRateLimiter, get_rate_limiter
from app.db.base import Base
from app.db.dependencies import get_db_session
import app.models.entities  # noqa: F401
from app.main import create_app
from app.models.entities import (
    Allocation,
    AllocationStatus,
    Project,
    Resource,
    ResourceRole,
    ResourceSkill,
    Role,
    Skill,
    WorkType,
)

TEST_TABLES = [
    Role.__table__,
    Resource.__table__,
    ResourceRole.__table__,
    Project.__table__,
    WorkType.__table__,
    Allocation.__table__,
    Skill.__table__,
    ResourceSkill.__table__,
]


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def rate_limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter()


@pytest.fixture()
def client(db_session: Session, rate_limiter: InMemoryRateLimiter) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class Seeder:
    """Inserts catalog and ledger rows directly through the session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def role(self, name: str = "Consultant", *, label: str | None = None, is_admin: bool = False) -> Role:
        return self._save(Role(name=name, label=label or name, is_admin=is_admin, is_plannable=not is_admin))

    def resource(
        self,
        name: str,
        *,
        email: str | None = None,
        roles: tuple[Role, ...] = (),
        is_active: bool = True,
    ) -> Resource:
        now = datetime.utcnow()
        resource = self._save(
            Resource(
                name=name,
                email=email or f"{name.lower().replace(' ', '.')}@test.local",
                is_active=is_active,
                created_at=now,
                updated_at=now,
            )
        )
        for role in roles:
            self.db.add(ResourceRole(resource_id=resource.id, role_id=role.id))
        self.db.commit()
        return resource

    def work_type(self, name: str = "Project", *, color: str | None = None) -> WorkType:
        return self._save(WorkType(name=name, color=color, is_active=True))

    def project(self, name: str = "Apollo", *, customer: str | None = None) -> Project:
        now = datetime.utcnow()
        return self._save(Project(name=name, customer=customer, is_active=True, created_at=now, updated_at=now))

    def allocation(
        self,
        resource: Resource,
        work_type: WorkType,
        week_start: date | None,
        days: str | Decimal,
        *,
        project: Project | None = None,
        status: AllocationStatus = AllocationStatus.CONFIRMED,
        **extra: object,
    ) -> Allocation:
        now = datetime.utcnow()
        return self._save(
            Allocation(
                resource_id=resource.id,
                work_type_id=work_type.id,
                project_id=project.id if project is not None else None,
                week_start=week_start,
                days=Decimal(days),
                status=status,
                created_at=now,
                updated_at=now,
                **extra,
            )
        )


@pytest.fixture()
def seed(db_session: Session) -> Seeder:
    return Seeder(db_session)
