"""ORM model package."""

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

__all__ = [
    "Allocation",
    "AllocationStatus",
    "Project",
    "Resource",
    "ResourceRole",
    "ResourceSkill",
    "Role",
    "Skill",
    "WorkType",
]
