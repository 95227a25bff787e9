"""Core HR module: organization, user, profile, employment and org-structure models."""

from ndi_hr.core_hr.models import (
    Department,
    EmployeeProfile,
    EmploymentDetail,
    Organization,
    Project,
    Team,
    User,
)

__all__ = [
    "Organization", "User", "EmployeeProfile", "EmploymentDetail", "Department", "Team", "Project",
]
