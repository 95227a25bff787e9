"""Role-relative permission checks used by the HR back office."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ndi_hr.common.constants import (
    COMPENSATION_MANAGER_ROLES,
    INVITE_ROLE_MATRIX,
    ROLE_RANK,
    UserRole,
)


@dataclass(frozen=True)
class PermissionResult:
    allowed: bool
    reason: Optional[str] = None


def is_role_senior(target_role: UserRole, viewer_role: UserRole) -> bool:
    return ROLE_RANK.get(target_role, 0) > ROLE_RANK.get(viewer_role, 0)


def get_edit_permission(viewer_role: UserRole, target_role: UserRole) -> PermissionResult:
    if viewer_role == UserRole.EMPLOYEE:
        return PermissionResult(False, "Employees can't edit other team members.")
    if target_role == UserRole.SUPER_ADMIN:
        return PermissionResult(False, "Super Admin profiles can't be edited.")
    if target_role == UserRole.ORG_OWNER and viewer_role != UserRole.SUPER_ADMIN:
        return PermissionResult(False, "Only Super Admins can edit Org Owners.")
    if viewer_role in (UserRole.HR_ADMIN, UserRole.MANAGER) and target_role in (
        UserRole.MANAGER,
        UserRole.ORG_ADMIN,
    ):
        return PermissionResult(
            False, "Managers and HR admins can't edit Manager or Org Admin accounts.",
        )
    return PermissionResult(True)


def get_termination_permission(
    viewer_role: UserRole,
    target_role: UserRole,
    *,
    is_self: bool = False,
) -> PermissionResult:
    if is_self:
        return PermissionResult(False, "You can't terminate your own account.")
    if viewer_role == UserRole.EMPLOYEE:
        return PermissionResult(False, "Only admins can terminate employees.")
    if target_role == UserRole.SUPER_ADMIN:
        return PermissionResult(False, "Super Admin accounts can't be terminated.")
    if is_role_senior(target_role, viewer_role):
        return PermissionResult(False, "You can't terminate a senior position holder.")
    return PermissionResult(True)


def can_manage_compensation(viewer_role: UserRole) -> bool:
    return viewer_role in COMPENSATION_MANAGER_ROLES


def allowed_invite_roles(viewer_role: UserRole) -> list[UserRole]:
    return list(INVITE_ROLE_MATRIX.get(viewer_role, []))
