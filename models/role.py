"""Roles, permissions and the permission check used to guard pages."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from .status import PermissionAction

ACTIONS = ("view", "create", "edit", "delete", "approve")


@dataclass
class Permission:
    """A permission code that can be granted to roles."""

    id: int
    code: str
    name: str
    category: str
    description: Optional[str] = None
    assigned_role_count: int = 0


@dataclass
class RolePermission:
    """A permission as granted to a role, with one flag per action."""

    permission_id: int
    code: str = ""
    name: str = ""
    category: str = ""
    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_approve: bool = False

    @property
    def any_granted(self) -> bool:
        return any(getattr(self, f"can_{action}") for action in ACTIONS)

    def to_payload(self) -> dict:
        payload = {"permission_id": self.permission_id}
        for action in ACTIONS:
            payload[f"can_{action}"] = getattr(self, f"can_{action}")
        return payload


@dataclass
class Role:
    id: int
    name: str
    description: Optional[str] = None
    is_system_role: bool = False
    user_count: int = 0
    permission_count: int = 0
    created_at: Optional[str] = None
    permissions: List[RolePermission] = field(default_factory=list)

    def permission_summary(self) -> Dict[str, int]:
        """Count of granted permissions per action, plus the total."""
        summary = {"total": len(self.permissions)}
        for action in ACTIONS:
            summary[f"can_{action}"] = sum(
                1 for p in self.permissions if getattr(p, f"can_{action}")
            )
        return summary


@dataclass
class RoleOption:
    """Entry in the role dropdown of the user form."""

    value: int
    label: str
    description: Optional[str] = None
    is_system_role: bool = False


class PermissionSet:
    """
    Permissions of the signed-in user, keyed by permission code.

    Mirrors the backend's login payload:
    ``{"po.create": {"can_view": true, "can_create": true, ...}, ...}``.
    Unknown codes and unknown actions are denied.
    """

    def __init__(self, permissions: Optional[Dict[str, Dict[str, bool]]] = None):
        self._permissions = permissions or {}

    def has_permission(
        self, code: str, action: Union[str, PermissionAction] = "view"
    ) -> bool:
        grant = self._permissions.get(code)
        if not grant:
            return False
        if isinstance(action, str):
            try:
                action = PermissionAction(action)
            except ValueError:
                return False
        return bool(grant.get(action.flag))

    def has_any(self, codes: Iterable[str], action: str = "view") -> bool:
        return any(self.has_permission(code, action) for code in codes)

    def has_all(self, codes: Iterable[str], action: str = "view") -> bool:
        return all(self.has_permission(code, action) for code in codes)

    def to_dict(self) -> Dict[str, Dict[str, bool]]:
        return dict(self._permissions)

    def __len__(self) -> int:
        return len(self._permissions)


def group_by_category(permissions: Iterable[Permission]) -> Dict[str, List[Permission]]:
    """Group permissions by category, categories and codes sorted."""
    groups: Dict[str, List[Permission]] = {}
    for perm in permissions:
        groups.setdefault(perm.category, []).append(perm)
    return {
        category: sorted(groups[category], key=lambda p: p.code)
        for category in sorted(groups)
    }


def count_selected(selections: Iterable[RolePermission]) -> int:
    """Number of permissions with at least one action granted."""
    return sum(1 for sel in selections if sel.any_granted)
