"""User accounts, their sessions and activity log."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class User:
    """A user account as listed by the backend."""

    id: int
    username: str
    email: str
    full_name: str
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    department: Optional[str] = None
    is_active: bool = True
    last_login: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    @property
    def initials(self) -> str:
        parts = (self.full_name or self.username).split()
        return "".join(p[0] for p in parts[:2]).upper()


@dataclass
class UserSession:
    """A signed-in device of a user."""

    id: int
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[str] = None
    last_activity: Optional[str] = None
    is_active: bool = True


@dataclass
class UserActivity:
    id: int
    action: str
    timestamp: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    ip_address: Optional[str] = None
    performed_by_username: Optional[str] = None

    @property
    def description(self) -> str:
        """'UPDATE on user #4', or just the action when no entity is named."""
        if not self.entity_type:
            return self.action
        target = f"{self.entity_type} #{self.entity_id}" if self.entity_id else self.entity_type
        return f"{self.action} on {target}"
