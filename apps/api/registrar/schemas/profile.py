"""Profile schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"
    STUDENT = "student"


class ProfileStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class Profile(BaseModel):
    """Organizational record bound 1:1 to an identity-provider principal."""

    model_config = ConfigDict(extra="ignore")

    id: str
    principal_id: str
    email: str
    full_name: str
    phone: str | None = None
    role: Role
    status: ProfileStatus
    created_at: datetime
    updated_at: datetime | None = None
