"""Authorization data models.

Defines permissions, roles, assignments, and check request/result shapes.
"""

from datetime import datetime, UTC
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.authz.identifiers import ResourceRef, Subject
from packages.authz.matching import matches_permission


class Permission(BaseModel):
    """A named bundle of allowed actions on a resource type.

    Actions may be literal (``"read"``), the wildcard ``"*"``, or prefix
    patterns (``"invoice.*"``). ``inheritable`` controls whether a grant on
    an ancestor resource also applies to its descendants.
    """

    name: str = Field(description="Permission name")
    resource_type: str = Field(description="Resource type this permission applies to")
    actions: list[str] = Field(
        default_factory=list,
        description="Actions granted (ordered, duplicates dropped)"
    )
    inheritable: bool = Field(
        default=False,
        description="Whether the grant flows down to descendant resources"
    )
    description: str = Field(default="", description="Permission description")

    @field_validator("actions")
    @classmethod
    def _dedupe_actions(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    def allows(self, action: str) -> bool:
        """Check if this permission covers an action."""
        return matches_permission(action, self.actions)


class Role(BaseModel):
    """A role bundling permissions for a resource type.

    A role's effective permissions are its own plus those of every role in
    ``inherits``, resolved transitively by the engine. Ids conventionally
    look like ``workspace:admin``, but are never parsed.
    """

    id: str = Field(description="Unique role identifier")
    name: str = Field(description="Human-readable role name")
    resource_type: str = Field(description="Resource type this role is scoped to")
    description: str = Field(default="", description="Role description")
    permissions: list[Permission] = Field(
        default_factory=list,
        description="Permissions granted directly by this role"
    )
    inherits: list[str] = Field(
        default_factory=list,
        description="Ids of roles whose permissions this role also grants"
    )

    def grants(self, action: str) -> bool:
        """Check if one of this role's own permissions covers an action.

        Inherited roles are not consulted; use the engine for that.
        """
        return any(p.allows(action) for p in self.permissions)


class Assignment(BaseModel):
    """A grant of one role to one subject on one resource.

    Assignments are immutable. To change one, unassign it and assign again.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique assignment identifier"
    )
    subject: Subject = Field(description="Who is granted the role")
    role: str = Field(description="Role id (not validated against the registry)")
    resource: ResourceRef = Field(description="Resource the role is granted on")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime | None = Field(default=None, description="Expiration timestamp")
    metadata: dict[str, Any] = Field(default_factory=dict)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the assignment has expired. Naive datetimes are UTC."""
        if self.expires_at is None:
            return False
        now = _as_utc(now or datetime.now(UTC))
        return _as_utc(self.expires_at) <= now


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class AssignInput(BaseModel):
    """Input for creating an assignment. Strings are ``type:id``."""

    subject: Subject | str
    role: str
    resource: ResourceRef | str
    expires_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class AssignmentFilter(BaseModel):
    """Filter for listing assignments. All given fields must match."""

    subject: Subject | str | None = None
    role: str | None = None
    resource: ResourceRef | str | None = None


class CheckRequest(BaseModel):
    """A single authorization question: may subject do action on resource?"""

    subject: Subject | str
    action: str
    resource: ResourceRef | str


class CheckResult(BaseModel):
    """Result of an authorization check."""

    allowed: bool = Field(description="Whether access is allowed")
    reason: str = Field(default="", description="Explanation of decision")
    assignment: Assignment | None = Field(
        default=None,
        description="Assignment that granted access (if allowed)"
    )
    matched_role: str | None = Field(
        default=None,
        description="Role that granted access (if allowed)"
    )
    latency_ms: float = Field(default=0.0, ge=0, description="Wall-clock check duration")


class BatchCheckRequest(BaseModel):
    """Several checks evaluated together."""

    checks: list[CheckRequest] = Field(default_factory=list)


class BatchCheckResult(BaseModel):
    """Results in the same order as the request's checks."""

    results: list[CheckResult] = Field(default_factory=list)
    latency_ms: float = Field(default=0.0, ge=0)


class BusinessRole(BaseModel):
    """An organizational role (job title) linked to authorization roles."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(description="Business role identifier")
    name: str = Field(description="Display name")
    department: str | None = None
    level: int | None = None
    responsibilities: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    authorization_roles: list[str] = Field(
        default_factory=list,
        description="Authorization role ids held by anyone in this business role"
    )
