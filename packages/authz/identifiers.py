"""Subject and resource identifiers.

Subjects and resources are addressed as ``type:id`` strings at the edges and
as two-field models everywhere else. Only the first colon separates the type
from the id, so ids may themselves contain colons (``doc:2024:q1``).
"""

from typing import Any

from pydantic import BaseModel, Field


class AuthzError(Exception):
    """Base class for authorization errors."""

    def __init__(self, message: str, code: str = "authz_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidFormatError(AuthzError, ValueError):
    """Raised when an identifier string is not of the form ``type:id``."""

    def __init__(self, kind: str, value: str):
        self.kind = kind
        self.value = value
        super().__init__(
            f"Invalid {kind} format: {value!r}. Expected 'type:id'",
            "invalid_format",
        )


class Subject(BaseModel):
    """The acting principal (user, service, group, agent).

    Identity is ``(type, id)``. ``name`` and ``metadata`` are descriptive
    and never take part in equality or authorization decisions.
    """

    type: str = Field(description="Subject type (user, group, service, agent)")
    id: str = Field(description="Subject identifier")
    name: str | None = Field(default=None, description="Display name")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.type}:{self.id}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Subject):
            return NotImplemented
        return (self.type, self.id) == (other.type, other.id)

    def __hash__(self) -> int:
        return hash(("subject", self.type, self.id))

    def __str__(self) -> str:
        return self.key


class ResourceRef(BaseModel):
    """Reference to a protected resource. Identity is ``(type, id)``."""

    type: str = Field(description="Resource type (workspace, project, document)")
    id: str = Field(description="Resource identifier")

    @property
    def key(self) -> str:
        return f"{self.type}:{self.id}"

    def ref(self) -> "ResourceRef":
        """Return a bare reference, dropping any extra fields."""
        return ResourceRef(type=self.type, id=self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceRef):
            return NotImplemented
        return (self.type, self.id) == (other.type, other.id)

    def __hash__(self) -> int:
        return hash(("resource", self.type, self.id))

    def __str__(self) -> str:
        return self.key


class Resource(ResourceRef):
    """A registered resource, optionally nested under a parent.

    Parent links are not guaranteed to be acyclic; anything walking them
    must track visited keys.
    """

    parent: ResourceRef | None = Field(default=None, description="Parent resource")
    metadata: dict[str, Any] = Field(default_factory=dict)


def _split(kind: str, value: str) -> tuple[str, str]:
    type_, sep, id_ = value.partition(":")
    if not sep or not type_ or not id_:
        raise InvalidFormatError(kind, value)
    return type_, id_


def parse_subject(value: str) -> Subject:
    """Parse ``'user:123'`` into a Subject."""
    type_, id_ = _split("subject", value)
    return Subject(type=type_, id=id_)


def parse_resource(value: str) -> ResourceRef:
    """Parse ``'workspace:456'`` into a ResourceRef."""
    type_, id_ = _split("resource", value)
    return ResourceRef(type=type_, id=id_)


def format_subject(subject: Subject) -> str:
    return f"{subject.type}:{subject.id}"


def format_resource(resource: ResourceRef) -> str:
    return f"{resource.type}:{resource.id}"


def subject_matches(a: Subject, b: Subject) -> bool:
    """Check if two subjects are the same principal."""
    return a.type == b.type and a.id == b.id


def resource_matches(a: ResourceRef, b: ResourceRef) -> bool:
    """Check if two references point at the same resource."""
    return a.type == b.type and a.id == b.id


def to_subject(value: Subject | str | dict[str, Any]) -> Subject:
    """Normalize a string, dict or Subject into a Subject."""
    if isinstance(value, Subject):
        return value
    if isinstance(value, str):
        return parse_subject(value)
    return Subject.model_validate(value)


def to_resource_ref(value: ResourceRef | str | dict[str, Any]) -> ResourceRef:
    """Normalize a string, dict or ResourceRef into a bare ResourceRef."""
    if isinstance(value, ResourceRef):
        return value.ref()
    if isinstance(value, str):
        return parse_resource(value)
    return ResourceRef.model_validate(value).ref()
