"""Self-description records for authorization entities.

Describes Role, Assignment and Permission as entity schemas (fields,
relationships, lifecycle actions and events) so that a generic storage or
introspection layer can treat them like any other domain type. The engine
itself never reads these records.
"""

from pydantic import BaseModel, Field

from packages.authz.models import Permission, Role


class NounProperty(BaseModel):
    """A scalar field on an entity."""

    type: str = Field(description="Field type (string, number, boolean, datetime)")
    description: str = ""
    optional: bool = False
    array: bool = False


class NounRelationship(BaseModel):
    """A link from one entity to another."""

    type: str = Field(description="Target type, suffixed with [] for to-many")
    description: str = ""
    backref: str | None = Field(default=None, description="Field on the target pointing back")


class NounAction(BaseModel):
    """A verb an entity supports, with a description."""

    action: str
    description: str = ""


class NounAuthorization(BaseModel):
    """Authorization settings attached to an entity type."""

    parent_type: str | None = Field(
        default=None,
        description="Resource type instances are nested under"
    )
    local: bool = Field(
        default=False,
        description="If true, access is granted only on the instance itself"
    )
    default_role: str | None = Field(
        default=None,
        description="Role given to the creator of a new instance"
    )
    roles: list[Role] = Field(default_factory=list)
    permissions: list[Permission] = Field(default_factory=list)


class NounDefinition(BaseModel):
    """An entity type: its fields, links, verbs and events."""

    singular: str
    plural: str
    description: str = ""
    properties: dict[str, NounProperty] = Field(default_factory=dict)
    relationships: dict[str, NounRelationship] = Field(default_factory=dict)
    actions: list[str | NounAction] = Field(default_factory=list)
    events: list[str] = Field(default_factory=list)
    authorization: NounAuthorization | None = None

    def action_names(self) -> list[str]:
        """Action verbs as plain strings, in declaration order."""
        return [a if isinstance(a, str) else a.action for a in self.actions]


ROLE_NOUN = NounDefinition(
    singular="role",
    plural="roles",
    description="An authorization role with permissions",
    properties={
        "id": NounProperty(type="string", description="Unique role identifier"),
        "name": NounProperty(type="string", description="Display name"),
        "description": NounProperty(type="string", optional=True, description="Role description"),
        "resource_type": NounProperty(type="string", description="Resource type this role is scoped to"),
        "level": NounProperty(
            type="string",
            optional=True,
            description="Role level (owner, admin, editor, viewer, guest)",
        ),
    },
    relationships={
        "permissions": NounRelationship(type="Permission[]", description="Permissions granted by this role"),
        "inherits": NounRelationship(type="Role[]", description="Parent roles inherited from"),
        "assignments": NounRelationship(
            type="Assignment[]",
            backref="role",
            description="Assignments using this role",
        ),
    },
    actions=["create", "update", "delete", "assign", "unassign"],
    events=["created", "updated", "deleted", "assigned", "unassigned"],
)

ASSIGNMENT_NOUN = NounDefinition(
    singular="assignment",
    plural="assignments",
    description="A role assignment binding subject, role, and resource",
    properties={
        "id": NounProperty(type="string", description="Unique assignment identifier"),
        "subject_type": NounProperty(type="string", description="Subject type (user, group, service, agent)"),
        "subject_id": NounProperty(type="string", description="Subject identifier"),
        "role_id": NounProperty(type="string", description="Role identifier"),
        "resource_type": NounProperty(type="string", description="Resource type"),
        "resource_id": NounProperty(type="string", description="Resource identifier"),
        "expires_at": NounProperty(type="datetime", optional=True, description="Expiration timestamp"),
    },
    relationships={
        "role": NounRelationship(type="Role", backref="assignments", description="The assigned role"),
    },
    actions=["create", "delete", "extend", "revoke"],
    events=["created", "deleted", "extended", "revoked", "expired"],
)

PERMISSION_NOUN = NounDefinition(
    singular="permission",
    plural="permissions",
    description="A permission granting actions on a resource type",
    properties={
        "name": NounProperty(type="string", description="Permission name"),
        "description": NounProperty(type="string", optional=True, description="Permission description"),
        "resource_type": NounProperty(type="string", description="Resource type this applies to"),
        "actions": NounProperty(type="string", array=True, description="Actions granted"),
        "inheritable": NounProperty(
            type="boolean",
            optional=True,
            description="Whether permission flows to children",
        ),
    },
    relationships={
        "roles": NounRelationship(
            type="Role[]",
            backref="permissions",
            description="Roles that include this permission",
        ),
    },
    actions=["create", "update", "delete"],
    events=["created", "updated", "deleted"],
)

AUTHORIZATION_NOUNS: dict[str, NounDefinition] = {
    "Role": ROLE_NOUN,
    "Assignment": ASSIGNMENT_NOUN,
    "Permission": PERMISSION_NOUN,
}
