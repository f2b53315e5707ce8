"""Permission and role builders.

Standard permissions beyond CRUD include ``act`` for domain verbs (send,
pay, publish) that carry side effects:

- read   -> view data
- edit   -> modify data
- act    -> perform verbs
- delete -> remove (not inherited by descendants)
- manage -> everything
"""

from typing import Any

from packages.authz.matching import WILDCARD
from packages.authz.models import BusinessRole, Permission, Role
from packages.authz.nouns import NounAuthorization, NounDefinition

# Verbs already covered by the standard read/edit/delete permissions.
CRUD_VERBS = frozenset({
    "create", "read", "update", "delete",
    "get", "list", "search", "view",
    "edit", "modify", "patch",
    "remove", "destroy",
})


class StandardPermissions:
    """Factories for the standard permissions of a resource type."""

    @staticmethod
    def create(resource_type: str) -> Permission:
        return Permission(
            name="create",
            description=f"Create {resource_type}",
            resource_type=resource_type,
            actions=["create"],
            inheritable=True,
        )

    @staticmethod
    def read(resource_type: str) -> Permission:
        return Permission(
            name="read",
            description=f"Read {resource_type}",
            resource_type=resource_type,
            actions=["read", "get", "list", "search", "view"],
            inheritable=True,
        )

    @staticmethod
    def edit(resource_type: str) -> Permission:
        return Permission(
            name="edit",
            description=f"Edit {resource_type}",
            resource_type=resource_type,
            actions=["update", "edit", "modify", "patch"],
            inheritable=True,
        )

    @staticmethod
    def act(resource_type: str, verbs: list[str] | None = None) -> Permission:
        """Perform domain verbs on a resource type.

        Without ``verbs`` this grants every action, including ``delete``.
        Pass an explicit verb list to keep destructive actions out.
        """
        if verbs is None:
            return Permission(
                name="act",
                description=f"Perform actions on {resource_type}",
                resource_type=resource_type,
                actions=[WILDCARD],
                inheritable=True,
            )
        return Permission(
            name="act",
            description=f"Perform {', '.join(verbs)} on {resource_type}",
            resource_type=resource_type,
            actions=list(verbs),
            inheritable=True,
        )

    @staticmethod
    def delete(resource_type: str) -> Permission:
        return Permission(
            name="delete",
            description=f"Delete {resource_type}",
            resource_type=resource_type,
            actions=["delete", "remove", "destroy"],
            inheritable=False,
        )

    @staticmethod
    def manage(resource_type: str) -> Permission:
        return Permission(
            name="manage",
            description=f"Full management of {resource_type}",
            resource_type=resource_type,
            actions=[WILDCARD],
            inheritable=True,
        )


def verb_permission(
    resource_type: str,
    verbs: str | list[str],
    *,
    inheritable: bool = True,
    description: str | None = None,
) -> Permission:
    """Create a verb-scoped permission.

    Usage:
        verb_permission("invoice", "pay")
        # name="invoice.pay", actions=["pay"]

        verb_permission("invoice", ["send", "pay", "void"])
        # name="invoice.[send,pay,void]"
    """
    verb_list = [verbs] if isinstance(verbs, str) else list(verbs)
    if len(verb_list) == 1:
        name = f"{resource_type}.{verb_list[0]}"
    else:
        name = f"{resource_type}.[{','.join(verb_list)}]"

    return Permission(
        name=name,
        description=description or f"Can {', '.join(verb_list)} {resource_type}",
        resource_type=resource_type,
        actions=verb_list,
        inheritable=inheritable,
    )


def noun_permissions(noun: NounDefinition) -> list[Permission]:
    """Create permissions for an entity type and its custom verbs.

    Returns read, edit and delete for the type, then one verb permission per
    declared action that is not already a CRUD verb.
    """
    resource_type = noun.singular
    permissions = [
        StandardPermissions.read(resource_type),
        StandardPermissions.edit(resource_type),
        StandardPermissions.delete(resource_type),
    ]

    for verb in noun.action_names():
        if verb in CRUD_VERBS:
            continue
        permissions.append(verb_permission(resource_type, verb))

    return permissions


def create_standard_roles(resource_type: str) -> dict[str, Role]:
    """Create the owner/admin/editor/viewer/guest roles for a resource type.

    The editor role carries the default wildcard ``act`` permission, so it
    also passes checks for ``delete``.
    """
    return {
        "owner": Role(
            id=f"{resource_type}:owner",
            name="Owner",
            description=f"Full control of {resource_type}, including deletion and transfer",
            resource_type=resource_type,
            permissions=[
                StandardPermissions.manage(resource_type),
                Permission(
                    name="transfer",
                    description="Transfer ownership",
                    resource_type=resource_type,
                    actions=["transfer"],
                    inheritable=True,
                ),
            ],
        ),
        "admin": Role(
            id=f"{resource_type}:admin",
            name="Admin",
            description=f"Administrative access to {resource_type}",
            resource_type=resource_type,
            permissions=[
                StandardPermissions.create(resource_type),
                StandardPermissions.read(resource_type),
                StandardPermissions.edit(resource_type),
                StandardPermissions.act(resource_type),
                StandardPermissions.delete(resource_type),
            ],
        ),
        "editor": Role(
            id=f"{resource_type}:editor",
            name="Editor",
            description=f"Can edit {resource_type}",
            resource_type=resource_type,
            permissions=[
                StandardPermissions.read(resource_type),
                StandardPermissions.edit(resource_type),
                StandardPermissions.act(resource_type),
            ],
        ),
        "viewer": Role(
            id=f"{resource_type}:viewer",
            name="Viewer",
            description=f"Read-only access to {resource_type}",
            resource_type=resource_type,
            permissions=[StandardPermissions.read(resource_type)],
        ),
        "guest": Role(
            id=f"{resource_type}:guest",
            name="Guest",
            description=f"Limited access to {resource_type}",
            resource_type=resource_type,
            permissions=[
                Permission(
                    name="view",
                    description="View basic info",
                    resource_type=resource_type,
                    actions=["get"],
                    inheritable=False,
                ),
            ],
        ),
    }


def authorize_noun(
    noun: NounDefinition,
    config: NounAuthorization | dict[str, Any],
) -> NounDefinition:
    """Return a copy of an entity type with authorization settings attached."""
    if not isinstance(config, NounAuthorization):
        config = NounAuthorization.model_validate(config)
    return noun.model_copy(update={"authorization": config})


def link_business_role(business_role: BusinessRole, role_ids: list[str]) -> BusinessRole:
    """Return a copy of a business role with authorization roles appended."""
    return business_role.model_copy(
        update={"authorization_roles": [*business_role.authorization_roles, *role_ids]}
    )
