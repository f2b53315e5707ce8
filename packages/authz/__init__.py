"""Resource-scoped authorization package.

Fine-grained RBAC over a resource hierarchy:
- Subjects are assigned roles on specific resources
- Roles bundle permissions and may inherit other roles
- Inheritable permissions flow from a resource to its descendants
- Actions match exactly, by wildcard ``*``, or by prefix ``invoice.*``

Usage:
    from packages.authz import AuthzEngine, create_standard_roles

    engine = get_authz_engine()
    for role in create_standard_roles("workspace").values():
        await engine.register_role(role)

    await engine.create_resource("workspace:ws-1")
    await engine.assign(subject="user:alice", role="workspace:admin", resource="workspace:ws-1")

    # Check permission
    if (await engine.check("user:alice", "read", "workspace:ws-1")).allowed:
        # Allowed
        pass
"""

from packages.authz.config import AuthzSettings
from packages.authz.engine import AuthzEngine, get_authz_engine, reset_authz_engine
from packages.authz.hierarchy import (
    HierarchyLevel,
    ResourceHierarchy,
    STANDARD_HIERARCHIES,
    get_hierarchy,
)
from packages.authz.identifiers import (
    AuthzError,
    InvalidFormatError,
    Resource,
    ResourceRef,
    Subject,
    format_resource,
    format_subject,
    parse_resource,
    parse_subject,
    resource_matches,
    subject_matches,
)
from packages.authz.matching import matches_permission
from packages.authz.models import (
    AssignInput,
    Assignment,
    AssignmentFilter,
    BatchCheckRequest,
    BatchCheckResult,
    BusinessRole,
    CheckRequest,
    CheckResult,
    Permission,
    Role,
)
from packages.authz.nouns import (
    ASSIGNMENT_NOUN,
    AUTHORIZATION_NOUNS,
    PERMISSION_NOUN,
    ROLE_NOUN,
    NounAuthorization,
    NounDefinition,
)
from packages.authz.permissions import (
    StandardPermissions,
    authorize_noun,
    create_standard_roles,
    link_business_role,
    noun_permissions,
    verb_permission,
)
from packages.authz.storage import AuthzStore, InMemoryStore

__all__ = [
    "AuthzSettings",
    "AuthzEngine",
    "get_authz_engine",
    "reset_authz_engine",
    "HierarchyLevel",
    "ResourceHierarchy",
    "STANDARD_HIERARCHIES",
    "get_hierarchy",
    "AuthzError",
    "InvalidFormatError",
    "Resource",
    "ResourceRef",
    "Subject",
    "format_resource",
    "format_subject",
    "parse_resource",
    "parse_subject",
    "resource_matches",
    "subject_matches",
    "matches_permission",
    "AssignInput",
    "Assignment",
    "AssignmentFilter",
    "BatchCheckRequest",
    "BatchCheckResult",
    "BusinessRole",
    "CheckRequest",
    "CheckResult",
    "Permission",
    "Role",
    "ASSIGNMENT_NOUN",
    "AUTHORIZATION_NOUNS",
    "PERMISSION_NOUN",
    "ROLE_NOUN",
    "NounAuthorization",
    "NounDefinition",
    "StandardPermissions",
    "authorize_noun",
    "create_standard_roles",
    "link_business_role",
    "noun_permissions",
    "verb_permission",
    "AuthzStore",
    "InMemoryStore",
]
