"""Tests for permission builders, standard roles, hierarchies and nouns."""

import pytest

from packages.authz.hierarchy import STANDARD_HIERARCHIES, ResourceHierarchy, HierarchyLevel, get_hierarchy
from packages.authz.models import BusinessRole, Permission, Role
from packages.authz.nouns import (
    ASSIGNMENT_NOUN,
    AUTHORIZATION_NOUNS,
    PERMISSION_NOUN,
    ROLE_NOUN,
    NounAction,
    NounDefinition,
    NounProperty,
)
from packages.authz.permissions import (
    StandardPermissions,
    authorize_noun,
    create_standard_roles,
    link_business_role,
    noun_permissions,
    verb_permission,
)


class TestStandardPermissions:
    """Test standard permission factories."""

    def test_create(self):
        perm = StandardPermissions.create("workspace")
        assert perm.name == "create"
        assert perm.resource_type == "workspace"
        assert perm.actions == ["create"]
        assert perm.inheritable is True

    def test_read(self):
        perm = StandardPermissions.read("document")
        assert perm.actions == ["read", "get", "list", "search", "view"]
        assert perm.inheritable is True

    def test_edit(self):
        perm = StandardPermissions.edit("document")
        assert perm.actions == ["update", "edit", "modify", "patch"]
        assert perm.inheritable is True

    def test_act_defaults_to_wildcard(self):
        perm = StandardPermissions.act("invoice")
        assert perm.actions == ["*"]
        assert perm.description == "Perform actions on invoice"

    def test_act_with_verbs(self):
        perm = StandardPermissions.act("invoice", ["send", "pay"])
        assert perm.actions == ["send", "pay"]
        assert perm.description == "Perform send, pay on invoice"
        assert not perm.allows("delete")

    def test_delete_is_not_inheritable(self):
        perm = StandardPermissions.delete("document")
        assert perm.actions == ["delete", "remove", "destroy"]
        assert perm.inheritable is False

    def test_manage(self):
        perm = StandardPermissions.manage("organization")
        assert perm.actions == ["*"]
        assert perm.inheritable is True
        assert perm.description == "Full management of organization"

    def test_permission_defaults_to_not_inheritable(self):
        perm = Permission(name="custom", resource_type="x", actions=["go"])
        assert perm.inheritable is False

    def test_duplicate_actions_dropped(self):
        perm = Permission(name="p", resource_type="x", actions=["a", "b", "a"])
        assert perm.actions == ["a", "b"]


class TestVerbPermission:
    """Test verb-scoped permissions."""

    def test_single_verb(self):
        perm = verb_permission("invoice", "pay")
        assert perm.name == "invoice.pay"
        assert perm.actions == ["pay"]
        assert perm.resource_type == "invoice"
        assert perm.inheritable is True
        assert perm.description == "Can pay invoice"

    def test_multiple_verbs(self):
        perm = verb_permission("invoice", ["send", "pay", "void"])
        assert perm.name == "invoice.[send,pay,void]"
        assert perm.actions == ["send", "pay", "void"]

    def test_inheritable_option(self):
        assert verb_permission("invoice", "void", inheritable=False).inheritable is False

    def test_custom_description(self):
        perm = verb_permission("invoice", "pay", description="Pay invoices")
        assert perm.description == "Pay invoices"


class TestNounPermissions:
    """Test permissions generated from entity types."""

    def test_standard_permissions(self):
        noun = NounDefinition(
            singular="invoice",
            plural="invoices",
            properties={"amount": NounProperty(type="number")},
        )
        names = [p.name for p in noun_permissions(noun)]
        assert names == ["read", "edit", "delete"]

    def test_custom_verbs(self):
        noun = NounDefinition(
            singular="invoice",
            plural="invoices",
            actions=["send", "pay", "void", "archive"],
        )
        names = {p.name for p in noun_permissions(noun)}
        assert {"invoice.send", "invoice.pay", "invoice.void", "invoice.archive"} <= names

    def test_skips_crud_verbs(self):
        noun = NounDefinition(
            singular="item",
            plural="items",
            actions=[
                "create", "read", "update", "delete", "get", "list", "search",
                "view", "edit", "modify", "patch", "remove", "destroy", "custom",
            ],
        )
        verb_perms = [p for p in noun_permissions(noun) if "." in p.name]
        assert [p.name for p in verb_perms] == ["item.custom"]

    def test_action_records(self):
        noun = NounDefinition(
            singular="document",
            plural="documents",
            actions=[
                NounAction(action="publish", description="Publish the document"),
                {"action": "archive", "description": "Archive the document"},
            ],
        )
        names = {p.name for p in noun_permissions(noun)}
        assert "document.publish" in names
        assert "document.archive" in names


class TestStandardRoles:
    """Test the standard role bundle."""

    def test_all_levels(self):
        roles = create_standard_roles("workspace")
        assert set(roles) == {"owner", "admin", "editor", "viewer", "guest"}
        assert roles["admin"].id == "workspace:admin"
        assert all(r.resource_type == "workspace" for r in roles.values())

    def test_owner(self):
        owner = create_standard_roles("workspace")["owner"]
        names = [p.name for p in owner.permissions]
        assert names == ["manage", "transfer"]
        transfer = owner.permissions[1]
        assert transfer.actions == ["transfer"]
        assert transfer.inheritable is True

    def test_admin(self):
        admin = create_standard_roles("workspace")["admin"]
        assert [p.name for p in admin.permissions] == ["create", "read", "edit", "act", "delete"]

    def test_editor_has_no_delete_permission_but_wildcard_act(self):
        editor = create_standard_roles("document")["editor"]
        assert [p.name for p in editor.permissions] == ["read", "edit", "act"]
        # Wildcard act still covers delete
        assert editor.grants("delete")

    def test_viewer(self):
        viewer = create_standard_roles("document")["viewer"]
        assert [p.name for p in viewer.permissions] == ["read"]
        assert not viewer.grants("update")

    def test_guest(self):
        guest = create_standard_roles("document")["guest"]
        assert len(guest.permissions) == 1
        view = guest.permissions[0]
        assert view.name == "view"
        assert view.actions == ["get"]
        assert view.inheritable is False
        assert guest.grants("get")
        assert not guest.grants("read")


class TestAuthorizeNoun:
    """Test attaching authorization settings to entity types."""

    base = NounDefinition(
        singular="document",
        plural="documents",
        properties={"title": NounProperty(type="string")},
    )

    def test_adds_config(self):
        noun = authorize_noun(self.base, {"parent_type": "project", "local": False, "default_role": "viewer"})
        assert noun.authorization is not None
        assert noun.authorization.parent_type == "project"
        assert noun.authorization.default_role == "viewer"
        assert self.base.authorization is None

    def test_preserves_noun(self):
        noun = authorize_noun(self.base, {"parent_type": "workspace"})
        assert noun.singular == "document"
        assert "title" in noun.properties

    def test_roles_and_permissions(self):
        roles = create_standard_roles("document")
        noun = authorize_noun(self.base, {
            "roles": [roles["viewer"], roles["editor"]],
            "permissions": [verb_permission("document", "publish")],
        })
        assert len(noun.authorization.roles) == 2
        assert len(noun.authorization.permissions) == 1


class TestBusinessRoles:
    """Test linking business roles to authorization roles."""

    def test_links_roles(self):
        role = BusinessRole(id="software-engineer", name="Software Engineer", department="Engineering")
        linked = link_business_role(role, ["repository:editor", "project:viewer"])
        assert linked.authorization_roles == ["repository:editor", "project:viewer"]
        assert role.authorization_roles == []

    def test_appends_to_existing(self):
        role = BusinessRole(id="tech-lead", name="Tech Lead", authorization_roles=["repository:admin"])
        linked = link_business_role(role, ["project:admin"])
        assert linked.authorization_roles == ["repository:admin", "project:admin"]

    def test_preserves_other_fields(self):
        role = BusinessRole(
            id="product-manager",
            name="Product Manager",
            department="Product",
            level=2,
            responsibilities=["roadmap"],
            office="Berlin",
        )
        linked = link_business_role(role, ["project:viewer"])
        assert linked.department == "Product"
        assert linked.responsibilities == ["roadmap"]
        assert linked.office == "Berlin"


class TestHierarchies:
    """Test hierarchy templates."""

    def test_saas(self):
        saas = STANDARD_HIERARCHIES["saas"]
        assert saas.level_names() == ["organization", "workspace", "project", "resource"]
        assert saas.max_depth == 4
        assert saas.get_level("project").parent_type == "workspace"

    def test_devtools(self):
        devtools = get_hierarchy("devtools")
        assert devtools.level_names() == ["organization", "team", "repository"]
        assert devtools.max_depth == 3

    def test_documents(self):
        documents = get_hierarchy("documents")
        assert documents.describe() == "account → folder → document"
        assert documents.depth_of("document") == 2
        assert documents.depth_of("workspace") is None

    def test_allows_parent(self):
        saas = get_hierarchy("saas")
        assert saas.allows_parent("workspace", "organization")
        assert saas.allows_parent("organization", None)
        assert not saas.allows_parent("project", "organization")
        assert not saas.allows_parent("unknown", None)

    def test_max_depth_defaults_to_level_count(self):
        custom = ResourceHierarchy(levels=[HierarchyLevel(name="a"), HierarchyLevel(name="b", parent_type="a")])
        assert custom.max_depth == 2

    def test_unknown_hierarchy(self):
        with pytest.raises(KeyError):
            get_hierarchy("nope")


class TestAuthorizationNouns:
    """Test self-description records."""

    def test_role_noun(self):
        assert ROLE_NOUN.singular == "role"
        assert set(ROLE_NOUN.relationships) == {"permissions", "inherits", "assignments"}
        assert ROLE_NOUN.relationships["assignments"].backref == "role"
        assert "assign" in ROLE_NOUN.action_names()
        assert "unassign" in ROLE_NOUN.action_names()
        assert {"assigned", "unassigned"} <= set(ROLE_NOUN.events)

    def test_assignment_noun(self):
        assert ASSIGNMENT_NOUN.plural == "assignments"
        assert ASSIGNMENT_NOUN.properties["expires_at"].optional is True
        assert ASSIGNMENT_NOUN.relationships["role"].type == "Role"

    def test_permission_noun(self):
        assert PERMISSION_NOUN.properties["actions"].array is True

    def test_collection(self):
        assert AUTHORIZATION_NOUNS == {
            "Role": ROLE_NOUN,
            "Assignment": ASSIGNMENT_NOUN,
            "Permission": PERMISSION_NOUN,
        }

    def test_role_noun_permissions(self):
        names = [p.name for p in noun_permissions(ROLE_NOUN)]
        assert names == ["read", "edit", "delete", "role.assign", "role.unassign"]

    def test_role_model_is_independent_of_noun(self):
        role = Role(id="x:y", name="Y", resource_type="x")
        assert role.inherits == []
