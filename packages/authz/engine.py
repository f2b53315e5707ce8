"""Authorization engine.

Resource-scoped RBAC: subjects are assigned roles on resources, and a grant
on a resource flows down to its descendants for inheritable permissions.
"""

import asyncio
import logging
import time
from datetime import datetime, UTC
from typing import Any

from packages.authz.config import AuthzSettings
from packages.authz.hierarchy import ResourceHierarchy, get_hierarchy
from packages.authz.identifiers import (
    Resource,
    ResourceRef,
    Subject,
    parse_resource,
    resource_matches,
    subject_matches,
    to_resource_ref,
    to_subject,
)
from packages.authz.models import (
    AssignInput,
    Assignment,
    AssignmentFilter,
    BatchCheckRequest,
    BatchCheckResult,
    CheckRequest,
    CheckResult,
    Permission,
    Role,
)
from packages.authz.permissions import create_standard_roles
from packages.authz.storage import AuthzStore, InMemoryStore

logger = logging.getLogger(__name__)

DENY_REASON = "No matching assignment"


class AuthzEngine:
    """Hierarchy-aware authorization engine.

    Evaluation for ``check(subject, action, resource)``:
    1. Walk from the resource up through its registered ancestors
    2. At each step, collect the subject's assignments on that resource
    3. Resolve each assignment's role, including inherited roles
    4. On the resource itself every permission applies; on an ancestor
       only inheritable permissions do
    5. Allow on the first permission whose actions match, else deny

    Usage:
        engine = AuthzEngine()
        await engine.register_role(create_standard_roles("workspace")["admin"])
        await engine.create_resource(Resource(type="workspace", id="ws-1"))
        await engine.assign(subject="user:alice", role="workspace:admin", resource="workspace:ws-1")

        result = await engine.check("user:alice", "read", "workspace:ws-1")
        if result.allowed:
            # Proceed
        else:
            # Reject with result.reason
    """

    def __init__(
        self,
        hierarchy: ResourceHierarchy | None = None,
        roles: list[Role] | None = None,
        settings: AuthzSettings | None = None,
        resource_store: AuthzStore[Resource] | None = None,
        assignment_store: AuthzStore[Assignment] | None = None,
        role_store: AuthzStore[Role] | None = None,
    ):
        """Initialize authorization engine.

        Args:
            hierarchy: Hierarchy template (defaults to settings.default_hierarchy)
            roles: Roles to register up front
            settings: Engine settings (loaded from environment if omitted)
            resource_store: Backend for resources, keyed by ``type:id``
            assignment_store: Backend for assignments, keyed by id
            role_store: Backend for roles, keyed by role id
        """
        self.settings = settings or AuthzSettings()
        self.hierarchy = hierarchy or get_hierarchy(self.settings.default_hierarchy)
        self.resources: AuthzStore[Resource] = (
            resource_store if resource_store is not None else InMemoryStore("resources")
        )
        self.assignments: AuthzStore[Assignment] = (
            assignment_store if assignment_store is not None else InMemoryStore("assignments")
        )
        self.roles: AuthzStore[Role] = (
            role_store if role_store is not None else InMemoryStore("roles")
        )

        # Written to the role store before the first role operation
        self._pending_roles: list[Role] = list(roles or [])
        self._seed_lock = asyncio.Lock()
        for resource_type in self.settings.standard_role_types:
            self._pending_roles.extend(create_standard_roles(resource_type).values())

        logger.info(
            "AuthzEngine initialized with %d roles, hierarchy: %s",
            len(self._pending_roles),
            self.hierarchy.describe(),
        )

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def create_resource(self, resource: Resource | ResourceRef | str | dict[str, Any]) -> Resource:
        """Register a resource, overwriting any existing one with the same key."""
        resource = _to_resource(resource)
        await self.resources.set(resource.key, resource)
        logger.debug(
            "Registered resource: %s (parent=%s)",
            resource.key,
            resource.parent.key if resource.parent else None,
        )
        return resource

    async def get_resource(self, ref: ResourceRef | str) -> Resource | None:
        return await self.resources.get(to_resource_ref(ref).key)

    async def delete_resource(self, ref: ResourceRef | str) -> bool:
        """Remove a resource. Assignments on it are left in place."""
        key = to_resource_ref(ref).key
        removed = await self.resources.delete(key)
        if removed:
            logger.debug("Deleted resource: %s", key)
        return removed

    async def list_resources(
        self,
        resource_type: str,
        parent: ResourceRef | str | None = None,
    ) -> list[Resource]:
        """List resources of a type, optionally only the children of ``parent``."""
        parent_ref = to_resource_ref(parent) if parent is not None else None

        def keep(resource: Resource) -> bool:
            if resource.type != resource_type:
                return False
            if parent_ref is None:
                return True
            return resource.parent is not None and resource_matches(resource.parent, parent_ref)

        return await self.resources.list(keep)

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    async def assign(
        self,
        request: AssignInput | dict[str, Any] | None = None,
        *,
        subject: Subject | str | None = None,
        role: str | None = None,
        resource: ResourceRef | str | None = None,
        expires_at: datetime | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Assignment:
        """Grant a role to a subject on a resource.

        The role id is not checked against the registry; an unknown role
        simply grants nothing at check time.
        """
        if request is None:
            request = AssignInput(
                subject=subject,
                role=role,
                resource=resource,
                expires_at=expires_at,
                metadata=metadata or {},
            )
        elif isinstance(request, dict):
            request = AssignInput.model_validate(request)

        assignment = Assignment(
            subject=to_subject(request.subject),
            role=request.role,
            resource=to_resource_ref(request.resource),
            expires_at=request.expires_at,
            metadata=request.metadata,
        )
        await self.assignments.set(assignment.id, assignment)
        logger.debug(
            "Assigned role %s to %s on %s (id=%s)",
            assignment.role,
            assignment.subject.key,
            assignment.resource.key,
            assignment.id,
        )
        return assignment

    async def get_assignment(self, assignment_id: str) -> Assignment | None:
        return await self.assignments.get(assignment_id)

    async def unassign(self, assignment_id: str) -> bool:
        """Remove an assignment."""
        removed = await self.assignments.delete(assignment_id)
        if removed:
            logger.debug("Removed assignment: %s", assignment_id)
        return removed

    async def list_assignments(
        self,
        filter: AssignmentFilter | dict[str, Any] | None = None,
        *,
        subject: Subject | str | None = None,
        role: str | None = None,
        resource: ResourceRef | str | None = None,
    ) -> list[Assignment]:
        """List assignments matching every given field."""
        if filter is None:
            filter = AssignmentFilter(subject=subject, role=role, resource=resource)
        elif isinstance(filter, dict):
            filter = AssignmentFilter.model_validate(filter)

        subject_ref = to_subject(filter.subject) if filter.subject is not None else None
        resource_ref = to_resource_ref(filter.resource) if filter.resource is not None else None

        def keep(assignment: Assignment) -> bool:
            if subject_ref is not None and not subject_matches(assignment.subject, subject_ref):
                return False
            if filter.role is not None and assignment.role != filter.role:
                return False
            if resource_ref is not None and not resource_matches(assignment.resource, resource_ref):
                return False
            return True

        return await self.assignments.list(keep)

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    async def register_role(self, role: Role) -> None:
        """Add or update a role."""
        await self._flush_pending_roles()
        await self.roles.set(role.id, role)
        logger.debug("Registered role: %s", role.id)

    async def get_role(self, role_id: str) -> Role | None:
        await self._flush_pending_roles()
        return await self.roles.get(role_id)

    async def unregister_role(self, role_id: str) -> bool:
        """Remove a role. Assignments using it stop granting anything."""
        await self._flush_pending_roles()
        removed = await self.roles.delete(role_id)
        if removed:
            logger.debug("Removed role: %s", role_id)
        return removed

    async def effective_permissions(self, role_id: str) -> list[Permission]:
        """Get a role's own and inherited permissions.

        Inherited roles are expanded depth-first in ``inherits`` order. Each
        role is expanded at most once, so an inheritance cycle stops at the
        role that closes it and keeps what was collected so far. Unknown
        role ids contribute nothing.
        """
        permissions: list[Permission] = []
        visited: set[str] = set()

        async def expand(current_id: str, path: tuple[str, ...]) -> None:
            if current_id in visited:
                if current_id in path:
                    logger.warning(
                        "Role inheritance cycle: %s",
                        " -> ".join((*path, current_id)),
                    )
                return
            visited.add(current_id)

            role = await self.get_role(current_id)
            if role is None:
                return
            permissions.extend(role.permissions)
            for parent_id in role.inherits:
                await expand(parent_id, (*path, current_id))

        await expand(role_id, ())
        return permissions

    async def _flush_pending_roles(self) -> None:
        """Write queued constructor roles to the role store.

        A role leaves the queue only after its write completes, so an empty
        queue means every queued role is readable. Callers that find the
        queue non-empty wait on the lock until the flush is done.
        """
        if not self._pending_roles:
            return
        async with self._seed_lock:
            while self._pending_roles:
                role = self._pending_roles[0]
                await self.roles.set(role.id, role)
                self._pending_roles.pop(0)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def check(
        self,
        subject: Subject | str | CheckRequest,
        action: str | None = None,
        resource: ResourceRef | str | None = None,
    ) -> CheckResult:
        """Check if a subject may perform an action on a resource.

        Args:
            subject: Subject, ``type:id`` string, or a whole CheckRequest
            action: Action to check (e.g. "read", "invoice.pay")
            resource: Target resource or ``type:id`` string

        Returns:
            CheckResult with decision, granting assignment and latency
        """
        start = time.perf_counter()
        if isinstance(subject, CheckRequest):
            subject, action, resource = subject.subject, subject.action, subject.resource

        subject_ref = to_subject(subject)
        target = to_resource_ref(resource)

        candidates = await self._active_assignments(
            lambda a: subject_matches(a.subject, subject_ref)
        )

        if candidates:
            chain = await self._resource_chain(target)
            resolved: dict[str, tuple[Role | None, list[Permission]]] = {}

            for depth, node in enumerate(chain):
                for assignment in candidates:
                    if not resource_matches(assignment.resource, node):
                        continue

                    if assignment.role not in resolved:
                        resolved[assignment.role] = (
                            await self.get_role(assignment.role),
                            await self.effective_permissions(assignment.role),
                        )
                    role, permissions = resolved[assignment.role]
                    if role is None:
                        continue

                    for permission in permissions:
                        # Grants on ancestors only flow down when inheritable
                        if depth > 0 and not permission.inheritable:
                            continue
                        if permission.allows(action):
                            logger.debug(
                                "Access ALLOWED by role %s on %s: subject=%s action=%s resource=%s",
                                role.id, node.key, subject_ref.key, action, target.key,
                            )
                            return CheckResult(
                                allowed=True,
                                reason=f"Granted by role '{role.name}' on {node.key}",
                                assignment=assignment,
                                matched_role=role.id,
                                latency_ms=_elapsed_ms(start),
                            )

        logger.info(
            "Access DENIED: subject=%s action=%s resource=%s",
            subject_ref.key, action, target.key,
        )
        return CheckResult(
            allowed=False,
            reason=DENY_REASON,
            latency_ms=_elapsed_ms(start),
        )

    async def batch_check(
        self,
        request: BatchCheckRequest | list[CheckRequest | dict[str, Any]] | dict[str, Any],
    ) -> BatchCheckResult:
        """Run several checks. Results keep the order of the input checks."""
        start = time.perf_counter()
        if isinstance(request, list):
            request = BatchCheckRequest(checks=request)
        elif isinstance(request, dict):
            request = BatchCheckRequest.model_validate(request)

        results = await asyncio.gather(*(self.check(c) for c in request.checks))
        return BatchCheckResult(results=list(results), latency_ms=_elapsed_ms(start))

    async def check_any(
        self,
        subject: Subject | str,
        actions: list[str],
        resource: ResourceRef | str,
    ) -> CheckResult:
        """Check if a subject may perform any of the actions."""
        start = time.perf_counter()
        for action in actions:
            result = await self.check(subject, action, resource)
            if result.allowed:
                return result.model_copy(update={"latency_ms": _elapsed_ms(start)})

        return CheckResult(
            allowed=False,
            reason=f"None of the requested actions granted: {actions}",
            latency_ms=_elapsed_ms(start),
        )

    async def check_all(
        self,
        subject: Subject | str,
        actions: list[str],
        resource: ResourceRef | str,
    ) -> CheckResult:
        """Check if a subject may perform every one of the actions.

        An empty action list is denied.
        """
        start = time.perf_counter()
        if not actions:
            return CheckResult(
                allowed=False,
                reason="No actions requested",
                latency_ms=_elapsed_ms(start),
            )

        for action in actions:
            result = await self.check(subject, action, resource)
            if not result.allowed:
                return result.model_copy(update={"latency_ms": _elapsed_ms(start)})

        return CheckResult(
            allowed=True,
            reason="All requested actions granted",
            latency_ms=_elapsed_ms(start),
        )

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def list_subjects_with_access(
        self,
        resource: ResourceRef | str,
        action: str | None = None,
    ) -> list[Subject]:
        """List subjects holding a direct assignment on a resource.

        Assignments on ancestors are not considered. With ``action``, only
        subjects whose role covers the action are returned.
        """
        target = to_resource_ref(resource)
        assignments = await self._active_assignments(
            lambda a: resource_matches(a.resource, target)
        )

        subjects: list[Subject] = []
        seen: set[Subject] = set()
        for assignment in assignments:
            if assignment.subject in seen:
                continue
            if action is not None and not await self._role_allows(assignment.role, action):
                continue
            seen.add(assignment.subject)
            subjects.append(assignment.subject)

        return subjects

    async def list_resources_for_subject(
        self,
        subject: Subject | str,
        resource_type: str,
        action: str | None = None,
    ) -> list[ResourceRef]:
        """List resources of a type the subject holds a direct assignment on.

        Access inherited from ancestors is not included. Registered resources
        are returned as stored; unregistered ones as bare references.
        """
        subject_ref = to_subject(subject)
        assignments = await self._active_assignments(
            lambda a: subject_matches(a.subject, subject_ref) and a.resource.type == resource_type
        )

        resources: list[ResourceRef] = []
        seen: set[str] = set()
        for assignment in assignments:
            key = assignment.resource.key
            if key in seen:
                continue
            if action is not None and not await self._role_allows(assignment.role, action):
                continue
            seen.add(key)
            stored = await self.resources.get(key)
            resources.append(stored or assignment.resource)

        return resources

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _active_assignments(self, predicate) -> list[Assignment]:
        """Assignments matching ``predicate``, skipping expired ones if enforced."""
        if not self.settings.enforce_expiry:
            return await self.assignments.list(predicate)

        now = datetime.now(UTC)
        return await self.assignments.list(
            lambda a: predicate(a) and not a.is_expired(now)
        )

    async def _resource_chain(self, target: ResourceRef) -> list[ResourceRef]:
        """The target followed by its registered ancestors, nearest first.

        The walk stops at the first unregistered ancestor or at the first
        key already visited.
        """
        chain = [target]
        visited = {target.key}

        current = await self.resources.get(target.key)
        while current is not None and current.parent is not None:
            parent_key = current.parent.key
            if parent_key in visited:
                logger.warning(
                    "Resource parent cycle detected at %s while resolving %s",
                    parent_key, target.key,
                )
                break

            parent = await self.resources.get(parent_key)
            if parent is None:
                break
            visited.add(parent_key)
            chain.append(parent.ref())
            current = parent

        return chain

    async def _role_allows(self, role_id: str, action: str) -> bool:
        permissions = await self.effective_permissions(role_id)
        return any(p.allows(action) for p in permissions)


def _to_resource(value: Resource | ResourceRef | str | dict[str, Any]) -> Resource:
    if isinstance(value, Resource):
        return value
    if isinstance(value, ResourceRef):
        return Resource(type=value.type, id=value.id)
    if isinstance(value, str):
        ref = parse_resource(value)
        return Resource(type=ref.type, id=ref.id)
    return Resource.model_validate(value)


def _elapsed_ms(start: float) -> float:
    return max(0.0, (time.perf_counter() - start) * 1000)


# Singleton instance
_authz_engine: AuthzEngine | None = None


def get_authz_engine() -> AuthzEngine:
    """Get the authorization engine singleton."""
    global _authz_engine
    if _authz_engine is None:
        _authz_engine = AuthzEngine()
    return _authz_engine


def reset_authz_engine() -> None:
    """Drop the singleton so the next call builds a fresh engine."""
    global _authz_engine
    _authz_engine = None
