"""Resource hierarchy templates.

Named, ordered parent-to-child chains of resource types. They document and
validate expected nesting; the engine always walks the live ``parent`` links
on stored resources and does not require a template to match.
"""

from pydantic import BaseModel, Field, model_validator


class HierarchyLevel(BaseModel):
    """One level in a resource hierarchy."""

    name: str = Field(description="Resource type at this level")
    description: str = ""
    parent_type: str | None = Field(default=None, description="Resource type of the level above")


class ResourceHierarchy(BaseModel):
    """An ordered list of levels, root first."""

    levels: list[HierarchyLevel] = Field(default_factory=list)
    max_depth: int = Field(default=0, description="Number of levels")

    @model_validator(mode="after")
    def _default_max_depth(self) -> "ResourceHierarchy":
        if not self.max_depth:
            self.max_depth = len(self.levels)
        return self

    def level_names(self) -> list[str]:
        return [level.name for level in self.levels]

    def get_level(self, name: str) -> HierarchyLevel | None:
        for level in self.levels:
            if level.name == name:
                return level
        return None

    def depth_of(self, resource_type: str) -> int | None:
        """Zero-based depth of a resource type, or None if not in the hierarchy."""
        for depth, level in enumerate(self.levels):
            if level.name == resource_type:
                return depth
        return None

    def allows_parent(self, child_type: str, parent_type: str | None) -> bool:
        """Check if ``child_type`` may be nested directly under ``parent_type``.

        A ``None`` parent is allowed only for root levels.
        """
        level = self.get_level(child_type)
        if level is None:
            return False
        return level.parent_type == parent_type

    def describe(self) -> str:
        return " → ".join(self.level_names())


STANDARD_HIERARCHIES: dict[str, ResourceHierarchy] = {
    # Organization -> Workspace -> Project -> Resource
    "saas": ResourceHierarchy(
        levels=[
            HierarchyLevel(name="organization", description="Top-level organization"),
            HierarchyLevel(name="workspace", description="Workspace within org", parent_type="organization"),
            HierarchyLevel(name="project", description="Project within workspace", parent_type="workspace"),
            HierarchyLevel(name="resource", description="Resource within project", parent_type="project"),
        ],
        max_depth=4,
    ),
    # Organization -> Team -> Repository
    "devtools": ResourceHierarchy(
        levels=[
            HierarchyLevel(name="organization", description="Top-level organization"),
            HierarchyLevel(name="team", description="Team within org", parent_type="organization"),
            HierarchyLevel(name="repository", description="Repository owned by team", parent_type="team"),
        ],
        max_depth=3,
    ),
    # Account -> Folder -> Document
    "documents": ResourceHierarchy(
        levels=[
            HierarchyLevel(name="account", description="User account"),
            HierarchyLevel(name="folder", description="Folder in account", parent_type="account"),
            HierarchyLevel(name="document", description="Document in folder", parent_type="folder"),
        ],
        max_depth=3,
    ),
}


def get_hierarchy(name: str) -> ResourceHierarchy:
    """Get a standard hierarchy by name. Raises KeyError if unknown."""
    try:
        return STANDARD_HIERARCHIES[name]
    except KeyError:
        raise KeyError(
            f"Unknown hierarchy: {name!r}. Available: {sorted(STANDARD_HIERARCHIES)}"
        ) from None
