"""Action pattern matching.

A permission lists the actions it grants. Entries are literal actions
(``"pay"``), the wildcard ``"*"``, or prefix patterns (``"invoice.*"``).
"""

from typing import Iterable

WILDCARD = "*"


def matches_permission(action: str, actions: Iterable[str]) -> bool:
    """Check if an action is covered by a list of allowed actions.

    Examples:
        matches_permission("pay", ["*"])                    # True
        matches_permission("pay", ["send", "pay"])          # True
        matches_permission("invoice.pay", ["invoice.*"])    # True
        matches_permission("pay", ["invoice.*"])            # False
        matches_permission("rea", ["read"])                 # False
    """
    for pattern in actions:
        if pattern == WILDCARD or pattern == action:
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            if action.startswith(prefix + "."):
                return True
    return False
