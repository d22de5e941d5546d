"""Partial update applied to a role by administrators."""

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class RolePatch:
    """Fields an administrator may change on an existing role.

    Fields left as None are not touched. There is no way to
    express a change to the flags, the position or the id.

    Attributes:
        name: New display name.
        color: New hex display color.
        permissions: Replacement permission map.
    """

    name: str | None = None
    color: str | None = None
    permissions: Mapping[str, bool] | None = None

    def is_empty(self) -> bool:
        """Check whether the patch changes nothing."""
        return self.name is None and self.color is None and self.permissions is None
