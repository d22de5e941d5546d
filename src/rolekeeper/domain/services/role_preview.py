"""Role preview service.

Lets an administrator look at the application "as" another role. While a
preview is active, authorization uses the previewed role alone instead of the
user's own roles. A preview is only honoured while it stays legitimate; the
rules live in ``validate_preview``.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass

from rolekeeper.core.logging import get_logger
from rolekeeper.domain.entities import (
    PROTECTED_ROLE_ID,
    PermissionKey,
    Role,
    RoleSnapshot,
    User,
)
from rolekeeper.domain.services.role_resolver import can, get_effective_role_ids

logger = get_logger(__name__)


@dataclass(frozen=True)
class RolePreview:
    """Preview state for one user session.

    Attributes:
        enabled: Whether the preview currently applies.
        preview_role_id: Role being previewed; kept while paused.
    """

    enabled: bool = False
    preview_role_id: str | None = None

    def start(self, role_id: str) -> "RolePreview":
        return RolePreview(enabled=True, preview_role_id=role_id)

    def stop(self) -> "RolePreview":
        return RolePreview(enabled=False, preview_role_id=self.preview_role_id)

    def clear(self) -> "RolePreview":
        return RolePreview()

    @property
    def active(self) -> bool:
        return self.enabled and bool(self.preview_role_id)


def _as_snapshot(roles: RoleSnapshot | Iterable[Role]) -> RoleSnapshot:
    if isinstance(roles, RoleSnapshot):
        return roles
    return RoleSnapshot.from_roles(roles)


def role_rank(role_id: str, snapshot: RoleSnapshot, protected_role_id: str = PROTECTED_ROLE_ID) -> float:
    """Get the position a role id ranks at.

    The protected role always ranks at 0. Unknown ids rank at infinity.
    """
    if role_id == protected_role_id:
        return 0
    role = snapshot.find(role_id)
    if role is None or isinstance(role.position, bool) or not isinstance(role.position, int):
        return math.inf
    return role.position


def top_position(
    actual_role_ids: Iterable[str],
    roles: RoleSnapshot | Iterable[Role],
    protected_role_id: str = PROTECTED_ROLE_ID,
) -> float:
    """Get the highest-authority (lowest) position among a user's roles."""
    snapshot = _as_snapshot(roles)
    return min(
        (role_rank(role_id, snapshot, protected_role_id) for role_id in actual_role_ids),
        default=math.inf,
    )


def allowed_preview_roles(
    actual_role_ids: Iterable[str],
    roles: RoleSnapshot | Iterable[Role],
    protected_role_id: str = PROTECTED_ROLE_ID,
) -> list[Role]:
    """List the roles a user may preview: those not outranking the user."""
    snapshot = _as_snapshot(roles)
    my_top = top_position(list(actual_role_ids), snapshot, protected_role_id)
    return [
        role
        for role in snapshot
        if role_rank(role.id, snapshot, protected_role_id) >= my_top
    ]


def validate_preview(
    preview: RolePreview,
    actual_role_ids: list[str],
    roles: RoleSnapshot | Iterable[Role],
    protected_role_id: str = PROTECTED_ROLE_ID,
) -> RolePreview:
    """Check a preview against the user's real roles.

    Returns the preview unchanged when it is still legitimate, otherwise a
    cleared (or, if merely paused, untouched) preview. A preview is dropped
    when:

    - it targets the protected role and the user doesn't actually hold it;
    - the user lacks ``roles.view``;
    - the previewed role no longer exists;
    - the previewed role outranks the user's own top role.
    """
    if preview.preview_role_id == protected_role_id and protected_role_id not in actual_role_ids:
        logger.info("Role preview cleared: protected role not held", preview_role_id=preview.preview_role_id)
        return preview.clear()

    if not preview.enabled:
        return preview

    if not preview.preview_role_id:
        return preview.stop()

    snapshot = _as_snapshot(roles)

    if not can(actual_role_ids, PermissionKey.ROLES_VIEW, snapshot, protected_role_id):
        logger.info("Role preview cleared: missing roles.view", preview_role_id=preview.preview_role_id)
        return preview.clear()

    if preview.preview_role_id != protected_role_id and preview.preview_role_id not in snapshot:
        logger.info("Role preview cleared: role no longer exists", preview_role_id=preview.preview_role_id)
        return preview.clear()

    preview_rank = role_rank(preview.preview_role_id, snapshot, protected_role_id)
    if preview_rank < top_position(actual_role_ids, snapshot, protected_role_id):
        logger.info("Role preview cleared: role outranks user", preview_role_id=preview.preview_role_id)
        return preview.clear()

    return preview


def effective_role_ids_with_preview(
    user: User | None,
    preview: RolePreview,
    roles: RoleSnapshot | Iterable[Role],
    protected_role_id: str = PROTECTED_ROLE_ID,
) -> list[str]:
    """Get the role ids to authorize with, honouring a legitimate preview."""
    actual_role_ids = get_effective_role_ids(user)
    checked = validate_preview(preview, actual_role_ids, roles, protected_role_id)
    if checked.active:
        return [checked.preview_role_id]
    return actual_role_ids
