"""User entity as seen by the role engine.

Users are owned by the identity collaborator. The role engine only reads the
assigned role ids (and the legacy singular role used before multi-role
assignment existed).
"""

from dataclasses import dataclass, field


@dataclass
class User:
    """Identity of the user an authorization decision is made for.

    Attributes:
        id: Identifier issued by the identity collaborator.
        role_ids: Ordered role ids assigned to the user. User management keeps
            this at or under the configured roles-per-user cap.
        role: Legacy single role id, consulted only when role_ids is empty.
    """

    id: str
    role_ids: list[str] = field(default_factory=list)
    role: str | None = None
