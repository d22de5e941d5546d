"""Slug generator service.

Derives the stable id of a role from the name it is created with.
"""

import re

# Runs of whitespace collapse into a single hyphen.
WHITESPACE_PATTERN = re.compile(r"\s+")


class SlugGenerator:
    """Generate role ids from display names.

    Slug rules:
    - Lowercase
    - Leading/trailing whitespace removed
    - Any run of inner whitespace becomes one hyphen
    - Every other character is kept as typed
    """

    @classmethod
    def generate(cls, name: str) -> str:
        """Generate a slug from a role name.

        Args:
            name: The role display name.

        Returns:
            The role id. Empty when the name is blank.

        Examples:
            >>> SlugGenerator.generate("Store Manager")
            'store-manager'
            >>> SlugGenerator.generate("  Night   Shift ")
            'night-shift'
        """
        return WHITESPACE_PATTERN.sub("-", name.strip().lower())

    @classmethod
    def is_blank(cls, name: str | None) -> bool:
        """Check whether a name is missing or whitespace only."""
        return name is None or not name.strip()
