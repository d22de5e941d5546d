"""Unit tests for SlugGenerator."""

import pytest

from rolekeeper.domain.services import SlugGenerator


class TestGenerate:
    """Test role id generation."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Manager", "manager"),
            ("Store Manager", "store-manager"),
            ("  Night   Shift ", "night-shift"),
            ("Front\tDesk\nLead", "front-desk-lead"),
            ("Returns & Refunds", "returns-&-refunds"),
            ("already-slugged", "already-slugged"),
        ],
    )
    def test_generate(self, name, expected):
        """Names are lowercased and whitespace runs become one hyphen."""
        assert SlugGenerator.generate(name) == expected

    def test_same_id_for_differently_spaced_names(self):
        """Names differing only in case and spacing collide."""
        assert SlugGenerator.generate("Store Manager") == SlugGenerator.generate("store   MANAGER")

    def test_blank_name(self):
        """A blank name slugifies to the empty string."""
        assert SlugGenerator.generate("   ") == ""


class TestIsBlank:
    """Test blank name detection."""

    @pytest.mark.parametrize("name", [None, "", "   ", "\t\n"])
    def test_blank(self, name):
        assert SlugGenerator.is_blank(name) is True

    def test_not_blank(self):
        assert SlugGenerator.is_blank(" x ") is False
