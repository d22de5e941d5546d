"""Permission catalog entities.

The closed, versioned registry of permission keys, grouped into categories
with human-readable labels. Nothing here mutates; it is safe to read from any
number of concurrent callers.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

# Bump whenever a key is added, removed or moved between categories.
CATALOG_VERSION = 3


class PermissionKey(str, Enum):
    """Every permission key the application knows about."""

    # Pages
    PAGE_HOME_VIEW = "page.home.view"
    PAGE_INVENTORY_VIEW = "page.inventory.view"
    PAGE_SALES_VIEW = "page.sales.view"
    PAGE_SERVICES_VIEW = "page.services.view"
    PAGE_TRANSACTIONS_VIEW = "page.transactions.view"
    PAGE_NEWTRANSACTION_VIEW = "page.newtransaction.view"
    PAGE_RETURNS_VIEW = "page.returns.view"
    PAGE_CUSTOMERS_VIEW = "page.customers.view"
    PAGE_USERS_VIEW = "page.users.view"
    PAGE_SETTINGS_VIEW = "page.settings.view"

    # Inventory
    INVENTORY_ADD = "inventory.add"
    INVENTORY_EDIT = "inventory.edit"
    INVENTORY_DELETE = "inventory.delete"
    INVENTORY_EXPORT = "inventory.export"

    # Services
    SERVICES_ADD = "services.add"
    SERVICES_EDIT = "services.edit"
    SERVICES_DELETE = "services.delete"
    SERVICES_ARCHIVE = "services.archive"
    SERVICES_TOGGLE_STATUS = "services.toggle.status"
    SERVICES_VIEW_ARCHIVED = "services.view.archived"
    SERVICES_EXPORT = "services.export"

    # Transactions
    TRANSACTIONS_CREATE = "transactions.create"
    TRANSACTIONS_DELETE = "transactions.delete"
    TRANSACTIONS_ARCHIVE = "transactions.archive"
    TRANSACTIONS_UNARCHIVE = "transactions.unarchive"
    TRANSACTIONS_VIEW_ARCHIVED = "transactions.view.archived"
    TRANSACTIONS_EXPORT = "transactions.export"

    # Returns & Refunds
    RETURNS_PROCESS = "returns.process"
    RETURNS_ARCHIVE = "returns.archive"
    RETURNS_UNARCHIVE = "returns.unarchive"
    RETURNS_DELETE = "returns.delete"
    RETURNS_VIEW_ARCHIVED = "returns.view.archived"
    RETURNS_EXPORT = "returns.export"

    # Customers
    CUSTOMERS_ADD = "customers.add"
    CUSTOMERS_EDIT = "customers.edit"
    CUSTOMERS_DELETE = "customers.delete"
    CUSTOMERS_ARCHIVE = "customers.archive"
    CUSTOMERS_VIEW_ARCHIVED = "customers.view.archived"

    # Users
    USERS_EDIT_ANY = "users.edit.any"
    USERS_EDIT_SELF = "users.edit.self"
    USERS_DELETE = "users.delete"
    USERS_ARCHIVE = "users.archive"
    USERS_VIEW_ARCHIVED = "users.view.archived"
    USERS_VIEW_DEVELOPER = "users.view.developer"

    # Roles
    ROLES_VIEW = "roles.view"
    ROLES_MANAGE = "roles.manage"

    # System
    DEBUG_TOOLS_ACCESS = "debug.tools.access"


@dataclass(frozen=True)
class PermissionEntry:
    """A single catalog key with its display label."""

    key: PermissionKey
    label: str


@dataclass(frozen=True)
class PermissionCategory:
    """A named, ordered group of permission entries for UI grouping."""

    name: str
    permissions: tuple[PermissionEntry, ...]


def _category(name: str, *entries: tuple[PermissionKey, str]) -> PermissionCategory:
    return PermissionCategory(
        name=name,
        permissions=tuple(PermissionEntry(key=key, label=label) for key, label in entries),
    )


_CATEGORIES: tuple[PermissionCategory, ...] = (
    _category(
        "Pages",
        (PermissionKey.PAGE_HOME_VIEW, "View Home"),
        (PermissionKey.PAGE_INVENTORY_VIEW, "View Inventory"),
        (PermissionKey.PAGE_SALES_VIEW, "View Sales Records"),
        (PermissionKey.PAGE_SERVICES_VIEW, "View Services Offered"),
        (PermissionKey.PAGE_TRANSACTIONS_VIEW, "View Transaction History"),
        (PermissionKey.PAGE_NEWTRANSACTION_VIEW, "View New Transaction"),
        (PermissionKey.PAGE_RETURNS_VIEW, "View Returns & Refunds"),
        (PermissionKey.PAGE_CUSTOMERS_VIEW, "View Customers"),
        (PermissionKey.PAGE_USERS_VIEW, "View User Management"),
        (PermissionKey.PAGE_SETTINGS_VIEW, "View Settings"),
    ),
    _category(
        "Inventory",
        (PermissionKey.INVENTORY_ADD, "Add inventory items"),
        (PermissionKey.INVENTORY_EDIT, "Edit inventory items"),
        (PermissionKey.INVENTORY_DELETE, "Delete inventory items"),
        (PermissionKey.INVENTORY_EXPORT, "Export inventory"),
    ),
    _category(
        "Services",
        (PermissionKey.SERVICES_ADD, "Add services"),
        (PermissionKey.SERVICES_EDIT, "Edit services"),
        (PermissionKey.SERVICES_DELETE, "Delete services"),
        (PermissionKey.SERVICES_ARCHIVE, "Archive services"),
        (PermissionKey.SERVICES_TOGGLE_STATUS, "Enable or disable services"),
        (PermissionKey.SERVICES_VIEW_ARCHIVED, "View archived services"),
        (PermissionKey.SERVICES_EXPORT, "Export services"),
    ),
    _category(
        "Transactions",
        (PermissionKey.TRANSACTIONS_CREATE, "Create transactions"),
        (PermissionKey.TRANSACTIONS_DELETE, "Delete transactions"),
        (PermissionKey.TRANSACTIONS_ARCHIVE, "Archive transactions"),
        (PermissionKey.TRANSACTIONS_UNARCHIVE, "Unarchive transactions"),
        (PermissionKey.TRANSACTIONS_VIEW_ARCHIVED, "View archived transactions"),
        (PermissionKey.TRANSACTIONS_EXPORT, "Export transactions"),
    ),
    _category(
        "Returns & Refunds",
        (PermissionKey.RETURNS_PROCESS, "Process returns"),
        (PermissionKey.RETURNS_ARCHIVE, "Archive returns"),
        (PermissionKey.RETURNS_UNARCHIVE, "Unarchive returns"),
        (PermissionKey.RETURNS_DELETE, "Delete returns"),
        (PermissionKey.RETURNS_VIEW_ARCHIVED, "View archived returns"),
        (PermissionKey.RETURNS_EXPORT, "Export returns"),
    ),
    _category(
        "Customers",
        (PermissionKey.CUSTOMERS_ADD, "Add customers"),
        (PermissionKey.CUSTOMERS_EDIT, "Edit customers"),
        (PermissionKey.CUSTOMERS_DELETE, "Delete customers"),
        (PermissionKey.CUSTOMERS_ARCHIVE, "Archive customers"),
        (PermissionKey.CUSTOMERS_VIEW_ARCHIVED, "View archived customers"),
    ),
    _category(
        "Users",
        (PermissionKey.USERS_EDIT_ANY, "Edit any user"),
        (PermissionKey.USERS_EDIT_SELF, "Edit own profile"),
        (PermissionKey.USERS_DELETE, "Delete users"),
        (PermissionKey.USERS_ARCHIVE, "Archive users"),
        (PermissionKey.USERS_VIEW_ARCHIVED, "View archived users"),
        (PermissionKey.USERS_VIEW_DEVELOPER, "See developer accounts and roles"),
    ),
    _category(
        "Roles",
        (PermissionKey.ROLES_VIEW, "View roles"),
        (PermissionKey.ROLES_MANAGE, "Create, edit and delete roles"),
    ),
    _category(
        "System",
        (PermissionKey.DEBUG_TOOLS_ACCESS, "Access debug tools"),
    ),
)

_LABELS: dict[PermissionKey, str] = {
    entry.key: entry.label for category in _CATEGORIES for entry in category.permissions
}

_CATEGORY_BY_KEY: dict[PermissionKey, str] = {
    entry.key: category.name for category in _CATEGORIES for entry in category.permissions
}

# Grants for the built-in Staff role (basic day-to-day access).
DEFAULT_STAFF_PERMISSIONS: dict[str, bool] = {
    PermissionKey.PAGE_HOME_VIEW.value: True,
    PermissionKey.PAGE_INVENTORY_VIEW.value: True,
    PermissionKey.PAGE_SERVICES_VIEW.value: True,
    PermissionKey.PAGE_TRANSACTIONS_VIEW.value: True,
    PermissionKey.PAGE_NEWTRANSACTION_VIEW.value: True,
    PermissionKey.PAGE_RETURNS_VIEW.value: True,
    PermissionKey.PAGE_CUSTOMERS_VIEW.value: True,
    PermissionKey.INVENTORY_EDIT.value: True,
    PermissionKey.SERVICES_EDIT.value: True,
    PermissionKey.TRANSACTIONS_CREATE.value: True,
    PermissionKey.RETURNS_PROCESS.value: True,
    PermissionKey.CUSTOMERS_ADD.value: True,
    PermissionKey.CUSTOMERS_EDIT.value: True,
    PermissionKey.USERS_EDIT_SELF.value: True,
}


class PermissionCatalog:
    """Read-only access to the permission catalog.

    All methods are classmethods over module-level immutable data; there is
    no instance state.
    """

    version = CATALOG_VERSION

    @classmethod
    def categories(cls) -> tuple[PermissionCategory, ...]:
        """Get the ordered categories with their ordered entries."""
        return _CATEGORIES

    @classmethod
    def all_keys(cls) -> frozenset[PermissionKey]:
        """Get every key in the catalog."""
        return frozenset(_LABELS)

    @classmethod
    def parse(cls, key: Any) -> PermissionKey | None:
        """Resolve a raw key to its catalog member.

        Args:
            key: A PermissionKey or its string value.

        Returns:
            The matching PermissionKey, or None if the key is not cataloged.
        """
        if isinstance(key, PermissionKey):
            return key
        if not isinstance(key, str):
            return None
        try:
            return PermissionKey(key)
        except ValueError:
            return None

    @classmethod
    def label(cls, key: Any) -> str:
        """Get the display label for a key.

        Unknown keys are returned as-is; this never raises.
        """
        parsed = cls.parse(key)
        if parsed is None:
            return str(key)
        return _LABELS[parsed]

    @classmethod
    def category_of(cls, key: Any) -> str | None:
        """Get the category name a key belongs to, or None if unknown."""
        parsed = cls.parse(key)
        if parsed is None:
            return None
        return _CATEGORY_BY_KEY[parsed]

    @classmethod
    def expand(cls, permissions: Mapping[str, Any] | None) -> dict[PermissionKey, bool]:
        """Expand a sparse permission map into a full, fixed-schema map.

        Every catalog key is present. A key is True only when the sparse map
        holds exactly ``True`` for it; uncataloged keys are dropped.

        Args:
            permissions: Sparse map as stored on a role document.

        Returns:
            Map from every PermissionKey to a bool.
        """
        expanded = {key: False for key in PermissionKey}
        if not isinstance(permissions, Mapping):
            return expanded
        for raw_key, value in permissions.items():
            key = cls.parse(raw_key)
            if key is not None and value is True:
                expanded[key] = True
        return expanded
