"""rolekeeper - role-based access control for back-office tools.

Roles carry sparse permission maps over a fixed catalog; users may hold
several roles and are granted the union of their permissions.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
