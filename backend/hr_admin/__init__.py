"""HR Admin API: multi-tenant HR administration backend."""

__version__ = "1.0.0"
