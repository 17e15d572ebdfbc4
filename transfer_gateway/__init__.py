"""Transfer gateway: billing-platform payment plugin for a transfer-based processor."""

__version__ = "0.1.0"
