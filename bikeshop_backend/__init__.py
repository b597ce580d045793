"""Bike Shop ERP backend: stock alerting and stock movement services."""

__version__ = "1.0.0"
