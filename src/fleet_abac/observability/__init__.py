"""Observability – logging, correlation and audit emission."""
