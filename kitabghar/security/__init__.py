"""Operator audit trail."""
