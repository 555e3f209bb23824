"""Audit-trail filtering."""
