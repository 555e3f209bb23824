"""Alerting history rollups."""
