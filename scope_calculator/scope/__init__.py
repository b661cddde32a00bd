"""Scope aggregation, payment schedule and review updates."""
