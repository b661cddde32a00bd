"""Claim record and totals data models."""
