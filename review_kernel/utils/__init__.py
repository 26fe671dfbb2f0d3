"""Shared deterministic helpers."""
