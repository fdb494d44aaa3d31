# src/analyzer/__init__.py — v1
"""Remote image analyzer clients, scoring and retry."""
