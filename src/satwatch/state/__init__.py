"""State/store layer.

This package is the single source of truth for how normalized inbound
events and operator actions are merged into per-asset state.
"""
