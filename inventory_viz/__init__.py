"""
Top-level package for the inventory timeline visualizer.

This package exposes the orchestration core, the backend services and the UI adapters.
Most code should import from submodules such as:
    inventory_viz.core
    inventory_viz.services
    inventory_viz.views
    inventory_viz.ui
"""

__all__: list[str] = []
