"""CLI module for omero-tiles.

Provides the command-line interface for inspecting tile decompositions
and fetching pixel regions.
"""

from __future__ import annotations

from omero_tiles.cli.main import app

__all__ = ["app"]
