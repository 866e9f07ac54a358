"""Shared utilities for omero-tiles."""
