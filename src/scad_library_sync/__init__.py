"""Workspace synchronisation for remotely published OpenSCAD libraries."""

__version__ = "0.4.0"
