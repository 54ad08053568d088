"""Filesystem-facing collaborators: discovery, metadata and variant encoding."""
