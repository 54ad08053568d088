"""Manifest reconciliation engine: record building, merging and indexing."""
