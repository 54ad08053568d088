"""Utility helpers shared across gallerysync."""
