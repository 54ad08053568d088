"""Pipeline orchestration for album imports and the showcase collection."""
