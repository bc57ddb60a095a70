"""Cross-destination social publishing core."""
