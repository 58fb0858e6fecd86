"""Infrastructure layer: external storage."""
