"""Chat backend services."""
