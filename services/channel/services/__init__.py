"""Channel service business logic and persistence."""
