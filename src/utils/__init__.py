"""URL helpers and persisted settings."""
