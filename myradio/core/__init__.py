"""Configuration, database, cache and error types shared by every feature."""
