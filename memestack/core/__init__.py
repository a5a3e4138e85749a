"""Core infrastructure: configuration, database, errors, logging and middleware."""
