"""Database infrastructure: declarative bases, engine and session scope."""
