"""Database engine, sessions and schema creation."""
