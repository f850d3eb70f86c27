"""Database connection helpers and schema migrations."""
