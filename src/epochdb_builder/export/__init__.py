"""Database files and lookup indexes."""
