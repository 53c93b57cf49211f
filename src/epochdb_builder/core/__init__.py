"""Configuration, data model and build context shared by every stage."""
