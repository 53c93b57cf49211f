"""Logging and file output helpers."""
