"""EpochDB Builder: reconciles Last Epoch reference data into an ID-keyed database.

Three sources are merged by the build pipeline:
- XML loot-filter templates (authoritative IDs, often unnamed)
- Scraped HTML/JSON documents (names and details, no stable IDs)
- Manual override and correction files

Main Components:
- DatabaseBuilder: Runs the full build pipeline behind the incremental gate
- ConfigManager: Configuration management
- BuildContext: Mutable state threaded through the pipeline stages
"""

__version__ = "1.0.0"
__author__ = "EpochDB Team"


class EpochDbError(Exception):
    """Base exception for all database builder errors."""


class ConfigurationError(EpochDbError):
    """Raised when configuration cannot be loaded or is invalid."""


class TemplateError(EpochDbError):
    """Raised when the authoritative template data is missing or unreadable."""


__all__ = [
    "EpochDbError",
    "ConfigurationError",
    "TemplateError",
    "__version__",
    "__author__",
]
