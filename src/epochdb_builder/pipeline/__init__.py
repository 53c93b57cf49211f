"""Build orchestration and the incremental gate."""

from .build_gate import BuildGate
from .database_builder import BuildResult, DatabaseBuilder

__all__ = ["BuildGate", "BuildResult", "DatabaseBuilder"]
