"""Merging web records and manual data into the template dataset."""

from .override_manager import OverrideManager
from .reconciliation_engine import ReconciliationEngine

__all__ = ["OverrideManager", "ReconciliationEngine"]
