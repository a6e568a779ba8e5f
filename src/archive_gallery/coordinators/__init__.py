"""Coordinators - Orchestration layer connecting UI with session logic."""

from .history_coordinator import HistoryCoordinator
from .session_controller import SessionController

__all__ = [
    "SessionController",
    "HistoryCoordinator",
]
