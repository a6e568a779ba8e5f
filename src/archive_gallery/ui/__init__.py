"""UI layer - PySide6 presentation components."""

from .history_panel import HistoryPanel
from .main_window import MainWindow

__all__ = ["MainWindow", "HistoryPanel"]
