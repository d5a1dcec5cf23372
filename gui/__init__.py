"""
GUI Package
"""

from .main_window import MainWindow
from .settings_dialog import SettingsDialog

__all__ = ['MainWindow', 'SettingsDialog']
