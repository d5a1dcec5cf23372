"""
Settings Dialog Module

Settings dialog for the Email Template Formatter.
"""

import tkinter as tk
from tkinter import ttk
from typing import Dict, Any, Optional

from core import SUPPORTED_WIDTHS

DEFAULT_SETTINGS: Dict[str, Any] = {
    'target_width': 650,
    'wrap_columns': False,
    'auto_preview': False,
    'require_image_base_url': True,
}


class SettingsDialog:
    """Formatter settings dialog."""

    def __init__(self, parent: tk.Tk, current_settings: Dict[str, Any]):
        """
        Initialize settings dialog.

        Args:
            parent: Parent window
            current_settings: Current settings dictionary
        """
        self.result: Optional[Dict[str, Any]] = None
        self.current = current_settings.copy()

        self.dialog = tk.Toplevel(parent)
        self.dialog.title("Settings")
        self.dialog.geometry("440x300")
        self.dialog.resizable(False, False)
        self.dialog.transient(parent)
        self.dialog.grab_set()

        self._create_widgets()
        self._load_current_settings()
        self._center_on_parent(parent)

        # Wait for dialog to close
        self.dialog.wait_window()

    def _create_widgets(self):
        """Create dialog widgets."""
        notebook = ttk.Notebook(self.dialog)
        notebook.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        # === Layout Tab ===
        layout_frame = ttk.Frame(notebook, padding=15)
        notebook.add(layout_frame, text="Layout")

        width_frame = ttk.Frame(layout_frame)
        width_frame.pack(anchor=tk.W, pady=5)

        ttk.Label(width_frame, text="Container Width:").pack(side=tk.LEFT)

        self.width_var = tk.StringVar(value="650")
        ttk.Combobox(
            width_frame,
            textvariable=self.width_var,
            values=[str(width) for width in SUPPORTED_WIDTHS],
            state="readonly",
            width=8
        ).pack(side=tk.LEFT, padx=10)
        ttk.Label(width_frame, text="px", foreground="gray").pack(side=tk.LEFT)

        ttk.Separator(layout_frame, orient=tk.HORIZONTAL).pack(fill=tk.X, pady=15)

        self.wrap_columns_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(
            layout_frame,
            text="Nest multi-column rows in their own tables",
            variable=self.wrap_columns_var
        ).pack(anchor=tk.W, pady=5)

        ttk.Label(
            layout_frame,
            text="(rows with a colspan are never wrapped)",
            foreground="gray",
            font=('Helvetica', 9)
        ).pack(anchor=tk.W, padx=20)

        # === Output Tab ===
        output_frame = ttk.Frame(notebook, padding=15)
        notebook.add(output_frame, text="Output")

        self.auto_preview_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(
            output_frame,
            text="Open a browser preview after formatting",
            variable=self.auto_preview_var
        ).pack(anchor=tk.W, pady=5)

        self.require_base_url_var = tk.BooleanVar(value=True)
        ttk.Checkbutton(
            output_frame,
            text="Require an image base URL before formatting",
            variable=self.require_base_url_var
        ).pack(anchor=tk.W, pady=5)

        # === Buttons ===
        button_frame = ttk.Frame(self.dialog)
        button_frame.pack(fill=tk.X, padx=10, pady=10)

        ttk.Button(
            button_frame,
            text="Reset to Defaults",
            command=self._reset_defaults
        ).pack(side=tk.LEFT)

        ttk.Button(
            button_frame,
            text="Cancel",
            command=self._cancel
        ).pack(side=tk.RIGHT, padx=5)

        ttk.Button(
            button_frame,
            text="Save",
            command=self._save
        ).pack(side=tk.RIGHT)

    def _apply(self, settings: Dict[str, Any]):
        self.width_var.set(str(settings.get('target_width', 650)))
        self.wrap_columns_var.set(settings.get('wrap_columns', False))
        self.auto_preview_var.set(settings.get('auto_preview', False))
        self.require_base_url_var.set(settings.get('require_image_base_url', True))

    def _load_current_settings(self):
        """Load current settings into UI."""
        self._apply(self.current)

    def _center_on_parent(self, parent: tk.Tk):
        """Center dialog on parent window."""
        self.dialog.update_idletasks()

        x = parent.winfo_rootx() + (parent.winfo_width() - self.dialog.winfo_width()) // 2
        y = parent.winfo_rooty() + (parent.winfo_height() - self.dialog.winfo_height()) // 2

        self.dialog.geometry(f"+{x}+{y}")

    def _reset_defaults(self):
        """Reset all settings to defaults."""
        self._apply(DEFAULT_SETTINGS)

    def _save(self):
        """Save settings and close dialog."""
        self.result = {
            'target_width': int(self.width_var.get()),
            'wrap_columns': self.wrap_columns_var.get(),
            'auto_preview': self.auto_preview_var.get(),
            'require_image_base_url': self.require_base_url_var.get(),
        }
        self.dialog.destroy()

    def _cancel(self):
        """Cancel and close dialog without saving."""
        self.result = None
        self.dialog.destroy()
