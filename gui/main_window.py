"""
Main Window Module

Main application window for the Email Template Formatter.

Paste or open exported HTML, fill in the campaign fields and press
Format. The result can be copied to the clipboard, previewed in the
system browser or saved to a file.
"""

import os
import logging
import tempfile
import webbrowser
from pathlib import Path
import tkinter as tk
from tkinter import ttk, filedialog, messagebox
from typing import List, Optional

from core import (
    EmailFormatter,
    FormatProgress,
    FormatResult,
    InvalidInputError,
    TransformConfig,
)
from utils.file_utils import (
    default_output_name,
    read_html_file,
    suggest_output_path,
    write_html_file,
)
from .settings_dialog import DEFAULT_SETTINGS, SettingsDialog

logger = logging.getLogger(__name__)

HTML_FILETYPES = [("HTML Files", "*.html *.htm"), ("All Files", "*.*")]


class MainWindow:
    """Main application window."""

    def __init__(self, root: tk.Tk):
        """
        Initialize the main window.

        Args:
            root: Tkinter root window
        """
        self.root = root
        self.root.title("Email Template Formatter")
        self.root.geometry("900x700")
        self.root.minsize(750, 550)

        # State
        self.source_path: Optional[Path] = None
        self.last_result: Optional[FormatResult] = None
        self.preview_files: List[Path] = []

        # Settings (defaults)
        self.settings = dict(DEFAULT_SETTINGS)

        # Setup UI
        self._setup_styles()
        self._create_widgets()
        self._bind_events()

        # Center window
        self._center_window()

    def _setup_styles(self):
        """Setup ttk styles."""
        style = ttk.Style()

        available_themes = style.theme_names()
        if 'aqua' in available_themes:  # macOS
            style.theme_use('aqua')
        elif 'vista' in available_themes:  # Windows
            style.theme_use('vista')
        elif 'clam' in available_themes:
            style.theme_use('clam')

        style.configure('Title.TLabel', font=('Helvetica', 16, 'bold'))
        style.configure('Status.TLabel', font=('Helvetica', 10))
        style.configure('Big.TButton', font=('Helvetica', 12), padding=8)

    def _create_widgets(self):
        """Create all UI widgets."""
        self.main_frame = ttk.Frame(self.root, padding="10")
        self.main_frame.grid(row=0, column=0, sticky="nsew")

        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)
        self.main_frame.columnconfigure(0, weight=1)
        self.main_frame.rowconfigure(2, weight=1)

        self._create_menu_bar()

        ttk.Label(
            self.main_frame,
            text="Email Template Formatter",
            style='Title.TLabel'
        ).grid(row=0, column=0, sticky="w", pady=(0, 10))

        self._create_form()
        self._create_code_views()
        self._create_buttons()

        # Status bar
        self.status_label = ttk.Label(
            self.main_frame,
            text="Ready. Paste or open exported HTML to begin.",
            style='Status.TLabel'
        )
        self.status_label.grid(row=4, column=0, sticky="ew", pady=(5, 0))

    def _create_form(self):
        """Create the campaign fields."""
        form = ttk.LabelFrame(self.main_frame, text="Template", padding=10)
        form.grid(row=1, column=0, sticky="ew")
        form.columnconfigure(1, weight=1)
        form.columnconfigure(3, weight=1)

        self.base_url_entry = self._add_field(form, "Image Base URL:", 0, 0, columnspan=3)
        self.preheader_entry = self._add_field(form, "Preheader:", 1, 0, columnspan=3)
        self.balance_entry = self._add_field(form, "Balance Text:", 2, 0, columnspan=3)
        self.utm_medium_entry = self._add_field(form, "UTM Medium:", 3, 0)
        self.utm_campaign_entry = self._add_field(form, "UTM Campaign:", 3, 2)

        self.responsive_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(
            form,
            text="Responsive (100% width with max-width)",
            variable=self.responsive_var
        ).grid(row=4, column=0, columnspan=3, sticky="w", pady=(5, 0))

        ttk.Button(
            form,
            text="Settings...",
            command=self._show_settings
        ).grid(row=4, column=3, sticky="e", pady=(5, 0))

    def _add_field(self, parent, label: str, row: int, column: int, columnspan: int = 1) -> ttk.Entry:
        ttk.Label(parent, text=label).grid(row=row, column=column, sticky="w", pady=3)
        entry = ttk.Entry(parent)
        entry.grid(row=row, column=column + 1, columnspan=columnspan, sticky="ew", padx=5, pady=3)
        return entry

    def _create_code_views(self):
        """Create the source and output text areas."""
        self.notebook = ttk.Notebook(self.main_frame)
        self.notebook.grid(row=2, column=0, sticky="nsew", pady=10)

        source_tab = ttk.Frame(self.notebook, padding=5)
        self.notebook.add(source_tab, text="Source HTML")
        self.source_text = self._create_text_area(source_tab)

        output_tab = ttk.Frame(self.notebook, padding=5)
        self.notebook.add(output_tab, text="Formatted HTML")
        self.output_text = self._create_text_area(output_tab)
        self.output_text.config(state=tk.DISABLED)

    def _create_text_area(self, parent) -> tk.Text:
        parent.columnconfigure(0, weight=1)
        parent.rowconfigure(0, weight=1)

        text = tk.Text(parent, wrap=tk.NONE, font=('Courier', 10), undo=True)
        text.grid(row=0, column=0, sticky="nsew")

        y_scroll = ttk.Scrollbar(parent, orient=tk.VERTICAL, command=text.yview)
        y_scroll.grid(row=0, column=1, sticky="ns")
        x_scroll = ttk.Scrollbar(parent, orient=tk.HORIZONTAL, command=text.xview)
        x_scroll.grid(row=1, column=0, sticky="ew")
        text.config(yscrollcommand=y_scroll.set, xscrollcommand=x_scroll.set)
        return text

    def _create_buttons(self):
        """Create the action buttons."""
        button_frame = ttk.Frame(self.main_frame)
        button_frame.grid(row=3, column=0, sticky="ew")

        self.format_btn = ttk.Button(
            button_frame,
            text="Format",
            style='Big.TButton',
            command=self._format
        )
        self.format_btn.pack(side=tk.LEFT, padx=(0, 10))

        self.copy_btn = ttk.Button(
            button_frame,
            text="Copy HTML",
            command=self._copy_output,
            state=tk.DISABLED
        )
        self.copy_btn.pack(side=tk.LEFT, padx=5)

        self.preview_btn = ttk.Button(
            button_frame,
            text="Open Preview",
            command=self._open_preview,
            state=tk.DISABLED
        )
        self.preview_btn.pack(side=tk.LEFT, padx=5)

        self.save_btn = ttk.Button(
            button_frame,
            text="Save As...",
            command=self._save_output,
            state=tk.DISABLED
        )
        self.save_btn.pack(side=tk.LEFT, padx=5)

        ttk.Button(
            button_frame,
            text="Clear",
            command=self._clear
        ).pack(side=tk.RIGHT)

    def _create_menu_bar(self):
        """Create the application menu bar."""
        menubar = tk.Menu(self.root)
        self.root.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="File", menu=file_menu)
        file_menu.add_command(label="Open HTML...", command=self._open_source)
        file_menu.add_command(label="Save Formatted As...", command=self._save_output)
        file_menu.add_separator()
        file_menu.add_command(label="Settings...", command=self._show_settings)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self._on_close)

        help_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="Help", menu=help_menu)
        help_menu.add_command(label="About", command=self._show_about)

    def _show_about(self):
        """Show about dialog."""
        messagebox.showinfo(
            "About Email Template Formatter",
            "Email Template Formatter v1.0.0\n\n"
            "Turns exported slice HTML into email-client-safe templates."
        )

    def _bind_events(self):
        """Bind event handlers."""
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)
        self.root.bind('<Control-Return>', lambda e: self._format())

    def _center_window(self):
        """Center the window on screen."""
        self.root.update_idletasks()
        width = self.root.winfo_width()
        height = self.root.winfo_height()
        x = (self.root.winfo_screenwidth() // 2) - (width // 2)
        y = (self.root.winfo_screenheight() // 2) - (height // 2)
        self.root.geometry(f'{width}x{height}+{x}+{y}')

    def _show_settings(self):
        """Show settings dialog."""
        dialog = SettingsDialog(self.root, self.settings)
        if dialog.result:
            self.settings.update(dialog.result)
            self._update_status("Settings updated")

    def _update_status(self, message: str):
        """Update status label."""
        self.status_label.config(text=message)
        self.root.update_idletasks()

    def _set_output(self, html: str):
        self.output_text.config(state=tk.NORMAL)
        self.output_text.delete('1.0', tk.END)
        self.output_text.insert('1.0', html)
        self.output_text.config(state=tk.DISABLED)

        state = tk.NORMAL if html else tk.DISABLED
        for button in (self.copy_btn, self.preview_btn, self.save_btn):
            button.config(state=state)

    def _build_config(self) -> TransformConfig:
        """Collect the form and settings into a TransformConfig."""
        values = dict(self.settings)
        values.update({
            'image_base_url': self.base_url_entry.get(),
            'preheader_text': self.preheader_entry.get(),
            'balance_text': self.balance_entry.get(),
            'utm_medium': self.utm_medium_entry.get(),
            'utm_campaign': self.utm_campaign_entry.get(),
            'responsive': self.responsive_var.get(),
        })
        return TransformConfig.from_settings(values)

    def _on_progress(self, progress: FormatProgress):
        """Progress callback from the formatter."""
        self.status_label.config(text=f"{progress.message} ({progress.percentage:.0f}%)")

    def _format(self):
        """Run the formatter on the source text."""
        source = self.source_text.get('1.0', 'end-1c')

        if self.settings.get('require_image_base_url', True) and not self.base_url_entry.get().strip():
            messagebox.showerror("Missing Image Base URL", "Please enter the image base URL.")
            self.base_url_entry.focus_set()
            return

        try:
            config = self._build_config()
            result = EmailFormatter(config, progress_callback=self._on_progress).format(source)
        except InvalidInputError as e:
            self._update_status(f"Nothing formatted: {e}")
            return

        self.last_result = result
        self._set_output(result.html)
        self.notebook.select(1)

        message = f"Formatted in {result.duration_seconds:.2f}s"
        if result.report:
            message += f" - {result.report.summary()}"
        if result.warnings:
            message += f" - {len(result.warnings)} warning(s): {result.warnings[0]}"
            for warning in result.warnings:
                logger.warning(warning)
        self._update_status(message)

        if self.settings.get('auto_preview'):
            self._open_preview()

    def _formatted_html(self) -> str:
        return self.output_text.get('1.0', 'end-1c')

    def _copy_output(self):
        """Copy the formatted HTML to the clipboard."""
        html = self._formatted_html()
        if not html:
            return
        self.root.clipboard_clear()
        self.root.clipboard_append(html)
        self._update_status("Formatted HTML copied to clipboard")

    def _open_preview(self):
        """Open the formatted HTML in the system browser."""
        html = self._formatted_html()
        if not html:
            return

        try:
            handle, name = tempfile.mkstemp(prefix="email_preview_", suffix=".html")
            with os.fdopen(handle, 'w', encoding='utf-8') as f:
                f.write(html)
            path = Path(name)
            self.preview_files.append(path)
            webbrowser.open(path.as_uri())
            self._update_status(f"Preview opened: {path.name}")
        except Exception as e:
            logger.warning(f"Could not open preview: {e}")
            self._update_status(f"Could not open preview: {e}")

    def _open_source(self):
        """Load source HTML from a file."""
        filepath = filedialog.askopenfilename(
            title="Open Exported HTML",
            filetypes=HTML_FILETYPES
        )
        if not filepath:
            return

        try:
            html = read_html_file(filepath)
        except OSError as e:
            messagebox.showerror("Error", f"Could not open file:\n{e}")
            return

        self.source_path = Path(filepath)
        self.source_text.delete('1.0', tk.END)
        self.source_text.insert('1.0', html)
        self.notebook.select(0)
        self._update_status(f"Loaded {self.source_path.name} ({len(html)} chars)")

    def _save_output(self):
        """Save the formatted HTML to a file."""
        html = self._formatted_html()
        if not html:
            self._update_status("Nothing to save yet - press Format first")
            return

        campaign = self.utm_campaign_entry.get()
        if self.source_path:
            suggested = suggest_output_path(self.source_path.parent, campaign)
            initialdir, initialfile = str(suggested.parent), suggested.name
        else:
            initialdir, initialfile = None, default_output_name(campaign)

        filepath = filedialog.asksaveasfilename(
            title="Save Formatted HTML",
            defaultextension=".html",
            filetypes=HTML_FILETYPES,
            initialdir=initialdir,
            initialfile=initialfile
        )
        if not filepath:
            return

        try:
            saved = write_html_file(filepath, html)
        except OSError as e:
            messagebox.showerror("Error", f"Could not save file:\n{e}")
            return
        self._update_status(f"Saved to {saved}")

    def _clear(self):
        """Clear source and output."""
        self.source_text.delete('1.0', tk.END)
        self._set_output("")
        self.last_result = None
        self.source_path = None
        self._update_status("Cleared")

    def _cleanup_previews(self):
        """Remove temporary preview files."""
        for path in self.preview_files:
            try:
                path.unlink()
            except OSError as e:
                logger.debug(f"Could not remove preview {path}: {e}")
        self.preview_files.clear()

    def _on_close(self):
        """Handle window close."""
        self._cleanup_previews()
        self.root.destroy()
