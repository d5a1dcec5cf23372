#!/usr/bin/env python3
"""
Email Template Formatter

Main entry point for the application.

Without arguments the desktop window opens. With arguments the formatter
runs headless:

    python main.py export.html -o email.html --image-base-url https://cdn.example.com/june/
"""

import sys
import os
import argparse
import logging
from pathlib import Path
from typing import List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

APP_NAME = "EmailTemplateFormatter"


def get_log_directory() -> Path:
    """Get the appropriate log directory based on execution context."""
    # For bundled PyInstaller app, use user's documents folder
    if hasattr(sys, '_MEIPASS'):
        if sys.platform == 'win32':
            docs = Path(os.environ.get('USERPROFILE', '')) / 'Documents'
            log_dir = docs / APP_NAME / 'logs'
        else:
            home = Path.home()
            if sys.platform == 'darwin':
                log_dir = home / 'Library' / 'Logs' / APP_NAME
            else:
                log_dir = home / '.local' / 'share' / APP_NAME / 'logs'
    else:
        # Development mode - use project directory
        log_dir = PROJECT_ROOT / "logs"

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except Exception:
        # Fallback to temp directory if we can't create the preferred location
        import tempfile
        log_dir = Path(tempfile.gettempdir()) / APP_NAME / 'logs'
        log_dir.mkdir(parents=True, exist_ok=True)

    return log_dir


def setup_logging(verbose: bool = False, console_stream=None):
    """
    Configure application logging.

    Args:
        verbose: Show DEBUG messages on the console
        console_stream: Console stream (stdout for the GUI, stderr for the CLI
            so the formatted HTML can go to stdout)
    """
    log_dir = get_log_directory()
    log_file = log_dir / "email_formatter.log"

    console = logging.StreamHandler(console_stream or sys.stdout)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)

    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8', delay=True),
            console
        ]
    )

    logging.getLogger(__name__).debug(f"Log file location: {log_file}")

    # Reduce noise from some libraries
    logging.getLogger('bs4').setLevel(logging.WARNING)


def build_arg_parser() -> argparse.ArgumentParser:
    """Command line options for headless formatting."""
    from core import SUPPORTED_WIDTHS

    parser = argparse.ArgumentParser(
        prog="email-formatter",
        description="Rewrite exported HTML into an email-client-safe template.",
    )
    parser.add_argument("input", help="Source HTML file, or - to read from stdin")
    parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Where to write the formatted HTML (stdout when omitted)",
    )
    parser.add_argument(
        "--image-base-url",
        default="",
        help="Absolute URL prefixed to relative image paths",
    )
    parser.add_argument("--preheader", default="", help="Inbox preview text")
    parser.add_argument(
        "--balance-text",
        default="",
        help="Hidden text that balances the image-to-text ratio",
    )
    parser.add_argument("--utm-medium", default="", help="utm_medium added to links")
    parser.add_argument("--utm-campaign", default="", help="utm_campaign added to links")
    parser.add_argument(
        "--responsive",
        action="store_true",
        help="Use width=100%% with a max-width instead of a fixed width",
    )
    parser.add_argument(
        "--width",
        type=int,
        choices=SUPPORTED_WIDTHS,
        default=650,
        help="Container width in pixels",
    )
    parser.add_argument(
        "--wrap-columns",
        action="store_true",
        help="Nest multi-column rows in their own tables",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging on the console",
    )
    return parser


def run_cli(argv: List[str]) -> int:
    """
    Format one file from the command line.

    Returns:
        Exit code: 0 on success, 1 on I/O failure, 2 on invalid input
    """
    args = build_arg_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, console_stream=sys.stderr)
    logger = logging.getLogger(__name__)

    from core import EmailFormatter, InvalidInputError, TransformConfig
    from utils.file_utils import read_html_file, write_html_file

    try:
        config = TransformConfig(
            image_base_url=args.image_base_url,
            preheader_text=args.preheader,
            balance_text=args.balance_text,
            utm_medium=args.utm_medium,
            utm_campaign=args.utm_campaign,
            responsive=args.responsive,
            target_width=args.width,
            wrap_columns=args.wrap_columns,
        )
    except InvalidInputError as e:
        logger.error(f"Invalid settings: {e}")
        return 2

    try:
        if args.input == '-':
            source = sys.stdin.read()
        else:
            source = read_html_file(args.input)
    except OSError as e:
        logger.error(f"Could not read {args.input}: {e}")
        return 1

    try:
        result = EmailFormatter(config).format(source)
    except InvalidInputError as e:
        logger.error(f"Invalid input: {e}")
        return 2

    for warning in result.warnings:
        logger.warning(warning)
    if result.report:
        logger.info(result.report.summary())

    if args.output:
        try:
            write_html_file(args.output, result.html)
        except OSError as e:
            logger.error(f"Could not write {args.output}: {e}")
            return 1
    else:
        sys.stdout.write(result.html)
        sys.stdout.flush()

    return 0


def run_gui() -> int:
    """Open the desktop window."""
    setup_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting Email Template Formatter")

    try:
        import tkinter as tk
        from gui.main_window import MainWindow

        root = tk.Tk()
        MainWindow(root)
        root.mainloop()

    except ImportError as e:
        logger.error(f"Import error: {e}")
        print(f"\nError: Missing required module: {e}")
        print("Please install dependencies with: pip install -e .")
        return 1

    except Exception as e:
        logger.exception(f"Application error: {e}")
        raise

    logger.info("Email Template Formatter closed")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        return run_gui()
    return run_cli(argv)


if __name__ == "__main__":
    sys.exit(main())
