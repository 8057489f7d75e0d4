"""
Client configuration.

Settings come from command line options, with a few environment
variables providing defaults for external programs.
"""

import argparse
import os
from pathlib import Path
from typing import List, Optional

from .media import DEFAULT_IMAGE_VIEWER
from .renderer import DEFAULT_WIDTH


class ClientConfig:
    """Settings for one run of the interactive client."""

    def __init__(
        self,
        width: int = DEFAULT_WIDTH,
        timeout: Optional[float] = None,
        image_viewer: Optional[str] = None,
        editor: Optional[str] = None,
        bookmarks_file: str = "bookmarks.gmi",
        history_file: str = "history.gmi",
        recovery_file: str = "gemclient-crash.gmi",
        start_url: Optional[str] = None,
        verbose: bool = False,
    ):
        self.width = width
        # None keeps sockets fully blocking
        self.timeout = timeout
        self.image_viewer = image_viewer or os.environ.get("GEMCLIENT_IMAGE_VIEWER", DEFAULT_IMAGE_VIEWER)
        self.editor = editor or os.environ.get("EDITOR", "vi")
        self.bookmarks_file = Path(bookmarks_file).expanduser()
        self.history_file = Path(history_file).expanduser()
        self.recovery_file = Path(recovery_file)
        self.start_url = start_url
        self.verbose = verbose

    @classmethod
    def from_args(cls, argv: Optional[List[str]] = None) -> "ClientConfig":
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.width < 1:
            parser.error(f"--width must be positive, got {args.width}")
        return cls(
            width=args.width,
            timeout=args.timeout,
            image_viewer=args.viewer,
            bookmarks_file=args.bookmarks,
            history_file=args.history,
            start_url=args.url,
            verbose=args.verbose,
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Terminal client for the Gemini protocol")
    parser.add_argument("url", nargs="?", help="URL to open on startup")
    parser.add_argument("--width", type=int, default=DEFAULT_WIDTH, help="Column at which body text wraps")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Network timeout in seconds (default: wait forever)")
    parser.add_argument("--bookmarks", default="bookmarks.gmi", help="Bookmarks file")
    parser.add_argument("--history", default="history.gmi", help="History file")
    parser.add_argument("--viewer", default=None, help="Image viewer command reading from stdin")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return parser
