"""
Handling of non-text responses.

Images are piped to an external viewer; anything else can be saved to a
file chosen by the user. Binary content never enters history.
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape

from .protocol import BinaryPage


DEFAULT_IMAGE_VIEWER = "feh -"


class BinaryHandler:
    """Consumes binary pages as soon as they arrive."""

    def __init__(self, console: Optional[Console] = None, viewer: str = DEFAULT_IMAGE_VIEWER,
                 ask: Optional[Callable[..., str]] = None):
        self.console = console or Console(highlight=False)
        self.viewer = viewer
        self.ask = ask or self.console.input
        self.logger = logging.getLogger(__name__)

    def handle(self, page: BinaryPage) -> None:
        if page.media_type.type == "image":
            self.show_image(page.data)
        else:
            self.offer_download(page)

    def show_image(self, data: bytes) -> None:
        """Stream `data` to the image viewer through its standard input."""
        command = shlex.split(self.viewer)
        self.logger.info(f"Opening {len(data)} bytes with {command[0]}")
        try:
            subprocess.run(command, input=data, check=False)
        except FileNotFoundError:
            self.console.print(f"[red]Image viewer not found: {escape(command[0])}[/red]")

    def offer_download(self, page: BinaryPage) -> None:
        media_type = f"{page.media_type.type}/{page.media_type.subtype}"
        self.console.print(f"[yellow]Unsupported media type: {media_type}[/yellow]")
        destination = self.ask("Save to (leave empty to discard): ").strip()
        if not destination:
            self.logger.debug(f"Discarded {len(page.data)} bytes of {media_type}")
            return

        path = Path(destination).expanduser()
        try:
            path.write_bytes(page.data)
        except OSError as e:
            self.logger.error(f"Could not save {media_type} to {path}: {e}")
            self.console.print(f"[red]Could not save to {escape(str(path))}: {escape(str(e))}[/red]")
            return
        self.console.print(f"Saved {len(page.data)} bytes to {escape(str(path))}")
