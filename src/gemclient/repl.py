"""
Interactive command loop for the Gemini terminal client.

Every command runs under a supervisor: an unexpected error dumps the page
on screen to a recovery file, reports the error and returns to the prompt.
Only `quit` or end of input stops the loop.
"""

import logging
import os
import shlex
import subprocess
import sys
from typing import Callable, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import storage
from .client import GeminiClient
from .config import ClientConfig
from .exceptions import NavigationError
from .media import BinaryHandler
from .renderer import GemtextRenderer
from .session import Session
from ..utils.logging import configure_debug_logging, setup_logger


PROMPT = "gemini> "

HELP_ROWS = [
    ("go URL, g URL", "Open a URL (relative URLs resolve against the current page)"),
    ("N", "Follow link number N"),
    ("r, raw", "Toggle raw/pretty display of the current page"),
    ("b, back", "Go back"),
    ("f, forward", "Go forward"),
    ("save PATH", "Save the current page (without its status line)"),
    ("load PATH", "Open a local gemtext file"),
    ("top", "Scroll to the top (tmux only)"),
    ("url", "Print the current URL"),
    ("bm", "Show bookmarks"),
    ("bm add [LABEL]", "Bookmark the current page"),
    ("bm edit", "Edit the bookmarks file"),
    ("q, quit", "Quit"),
    ("help, ?", "Show this help"),
]


class Browser:
    """
    Reads commands and dispatches them to the session.

    Input that matches no command is treated as a link number.
    """

    def __init__(self, config: ClientConfig, console: Optional[Console] = None,
                 session: Optional[Session] = None, ask: Optional[Callable[..., str]] = None):
        self.config = config
        self.console = console or Console(highlight=False)
        self.ask = ask or self.console.input
        self.session = session or self._create_session()
        self.running = True
        self.logger = logging.getLogger(__name__)
        self.commands: Dict[str, Callable[[str], None]] = {
            "go": self.do_go,
            "g": self.do_go,
            "r": self.do_raw,
            "raw": self.do_raw,
            "b": self.do_back,
            "back": self.do_back,
            "f": self.do_forward,
            "forward": self.do_forward,
            "save": self.do_save,
            "load": self.do_load,
            "top": self.do_top,
            "url": self.do_url,
            "bm": self.do_bookmarks,
            "q": self.do_quit,
            "quit": self.do_quit,
            "help": self.do_help,
            "?": self.do_help,
        }

    def _create_session(self) -> Session:
        client = GeminiClient(timeout=self.config.timeout)
        renderer = GemtextRenderer(self.console, width=self.config.width, ask=self.ask)
        binary_handler = BinaryHandler(self.console, viewer=self.config.image_viewer, ask=self.ask)
        return Session(client, renderer, binary_handler, console=self.console,
                       history_file=self.config.history_file)

    def execute(self, line: str) -> None:
        """Run one command line."""
        line = line.strip()
        if not line:
            return

        name, _, argument = line.partition(" ")
        handler = self.commands.get(name.lower())
        if handler is None:
            self.session.follow_link(line)
        else:
            handler(argument.strip())

    def run(self) -> None:
        """Command loop. Returns on `quit` or end of input."""
        if self.config.start_url:
            self._supervised(lambda: self.execute(f"go {self.config.start_url}"))

        while self.running:
            if not self._supervised(lambda: self.execute(self.ask(PROMPT))):
                break

    def _supervised(self, step: Callable[[], None]) -> bool:
        """Run `step`; returns False once input is exhausted."""
        try:
            step()
        except EOFError:
            self.console.print()
            return False
        except Exception as e:
            self.recover(e)
        return True

    def recover(self, error: Exception) -> None:
        """Dump the current page and report `error`."""
        self.logger.debug("Unhandled error while running a command", exc_info=error)
        page = self.session.current_page
        lines: List[str] = page.text.lines if page else []
        try:
            path = storage.write_page(self.config.recovery_file, lines)
            self.console.print(f"[red]Internal error: state may be inconsistent. "
                               f"Current page dumped to {escape(str(path))}[/red]")
        except OSError as write_error:
            self.logger.error(f"Could not write recovery file {self.config.recovery_file}: {write_error}")
            self.console.print("[red]Internal error: state may be inconsistent.[/red]")
        self.console.print(f"[red]{escape(type(error).__name__)}: {escape(str(error))}[/red]")

    def do_go(self, argument: str) -> None:
        if not argument:
            self.console.print("Usage: go URL")
            return
        self.session.navigate(argument)

    def do_raw(self, argument: str) -> None:
        if self.session.current_page is None:
            self.console.print("No page loaded")
            return
        self.session.toggle_raw()

    def do_back(self, argument: str) -> None:
        if not self.session.back():
            self.console.print("[dim]No earlier page[/dim]")

    def do_forward(self, argument: str) -> None:
        if not self.session.go_forward():
            self.console.print("[dim]No later page[/dim]")

    def do_save(self, argument: str) -> None:
        if not argument:
            self.console.print("Usage: save PATH")
            return
        try:
            path = self.session.save(argument)
        except NavigationError as e:
            self.console.print(f"[red]{escape(str(e))}[/red]")
            return
        self.console.print(f"Saved to {escape(str(path))}")

    def do_load(self, argument: str) -> None:
        if not argument:
            self.console.print("Usage: load PATH")
            return
        try:
            self.session.load_file(argument)
        except (OSError, UnicodeDecodeError) as e:
            self.console.print(f"[red]Cannot open {escape(argument)}: {escape(str(e))}[/red]")

    def do_top(self, argument: str) -> None:
        if "TMUX" not in os.environ:
            self.console.print("Scrolling to the top needs tmux")
            return
        subprocess.run(["tmux", "copy-mode"], check=False)
        subprocess.run(["tmux", "send-keys", "-X", "history-top"], check=False)

    def do_url(self, argument: str) -> None:
        resource = self.session.current_resource
        self.console.print(resource.url if resource else "No page loaded", markup=False)

    def do_bookmarks(self, argument: str) -> None:
        subcommand, _, label = argument.partition(" ")
        path = storage.init_bookmarks(self.config.bookmarks_file)

        if not subcommand:
            self.session.load_file(path)
        elif subcommand == "add":
            resource = self.session.current_resource
            if resource is None:
                self.console.print("No page to bookmark")
                return
            storage.append_link(path, resource.url, label.strip() or None)
            self.console.print(f"Bookmarked {escape(resource.url)}")
        elif subcommand == "edit":
            subprocess.run(shlex.split(self.config.editor) + [str(path)], check=False)
        else:
            self.console.print("Usage: bm [add [LABEL] | edit]")

    def do_quit(self, argument: str) -> None:
        self.running = False

    def do_help(self, argument: str) -> None:
        table = Table(title="Commands", show_header=True, header_style="bold magenta")
        table.add_column("Command", style="cyan")
        table.add_column("Action", style="white")
        for command, action in HELP_ROWS:
            table.add_row(command, action)
        self.console.print(table)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the Gemini client."""
    config = ClientConfig.from_args(argv)

    setup_logger()
    if config.verbose:
        configure_debug_logging()

    try:
        Browser(config).run()
        return 0
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 1


if __name__ == "__main__":
    sys.exit(main())
