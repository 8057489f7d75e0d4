"""
Gemtext renderer.

Turns a text page into colorized terminal output. Each render pass owns a
fresh RenderContext holding the link table and the preformatted flag, so
link numbers always restart at 1 on a new pass.
"""

import logging
import urllib.parse
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from rich.console import Console
from rich.text import Text

from .exceptions import InvariantViolation
from .protocol import SCHEME, MediaType, StatusClass, TextPage, status_meta


FENCE_MARKER = "```"
LINK_MARKER = "=>"
HEADING_MARKER = "#"
DEFAULT_WIDTH = 80

HEADING_STYLES = {
    1: "bold magenta",
    2: "bold cyan",
    3: "cyan",
}
LINK_SYNTAX_STYLE = "blue"
LINK_ID_STYLE = "bold yellow"
LINK_LABEL_STYLE = "underline"
FOREIGN_LINK_STYLE = "dim"
PROMPT_STYLE = "bold yellow"


class LineKind(Enum):
    FENCE = "fence"
    PREFORMATTED = "preformatted"
    LINK = "link"
    HEADING = "heading"
    BODY = "body"


def classify_line(line: str, in_pre_block: bool) -> LineKind:
    """Classify one gemtext line. The fence check wins even inside a block."""
    if line.startswith(FENCE_MARKER):
        return LineKind.FENCE
    if in_pre_block:
        return LineKind.PREFORMATTED
    if line.startswith(LINK_MARKER) and line[len(LINK_MARKER):].split():
        return LineKind.LINK
    if line.startswith(HEADING_MARKER):
        return LineKind.HEADING
    return LineKind.BODY


def heading_level(line: str) -> int:
    """Number of leading heading markers, capped at the deepest level."""
    count = len(line) - len(line.lstrip(HEADING_MARKER))
    return min(count, max(HEADING_STYLES))


def wrap_words(text: str, width: int) -> List[str]:
    """
    Greedy whitespace wrapping.

    A word that does not fit in the remaining width starts a new line; a
    word that exactly fills it closes the line. A word longer than `width`
    is kept whole on its own line. A blank input yields one empty line.
    """
    lines: List[str] = []
    current = ""
    remaining = width
    for word in text.split():
        if len(word) > remaining and current:
            lines.append(current.rstrip(" "))
            current, remaining = "", width
        if len(word) >= remaining:
            current += word
            remaining = 0
        else:
            current += word + " "
            remaining -= len(word) + 1
    if current or not lines:
        lines.append(current.rstrip(" "))
    return lines


def redirect_notice(status_line: str) -> List[str]:
    """Gemtext shown in place of a redirect response."""
    tokens = status_line.split()
    destination = tokens[1] if len(tokens) > 1 else ""
    return [
        "# Redirect",
        "",
        "The server moved this resource. Follow the link below to continue.",
        "",
        f"{LINK_MARKER} {destination}",
    ]


class RenderContext:
    """State of a single render pass."""

    def __init__(self):
        self.links: Dict[int, str] = {}
        self.pre_block = False

    def register_link(self, target: str) -> int:
        link_id = len(self.links) + 1
        self.links[link_id] = target
        return link_id


class GemtextRenderer:
    """
    Renders text pages to a rich Console.

    `ask` is used to read a line from the user when the server requests
    input; it receives the prompt and a `password` flag.
    """

    def __init__(self, console: Optional[Console] = None, width: int = DEFAULT_WIDTH,
                 ask: Optional[Callable[..., str]] = None):
        self.console = console or Console(highlight=False)
        self.width = width
        self.ask = ask or self.console.input
        self.context = RenderContext()
        self.logger = logging.getLogger(__name__)

    @property
    def links(self) -> Dict[int, str]:
        """Link table of the most recent render pass."""
        return self.context.links

    def reset(self) -> None:
        """Clear the viewport and start a fresh render context."""
        self.console.clear()
        self.context = RenderContext()

    def render(self, page: TextPage, raw_mode: bool = False,
               requery: Optional[Callable[[str], None]] = None) -> None:
        """
        Render `page`.

        Args:
            page: The text page, status line included
            raw_mode: Print every line verbatim without interpretation
            requery: Called with the user's answer when the page is an
                input request; it is responsible for fetching and showing
                the follow-up page

        Raises:
            InvariantViolation: If a success page carries a non-text type
        """
        self.reset()

        if raw_mode:
            self._print_lines(page.lines)
            self.console.print()
            return

        status_class = page.status_class
        self.logger.debug(f"Rendering {status_class.name} page with {len(page.lines)} lines")

        if status_class is StatusClass.INPUT:
            self._request_input(page, requery)
            return

        if status_class is StatusClass.SUCCESS:
            media_type = MediaType.parse(status_meta(page.status_line))
            if media_type.is_gemtext:
                self._render_gemtext(page.body)
            elif media_type.is_text:
                self._print_lines(page.body)
            else:
                raise InvariantViolation(
                    f"{media_type.type}/{media_type.subtype} content reached the text renderer"
                )
        elif status_class is StatusClass.REDIRECT:
            self._render_gemtext(redirect_notice(page.status_line))
        else:
            self._print_lines(page.lines)

        self.console.print()

    def _request_input(self, page: TextPage, requery: Optional[Callable[[str], None]]) -> None:
        prompt = status_meta(page.status_line)
        sensitive = page.status_line.startswith("11")

        self.console.print(Text(prompt or "Input requested", style=PROMPT_STYLE), soft_wrap=True)
        self.console.print(Text("Type your answer and press Enter. Leave it empty to cancel."))
        answer = self.ask("> ", password=sensitive)

        if not answer.strip():
            self.logger.debug("Input request cancelled")
            return
        if requery is not None:
            requery(answer)

    def _render_gemtext(self, lines: Iterable[str]) -> None:
        for line in lines:
            kind = classify_line(line, self.context.pre_block)
            if kind is LineKind.FENCE:
                self.context.pre_block = not self.context.pre_block
            elif kind is LineKind.PREFORMATTED:
                self._write_verbatim(line)
            elif kind is LineKind.LINK:
                self._emit(self._format_link(line))
            elif kind is LineKind.HEADING:
                level = heading_level(line)
                title = line.lstrip(HEADING_MARKER).strip()
                self._emit(Text(title, style=HEADING_STYLES[level]))
            else:
                for wrapped in wrap_words(line, self.width):
                    self._emit(Text(wrapped))

    def _format_link(self, line: str) -> Text:
        tokens = line[len(LINK_MARKER):].split()
        target = tokens[0]
        label = " ".join(tokens[1:]) or target

        try:
            scheme = urllib.parse.urlsplit(target).scheme.lower()
        except ValueError:
            scheme = ""
        if not scheme or scheme == SCHEME:
            marker, marker_style = str(self.context.register_link(target)), LINK_ID_STYLE
            label_style = LINK_LABEL_STYLE
        else:
            marker, marker_style = scheme, FOREIGN_LINK_STYLE
            label_style = FOREIGN_LINK_STYLE

        return Text.assemble(
            ("[", LINK_SYNTAX_STYLE),
            (marker, marker_style),
            ("] ", LINK_SYNTAX_STYLE),
            (label, label_style),
        )

    def _print_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self._write_verbatim(line)

    def _write_verbatim(self, line: str) -> None:
        # Text would expand tabs and drop control characters
        self.console.file.write(line + "\n")
        self.console.file.flush()

    def _emit(self, text: Text) -> None:
        self.console.print(text, soft_wrap=True)
