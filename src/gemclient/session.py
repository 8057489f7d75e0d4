"""
Navigation state for a browsing session.

The Session owns the back and forward stacks and mediates between user
commands, the transport and the renderer. Both stacks keep their most
recent entry at the end of the list; the last entry of `history` is the
page currently on screen.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

from rich.console import Console
from rich.markup import escape

from . import storage
from .client import GeminiClient
from .exceptions import LinkLookupError, NavigationError
from .media import BinaryHandler
from .protocol import SCHEME, Page, Resource, TextPage
from .renderer import GemtextRenderer


FILE_SCHEME = "file"
LOADED_FILE_STATUS = "20 text/gemini"
LINK_NUMBER = re.compile(r"[0-9]+")


class Session:
    """
    Back/forward history plus the link table of the page on screen.
    """

    def __init__(self, client: GeminiClient, renderer: GemtextRenderer,
                 binary_handler: BinaryHandler, console: Optional[Console] = None,
                 history_file: Optional[Union[str, Path]] = None):
        self.client = client
        self.renderer = renderer
        self.binary_handler = binary_handler
        self.console = console or renderer.console
        self.history_file = history_file
        self.history: List[Page] = []
        self.forward: List[Page] = []
        self.raw_mode = False
        self.logger = logging.getLogger(__name__)

    @property
    def current_page(self) -> Optional[Page]:
        return self.history[-1] if self.history else None

    @property
    def current_resource(self) -> Optional[Resource]:
        """Resource of the page on screen, or None before the first load."""
        page = self.current_page
        return page.resource if page else None

    @property
    def links(self) -> Dict[int, str]:
        return self.renderer.links

    def resolve(self, target: str) -> Resource:
        """
        Turn a URL or relative reference into an absolute gemini resource.

        Raises:
            NavigationError: For foreign schemes, or a relative reference
                with no gemini page to resolve it against
        """
        reference = Resource.parse(target)
        if reference.scheme and reference.scheme != SCHEME:
            raise NavigationError(f"Unsupported scheme: {reference.scheme}")

        if reference.is_absolute:
            reference.scheme = SCHEME
            return reference

        base = self.current_resource
        if base is None:
            raise NavigationError(f"Cannot resolve relative reference {target!r} without a current page")
        return base.join(target)

    def navigate(self, target: str) -> bool:
        """
        Fetch `target` and show it. Returns False when it was rejected.
        """
        try:
            resource = self.resolve(target)
        except NavigationError as e:
            self.console.print(f"[red]{escape(str(e))}[/red]")
            return False

        self.load(resource)
        return True

    def load(self, resource: Resource) -> None:
        """Run a transaction against `resource` and dispatch the result."""
        self.logger.info(f"Loading {resource.url}")
        response = self.client.transact(resource)
        if isinstance(response, TextPage):
            self.push(Page(resource, response))
        else:
            self.binary_handler.handle(response)

    def push(self, page: Page) -> None:
        """Make `page` the current page. Any forward history is dropped."""
        self.history.append(page)
        self.forward.clear()
        self._record_history(page)
        self.show(page)

    def show(self, page: Page) -> None:
        """Render `page`; an answered input request loads the follow-up page."""
        def requery(answer: str) -> None:
            self.load(page.resource.with_query(answer))

        self.renderer.render(page.text, raw_mode=self.raw_mode, requery=requery)

    def redisplay(self) -> None:
        if self.current_page:
            self.show(self.current_page)

    def toggle_raw(self) -> bool:
        """Switch between raw and pretty display and redraw the current page."""
        self.raw_mode = not self.raw_mode
        self.redisplay()
        return self.raw_mode

    def lookup_link(self, key: str) -> str:
        """
        Return the target of link `key` from the current link table.

        Raises:
            LinkLookupError: If `key` is not a number or not in the table
        """
        if not LINK_NUMBER.fullmatch(key):
            raise LinkLookupError(f"Illegal link number: {key!r}")

        link_id = int(key)
        if link_id not in self.links:
            raise LinkLookupError(f"No such link number: {link_id}")
        return self.links[link_id]

    def follow_link(self, key: str) -> bool:
        try:
            target = self.lookup_link(key)
        except LinkLookupError as e:
            self.console.print(f"[red]{escape(str(e))}[/red]")
            return False
        return self.navigate(target)

    def go_history(self, from_stack: List[Page], to_stack: List[Page], keep_last_of_from: bool) -> bool:
        """
        Move the top page of `from_stack` onto `to_stack` and redraw.

        Does nothing when `from_stack` is empty, or when it holds a single
        page that must be kept.
        """
        if not from_stack or (keep_last_of_from and len(from_stack) == 1):
            return False

        to_stack.append(from_stack.pop())
        self.show(self.history[-1])
        return True

    def back(self) -> bool:
        return self.go_history(self.history, self.forward, keep_last_of_from=True)

    def go_forward(self) -> bool:
        return self.go_history(self.forward, self.history, keep_last_of_from=False)

    def save(self, path: Union[str, Path]) -> Path:
        """
        Write the current page without its status line.

        Raises:
            NavigationError: If no page has been loaded yet
        """
        page = self.current_page
        if page is None:
            raise NavigationError("No page to save")
        target = storage.write_page(path, page.text.body)
        self.logger.info(f"Saved {page.resource.url} to {target}")
        return target

    def load_file(self, path: Union[str, Path]) -> Page:
        """Open a local gemtext document as the current page."""
        file_path = Path(path).expanduser().resolve()
        lines = storage.read_document(file_path)
        page = Page(
            Resource(scheme=FILE_SCHEME, path=file_path.as_posix()),
            TextPage([LOADED_FILE_STATUS] + lines),
        )
        self.push(page)
        return page

    def _record_history(self, page: Page) -> None:
        if self.history_file and page.resource.scheme == SCHEME:
            storage.append_link(self.history_file, page.resource.url)
