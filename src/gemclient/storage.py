"""
Gemtext files on disk: bookmarks, history, saved pages and the crash
recovery dump. Every file written here is itself a valid gemtext document.
"""

from pathlib import Path
from typing import List, Optional, Union


PathLike = Union[str, Path]

BOOKMARKS_TEMPLATE = [
    "# Bookmarks",
    "",
    "Welcome! This page lists your bookmarks.",
    "",
    "```",
    "bm            show this page",
    "bm add LABEL  bookmark the current page",
    "bm edit       edit this file in $EDITOR",
    "```",
    "",
    "=> gemini://geminiprotocol.net/ Project Gemini",
]


def read_document(path: PathLike) -> List[str]:
    """Read a gemtext file into a list of lines without terminators."""
    text = Path(path).expanduser().read_text(encoding="utf-8")
    return text.splitlines()


def write_page(path: PathLike, lines: List[str]) -> Path:
    """Overwrite `path` with `lines`. Returns the resolved path."""
    target = Path(path).expanduser()
    with open(target, "w", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")
    return target


def append_link(path: PathLike, url: str, label: Optional[str] = None) -> None:
    """Append a link line to a gemtext file, creating it if needed."""
    line = f"=> {url} {label}" if label else f"=> {url}"
    with open(Path(path).expanduser(), "a", encoding="utf-8") as f:
        f.write(line + "\n")


def init_bookmarks(path: PathLike) -> Path:
    """Seed the bookmarks file on first use."""
    target = Path(path).expanduser()
    if not target.exists():
        target.parent.mkdir(parents=True, exist_ok=True)
        write_page(target, BOOKMARKS_TEMPLATE)
    return target
