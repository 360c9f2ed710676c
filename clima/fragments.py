"""Reading chapter markup out of single-article EPUB fragments."""

from __future__ import annotations

import logging
import re
import zipfile
from pathlib import Path
from typing import Optional

from ebooklib import epub
from lxml import etree

from .config import FRAGMENT_CHAPTER_PATH

logger = logging.getLogger("clima.fragments")

XHTML_MEDIA_TYPE = "application/xhtml+xml"

# Fragments use <h0> and <quote> so their headings never clash with the
# heading levels of the merged publication.
_PLACEHOLDER_TAGS = (
    (re.compile(r"(</?)h0\b"), r"\1h1"),
    (re.compile(r"(</?)quote\b"), r"\1blockquote"),
)


class FragmentStructureError(RuntimeError):
    """Raised when a fragment opens but does not have the expected layout."""


def fragment_path(workdir: Path, slug: str) -> Path:
    return workdir / f"{slug}.epub"


def _open_fragment(path: Path) -> Optional[epub.EpubBook]:
    if not path.is_file():
        logger.debug("No fragment for %s", path.stem)
        return None
    try:
        return epub.read_epub(str(path), {"ignore_ncx": True})
    except (OSError, KeyError, zipfile.BadZipFile, epub.EpubException, etree.XMLSyntaxError) as exc:
        logger.warning("Skipping unreadable fragment %s: %s", path.name, exc)
        return None


def _matches(item_name: str, chapter_path: str) -> bool:
    return chapter_path == item_name or chapter_path.endswith("/" + item_name)


def extract_chapter(
    workdir: Path,
    slug: str,
    chapter_path: str = FRAGMENT_CHAPTER_PATH,
) -> Optional[str]:
    """Return the chapter markup of ``<workdir>/<slug>.epub``.

    ``None`` means the fragment is missing or is not a readable archive.
    """
    path = fragment_path(workdir, slug)
    book = _open_fragment(path)
    if book is None:
        return None

    if not book.spine:
        raise FragmentStructureError(f"Fragment {path.name} has an empty spine")
    idref = book.spine[0][0] if isinstance(book.spine[0], tuple) else book.spine[0]
    current = book.get_item_with_id(idref)
    media_type = current.media_type if current is not None else None
    if media_type != XHTML_MEDIA_TYPE:
        raise FragmentStructureError(
            f"Fragment {path.name} starts with {media_type!r}, expected {XHTML_MEDIA_TYPE}"
        )

    for item in book.get_items():
        if _matches(item.get_name(), chapter_path):
            # raw bytes; EpubHtml.get_content() would re-render the document
            content = item.content
            return content.decode("utf-8") if isinstance(content, bytes) else content
    raise FragmentStructureError(f"Fragment {path.name} has no {chapter_path}")


def rewrite_markup(markup: str) -> str:
    """Replace the placeholder heading and quote tags with real XHTML ones."""
    for pattern, replacement in _PLACEHOLDER_TAGS:
        markup = pattern.sub(replacement, markup)
    return markup
