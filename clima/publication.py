"""In-memory EPUB publication assembled from resources and content items."""

from __future__ import annotations

import enum
import io
import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from ebooklib import epub

from .config import EPUB_VERSION, PUBLICATION_AUTHOR, PUBLICATION_LANGUAGE
from .images import JPEG_MEDIA_TYPE
from .models import ContentItem

logger = logging.getLogger("clima.publication")

COVER_FILE_NAME = "cover.jpg"
XHTML_MEDIA_TYPE = "application/xhtml+xml"


class PublicationState(enum.Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"


class PublicationFinalizedError(RuntimeError):
    """Raised when a publication is modified after it has been written."""


class Publication:
    """Accumulates resources and content, then serializes them exactly once."""

    def __init__(
        self,
        identifier: str,
        title: str,
        author: str = PUBLICATION_AUTHOR,
        language: str = PUBLICATION_LANGUAGE,
        toc_name: Optional[str] = None,
        version: str = EPUB_VERSION,
    ) -> None:
        if version != EPUB_VERSION:
            raise ValueError(f"Unsupported EPUB version: {version}")
        self.identifier = identifier
        self.title = title
        self.author = author
        self.language = language
        self.toc_name = toc_name or title
        self.version = version
        self.state = PublicationState.EMPTY
        self._cover: Optional[bytes] = None
        self._resources: List[Tuple[str, bytes, str]] = []
        self._contents: List[ContentItem] = []

    @property
    def cover(self) -> Optional[bytes]:
        return self._cover

    @property
    def resources(self) -> Tuple[Tuple[str, bytes, str], ...]:
        return tuple(self._resources)

    @property
    def contents(self) -> Tuple[ContentItem, ...]:
        return tuple(self._contents)

    def _mutate(self) -> None:
        if self.state is PublicationState.FINALIZED:
            raise PublicationFinalizedError(f"Publication {self.identifier} was already written")
        self.state = PublicationState.ACCUMULATING

    def set_cover(self, data: bytes) -> None:
        self._mutate()
        self._cover = data

    def add_resource(self, name: str, data: bytes, media_type: str = JPEG_MEDIA_TYPE) -> None:
        self._mutate()
        if any(existing == name for existing, _, _ in self._resources):
            raise ValueError(f"Duplicate resource name: {name}")
        self._resources.append((name, data, media_type))

    def add_content(self, item: ContentItem) -> None:
        self._mutate()
        self._contents.append(item)

    def _build_book(self) -> epub.EpubBook:
        book = epub.EpubBook()
        book.set_identifier(self.identifier)
        book.set_title(self.title)
        book.set_language(self.language)
        book.add_author(self.author)
        book.EPUB_VERSION = self.version

        spine: List[object] = []
        if self._cover is not None:
            book.set_cover(COVER_FILE_NAME, self._cover)
            spine.append("cover")
        spine.append("nav")

        for name, data, media_type in self._resources:
            book.add_item(
                epub.EpubItem(
                    uid=name.rsplit(".", 1)[0],
                    file_name=name,
                    media_type=media_type,
                    content=data,
                )
            )

        toc: List[object] = []
        for index, item in enumerate(self._contents, start=1):
            uid = f"content{index:04d}"
            # Plain items are stored byte for byte; EpubHtml would re-render the markup.
            book.add_item(
                epub.EpubItem(
                    uid=uid,
                    file_name=item.file_name,
                    media_type=XHTML_MEDIA_TYPE,
                    content=item.content,
                )
            )
            spine.append(uid)
            book.guide.append({"type": item.reftype, "href": item.file_name, "title": item.title or ""})
            if item.title:
                _append_toc_entry(toc, epub.Link(item.file_name, item.title, uid), item.level)

        book.toc = _freeze_toc(toc)
        book.spine = spine
        book.add_item(epub.EpubNcx())
        nav = epub.EpubNav()
        nav.title = self.toc_name
        book.add_item(nav)
        return book

    def serialize(self) -> bytes:
        """Render the publication to EPUB bytes and mark it finalized."""
        if self.state is PublicationState.FINALIZED:
            raise PublicationFinalizedError(f"Publication {self.identifier} was already written")
        book = self._build_book()
        buffer = io.BytesIO()
        epub.write_epub(buffer, book, {})
        self.state = PublicationState.FINALIZED
        logger.debug(
            "Serialized %s: %d resources, %d content items",
            self.identifier,
            len(self._resources),
            len(self._contents),
        )
        return buffer.getvalue()

    def write(self, path: Path) -> Path:
        """Serialize to ``path`` through a temporary file renamed into place."""
        path = Path(path)
        data = self.serialize()
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("Saved EPUB to %s", path)
        return path


def _append_toc_entry(toc: List[object], link: epub.Link, level: int) -> None:
    """Nest entries deeper than level 1 under the preceding top-level entry."""
    if level <= 1 or not toc:
        toc.append(link)
        return
    parent = toc[-1]
    if isinstance(parent, list):
        parent[1].append(link)
        return
    section = epub.Section(parent.title, parent.href)
    toc[-1] = [section, [link]]


def _freeze_toc(toc: List[object]) -> Tuple[object, ...]:
    return tuple(
        (entry[0], tuple(entry[1])) if isinstance(entry, list) else entry
        for entry in toc
    )
