"""Assembly of downloaded article fragments into one EPUB per edition."""

from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from .config import MergeConfig
from .fragments import extract_chapter, rewrite_markup
from .images import JPEG_MEDIA_TYPE, ImageDecodeError, ResourceNamer, normalize_image
from .models import ContentItem, Edition, ImageRef, Post
from .pages import cover_page, front_page
from .publication import Publication
from .utils import filename_from_url

logger = logging.getLogger("clima")

UNRANKED_POSITION = 99


def order_posts(posts: Iterable[Post]) -> List[Post]:
    """Sort posts by cover position; unranked posts keep their order at the end."""
    return sorted(
        posts,
        key=lambda post: UNRANKED_POSITION if post.cover_position is None else post.cover_position,
    )


@dataclass
class MergeContext:
    """State shared by the pipeline stages while one edition is assembled."""

    edition: Edition
    config: MergeConfig
    publication: Publication
    namer: ResourceNamer
    chapters: List[str] = field(default_factory=list)

    def embed_image(self, ref: Optional[ImageRef], post: Post) -> Optional[str]:
        """Add a normalized copy of a downloaded image and return its name."""
        if ref is None:
            return None
        image_path = self.config.workdir / filename_from_url(ref.src)
        if not image_path.exists():
            logger.debug("Image %s for %s was not downloaded", image_path.name, post.slug)
            return None
        try:
            buffer = normalize_image(image_path, self.config.max_image_side)
        except ImageDecodeError as exc:
            if self.config.strict_images:
                raise ImageDecodeError(f"Article {post.slug}: {exc}") from exc
            logger.warning("Omitting image of %s: %s", post.slug, exc)
            return None
        name = self.namer.next_name()
        self.publication.add_resource(name, buffer.getvalue(), JPEG_MEDIA_TYPE)
        return name


@dataclass
class MergeResult:
    output_path: Path
    chapters: List[str]
    total_seconds: float


Stage = Callable[[MergeContext, Sequence[Post]], None]


def add_cover_pages(context: MergeContext, posts: Sequence[Post]) -> None:
    """Front section: one page per post featured on the paper's cover."""
    for post in posts:
        image_name = context.embed_image(post.cover_image, post)
        if image_name:
            context.publication.add_content(cover_page(post, image_name))


def add_running_order(context: MergeContext, posts: Sequence[Post]) -> None:
    """Featured image page followed by the chapter, for every post."""
    for post in posts:
        image_name = context.embed_image(post.featured_image, post)
        if image_name:
            context.publication.add_content(front_page(post, image_name))

        markup = extract_chapter(context.config.workdir, post.slug, context.config.chapter_path)
        if markup is None:
            continue
        context.publication.add_content(
            ContentItem(
                file_name=f"{post.slug}.xhtml",
                content=rewrite_markup(markup).encode("utf-8"),
                title=post.title,
            )
        )
        context.chapters.append(post.slug)


STAGES: Sequence[Stage] = (add_cover_pages, add_running_order)


def attach_edition_cover(context: MergeContext) -> None:
    cover_path = context.config.workdir / f"{context.edition.slug}.jpg"
    if not cover_path.is_file():
        logger.debug("No cover image for edition %s", context.edition.slug)
        return
    try:
        buffer = normalize_image(cover_path, context.config.max_image_side)
    except ImageDecodeError as exc:
        if context.config.strict_images:
            raise ImageDecodeError(f"Edition {context.edition.slug}: {exc}") from exc
        logger.warning("Omitting cover of edition %s: %s", context.edition.slug, exc)
        return
    context.publication.set_cover(buffer.getvalue())


def cleanup_workspace(workdir: Path) -> None:
    """Remove the staging directory and everything downloaded into it."""
    if workdir.exists():
        shutil.rmtree(workdir)
        logger.debug("Removed working directory %s", workdir)


def combine_articles(
    edition: Edition,
    posts: Iterable[Post],
    config: MergeConfig,
) -> MergeResult:
    """Merge the downloaded fragments of an edition into ``<slug>.epub``."""
    start = time.perf_counter()
    publication = Publication(
        identifier=f"urn:clima:{edition.slug}",
        title=edition.title,
        author=config.author,
        language=config.language,
        toc_name=edition.title,
    )
    context = MergeContext(
        edition=edition,
        config=config,
        publication=publication,
        namer=ResourceNamer(config.resource_naming),
    )

    attach_edition_cover(context)
    ordered = order_posts(posts)
    for stage in STAGES:
        stage(context, ordered)

    config.output_dir.mkdir(parents=True, exist_ok=True)
    output_path = publication.write(config.output_dir / f"{edition.slug}.epub")
    logger.info(
        "Merged %d of %d articles into %s",
        len(context.chapters),
        len(ordered),
        output_path.name,
    )

    if not config.keep_files:
        cleanup_workspace(config.workdir)

    return MergeResult(
        output_path=output_path,
        chapters=context.chapters,
        total_seconds=time.perf_counter() - start,
    )
