"""Download stage: edition PDF, article fragments and their images."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

import requests

from .client import ManifestoClient
from .images import detect_image_format
from .models import Edition, ImageRef, Post
from .utils import filename_from_url

logger = logging.getLogger("clima.download")


def write_file(directory: Path, filename: str, content: bytes) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    destination = directory / filename
    destination.write_bytes(content)
    return destination


def download_pdf(client: ManifestoClient, edition: Edition, output_dir: Path) -> Path:
    """Save the edition PDF as ``<slug>.pdf``."""
    destination = write_file(output_dir, f"{edition.slug}.pdf", client.download_pdf(edition.pdf))
    logger.info("Saved PDF to %s", destination)
    return destination


def _download_image(client: ManifestoClient, ref: Optional[ImageRef], directory: Path) -> Optional[Path]:
    if ref is None:
        return None
    filename = filename_from_url(ref.src)
    destination = directory / filename
    if destination.exists():
        return destination
    data = client.download_image(ref.src)
    if detect_image_format(data[:262]) is None:
        logger.warning("%s does not look like an image", ref.src)
    return write_file(directory, filename, data)


def download_edition_cover(client: ManifestoClient, edition: Edition, directory: Path) -> Optional[Path]:
    if edition.featured_image is None:
        return None
    destination = directory / f"{edition.slug}.jpg"
    if not destination.exists():
        write_file(directory, destination.name, client.download_image(edition.featured_image.src))
    return destination


def download_posts(
    client: ManifestoClient,
    posts: Iterable[Post],
    directory: Path,
) -> List[Path]:
    """Fetch each post's EPUB fragment plus its cover and featured images.

    Files already present in ``directory`` are left untouched, so an
    interrupted run can be resumed.
    """
    fragments: List[Path] = []
    for post in posts:
        destination = directory / f"{post.slug}.epub"
        if destination.exists():
            logger.debug("Fragment %s already downloaded", destination.name)
        else:
            try:
                write_file(directory, destination.name, client.download_post_epub(post.slug))
            except requests.HTTPError as exc:
                logger.warning("Failed to fetch EPUB for %s: %s", post.slug, exc)
                continue
            logger.info("Downloaded %s", destination.name)
        fragments.append(destination)

        _download_image(client, post.cover_image, directory)
        _download_image(client, post.featured_image, directory)
    return fragments
