"""Image validation, normalization and resource naming."""

from __future__ import annotations

import io
import logging
import random
import string
from pathlib import Path
from typing import Optional, Set, Union

from filetype import guess
from PIL import Image, UnidentifiedImageError

from .config import MAX_IMAGE_SIDE

logger = logging.getLogger("clima.images")

JPEG_MEDIA_TYPE = "image/jpeg"
JPEG_QUALITY = 85
RESOURCE_NAME_LENGTH = 12
# Resource names double as XML ids in the package document and must not start
# with a digit.
RESOURCE_NAME_CHARSET = string.ascii_letters


class ImageDecodeError(RuntimeError):
    """Raised when a local image cannot be decoded or re-encoded."""


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def _flatten(image: Image.Image) -> Image.Image:
    """Composite transparent images onto white and return an RGB image."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[3])
        return background
    return image.convert("RGB")


def normalize_image(path: Union[str, Path], max_side: int = MAX_IMAGE_SIDE) -> io.BytesIO:
    """Decode an image and return it as a JPEG bounded to ``max_side`` pixels.

    The aspect ratio is preserved and images already within the bound are
    never enlarged. The returned buffer is rewound to its start.
    """
    path = Path(path)
    try:
        with path.open("rb") as handle:
            header = handle.read(262)
    except OSError as exc:
        raise ImageDecodeError(f"Failed reading image {path}: {exc}") from exc
    if detect_image_format(header) is None:
        raise ImageDecodeError(f"Unsupported image format: {path}")

    try:
        with Image.open(path) as raw_image:
            image = _flatten(raw_image)
        image.thumbnail((max_side, max_side), Image.Resampling.LANCZOS)
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=JPEG_QUALITY, optimize=True)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"Could not decode image {path}: {exc}") from exc

    buffer.seek(0)
    logger.debug("Normalized %s to %dx%d JPEG", path.name, image.width, image.height)
    return buffer


def random_resource_name(rng: Optional[random.Random] = None) -> str:
    """Return a random archive-safe file name such as ``aBcDeFgHiJkL.jpg``."""
    chooser = rng or random
    stem = "".join(chooser.choice(RESOURCE_NAME_CHARSET) for _ in range(RESOURCE_NAME_LENGTH))
    return f"{stem}.jpg"


class ResourceNamer:
    """Hand out unique resource names for the images of one publication.

    ``"sequence"`` yields ``image0001.jpg``, ``image0002.jpg``... so repeated
    merges of the same input produce the same archive layout. ``"random"``
    draws 12 random letters per name.
    """

    STRATEGIES = ("sequence", "random")

    def __init__(self, strategy: str = "sequence", rng: Optional[random.Random] = None) -> None:
        if strategy not in self.STRATEGIES:
            raise ValueError(f"Unknown resource naming strategy: {strategy}")
        self.strategy = strategy
        self._rng = rng
        self._counter = 0
        self._issued: Set[str] = set()

    def next_name(self) -> str:
        if self.strategy == "sequence":
            self._counter += 1
            name = f"image{self._counter:04d}.jpg"
        else:
            name = random_resource_name(self._rng)
            while name in self._issued:
                name = random_resource_name(self._rng)
        self._issued.add(name)
        return name

    def __len__(self) -> int:
        return len(self._issued)
