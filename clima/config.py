"""Configuration objects and constants for fetching and merging editions."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

BASE_URL = os.getenv("CLIMA_API_URL", "https://api.ilmanifesto.it/api/v1")
REQUEST_TIMEOUT_SECONDS = 30

PUBLICATION_AUTHOR = "il Manifesto"
PUBLICATION_LANGUAGE = "it"
EPUB_VERSION = "3.0"

MAX_IMAGE_SIDE = 600
# Single-article EPUBs served by the API keep their only chapter here.
FRAGMENT_CHAPTER_PATH = "OEBPS/Chapter001.xhtml"

LOGIN_FILE = Path("login.json")
CREDENTIALS_FILE = Path("credentials.json")


def default_workdir() -> Path:
    """Return the directory where fragments and images are staged."""
    override = os.getenv("CLIMA_WORKDIR")
    if override:
        return Path(override).expanduser()
    return Path(tempfile.gettempdir()) / "clima"


@dataclass
class MergeConfig:
    """Settings that control how an edition is assembled into one EPUB."""

    workdir: Path = field(default_factory=default_workdir)
    output_dir: Path = field(default_factory=Path.cwd)
    keep_files: bool = False
    strict_images: bool = True
    resource_naming: str = "sequence"
    max_image_side: int = MAX_IMAGE_SIDE
    chapter_path: str = FRAGMENT_CHAPTER_PATH
    author: str = PUBLICATION_AUTHOR
    language: str = PUBLICATION_LANGUAGE
