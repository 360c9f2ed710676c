import zipfile
from pathlib import Path

import pytest
from PIL import Image

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

OPF_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="uid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:identifier id="uid">{slug}</dc:identifier>
    <dc:title>{slug}</dc:title>
    <dc:language>it</dc:language>
  </metadata>
  <manifest>
    <item id="picture" href="picture.jpg" media-type="image/jpeg"/>
    <item id="chapter" href="Chapter001.xhtml" media-type="application/xhtml+xml"/>
  </manifest>
  <spine>
    <itemref idref="{first}"/>
  </spine>
</package>
"""

CHAPTER_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
  <head><title>{slug}</title></head>
  <body>
    {body}
  </body>
</html>
"""


def write_fragment(
    directory: Path,
    slug: str,
    body: str = "<h0>Title</h0><p>Text</p>",
    first: str = "chapter",
) -> Path:
    """Write a single-chapter EPUB shaped like the ones served by the API."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{slug}.epub"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        archive.writestr("META-INF/container.xml", CONTAINER_XML)
        archive.writestr("OEBPS/content.opf", OPF_TEMPLATE.format(slug=slug, first=first))
        archive.writestr("OEBPS/Chapter001.xhtml", CHAPTER_TEMPLATE.format(slug=slug, body=body))
        archive.writestr("OEBPS/picture.jpg", b"\xff\xd8\xff\xe0not-really-a-jpeg")
    return path


def write_image(path: Path, size=(1200, 800), mode="RGB", fmt="JPEG") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    Image.new(mode, size, color).save(path, format=fmt)
    return path


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    path = tmp_path / "out"
    path.mkdir()
    return path
