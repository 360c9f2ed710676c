import zipfile

import pytest
from ebooklib import epub

from clima.models import ContentItem
from clima.publication import Publication, PublicationFinalizedError, PublicationState

PAGE = b"""<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml"><head><title>t</title></head>
<body><h1>Heading</h1><p>Body</p></body></html>
"""


def _publication() -> Publication:
    return Publication(identifier="urn:clima:test", title="Edition of the day")


def _spine_names(path) -> list:
    book = epub.read_epub(str(path), {"ignore_ncx": True})
    return [book.get_item_with_id(idref).get_name() for idref, _ in book.spine]


def test_state_machine_transitions(tmp_path) -> None:
    publication = _publication()
    assert publication.state is PublicationState.EMPTY

    publication.add_content(ContentItem("one.xhtml", PAGE, title="One"))
    assert publication.state is PublicationState.ACCUMULATING

    publication.write(tmp_path / "out.epub")
    assert publication.state is PublicationState.FINALIZED

    with pytest.raises(PublicationFinalizedError):
        publication.add_content(ContentItem("two.xhtml", PAGE))
    with pytest.raises(PublicationFinalizedError):
        publication.add_resource("image0001.jpg", b"data")
    with pytest.raises(PublicationFinalizedError):
        publication.serialize()


def test_rejects_other_epub_versions() -> None:
    with pytest.raises(ValueError):
        Publication(identifier="x", title="x", version="2.0")


def test_duplicate_resource_names_are_rejected() -> None:
    publication = _publication()
    publication.add_resource("image0001.jpg", b"a")

    with pytest.raises(ValueError):
        publication.add_resource("image0001.jpg", b"b")


def test_write_produces_ordered_archive(tmp_path) -> None:
    publication = _publication()
    publication.set_cover(b"\xff\xd8\xff\xe0cover")
    publication.add_resource("image0001.jpg", b"\xff\xd8\xff\xe0img")
    publication.add_content(ContentItem("z-first.xhtml", PAGE))
    publication.add_content(ContentItem("a-second.xhtml", PAGE, title="Second"))
    target = tmp_path / "edition.epub"

    assert publication.write(target) == target

    assert _spine_names(target) == ["cover.xhtml", "nav.xhtml", "z-first.xhtml", "a-second.xhtml"]
    with zipfile.ZipFile(target) as archive:
        names = archive.namelist()
        assert names[0] == "mimetype"
        cover = next(name for name in names if name.endswith("/cover.jpg"))
        assert archive.read(cover) == b"\xff\xd8\xff\xe0cover"
        assert any(name.endswith("/image0001.jpg") for name in names)
        opf = archive.read(next(name for name in names if name.endswith(".opf"))).decode("utf-8")
    assert "il Manifesto" in opf
    assert "<dc:language>it</dc:language>" in opf
    assert list(tmp_path.glob("*.tmp")) == []


def test_toc_lists_titled_items_only() -> None:
    publication = _publication()
    publication.add_content(ContentItem("page.xhtml", PAGE))
    publication.add_content(ContentItem("one.xhtml", PAGE, title="One"))
    publication.add_content(ContentItem("one-a.xhtml", PAGE, title="One A", level=2))
    publication.add_content(ContentItem("two.xhtml", PAGE, title="Two"))

    book = publication._build_book()

    assert len(book.toc) == 2
    section, children = book.toc[0]
    assert section.title == "One"
    assert [child.href for child in children] == ["one-a.xhtml"]
    assert book.toc[1].href == "two.xhtml"


def test_content_is_stored_byte_for_byte(tmp_path) -> None:
    page = (
        b'<?xml version="1.0" encoding="utf-8"?>\n'
        b'<html xmlns="http://www.w3.org/1999/xhtml"><head><title>Kept title</title></head>\n'
        b"<body><p>caff&#232; <br/>x</p></body></html>\n"
    )
    publication = _publication()
    publication.add_content(ContentItem("one.xhtml", page, title="One"))
    target = publication.write(tmp_path / "verbatim.epub")

    with zipfile.ZipFile(target) as archive:
        stored = archive.read(next(name for name in archive.namelist() if name.endswith("/one.xhtml")))
    assert stored == page


def test_no_cover_means_no_cover_page(tmp_path) -> None:
    publication = _publication()
    publication.add_content(ContentItem("one.xhtml", PAGE, title="One"))
    target = publication.write(tmp_path / "plain.epub")

    assert _spine_names(target) == ["nav.xhtml", "one.xhtml"]
    with zipfile.ZipFile(target) as archive:
        assert not any(name.endswith("/cover.jpg") for name in archive.namelist())
