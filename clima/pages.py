"""Generated interstitial pages showing an article image and its caption."""

from __future__ import annotations

from xml.sax.saxutils import escape

from .models import ContentItem, Post

SECTION_PAGE_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
  <head>
    <title>{title}</title>
  </head>
  <body>
    <{heading}>{title}</{heading}>
    <img src="{image}" />
    {summary}
  </body>
</html>
"""


def render_section_page(title: str, heading: str, image_name: str, summary: str) -> bytes:
    """Return an XHTML page with a heading, one image and a summary."""
    markup = SECTION_PAGE_TEMPLATE.format(
        title=escape(title),
        heading=heading,
        image=escape(image_name, {'"': "&quot;"}),
        summary=summary,
    )
    return markup.encode("utf-8")


def cover_page(post: Post, image_name: str) -> ContentItem:
    """Page introducing an article as it appears on the front cover."""
    return ContentItem(
        file_name=f"{post.slug}-cover.xhtml",
        content=render_section_page(post.cover_title, "h1", image_name, post.cover_summary),
    )


def front_page(post: Post, image_name: str) -> ContentItem:
    """Page preceding an article's chapter with its featured image."""
    caption = post.kicker or post.title
    return ContentItem(
        file_name=f"{post.slug}-front.xhtml",
        content=render_section_page(caption, "h4", image_name, post.excerpt),
    )
