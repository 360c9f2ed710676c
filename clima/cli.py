"""Command-line entry point for clima."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from .auth import authenticate
from .client import ManifestoClient
from .config import BASE_URL, MergeConfig, default_workdir
from .download import download_edition_cover, download_pdf, download_posts
from .merge import combine_articles
from .utils import InvalidImageURL

logger = logging.getLogger("clima.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download the latest il manifesto edition as PDF and/or EPUB.",
    )
    parser.add_argument(
        "-p",
        "--pdf",
        action="store_true",
        help="Download the PDF version",
    )
    parser.add_argument(
        "-e",
        "--epub",
        action="store_true",
        help="Download one EPUB file per article",
    )
    parser.add_argument(
        "-s",
        "--single-epub",
        action="store_true",
        help="Merge the article EPUBs into a single EPUB file (requires --epub)",
    )
    parser.add_argument(
        "-k",
        "--keep-files",
        action="store_true",
        help="Keep downloaded article EPUBs and images after merging (mainly for debugging)",
    )
    parser.add_argument("--email", default="", help="Account email")
    parser.add_argument("--password", default="", help="Account password")
    parser.add_argument(
        "--output",
        default=Path.cwd(),
        type=Path,
        help="Directory where the PDF and EPUB files are written",
    )
    parser.add_argument(
        "--workdir",
        default=None,
        type=Path,
        help="Staging directory for article EPUBs and images (default: $CLIMA_WORKDIR or <tmp>/clima)",
    )
    parser.add_argument(
        "--lenient-images",
        action="store_true",
        help="Omit images that cannot be decoded instead of aborting the merge",
    )
    parser.add_argument(
        "--random-names",
        action="store_true",
        help="Give embedded images random names instead of sequential ones",
    )
    parser.add_argument(
        "--api-url",
        default=BASE_URL,
        help="Base URL of the content API",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> None:
    client = ManifestoClient(base_url=args.api_url)
    edition = client.latest_edition()
    authenticate(client, email=args.email, password=args.password)

    output_dir = Path(args.output).resolve()
    if args.pdf:
        download_pdf(client, edition, output_dir)

    if args.single_epub and not args.epub:
        logger.warning("--single-epub has no effect without --epub")

    if not args.epub:
        return

    config = MergeConfig(
        workdir=(args.workdir or default_workdir()).expanduser().resolve(),
        output_dir=output_dir,
        keep_files=args.keep_files,
        strict_images=not args.lenient_images,
        resource_naming="random" if args.random_names else "sequence",
    )
    staging = config.workdir if args.single_epub else output_dir

    download_edition_cover(client, edition, staging)
    posts = client.edition_posts(edition.id)
    download_posts(client, posts, staging)

    if args.single_epub:
        result = combine_articles(edition, posts, config)
        logger.info(
            "Finished %s in %.2fs (%d chapters)",
            result.output_path.name,
            result.total_seconds,
            len(result.chapters),
        )


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    overall_start = time.perf_counter()
    # clima errors derive from RuntimeError, requests errors from OSError.
    try:
        run(args)
    except (RuntimeError, InvalidImageURL, OSError) as exc:
        logger.error("%s", exc)
        sys.exit(1)
    logger.debug("Run finished in %.2fs", time.perf_counter() - overall_start)


if __name__ == "__main__":
    main()
