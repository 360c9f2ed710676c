from unittest.mock import MagicMock, patch

import pytest
import requests

from clima import cli
from clima.auth import CredentialsRequired
from clima.merge import MergeResult
from clima.models import Edition, Post


def test_parse_args_defaults() -> None:
    args = cli.parse_args([])

    assert not args.pdf and not args.epub and not args.single_epub and not args.keep_files
    assert args.workdir is None
    assert not args.lenient_images


def test_parse_args_short_flags(tmp_path) -> None:
    args = cli.parse_args(["-p", "-e", "-s", "-k", "--workdir", str(tmp_path), "--random-names"])

    assert args.pdf and args.epub and args.single_epub and args.keep_files
    assert args.workdir == tmp_path
    assert args.random_names


def test_single_epub_run_merges(tmp_path) -> None:
    client = MagicMock()
    client.latest_edition.return_value = Edition(id=1, slug="ed1", pdf="p1", title="Ed 1")
    client.edition_posts.return_value = [Post(slug="a1", title="A1")]
    args = cli.parse_args(
        ["-e", "-s", "--workdir", str(tmp_path / "work"), "--output", str(tmp_path), "--lenient-images"]
    )

    with patch("clima.cli.ManifestoClient", return_value=client), \
         patch("clima.cli.authenticate") as auth, \
         patch("clima.cli.download_edition_cover") as cover, \
         patch("clima.cli.download_posts") as posts, \
         patch("clima.cli.combine_articles") as combine:
        combine.return_value = MergeResult(tmp_path / "ed1.epub", ["a1"], 0.1)
        cli.run(args)

    auth.assert_called_once()
    assert cover.call_args.args[2] == (tmp_path / "work").resolve()
    assert posts.call_args.args[2] == (tmp_path / "work").resolve()
    config = combine.call_args.args[2]
    assert config.strict_images is False
    assert config.resource_naming == "sequence"
    assert config.output_dir == tmp_path.resolve()


def test_epub_without_merge_stages_in_output(tmp_path) -> None:
    client = MagicMock()
    client.latest_edition.return_value = Edition(id=1, slug="ed1", pdf="p1", title="Ed 1")
    client.edition_posts.return_value = []
    args = cli.parse_args(["-e", "--output", str(tmp_path)])

    with patch("clima.cli.ManifestoClient", return_value=client), \
         patch("clima.cli.authenticate"), \
         patch("clima.cli.download_edition_cover"), \
         patch("clima.cli.download_posts") as posts, \
         patch("clima.cli.combine_articles") as combine:
        cli.run(args)

    assert posts.call_args.args[2] == tmp_path.resolve()
    combine.assert_not_called()


def test_main_exits_on_missing_credentials() -> None:
    with patch("clima.cli.run", side_effect=CredentialsRequired("Credentials required")), \
         patch("clima.cli.logging.basicConfig"):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["-p"])

    assert excinfo.value.code == 1


@pytest.mark.parametrize(
    "error",
    [
        OSError("No space left on device"),
        PermissionError("output directory is read-only"),
        RuntimeError("Unexpected API response"),
        requests.ConnectionError("connection refused"),
    ],
)
def test_main_exits_on_runtime_failures(error) -> None:
    with patch("clima.cli.run", side_effect=error), \
         patch("clima.cli.logging.basicConfig"):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["-e", "-s"])

    assert excinfo.value.code == 1
