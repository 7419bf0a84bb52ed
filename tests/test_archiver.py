"""End-to-end tests for the Archiver."""

from __future__ import annotations

import shutil
from pathlib import Path

import minify_html
import pytest

from webarchiver import Archiver, ConfigurationError, webarchive
from webarchiver.config import DedupeConfig, MinifyConfig, StorageConfig

NAV = (
    '<nav class="site-nav"><a href="/index.html">Home</a> '
    '<a href="/about.html">About us</a> <a href="/docs/guide/intro.html">Guide</a></nav>\n'
)
FOOTER = "<footer><p>Copyright 2024 Example Corp. All rights reserved.</p></footer>\n"


def page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n<html>\n<head><title>"
        + title
        + "</title></head>\n<body>\n"
        + NAV
        + "<main>"
        + body
        + "</main>\n"
        + FOOTER
        + "</body>\n</html>\n"
    )


SITE: dict[str, str | bytes] = {
    "index.html": page("Home", "<p>Welcome to the site. It's nice here.</p>"),
    "about.html": page("About", "<p>We write C:\\path\\to\\things and it's fine.</p>"),
    "docs/guide/intro.html": page("Intro", "<p>Welcome to the guide. It's short.</p>"),
    "style.css": "body { color: red; }\n",
    "empty.txt": "",
    "logo.png": b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + bytes(range(256)),
    "contact.php": "<?php echo 'hi'; ?>\n" + NAV,
}


def text_files(site: dict[str, str | bytes]) -> dict[str, str]:
    return {path: content for path, content in site.items() if isinstance(content, str)}


@pytest.fixture
def site(make_site) -> Path:
    return make_site(SITE)


class TestDeduplication:
    """Archiving with deduplication on."""

    def test_every_page_resolves_to_original(
        self, site: Path, config_for, tmp_path: Path, resolve_php
    ) -> None:
        """Served through PHP every output is byte-identical to its input."""
        Archiver(config_for()).run()
        out = tmp_path / "out"
        for path, content in text_files(SITE).items():
            assert resolve_php(out / path) == content, path

    def test_pages_are_wrapped(self, site: Path, config_for, tmp_path: Path) -> None:
        result = Archiver(config_for()).run()
        out = tmp_path / "out"

        assert (out / "index.html").read_text().startswith("<?php include 'v.php';echo ")
        assert (out / "docs/guide/intro.html").read_text().startswith(
            "<?php include '../../v.php';echo "
        )
        assert result.vfile == str(out / "v.php")
        assert (out / "v.php").read_text().startswith("<?php $a=")
        assert result.references > 0
        assert result.stats.deduped_files >= 3

    def test_binary_and_skipped_files_copied(self, site: Path, config_for, tmp_path: Path) -> None:
        """Binaries and files with a skip marker are copied byte for byte."""
        result = Archiver(config_for()).run()
        out = tmp_path / "out"

        assert (out / "logo.png").read_bytes() == SITE["logo.png"]
        assert (out / "contact.php").read_bytes() == (site / "contact.php").read_bytes()
        assert result.stats.binary_files == 1
        assert result.stats.skipped_files == 1

    def test_directories_recreated(self, site: Path, config_for, tmp_path: Path) -> None:
        result = Archiver(config_for()).run()
        assert (tmp_path / "out" / "docs" / "guide").is_dir()
        assert result.stats.directories == 2

    def test_output_is_smaller(self, make_site, config_for) -> None:
        """A repetitive site shrinks."""
        make_site({f"p{i}.html": page(f"Page {i}", f"<p>Body {i}</p>") for i in range(6)})
        result = Archiver(config_for()).run()
        assert result.stats.bytes_out < result.stats.bytes_in
        assert 0 < result.compression_ratio < 1

    def test_deterministic(self, site: Path, config_for, tmp_path: Path) -> None:
        """Two runs over the same input produce identical output."""
        Archiver(config_for(output=str(tmp_path / "run1"))).run()
        Archiver(config_for(output=str(tmp_path / "run2"))).run()
        run1, run2 = tmp_path / "run1", tmp_path / "run2"
        for path in [*text_files(SITE), "v.php"]:
            assert (run1 / path).read_bytes() == (run2 / path).read_bytes()

    def test_disk_pages_match_memory(self, site: Path, config_for, tmp_path: Path) -> None:
        """Spilling every page to disk does not change the output."""
        Archiver(config_for(output=str(tmp_path / "memory"))).run()
        disk = StorageConfig(backend="disk", page_size=1, db_dir=str(tmp_path / "pages"))
        Archiver(config_for(output=str(tmp_path / "disk"), storage=disk)).run()

        for path in [*text_files(SITE), "v.php"]:
            memory_bytes = (tmp_path / "memory" / path).read_bytes()
            assert (tmp_path / "disk" / path).read_bytes() == memory_bytes

    def test_references_defined_before_use(self, site: Path, config_for, tmp_path: Path) -> None:
        """Identifiers come out in allocation order, shortest first."""
        result = Archiver(config_for()).run()
        variables = (tmp_path / "out" / "v.php").read_text()
        assert variables.startswith("<?php $a=")
        if result.references > 1:
            assert variables.index("$a=") < variables.index("$b=")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"passes": 1},
            {"passes": 3},
            {"dedupe": DedupeConfig(max_comparisons=1)},
            {"dedupe": DedupeConfig(min_length=None)},
            {"dedupe": DedupeConfig(min_saving=30, min_occurrences=3)},
        ],
    )
    def test_roundtrip_with_options(
        self, site: Path, config_for, tmp_path: Path, overrides, resolve_php
    ) -> None:
        Archiver(config_for(**overrides)).run()
        for path, content in text_files(SITE).items():
            assert resolve_php(tmp_path / "out" / path) == content, path

    def test_every_pass_compares_with_earlier_files(self, make_site, config_for) -> None:
        """Each pass compares every file with itself and all files before it."""
        make_site({name: page(name, f"<p>{name}</p>") for name in ("a.html", "b.html", "c.html")})
        result = Archiver(config_for(passes=2)).run()
        # 1 + 2 + 3 per pass
        assert result.stats.comparisons == 12

    def test_single_file(self, make_site, config_for, tmp_path: Path, resolve_php) -> None:
        """A run repeated inside one file is replaced without any other file."""
        content = "<ul><li>repeated entry text</li><li>repeated entry text</li></ul>"
        make_site({"list.html": content})
        result = Archiver(config_for()).run()
        out = tmp_path / "out"

        assert result.references == 1
        assert (out / "list.html").read_text() == (
            "<?php include 'v.php';echo '<ul>'.$a.$a.'</ul>';"
        )
        assert (out / "v.php").read_text() == "<?php $a='<li>repeated entry text</li>';"
        assert resolve_php(out / "list.html") == content

    def test_skipped_file_contributes_no_matches(
        self, make_site, config_for, tmp_path: Path
    ) -> None:
        """Text shared only with a skipped file is never recorded."""
        block = "<div><p>A paragraph long enough to be worth sharing.</p></div>\n"
        site = make_site({"a.html": block, "b.php": "<?php echo 1; ?>\n" + block})
        result = Archiver(config_for()).run()
        out = tmp_path / "out"

        assert result.stats.skipped_files == 1
        assert result.stats.matches_recorded == 0
        assert result.references == 0
        assert (out / "b.php").read_bytes() == (site / "b.php").read_bytes()

    def test_full_nest(self, site: Path, config_for, tmp_path: Path, resolve_php) -> None:

        result = Archiver(config_for(full_nest=True)).run()
        nested = Path(result.out_dir)
        assert nested != tmp_path / "out"
        assert resolve_php(nested / "index.html") == SITE["index.html"]


class TestWithoutDeduplication:
    """Archiving with deduplication off."""

    def test_outputs_are_identical(self, site: Path, config_for, tmp_path: Path) -> None:
        """Without minify or dedupe the output is a plain copy."""
        result = Archiver(config_for(dedupe=DedupeConfig(enabled=False))).run()
        out = tmp_path / "out"

        for path in SITE:
            assert (out / path).read_bytes() == (site / path).read_bytes(), path
        assert not (out / "v.php").exists()
        assert result.vfile is None
        assert result.references == 0

    def test_minify_only(self, site: Path, config_for, tmp_path: Path) -> None:
        """HTML is minified; other text is untouched."""
        config = config_for(dedupe=DedupeConfig(enabled=False), minify=MinifyConfig())
        Archiver(config).run()
        out = tmp_path / "out"

        expected = minify_html.minify(SITE["index.html"], **MinifyConfig().options)
        assert (out / "index.html").read_text(encoding="utf-8") == expected
        assert (out / "style.css").read_text() == SITE["style.css"]


class TestMinifyAndDedupe:
    """Both stages on."""

    def test_pages_resolve_to_minified_text(
        self, site: Path, config_for, tmp_path: Path, resolve_php
    ) -> None:
        Archiver(config_for(minify=MinifyConfig())).run()
        options = MinifyConfig().options
        for path in ("index.html", "about.html", "docs/guide/intro.html"):
            expected = minify_html.minify(SITE[path], **options)
            assert resolve_php(tmp_path / "out" / path) == expected, path

    def test_minify_failure_falls_back(
        self,
        site: Path,
        config_for,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        resolve_php,
    ) -> None:
        """Pages minify-html rejects are archived from their original text."""

        def fail(*args, **kwargs):
            raise ValueError("unsupported input")

        monkeypatch.setattr(minify_html, "minify", fail)
        result = Archiver(config_for(minify=MinifyConfig())).run()

        assert result.stats.minify_failures == 3
        for path, content in text_files(SITE).items():
            assert resolve_php(tmp_path / "out" / path) == content, path


class TestInputHandling:
    """just_copy, in-place runs and configuration errors."""

    def test_just_copy(self, site: Path, config_for, tmp_path: Path, resolve_php) -> None:

        """just_copy files are copied even when they share text with others."""
        config = config_for(just_copy=[f"{site.as_posix()}/about.html"])
        Archiver(config).run()
        assert (tmp_path / "out" / "about.html").read_bytes() == (site / "about.html").read_bytes()
        assert resolve_php(tmp_path / "out" / "index.html") == SITE["index.html"]

    def test_inplace(self, site: Path, config_for, tmp_path: Path, resolve_php) -> None:

        original = tmp_path / "original"
        shutil.copytree(site, original)

        result = Archiver(config_for(output=None, inplace=True)).run()

        assert Path(result.out_dir) == site
        assert (site / "v.php").exists()
        assert (site / "index.html").read_text().startswith("<?php include 'v.php';")
        for path, content in text_files(SITE).items():
            assert resolve_php(site / path) == content, path
        assert (site / "logo.png").read_bytes() == (original / "logo.png").read_bytes()

    def test_custom_vfile(self, site: Path, config_for, tmp_path: Path, resolve_php) -> None:

        Archiver(config_for(vfile="shared.php")).run()
        out = tmp_path / "out"
        assert (out / "shared.php").exists()
        assert (out / "index.html").read_text().startswith("<?php include 'shared.php';")
        assert resolve_php(out / "index.html") == SITE["index.html"]

    def test_no_input_files(self, config_for, tmp_path: Path) -> None:
        """Nothing is written when no input matches."""
        with pytest.raises(ConfigurationError):
            Archiver(config_for()).run()
        assert not (tmp_path / "out").exists()

    def test_missing_output(self, site: Path, config_for) -> None:
        with pytest.raises(ConfigurationError):
            Archiver(config_for(output=None)).run()


class TestApi:
    """webarchive() and progress reporting."""

    def test_webarchive(self, site: Path, tmp_path: Path, resolve_php) -> None:

        result = webarchive(
            files=f"{site.as_posix()}/**/*",
            output=str(tmp_path / "out"),
            minify=False,
            storage={"backend": "memory"},
        )
        assert result.references > 0
        assert resolve_php(tmp_path / "out" / "about.html") == SITE["about.html"]

    def test_progress(self, site: Path, config_for) -> None:
        updates: list[tuple[str, int, int]] = []
        Archiver(config_for(), progress=lambda *update: updates.append(update)).run()

        assert updates
        _, completed, total = updates[-1]
        assert completed == total
        assert [c for _, c, _ in updates] == list(range(1, total + 1))
