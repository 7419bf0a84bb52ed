"""Archive CLI command."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

import click

from ..archiver import Archiver, ArchiveResult
from ..config import ArchiverConfig
from ..exceptions import WebArchiverError
from ._utils.formatting import (
    archive_progress,
    format_bytes,
    print_error,
    print_stats,
    print_success,
    print_warning,
)
from .main import main


def setup_logging(verbose: bool, debug: bool) -> None:
    """Configure root logging for a CLI run."""
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    elif verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")


def load_config_file(path: str) -> dict[str, Any]:
    """Load a JSON config file into a plain dict."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise click.BadParameter("config file must contain a JSON object", param_hint="--config")
    return data


def build_config(config_path: str | None, **overrides: Any) -> ArchiverConfig:
    """Merge a config file with command line overrides.

    Overrides that are None, False or empty are left to the file or the
    defaults. Keys of nested sections are given as "section.key".
    """
    data: dict[str, Any] = load_config_file(config_path) if config_path else {}
    for name, value in overrides.items():
        if value is None or value is False or value == ():
            continue
        if isinstance(value, tuple):
            value = list(value)
        section, _, key = name.partition(".")
        if not key:
            data[name] = value
            continue
        current = data.get(section)
        if current is False:
            continue
        if not isinstance(current, dict):
            current = {}
            data[section] = current
        current[key] = value
    return ArchiverConfig.from_dict(data)


def summarize(result: ArchiveResult) -> dict[str, Any]:
    """Stats shown after a run."""
    stats = result.stats
    return {
        "Output": result.out_dir,
        "Files": f"{stats.files} ({stats.text_files} text, {stats.binary_files} binary)",
        "Directories": stats.directories,
        "Skipped": stats.skipped_files,
        "Deduplicated": stats.deduped_files,
        "References": result.references,
        "Replacements": stats.replacements_made,
        "Size": f"{format_bytes(stats.bytes_in)} -> {format_bytes(stats.bytes_out)}",
        "Saved": f"{format_bytes(stats.bytes_saved)} ({result.compression_ratio * 100:.1f}%)",
    }


@main.command()
@click.argument("patterns", nargs=-1)
@click.option("--output", "-o", default=None, help="Output directory.")
@click.option("--inplace", is_flag=True, help="Rewrite the input files in place.")
@click.option(
    "--just-copy",
    multiple=True,
    help="Glob of files to copy without processing (repeatable).",
)
@click.option("--vfile", default=None, help="Name of the shared variables file (default: v.php).")
@click.option(
    "--full-nest",
    is_flag=True,
    help="Keep the full input path nesting under the output directory.",
)
@click.option(
    "--skip-containing",
    multiple=True,
    help="Copy text files containing this string unchanged (repeatable, default: '<?').",
)
@click.option("--passes", type=int, default=None, help="Deduplication passes (default: 2).")
@click.option("--no-dedupe", is_flag=True, help="Disable deduplication (minify only).")
@click.option("--no-minify", is_flag=True, help="Disable HTML minification.")
@click.option("--min-length", type=int, default=None, help="Shortest run to record (default: 10).")
@click.option(
    "--min-saving",
    type=int,
    default=None,
    help="Characters a replacement must save over its reference (default: 4).",
)
@click.option(
    "--min-occurrences",
    type=int,
    default=None,
    help="Occurrences required before a run is replaced (default: off).",
)
@click.option(
    "--max-comparisons",
    type=int,
    default=None,
    help="Compare each file with at most N files per pass (default: all).",
)
@click.option("--page-size", type=int, default=None, help="Records per store page (default: 1000).")
@click.option(
    "--db-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for spilled pages (default: a temporary directory).",
)
@click.option("--memory-pages", is_flag=True, help="Keep spilled pages in memory.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file with archiver options.",
)
@click.option("--no-progress", is_flag=True, help="Hide the progress bar.")
@click.option("--verbose", "-v", is_flag=True, help="Log pass summaries.")
@click.option("--debug", is_flag=True, help="Log per-file and per-match detail.")
def archive(
    patterns: tuple[str, ...],
    output: str | None,
    inplace: bool,
    just_copy: tuple[str, ...],
    vfile: str | None,
    full_nest: bool,
    skip_containing: tuple[str, ...],
    passes: int | None,
    no_dedupe: bool,
    no_minify: bool,
    min_length: int | None,
    min_saving: int | None,
    min_occurrences: int | None,
    max_comparisons: int | None,
    page_size: int | None,
    db_dir: str | None,
    memory_pages: bool,
    config_path: str | None,
    no_progress: bool,
    verbose: bool,
    debug: bool,
) -> None:
    """Archive the files matching PATTERNS.

    Patterns are globs ("**" matches any depth); prefix one with "!" to
    exclude what it matches.

    \b
    Examples:
        webarchiver archive 'site/**/*' -o archive
        webarchiver archive 'site/**/*' '!site/tmp/**' -o archive --no-minify
        webarchiver archive --config archive.json
    """
    setup_logging(verbose, debug)

    try:
        config = build_config(
            config_path,
            files=patterns,
            output=output,
            inplace=inplace,
            just_copy=just_copy,
            vfile=vfile,
            full_nest=full_nest,
            skip_containing=skip_containing,
            passes=passes,
            **{
                "dedupe.min_length": min_length,
                "dedupe.min_saving": min_saving,
                "dedupe.min_occurrences": min_occurrences,
                "dedupe.max_comparisons": max_comparisons,
                "storage.page_size": page_size,
                "storage.db_dir": db_dir,
                "storage.backend": "memory" if memory_pages else None,
            },
        )
        if no_dedupe:
            config.dedupe.enabled = False
        if no_minify:
            config.minify.enabled = False

        if no_progress:
            result = Archiver(config).run()
        else:
            with archive_progress() as progress:
                task = progress.add_task("Starting...", total=None)

                def on_progress(message: str, completed: int, total: int) -> None:
                    progress.update(task, description=message, completed=completed, total=total)

                result = Archiver(config, progress=on_progress).run()

    except click.BadParameter as e:
        print_error(str(e))
        sys.exit(1)
    except json.JSONDecodeError as e:
        print_error(f"Invalid config file: {e}")
        sys.exit(1)
    except WebArchiverError as e:
        print_error(str(e))
        sys.exit(1)

    print_stats(summarize(result), title="Archive complete")
    if result.stats.minify_failures:
        print_warning(
            f"{result.stats.minify_failures} HTML files could not be minified and were kept as-is"
        )
    if result.vfile:
        print_success(f"Wrote {result.references} references to {result.vfile}")
