"""Configuration models for webarchiver."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Literal

from .exceptions import ConfigurationError

# Characters the escaping contract relies on. A boundary set containing one of
# them could split an escape pair across two fragments.
RESERVED_BOUNDARY_CHARS = frozenset({"\\", "'"})


@dataclass
class DedupeConfig:
    """Configuration for cross-file deduplication.

    GOTCHAS:
    - Boundary sets are single characters, not regex classes. Whitespace is
      listed explicitly (space, tab, CR, LF).
    - min_length only controls which runs are *recorded*. Whether a run is
      replaced is decided by the acceptance floor, which by default follows
      the current reference-token overhead (see auto_min_length).
    - Greedy: a match accepted early is never replaced by a longer
      overlapping match found later.
    """

    enabled: bool = True

    # Shortest run (in escaped characters) the finder records.
    # None = use the automatic floor for searching as well.
    min_length: int | None = 10

    # Minimum characters a replacement must save over its reference token.
    min_saving: int = 4

    # Minimum total occurrences across all files before a match is replaced.
    # 0 disables the check.
    min_occurrences: int = 0

    # When True a match is replaced only if it is at least
    # min_saving + len(reference token) long. When False the fixed min_length
    # is the acceptance floor.
    auto_min_length: bool = True

    starts_with: list[str] = field(default_factory=lambda: ["<", "{", "(", "[", '"'])
    ends_with: list[str] = field(
        default_factory=lambda: [">", "}", ")", "]", '"', "\n", " ", "\t", "\r"]
    )

    # Cap on the number of files each file is compared against per pass.
    # None = compare against all eligible files.
    max_comparisons: int | None = None


@dataclass
class MinifyConfig:
    """Configuration for the minify-html pre-pass.

    Only files with one of the listed extensions are minified; other text
    files (CSS, JS, plain text) are deduplicated as-is.
    """

    enabled: bool = True
    extensions: list[str] = field(default_factory=lambda: [".html", ".htm", ".xhtml"])
    options: dict[str, Any] = field(
        default_factory=lambda: {
            "minify_css": True,
            "minify_js": True,
            "keep_closing_tags": True,
            "keep_html_and_head_opening_tags": True,
        }
    )


@dataclass
class StorageConfig:
    """Configuration for the paged record stores.

    backend:
    - "disk": pages spill to JSON files under db_dir (a temporary
      directory when db_dir is None).
    - "memory": pages are serialized into an in-process dict. Useful for
      tests and small sites.
    """

    backend: Literal["disk", "memory"] = "disk"
    page_size: int = 1000
    db_dir: str | None = None


@dataclass
class ArchiverConfig:
    """Main archiver configuration.

    Attributes:
        files: Glob patterns selecting the input. Patterns starting with "!"
            exclude matching paths.
        just_copy: Glob patterns of files copied without processing.
        output: Output directory (required unless inplace is set).
        inplace: Rewrite the input files where they are.
        vfile: Name of the shared PHP variables file.
        full_nest: Keep the full input path nesting under output.
        skip_containing: Text files containing any of these strings are
            copied unchanged.
        passes: Number of deduplication passes over all files.
    """

    files: list[str] = field(default_factory=list)
    just_copy: list[str] = field(default_factory=list)
    output: str | None = None
    inplace: bool = False
    vfile: str = "v.php"
    full_nest: bool = False
    skip_containing: list[str] = field(default_factory=lambda: ["<?"])
    passes: int = 2

    dedupe: DedupeConfig = field(default_factory=DedupeConfig)
    minify: MinifyConfig = field(default_factory=MinifyConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    def __post_init__(self) -> None:
        if isinstance(self.files, str):
            self.files = [self.files]
        if isinstance(self.just_copy, str):
            self.just_copy = [self.just_copy]

    def validate(self) -> None:
        """Check the configuration before any file is touched.

        Raises:
            ConfigurationError: If a required option is missing or a value
                is out of range.
        """
        _check_string_list("files", self.files)
        _check_string_list("just_copy", self.just_copy)
        _check_string_list("skip_containing", self.skip_containing)
        if not self.files:
            raise ConfigurationError("No input files defined in options.")
        if self.output is not None and not isinstance(self.output, str):
            raise ConfigurationError("output must be a string", details={"output": self.output})
        if not self.inplace and not self.output:
            raise ConfigurationError("You must set either 'output' or 'inplace'.")
        _check_int("passes", self.passes, minimum=1)
        _check_int("page_size", self.storage.page_size, minimum=1)
        if self.storage.backend not in ("disk", "memory"):
            raise ConfigurationError(
                f"Unknown storage backend '{self.storage.backend}'",
                details={"valid_backends": ["disk", "memory"]},
            )
        if not self.vfile or not isinstance(self.vfile, str):
            raise ConfigurationError(
                "vfile must be a non-empty string.", details={"vfile": self.vfile}
            )

        dedupe = self.dedupe
        if dedupe.min_length is not None:
            _check_int("min_length", dedupe.min_length, minimum=1)
        elif not dedupe.auto_min_length:
            raise ConfigurationError("min_length is required when auto_min_length is off.")
        _check_int("min_saving", dedupe.min_saving, minimum=0)
        _check_int("min_occurrences", dedupe.min_occurrences, minimum=0)
        if dedupe.max_comparisons is not None:
            _check_int("max_comparisons", dedupe.max_comparisons, minimum=1)
        for name in ("starts_with", "ends_with"):
            chars = getattr(dedupe, name)
            _check_string_list(name, chars)
            bad = [c for c in chars if len(c) != 1]
            if bad:
                raise ConfigurationError(
                    f"{name} entries must be single characters", details={"invalid": bad}
                )
            reserved = sorted(RESERVED_BOUNDARY_CHARS.intersection(chars))
            if reserved:
                raise ConfigurationError(
                    f"{name} may not contain escape characters", details={"invalid": reserved}
                )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArchiverConfig:
        """Build a config from a plain mapping, e.g. a parsed JSON file.

        Nested sections ("dedupe", "minify", "storage") are given as
        mappings. "dedupe": false and "minify": false disable the stage.

        Raises:
            ConfigurationError: On unknown keys.
        """
        data = dict(data)
        sections: dict[str, Any] = {
            "dedupe": DedupeConfig,
            "minify": MinifyConfig,
            "storage": StorageConfig,
        }
        kwargs: dict[str, Any] = {}
        for name, section_cls in sections.items():
            if name not in data:
                continue
            value = data.pop(name)
            if value is False and name != "storage":
                kwargs[name] = section_cls(enabled=False)
            elif isinstance(value, dict):
                kwargs[name] = section_cls(**_known_kwargs(section_cls, value, name))
            else:
                raise ConfigurationError(f"Invalid '{name}' section", details={name: value})
        kwargs.update(_known_kwargs(cls, data, "options"))
        return cls(**kwargs)


def _check_int(name: str, value: Any, minimum: int) -> None:
    # bool is an int subclass; a JSON true is not a count.
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer", details={name: value})
    if value < minimum:
        raise ConfigurationError(f"{name} must be at least {minimum}", details={name: value})


def _check_string_list(name: str, value: Any) -> None:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigurationError(f"{name} must be a list of strings", details={name: value})


def _known_kwargs(cls: type, data: dict[str, Any], section: str) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - names)
    if unknown:
        raise ConfigurationError(
            f"Unknown {section} keys: {', '.join(unknown)}",
            details={"valid_keys": sorted(names)},
        )
    return dict(data)
