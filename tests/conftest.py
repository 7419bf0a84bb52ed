"""Shared pytest fixtures for webarchiver tests."""

import re
from pathlib import Path

import pytest

from webarchiver.config import ArchiverConfig, MinifyConfig, StorageConfig
from webarchiver.session import ArchiveSession

_VAR_RE = re.compile(r"\$([a-z][a-z0-9]*)")
_INCLUDE_RE = re.compile(r"<\?php include '((?:[^'\\]|\\.)*)';")


def _literal(s: str, pos: int) -> tuple[str, int]:
    # PHP single-quoted string starting at s[pos] == "'"
    out = []
    pos += 1
    while s[pos] != "'":
        if s[pos] == "\\" and s[pos + 1] in ("\\", "'"):
            out.append(s[pos + 1])
            pos += 2
        else:
            out.append(s[pos])
            pos += 1
    return "".join(out), pos + 1


def eval_expression(s: str, pos: int, variables: dict[str, str]) -> tuple[str, int]:
    """Evaluate a PHP concatenation of literals and variables."""
    parts = []
    while True:
        if s[pos] == "'":
            value, pos = _literal(s, pos)
        else:
            m = _VAR_RE.match(s, pos)
            assert m is not None, f"unexpected {s[pos:pos + 20]!r}"
            value = variables[m.group(1)]
            pos = m.end()
        parts.append(value)
        if pos < len(s) and s[pos] == ".":
            pos += 1
            continue
        return "".join(parts), pos


def load_variables(path: Path) -> dict[str, str]:
    """Evaluate a shared variables file."""
    s = path.read_text(encoding="utf-8")
    assert s.startswith("<?php ")
    pos = len("<?php ")
    variables: dict[str, str] = {}
    while pos < len(s):
        m = _VAR_RE.match(s, pos)
        assert m is not None and s[m.end()] == "="
        value, pos = eval_expression(s, m.end() + 1, variables)
        assert s[pos] == ";"
        pos += 1
        variables[m.group(1)] = value
    return variables


def _resolve_php(path: Path) -> str:
    """Return what PHP would serve for an output file."""
    s = path.read_bytes().decode("utf-8")
    m = _INCLUDE_RE.match(s)
    if m is None:
        return s
    include, _ = _literal(s, m.start(1) - 1)
    variables = load_variables((path.parent / include).resolve())
    pos = m.end()
    assert s.startswith("echo ", pos)
    value, pos = eval_expression(s, pos + len("echo "), variables)
    assert s[pos:] == ";"
    return value


@pytest.fixture
def resolve_php():
    """Evaluate an output file the way PHP would serve it."""
    return _resolve_php


@pytest.fixture
def make_site(tmp_path):
    """Create files under tmp_path/site from a {relative path: content} dict."""

    def _make(files: dict[str, str | bytes]) -> Path:
        root = tmp_path / "site"
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_bytes(content.encode("utf-8"))
        return root

    return _make


@pytest.fixture
def config_for(tmp_path):
    """Archiver config for tmp_path/site writing to tmp_path/out, minify off."""

    def _config(**overrides) -> ArchiverConfig:
        options = {
            "files": [str(tmp_path / "site" / "**" / "*")],
            "output": str(tmp_path / "out"),
            "minify": MinifyConfig(enabled=False),
            "storage": StorageConfig(backend="memory"),
        }
        options.update(overrides)
        return ArchiverConfig(**options)

    return _config


@pytest.fixture
def session():
    """In-memory session with default dedupe settings."""
    config = ArchiverConfig(
        files=["unused"], output="unused", storage=StorageConfig(backend="memory", page_size=4)
    )
    with ArchiveSession(config) as s:
        yield s

