"""HTML minification through minify-html.

Minification runs once per file, before escaping and fragmentation. A file
minify-html cannot handle keeps its original text.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath

import minify_html

from .config import MinifyConfig
from .exceptions import MinifyError

logger = logging.getLogger(__name__)


class Minifier:
    """Minifies HTML files according to a MinifyConfig.

    Usage:
        minifier = Minifier(MinifyConfig())
        text, minified = minifier.minify_or_keep(html, "docs/index.html")
    """

    def __init__(self, config: MinifyConfig) -> None:
        self.config = config
        self._extensions = {ext.lower() for ext in config.extensions}

    def applies_to(self, path: str) -> bool:
        if not self.config.enabled:
            return False
        return PurePosixPath(path).suffix.lower() in self._extensions

    def minify(self, text: str) -> str:
        """Minify text.

        Raises:
            MinifyError: If minify-html rejects the input.
        """
        try:
            return minify_html.minify(text, **self.config.options)
        except Exception as e:
            raise MinifyError("minify-html failed", details={"error": str(e)}) from e

    def minify_or_keep(self, text: str, path: str) -> tuple[str, bool]:
        """Minify text if path is eligible, falling back to the input on failure.

        Returns:
            (text, whether it was minified)
        """
        if not self.applies_to(path):
            return text, False
        try:
            return self.minify(text), True
        except MinifyError as e:
            logger.debug("Keeping %s unminified: %s", path, e)
            return text, False
