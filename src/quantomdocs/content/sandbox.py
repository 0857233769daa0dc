"""Resolution of caller-supplied paths inside the content root."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path, PureWindowsPath
from urllib.parse import unquote

from quantomdocs.errors import PathTraversalError

LOGGER = logging.getLogger(__name__)

_TRAVERSAL_PATTERNS = (
    re.compile(r"\.\."),
    re.compile(r"^~"),
    re.compile(r"%2e%2e", re.IGNORECASE),
    re.compile(r"%252e%252e", re.IGNORECASE),
)


def _is_absolute(candidate: str) -> bool:
    if candidate.startswith(("/", "\\")):
        return True
    return bool(PureWindowsPath(candidate).drive)


class PathSandbox:
    """Resolve relative paths against a fixed root, refusing any escape."""

    def __init__(self, root: Path) -> None:
        self.root = Path(os.path.realpath(root))
        self._root_str = str(self.root)

    def resolve(self, requested: str | Path) -> Path:
        """Return the absolute path for ``requested`` or raise PathTraversalError.

        The request is URL-decoded once and both forms are screened. The
        joined path is normalized before the containment check, so encoded or
        redundant segments cannot slip past a literal comparison. Existence is
        not checked.
        """
        raw = str(requested)
        decoded = unquote(raw)

        if "\x00" in raw or "\x00" in decoded:
            self._reject(raw, "Path contains forbidden characters")
        for pattern in _TRAVERSAL_PATTERNS:
            if pattern.search(raw) or pattern.search(decoded):
                self._reject(raw, "Path contains forbidden characters")
        if _is_absolute(decoded):
            self._reject(raw, "Absolute paths are not allowed")

        normalized = os.path.normpath(os.path.join(self._root_str, decoded))
        if normalized != self._root_str and not normalized.startswith(self._root_str + os.sep):
            self._reject(raw, "Path traversal attempt detected")
        return Path(normalized)

    def relative(self, path: Path) -> str:
        """Posix path of ``path`` relative to the root ('' for the root itself)."""
        relative = Path(path).relative_to(self.root).as_posix()
        return "" if relative == "." else relative

    def _reject(self, requested: str, reason: str) -> None:
        LOGGER.warning("Rejected path %r: %s", requested, reason)
        raise PathTraversalError(reason)
