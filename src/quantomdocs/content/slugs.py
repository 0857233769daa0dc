"""Mapping between on-disk names and public URL slugs."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from quantomdocs.content.storage import FileSystemStorage

LOGGER = logging.getLogger(__name__)

DEFAULT_ORDER = 999

_EXTENSION = re.compile(r"\.(md|mdx)$")
_ORDINAL_PREFIX = re.compile(r"^\d+-")
_ORDINAL_SPLIT = re.compile(r"^(\d+)-(.+)$")
_SEPARATORS = re.compile(r"[\s_]+")
_DISALLOWED = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-+")


def _encode_once(name: str) -> str:
    cleaned = _EXTENSION.sub("", name)
    cleaned = _ORDINAL_PREFIX.sub("", cleaned)
    cleaned = cleaned.lower()
    cleaned = _SEPARATORS.sub("-", cleaned)
    cleaned = _DISALLOWED.sub("", cleaned)
    cleaned = _HYPHEN_RUNS.sub("-", cleaned)
    return cleaned.strip("-")


def encode(name: str) -> str:
    """Turn a file or directory name into its URL slug.

    ``01-Getting Started`` and ``Getting_Started.md`` both become
    ``getting-started``. Names such as ``01-02-Intro`` whose first pass still
    looks prefixed are encoded until stable, so ``encode(encode(x)) ==
    encode(x)`` always holds.
    """
    slug = _encode_once(name)
    while True:
        again = _encode_once(slug)
        if again == slug:
            return slug
        slug = again


def strip_extension(name: str) -> str:
    return _EXTENSION.sub("", name)


def split_ordinal(name: str) -> tuple[int, str]:
    """Return ``(order, clean_name)`` from the ``<digits>-`` naming convention."""
    match = _ORDINAL_SPLIT.match(name)
    if match is None:
        return DEFAULT_ORDER, name
    return int(match.group(1)), match.group(2)


def decode(storage: FileSystemStorage, parent_dir: Path, slug: str) -> str | None:
    """Find the entry of ``parent_dir`` whose slug matches ``slug``.

    Entries are scanned in listing order and the first match wins; names that
    collide on the same slug resolve to whichever the filesystem lists first.
    """
    wanted = slug.lower()
    try:
        entries = storage.list_dir(parent_dir)
    except OSError as exc:
        LOGGER.error("Error resolving URL path in %s: %s", parent_dir, exc)
        return None

    for entry in entries:
        if encode(entry.name) == wanted:
            return entry.name
    return None


def find_collision(
    storage: FileSystemStorage, parent_dir: Path, name: str, *, ignore: tuple[str, ...] = ()
) -> str | None:
    """Return an existing entry of ``parent_dir`` that shares ``name``'s slug.

    ``name`` itself and anything in ``ignore`` do not count as collisions.
    """
    if not storage.is_dir(parent_dir):
        return None
    wanted = encode(name)
    for entry in storage.list_dir(parent_dir):
        if entry.name == name or entry.name in ignore:
            continue
        if encode(entry.name) == wanted:
            return entry.name
    return None
