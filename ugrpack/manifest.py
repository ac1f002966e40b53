from __future__ import annotations

import json
import os
from typing import Dict, Mapping, Optional, Union

from .errors import DuplicateTag, ManifestError


ManifestSource = Union[str, os.PathLike, Mapping[str, str]]


def _looks_like_path(text: str) -> bool:
    # A short suffix after the last dot ("assets.json") marks a file name;
    # inline JSON text normally ends in "}".
    dot = text.rfind(".")
    return dot != -1 and len(text) - dot <= 5


def _unique_pairs(pairs) -> Dict[str, object]:
    # json.loads keeps the last value of a repeated key; a tag may appear once
    doc: Dict[str, object] = {}
    for key, value in pairs:
        if key in doc:
            raise DuplicateTag(f"Duplicate tag: {key!r}")
        doc[key] = value
    return doc


def _parse(text: str, origin: str) -> Dict[str, str]:
    try:
        doc = json.loads(text, object_pairs_hook=_unique_pairs)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"{origin}: invalid JSON: {exc}") from exc
    if not isinstance(doc, dict):
        raise ManifestError(f"{origin}: manifest must be a JSON object of tag -> locator")
    return validate_manifest(doc, origin)


def validate_manifest(doc: Mapping, origin: str = "manifest") -> Dict[str, str]:
    out: Dict[str, str] = {}
    for tag, locator in doc.items():
        if not isinstance(tag, str) or not isinstance(locator, str):
            raise ManifestError(f"{origin}: entry {tag!r} must map a string tag to a string locator")
        out[tag] = locator
    return out


def read_manifest(source: ManifestSource) -> Dict[str, str]:
    """Return the ordered tag -> locator mapping described by ``source``.

    ``source`` may be a mapping, a path to a JSON file, or inline JSON text.
    A string that looks like a file name is read from disk when it exists and
    otherwise parsed as JSON text.
    """
    if isinstance(source, Mapping):
        return validate_manifest(source)
    text = os.fspath(source)
    if _looks_like_path(text) and os.path.isfile(text):
        try:
            with open(text, "r", encoding="utf-8") as fh:
                return _parse(fh.read(), text)
        except OSError as exc:
            raise ManifestError(f"cannot read manifest {text}: {exc}") from exc
    return _parse(text, "manifest")


def manifest_base_dir(source: ManifestSource) -> Optional[str]:
    """Directory relative locators resolve against, if ``source`` is a file."""
    if isinstance(source, Mapping):
        return None
    text = os.fspath(source)
    if _looks_like_path(text) and os.path.isfile(text):
        return os.path.dirname(os.path.abspath(text))
    return None
