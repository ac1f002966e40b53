from __future__ import annotations

import posixpath


def tag_to_relpath(tag: str) -> str:
    """Relative output path for an archive tag during ``unpack``.

    Tags are opaque strings inside an archive; only extraction gives them
    path meaning. Either slash separates directories, and the result must stay
    below the output directory.
    """
    segments = tag.replace("\\", "/").split("/")
    if ".." in segments:
        raise ValueError(f"Tag {tag!r} may not contain '..'")
    relpath = posixpath.normpath("/".join(s for s in segments if s))
    if relpath == ".":
        raise ValueError(f"Tag {tag!r} does not name a file")
    return relpath
