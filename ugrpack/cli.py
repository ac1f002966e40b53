from __future__ import annotations

import argparse
import os
import sys
import time
from typing import List, Optional

from ugrpack.archive import Archive, build_from_manifest, list_tags
from ugrpack.constants import PACK_MAGIC
from ugrpack.errors import (
    CorruptHeader,
    DuplicateTag,
    SourceUnavailable,
    TagNotFound,
    UgrPackError,
)
from ugrpack.loader import FileSourceLoader
from ugrpack.log import LoggingConfig
from ugrpack.pathutil import tag_to_relpath


def _next_nonconflicting_path(path: str) -> str:
    """Return ``path`` or the first free ``name (n).ext`` sibling."""
    if not os.path.lexists(path):
        return path
    base_dir = os.path.dirname(path)
    root, ext = os.path.splitext(os.path.basename(path))
    i = 1
    while True:
        candidate = os.path.join(base_dir, f"{root} ({i}){ext}")
        if not os.path.lexists(candidate):
            return candidate
        i += 1


def cmd_pack(
    manifest: str,
    output: str,
    *,
    base_dir: Optional[str] = None,
    verbose: bool = False,
    debug: bool = False,
    quiet: bool = False,
) -> bool:
    """Pack the sources named by a JSON manifest into one archive file.

    Args:
        manifest: Path to a JSON manifest (or inline JSON text).
        output: Destination archive path.
        base_dir: Directory relative locators resolve against. Defaults to the
            manifest's directory.
        verbose: Log build progress to stderr.
        debug: Also log each entry's byte range.
        quiet: Suppress the summary line.
    """
    loader = FileSourceLoader(base_dir=base_dir) if base_dir else None
    config = LoggingConfig(console=verbose or debug, debug_output=debug)
    t0 = time.time()
    try:
        arc = build_from_manifest(manifest, loader, logging_config=config)
    except DuplicateTag as exc:
        print(f"Error: {exc}. Tags must be unique within one archive.", file=sys.stderr)
        return False
    except SourceUnavailable as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return False
    arc.save(output)
    dt = max(0.000001, time.time() - t0)
    if not quiet:
        print(
            f"Packed {len(arc)} entries ({len(arc.binaries)} bytes, header {len(arc.content_header)} bytes) "
            f"into {output} in {dt:.2f}s"
        )
    return True


def cmd_list(archive: str) -> bool:
    """List archive tags with their payload sizes, in layout order."""
    with Archive.open(archive) as arc:
        tags = list_tags(arc)
        for tag in tags:
            print(f"{arc.entry(tag).length}\t{tag}")
    return True


def cmd_info(archive: str) -> bool:
    """Show preamble fields and totals."""
    with Archive.open(archive) as arc:
        size = os.path.getsize(archive)
        payload = sum(e.length for e in arc.entries)
        print(f"Archive: {archive}")
        print(f"  Magic: {PACK_MAGIC.decode('ascii')}")
        print(f"  Version: {arc.version}")
        print(f"  Header size: {len(arc.content_header)}")
        print(f"  Entries: {len(arc)}")
        print(f"  Payload bytes: {payload}")
        print(f"  Archive size: {size}")
    return True


def cmd_get(archive: str, tag: str, *, output: Optional[str] = None) -> bool:
    """Write one entry's bytes to ``output`` or stdout."""
    with Archive.open(archive) as arc:
        data = arc.get(tag)
    if output:
        os.makedirs(os.path.dirname(output) or ".", exist_ok=True)
        with open(output, "wb") as fh:
            fh.write(data)
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.flush()
    return True


def cmd_unpack(
    archive: str,
    *,
    outdir: str = ".",
    tags: Optional[List[str]] = None,
    exists: str = "rename",
    quiet: bool = False,
) -> bool:
    """Extract entries to files under ``outdir``, one file per tag."""
    with Archive.open(archive) as arc:
        wanted = tags or arc.tags()
        for tag in wanted:
            if tag not in arc:
                raise TagNotFound(f"Tag not found: {tag!r}")
        total = len(wanted)
        written = skipped = renamed = 0
        processed_bytes = 0
        t0 = time.time()
        for n, tag in enumerate(wanted, 1):
            dst = os.path.join(outdir or ".", tag_to_relpath(tag))
            os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
            actual_dst = dst
            if os.path.lexists(actual_dst):
                if exists == "overwrite":
                    if os.path.isdir(actual_dst) and not os.path.islink(actual_dst):
                        raise RuntimeError(f"Cannot overwrite directory with file: {actual_dst}")
                elif exists == "skip":
                    print(f"    skipping: {tag} (exists)")
                    skipped += 1
                    continue
                elif exists == "rename":
                    actual_dst = _next_nonconflicting_path(actual_dst)
                else:
                    raise RuntimeError(f"Destination exists: {actual_dst}")
            data = arc.get(tag)
            if not quiet:
                print(f" unpacking: {n:>4}/{total:<4} {tag}")
            with open(actual_dst, "wb") as fh:
                fh.write(data)
            if actual_dst != dst:
                print(f"       note: renamed to {actual_dst}")
                renamed += 1
            written += 1
            processed_bytes += len(data)
    dt = max(0.000001, time.time() - t0)
    print(
        f"Done: unpacked {written}/{total} entries ({processed_bytes} bytes) in {dt:.1f}s; "
        f"skipped={skipped} renamed={renamed}"
    )
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="ugrpack",
        description="Pack tagged files into a single ugrpack archive and read them back",
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_pack = sub.add_parser("pack", help="Build an archive from a JSON manifest")
    ap_pack.add_argument("manifest", help="JSON manifest mapping tag -> source path")
    ap_pack.add_argument("output", help="Output archive path")
    ap_pack.add_argument("--base-dir", help="Resolve relative source paths here (default: manifest directory)")
    ap_pack.add_argument("--verbose", "-v", action="store_true", help="Log build progress to stderr")
    ap_pack.add_argument("--debug", action="store_true", help="Log per-entry byte ranges (implies --verbose)")
    ap_pack.add_argument("--quiet", help="limit outputs to errors only", action="store_true")

    ap_list = sub.add_parser("list", help="List archive tags")
    ap_list.add_argument("archive", help="Archive path")

    ap_info = sub.add_parser("info", help="Show archive information")
    ap_info.add_argument("archive", help="Archive path")

    ap_get = sub.add_parser("get", help="Read one entry")
    ap_get.add_argument("archive", help="Archive path")
    ap_get.add_argument("tag", help="Entry tag")
    ap_get.add_argument("--output", "-o", help="Write to this file instead of stdout")

    ap_unpack = sub.add_parser("unpack", help="Extract entries to files")
    ap_unpack.add_argument("archive", help="Archive path")
    ap_unpack.add_argument("tags", nargs="*", help="Specific tags to extract (default: all)")
    ap_unpack.add_argument("--outdir", default=".", help="Output directory")
    ap_unpack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")
    ap_unpack.add_argument(
        "--exists",
        choices=["overwrite", "skip", "rename", "fail"],
        default="rename",
        help=(
            "What to do if a destination file exists: overwrite, skip, "
            "rename (append ' (n)' before extension), or fail. Default: rename"
        ),
    )

    args = ap.parse_args(argv)
    try:
        if args.cmd == "pack":
            ok = cmd_pack(
                args.manifest,
                args.output,
                base_dir=args.base_dir,
                verbose=args.verbose,
                debug=args.debug,
                quiet=args.quiet,
            )
            if not ok:
                sys.exit(2)
        elif args.cmd == "list":
            cmd_list(args.archive)
        elif args.cmd == "info":
            cmd_info(args.archive)
        elif args.cmd == "get":
            cmd_get(args.archive, args.tag, output=args.output)
        elif args.cmd == "unpack":
            cmd_unpack(args.archive, outdir=args.outdir, tags=args.tags, exists=args.exists, quiet=args.quiet)
        else:
            raise RuntimeError("Unknown command")
    except CorruptHeader as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Hint: the file is not a ugrpack archive or its content header is damaged.", file=sys.stderr)
        sys.exit(2)
    except (UgrPackError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
