"""Command-line interface for Soundmatch.

Commands:
    identify  - Query the oracle with a single audio file
    insert    - Register an audio file with the oracle
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from uuid import UUID, uuid4

from .client import OracleClient, OracleError
from .matcher import MatchConsolidator

DEFAULT_BASE_URL = "http://localhost:3340"


def _read_audio(path: str) -> bytes | None:
    if not os.path.exists(path):
        print(f"Error: File not found: {path}", file=sys.stderr)
        return None
    with open(path, "rb") as f:
        return f.read()


def cmd_identify(args: argparse.Namespace) -> int:
    """Identify a single audio file."""
    audio = _read_audio(args.file)
    if audio is None:
        return 1

    print(f"Identifying: {args.file}")
    print()

    start = time.time()
    try:
        with OracleClient(args.base_url, api_key=args.api_key) as client:
            results = client.query(audio, os.path.basename(args.file), args.min_confidence)
    except OracleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    elapsed = time.time() - start

    if not results:
        print("No candidates found.")
        return 0

    matches = MatchConsolidator().consolidate(results)
    print(f"Found {len(results)} candidate(s) in {elapsed:.1f}s, {len(matches)} match(es):")
    print()

    for i, r in enumerate(results, 1):
        if r.artist and r.title:
            track_str = f"{r.artist} - {r.title}"
        else:
            track_str = r.title or str(r.track_id)

        marker = " *" if r in matches else ""
        print(f"{i}. {track_str}{marker}")
        print(f"   Track ID: {r.track_id}")
        print(f"   Score: {r.score()}%")
        print()

    return 0


def cmd_insert(args: argparse.Namespace) -> int:
    """Register an audio file with the oracle."""
    audio = _read_audio(args.file)
    if audio is None:
        return 1

    track_id = args.id or uuid4()
    try:
        with OracleClient(args.base_url, api_key=args.api_key) as client:
            client.insert(audio, os.path.basename(args.file), track_id, args.artist, args.title)
    except OracleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Inserted {args.artist} - {args.title}: {track_id}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="soundmatch",
        description="Talk to an audio fingerprinting oracle",
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"Oracle base URL (default: {DEFAULT_BASE_URL})",
    )
    parser.add_argument(
        "--api-key",
        default="",
        help="Oracle API key",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # identify command
    identify_parser = subparsers.add_parser("identify", help="Identify a single audio file")
    identify_parser.add_argument("file", help="Audio file to identify")
    identify_parser.add_argument(
        "--min-confidence",
        type=float,
        default=0.2,
        help="Minimum confidence applied by the oracle (default: 0.2)",
    )
    identify_parser.set_defaults(func=cmd_identify)

    # insert command
    insert_parser = subparsers.add_parser("insert", help="Register an audio file")
    insert_parser.add_argument("file", help="Audio file to register")
    insert_parser.add_argument("--artist", "-a", required=True, help="Artist label")
    insert_parser.add_argument("--title", "-t", required=True, help="Title label")
    insert_parser.add_argument(
        "--id",
        type=UUID,
        help="Track ID (default: random UUID)",
    )
    insert_parser.set_defaults(func=cmd_insert)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
