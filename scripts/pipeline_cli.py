"""Command-line helpers for running and inspecting meeting processing."""

from __future__ import annotations

import argparse
import json
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from meeting_processor.common.config import AppSettings
from meeting_processor.common.errors import MeetingProcessingError
from meeting_processor.common.factory import build_meeting_processor
from meeting_processor.common.s3io import S3Client
from meeting_processor.common.sse import sse_frames, to_ndjson
from meeting_processor.common.state_machine import MeetingProcessor
from meeting_processor.common.store import InMemoryMeetingStore
from meeting_processor.models.records import Meeting, MeetingFile
from meeting_processor.models.types import PLAIN_TEXT_TYPE

DEFAULT_LOCAL_USER = "local-user"
DEFAULT_LIST_LIMIT = 10


def print_json(data: Dict[str, Any]) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def run_batch(processor: MeetingProcessor, meeting_id: str, user_id: str) -> None:
    try:
        result = processor.process(meeting_id, user_id)
    except MeetingProcessingError as exc:
        raise SystemExit(f"Processing failed ({exc.status_code}): {exc}")
    print_json(result.model_dump(mode="json", by_alias=True))


def run_stream(processor: MeetingProcessor, meeting_id: str, user_id: str, sse: bool) -> None:
    events = processor.process_stream(meeting_id, user_id)
    frames = sse_frames(events) if sse else (to_ndjson(event) for event in events)
    for frame in frames:
        sys.stdout.write(frame)
        sys.stdout.flush()


def cmd_process(args: argparse.Namespace) -> None:
    processor = build_meeting_processor(AppSettings.from_env())
    run_batch(processor, args.meeting_id, args.user)


def cmd_stream(args: argparse.Namespace) -> None:
    processor = build_meeting_processor(AppSettings.from_env())
    run_stream(processor, args.meeting_id, args.user, args.sse)


def seed_local_meeting(store: InMemoryMeetingStore, path: Path, user_id: str, title: Optional[str]) -> Meeting:
    """Create a meeting in ``store`` whose only file is ``path``."""
    if not path.is_file():
        raise SystemExit(f"File not found: {path}")

    file_type = mimetypes.guess_type(path.name)[0] or PLAIN_TEXT_TYPE
    meeting = store.create_meeting(Meeting(title=title or path.stem, user_id=user_id))
    store.add_file(
        meeting.id,
        MeetingFile(
            meeting_id=meeting.id,
            file_name=path.name,
            file_type=file_type,
            file_path=str(path.resolve()),
        ),
    )
    return meeting


def cmd_local(args: argparse.Namespace) -> None:
    store = InMemoryMeetingStore()
    meeting = seed_local_meeting(store, Path(args.path), args.user, args.title)
    processor = build_meeting_processor(AppSettings.from_env(), store=store)

    if args.stream:
        run_stream(processor, meeting.id, args.user, args.sse)
    else:
        run_batch(processor, meeting.id, args.user)


def list_meetings(s3: S3Client, prefix: str, limit: int) -> List[Dict[str, Any]]:
    keys = [key for key in s3.list_keys(prefix) if key.endswith("/meeting.json")]
    meetings = [s3.read_json_file(key) for key in keys]
    meetings.sort(key=lambda m: m.get("updatedAt", ""), reverse=True)
    return meetings[:limit]


def cmd_list(args: argparse.Namespace) -> None:
    settings = AppSettings.from_env()
    bucket = args.bucket or settings.store.bucket
    if not bucket:
        raise SystemExit("Meeting bucket not provided. Use --bucket or set BUCKET.")

    prefix = args.prefix or settings.store.prefix
    meetings = list_meetings(S3Client(bucket, region=settings.store.region), prefix, args.limit)

    if not meetings:
        print("No meetings found.")
        return

    print(f"Recent meetings in s3://{bucket}/{prefix}")
    for meeting in meetings:
        files = len(meeting.get("files", []))
        print(
            f"- {meeting['id']} | {meeting.get('title', '')} | {meeting.get('status')} | "
            f"{files} files | {meeting.get('updatedAt', '')}"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--log-level", default=None, help="Logging level (defaults to LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    process_parser = subparsers.add_parser("process", help="Process a stored meeting in batch mode")
    process_parser.add_argument("meeting_id", help="Meeting identifier")
    process_parser.add_argument("--user", required=True, help="Owning user id")
    process_parser.set_defaults(func=cmd_process)

    stream_parser = subparsers.add_parser("stream", help="Process a stored meeting, printing events as they happen")
    stream_parser.add_argument("meeting_id", help="Meeting identifier")
    stream_parser.add_argument("--user", required=True, help="Owning user id")
    stream_parser.add_argument("--sse", action="store_true", help="Print SSE frames instead of NDJSON")
    stream_parser.set_defaults(func=cmd_stream)

    local_parser = subparsers.add_parser("local", help="Process a local transcript file with an in-memory store")
    local_parser.add_argument("path", help="Path to a .txt transcript")
    local_parser.add_argument("--title", help="Meeting title (defaults to the file name)")
    local_parser.add_argument("--user", default=DEFAULT_LOCAL_USER, help="Owning user id")
    local_parser.add_argument("--stream", action="store_true", help="Use streaming mode")
    local_parser.add_argument("--sse", action="store_true", help="With --stream, print SSE frames")
    local_parser.set_defaults(func=cmd_local)

    list_parser = subparsers.add_parser("list", help="List recent meetings in the S3 store")
    list_parser.add_argument("--bucket", help="Meeting bucket (defaults to BUCKET)")
    list_parser.add_argument("--prefix", help="Meeting prefix (defaults to MEETING_PREFIX)")
    list_parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_LIST_LIMIT,
        help=f"Maximum meetings to display (default {DEFAULT_LIST_LIMIT})",
    )
    list_parser.set_defaults(func=cmd_list)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    level = args.log_level or AppSettings.from_env().log_level
    # Logs go to stderr so streamed events stay machine-readable
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), stream=sys.stderr)
    args.func(args)


if __name__ == "__main__":  # pragma: no cover
    main()
