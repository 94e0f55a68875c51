"""Server-sent event framing for processing event streams."""

import json
import logging
from typing import Dict, Iterable, Iterator

logger = logging.getLogger(__name__)

STREAM_FAILED = {"type": "error", "content": "Stream failed"}


def to_ndjson(event) -> str:
    """Render one event as a newline-delimited JSON line."""
    return event.to_json() + "\n"


def format_sse_frame(data: str) -> str:
    return f"event: message\ndata: {data}\n\n"


def sse_frames(events: Iterable) -> Iterator[str]:
    """
    Wrap processing events as SSE frames.

    An exception from the underlying iterator becomes a final
    ``Stream failed`` error frame instead of propagating to the transport.
    """
    iterator = iter(events)
    try:
        for event in iterator:
            yield format_sse_frame(event.to_json())
    except Exception:
        logger.exception("SSE stream failed")
        yield format_sse_frame(json.dumps(STREAM_FAILED))
    finally:
        close = getattr(iterator, "close", None)
        if close is not None:
            close()


def sse_headers(cors_origin: str) -> Dict[str, str]:
    return {
        "Content-Type": "text/event-stream",
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "Access-Control-Allow-Origin": cors_origin,
        "Access-Control-Allow-Headers": "Cache-Control",
    }
