"""Capture files - recorded incoming frames that can be replayed into the engine.

One JSON object per line:

    {"t": 1760000000, "id": "0x0A", "data": "0a0e..."}

``t`` is the unix time the frame arrived, ``id`` the frame id (int or hex
string) and ``data`` the frame bytes as hex.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from keytracker.engine import CooldownEngine
    from keytracker.models.events import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapturedFrame:
    """One recorded frame."""
    frame_id: int
    data: bytes
    timestamp: Optional[int] = None


def _parse_frame_id(raw: object) -> int:
    if isinstance(raw, bool):
        raise ValueError("frame id must be a number")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        return int(raw, 0)
    raise ValueError(f"unsupported frame id {raw!r}")


def parse_line(line: str) -> CapturedFrame:
    """Parse one capture line. Raises ValueError on malformed input."""
    try:
        record = json.loads(line)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON: {e}") from e
    if not isinstance(record, dict):
        raise ValueError("capture line is not an object")

    frame_id = _parse_frame_id(record.get("id"))
    data = bytes.fromhex(str(record.get("data", "")))
    timestamp = record.get("t")
    if timestamp is not None:
        timestamp = int(timestamp)
    return CapturedFrame(frame_id=frame_id, data=data, timestamp=timestamp)


def format_line(frame: CapturedFrame) -> str:
    """Serialize a frame as a capture line."""
    record = {"id": f"0x{frame.frame_id:03X}", "data": frame.data.hex()}
    if frame.timestamp is not None:
        record = {"t": frame.timestamp, **record}
    return json.dumps(record)


def read_capture(path: Path) -> Iterator[CapturedFrame]:
    """Yield frames from a capture file, skipping lines that do not parse."""
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip() or line.lstrip().startswith("#"):
                continue
            try:
                yield parse_line(line)
            except (ValueError, TypeError) as e:
                logger.warning("%s:%d: skipping malformed frame: %s", path, line_number, e)


def replay(engine: "CooldownEngine", path: Path) -> tuple[int, list["Event"]]:
    """Feed a capture into the engine. Returns (frames replayed, events)."""
    count = 0
    events: list["Event"] = []
    for frame in read_capture(path):
        events.extend(engine.handle_frame(frame.frame_id, frame.data, now=frame.timestamp))
        count += 1
    return count, events
