"""Capture files and replay."""
import pytest

from keytracker.capture import CapturedFrame, format_line, parse_line, read_capture, replay
from keytracker.models.items import MOGLOPHONE

from builders import key_item_frame, zone_frame


def test_parse_line_hex_id():
    frame = parse_line('{"t": 100, "id": "0x00A", "data": "0102"}')
    assert frame == CapturedFrame(frame_id=0x00A, data=b"\x01\x02", timestamp=100)


def test_parse_line_int_id_without_time():
    frame = parse_line('{"id": 85, "data": ""}')
    assert frame.frame_id == 0x055
    assert frame.timestamp is None


@pytest.mark.parametrize("line", ["not json", "[1]", '{"id": true, "data": ""}', '{"id": 10, "data": "zz"}'])
def test_parse_line_rejects(line):
    with pytest.raises(ValueError):
        parse_line(line)


def test_format_line_parses_back():
    frame = CapturedFrame(frame_id=0x118, data=b"\xff", timestamp=7)
    assert parse_line(format_line(frame)) == frame


def test_read_capture_skips_bad_lines(tmp_path):
    path = tmp_path / "capture.jsonl"
    path.write_text(
        "# recorded session\n"
        "\n"
        '{"id": "0x00A", "data": "00"}\n'
        "garbage\n",
        encoding="utf-8",
    )
    frames = list(read_capture(path))
    assert [f.frame_id for f in frames] == [0x00A]


def test_replay(engine, tmp_path):
    path = tmp_path / "capture.jsonl"
    lines = [
        format_line(CapturedFrame(0x00A, zone_frame(230), 5000)),
        format_line(CapturedFrame(0x00A, zone_frame(294), 5100)),
        format_line(CapturedFrame(0x055, key_item_frame({MOGLOPHONE}), 5200)),
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    count, events = replay(engine, path)
    assert count == 3
    assert events
    assert engine.gated_zone_entry_time() == 5100
    assert engine.get_timestamp(MOGLOPHONE) == 5200
