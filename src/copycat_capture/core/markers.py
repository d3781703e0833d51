"""LabStreamingLayer marker stream for capture lifecycle events."""

from datetime import datetime
from typing import Any, Optional

from pylsl import StreamInfo, StreamOutlet

from copycat_capture.core import config


def create_outlet(source_id: Optional[str] = None) -> StreamOutlet:
    """Create the lsl marker outlet.

    Change source_id from the default to match the recording station, ex: "kinect-v2-lab2".

    Args:
        source_id: unique lsl source id of this capture station.

    Returns:
        pylsl StreamOutlet with a single string channel.
    """
    info = StreamInfo(
        config.LSL_STREAM_NAME,
        config.LSL_STREAM_TYPE,
        1,
        0,
        "string",
        source_id or config.LSL_SOURCE_ID,
    )
    channels = info.desc().append_child("channels")
    channels.append_child("channel").append_child_value("label", "Event")

    return StreamOutlet(info)


def timestamp(moment: Optional[datetime] = None) -> str:
    return (moment or datetime.now()).strftime(config.TIMESTAMP_FORMAT)


def push_marker(lsl_outlet: Any, event: str, detail: Optional[str] = None) -> str:
    """Print a capture event and push it to the lsl outlet.

    Args:
        lsl_outlet: pylsl object to stream markers, or None for console only.
        event: short event name, ex: "session_start".
        detail: text after the event name. Defaults to the current time.

    Returns:
        the marker string that was sent.
    """
    marker = f"{event}: {detail if detail is not None else timestamp()}"
    print(marker)
    if lsl_outlet is not None:
        lsl_outlet.push_sample([marker])
    return marker
