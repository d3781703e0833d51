"""Body frame sources: the boundary between the sensor and the capture loop."""

import json
import pathlib as pl
from typing import IO, Iterable, Iterator, List, Optional, Protocol, Set, Tuple

from copycat_capture.core import config
from copycat_capture.skeleton.joints import Body, BodyFrame, GestureResult, JointType


class FrameSource(Protocol):
    """What the capture loop needs from a body tracking sensor."""

    def register_gesture(self, name: str, database: str) -> None:
        ...

    def acquire_latest_frame(self) -> Optional[BodyFrame]:
        ...

    def __enter__(self) -> "FrameSource":
        ...

    def __exit__(self, exc_type, exc, tb) -> None:
        ...


def load_gestures(
    source: FrameSource, databases: Optional[Iterable[Tuple[str, str]]] = None
) -> List[str]:
    """Register every (gesture name, database path) pair with the source.

    Args:
        source: frame source delivering gesture results.
        databases: pairs to load, config.GESTURE_DATABASES if None.

    Returns:
        the registered gesture names, in load order.
    """
    if databases is None:
        databases = config.GESTURE_DATABASES
    names = []
    for name, database in databases:
        source.register_gesture(name, database)
        names.append(name)
    return names


def _joint_type(key) -> JointType:
    if isinstance(key, str) and not key.isdigit():
        return JointType[key.upper()]
    return JointType(int(key))


def body_from_dict(data: dict) -> Body:
    return Body(
        tracking_id=int(data.get("tracking_id", 0)),
        joints={_joint_type(k): tuple(v) for k, v in data.get("joints", {}).items()},
        orientations={
            _joint_type(k): tuple(v) for k, v in data.get("orientations", {}).items()
        },
    )


def frame_from_dict(data: dict, gesture_names: Optional[Set[str]] = None) -> BodyFrame:
    """Build a BodyFrame from its JSON form.

    Args:
        data: decoded JSON object of one tick.
        gesture_names: only these gestures are kept. All are kept if None.

    Returns:
        the BodyFrame of the tick.
    """
    gestures = {}
    for tracking_id, results in data.get("gestures", {}).items():
        gestures[int(tracking_id)] = {
            name: GestureResult(bool(r.get("detected", False)), float(r["confidence"]))
            for name, r in results.items()
            if gesture_names is None or name in gesture_names
        }
    return BodyFrame(
        bodies=[body_from_dict(b) for b in data.get("bodies", [])],
        gestures=gestures,
        timestamp=data.get("timestamp"),
    )


class ReplayFrameSource:
    """Plays back recorded sensor ticks from a JSON lines file.

    Each line is one tick: {"bodies": [...], "gestures": {...}} plus an optional
    "recording" value carrying the host's record switch. A "null" line is a
    tick on which the sensor had no frame.
    """

    def __init__(self, path):
        self.path = pl.Path(path)
        self.gestures = {}
        self.recording_signal: Optional[bool] = None
        self.exhausted = False
        self._file: Optional[IO[str]] = None

    def register_gesture(self, name: str, database: str) -> None:
        self.gestures[name] = database

    def open(self) -> "ReplayFrameSource":
        if self._file is None:
            self._file = open(self.path, "r", encoding="utf-8")
            self.exhausted = False
        return self

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "ReplayFrameSource":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def acquire_latest_frame(self) -> Optional[BodyFrame]:
        """Read the next tick. Returns None when the tick has no frame or the file ended."""
        if self._file is None:
            raise RuntimeError(f"Replay source {self.path} is not open.")

        line = self._file.readline()
        if not line:
            self.exhausted = True
            return None
        line = line.strip()
        if not line:
            return None

        data = json.loads(line)
        if data is None:
            return None
        if "recording" in data:
            self.recording_signal = bool(data["recording"])
        names = set(self.gestures) if self.gestures else None
        return frame_from_dict(data, names)

    def __iter__(self) -> Iterator[Optional[BodyFrame]]:
        while True:
            frame = self.acquire_latest_frame()
            if self.exhausted:
                return
            yield frame
