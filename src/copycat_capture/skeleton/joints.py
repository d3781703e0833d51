"""Skeleton data types delivered by the body tracking sensor."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, NamedTuple, Optional, Tuple

import numpy as np


class JointType(IntEnum):
    """Kinect v2 joint identifiers, numbered as the sensor numbers them."""

    SPINE_BASE = 0
    SPINE_MID = 1
    NECK = 2
    HEAD = 3
    SHOULDER_LEFT = 4
    ELBOW_LEFT = 5
    WRIST_LEFT = 6
    HAND_LEFT = 7
    SHOULDER_RIGHT = 8
    ELBOW_RIGHT = 9
    WRIST_RIGHT = 10
    HAND_RIGHT = 11
    HIP_LEFT = 12
    KNEE_LEFT = 13
    ANKLE_LEFT = 14
    FOOT_LEFT = 15
    HIP_RIGHT = 16
    KNEE_RIGHT = 17
    ANKLE_RIGHT = 18
    FOOT_RIGHT = 19
    SPINE_SHOULDER = 20
    HAND_TIP_LEFT = 21
    THUMB_LEFT = 22
    HAND_TIP_RIGHT = 23
    THUMB_RIGHT = 24


class GestureResult(NamedTuple):
    """One discrete gesture result for one body in one frame."""

    detected: bool
    confidence: float


@dataclass
class Body:
    """One body slot of a frame. A tracking_id of 0 means the slot is empty.

    Args:
        tracking_id: sensor assigned id of the tracked person.
        joints: 3d camera space position (meters) per joint.
        orientations: joint orientation quaternion as (w, x, y, z).
    """

    tracking_id: int = 0
    joints: Dict[JointType, Tuple[float, float, float]] = field(default_factory=dict)
    orientations: Dict[JointType, Tuple[float, float, float, float]] = field(
        default_factory=dict
    )

    @property
    def is_tracked(self) -> bool:
        return self.tracking_id != 0

    def position(self, joint: JointType) -> np.ndarray:
        return np.asarray(self.joints[joint], dtype=np.float64)

    def orientation(self, joint: JointType) -> np.ndarray:
        return np.asarray(self.orientations[joint], dtype=np.float64)


@dataclass
class BodyFrame:
    """A snapshot of every body slot at one sensor tick.

    Args:
        bodies: body slots in sensor order, tracked or not.
        gestures: gesture results keyed by tracking id then gesture name.
        timestamp: sensor relative time of the frame, if known.
    """

    bodies: List[Body] = field(default_factory=list)
    gestures: Dict[int, Dict[str, GestureResult]] = field(default_factory=dict)
    timestamp: Optional[float] = None

    def gestures_for(self, tracking_id: int) -> Dict[str, GestureResult]:
        return self.gestures.get(tracking_id, {})
