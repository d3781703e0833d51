"""file containing functions for turning a skeleton into a body size normalized record."""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from copycat_capture.core import config
from copycat_capture.skeleton.joints import Body, JointType


class DegeneratePoseError(ValueError):
    """Raised when the anchor bones of a body sum to zero length."""


@dataclass(frozen=True)
class NormalizedRecord:
    """One frame of one body, ready to be written to a session file.

    Attributes:
        norm: half the summed anchor bone lengths.
        quaternions: rounded (w, x, y, z) per orientation joint.
        positions: rounded (x, y, z) / norm per position joint.
    """

    norm: float
    quaternions: Tuple[Tuple[float, float, float, float], ...]
    positions: Tuple[Tuple[float, float, float], ...]

    def to_line(self) -> str:
        """Serialize to the record wire format, without the line terminator."""
        quaternion_block = "".join(
            format_number(value, config.QUATERNION_DECIMALS) + " "
            for quaternion in self.quaternions
            for value in quaternion
        )
        position_block = "".join(
            format_number(value, config.POSITION_DECIMALS) + " "
            for position in self.positions
            for value in position
        )
        return f"{quaternion_block} {config.RECORD_DELIMITER} {position_block}"


def format_number(value: float, decimals: int) -> str:
    """Shortest fixed point rendering of an already rounded value.

    Args:
        value: number to render.
        decimals: maximum number of decimals kept.

    Returns:
        str such as "1", "-0.5" or "0.12345", never in exponent form.
    """
    text = f"{round(float(value), decimals):.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


def bone_length(body: Body, joint_a: JointType, joint_b: JointType) -> float:
    """Euclidean distance between two joints, rounded to config.BONE_DECIMALS."""
    length = np.linalg.norm(body.position(joint_a) - body.position(joint_b))
    return round(float(length), config.BONE_DECIMALS)


def compute_norm(body: Body) -> float:
    """Body size factor: half the sum of the rounded anchor bone lengths."""
    return sum(bone_length(body, a, b) for a, b in config.ANCHOR_BONES) / 2.0


def normalize(
    body: Body,
    position_joints: Optional[Sequence[JointType]] = None,
    orientation_joints: Optional[Sequence[JointType]] = None,
) -> NormalizedRecord:
    """This function builds the normalized record of a single body.

    Joint positions are divided by the body size factor so recordings of
    people of different size, or at different distances from the sensor,
    are comparable. Orientation quaternions are carried as is, rounded.

    Args:
        body: tracked body from the current frame.
        position_joints: joints of the position block, config.POSITION_JOINTS if None.
        orientation_joints: joints of the orientation block, config.ORIENTATION_JOINTS if None.

    Returns:
        the NormalizedRecord of the body.

    Raises:
        DegeneratePoseError: if the anchor bones have zero total length.
    """
    if position_joints is None:
        position_joints = config.POSITION_JOINTS
    if orientation_joints is None:
        orientation_joints = config.ORIENTATION_JOINTS

    norm = compute_norm(body)
    if norm == 0:
        raise DegeneratePoseError(
            f"Anchor bones of body {body.tracking_id} have zero length."
        )

    quaternions = tuple(
        tuple(round(float(v), config.QUATERNION_DECIMALS) for v in body.orientation(j))
        for j in orientation_joints
    )
    positions = tuple(
        tuple(round(float(v) / norm, config.POSITION_DECIMALS) for v in body.position(j))
        for j in position_joints
    )
    return NormalizedRecord(norm=norm, quaternions=quaternions, positions=positions)


def parse_record(line: str) -> Tuple[np.ndarray, np.ndarray]:
    """Decode one stored record line.

    Args:
        line: a session file line, with or without its terminator.

    Returns:
        quaternions as an (n, 4) array and normalized positions as an (n, 3) array.

    Raises:
        ValueError: if the delimiter is missing or a block has the wrong size.
    """
    quaternion_text, sep, position_text = line.partition(config.RECORD_DELIMITER)
    if not sep:
        raise ValueError(f"Record has no '{config.RECORD_DELIMITER}' delimiter.")

    quaternions = np.array(quaternion_text.split(), dtype=np.float64)
    positions = np.array(position_text.split(), dtype=np.float64)
    if quaternions.size % 4 or positions.size % 3:
        raise ValueError("Record blocks are not whole quaternions / positions.")

    return quaternions.reshape(-1, 4), positions.reshape(-1, 3)
