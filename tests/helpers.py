"""Skeleton builders shared by the test modules."""

from copycat_capture.skeleton.joints import Body, BodyFrame, GestureResult, JointType

# Anchor bones: 0.2 + 0.2 + 0.3 + 0.3 + 0.25 + 0.25 = 1.5, so norm = 0.75.
BASE_POSITIONS = {
    JointType.HEAD: (0.0, 0.75, 2.25),
    JointType.NECK: (0.0, 0.5, 2.0),
    JointType.SPINE_SHOULDER: (0.0, 0.45, 2.0),
    JointType.SPINE_MID: (0.0, 0.2, 2.0),
    JointType.SPINE_BASE: (0.0, -0.1, 2.0),
    JointType.SHOULDER_LEFT: (-0.2, 0.5, 2.0),
    JointType.SHOULDER_RIGHT: (0.2, 0.5, 2.0),
    JointType.ELBOW_LEFT: (-0.2, 0.2, 2.0),
    JointType.ELBOW_RIGHT: (0.2, 0.2, 2.0),
    JointType.WRIST_LEFT: (-0.2, -0.05, 2.0),
    JointType.WRIST_RIGHT: (0.2, -0.05, 2.0),
    JointType.HAND_LEFT: (-0.21, -0.1, 1.98),
    JointType.HAND_RIGHT: (0.21, -0.1, 1.98),
    JointType.THUMB_LEFT: (-0.17, -0.12, 1.97),
    JointType.THUMB_RIGHT: (0.17, -0.12, 1.97),
    JointType.HAND_TIP_LEFT: (-0.22, -0.16, 1.96),
    JointType.HAND_TIP_RIGHT: (0.22, -0.16, 1.96),
    JointType.HIP_LEFT: (-0.1, -0.12, 2.0),
    JointType.HIP_RIGHT: (0.1, -0.12, 2.0),
    JointType.KNEE_LEFT: (-0.1, -0.55, 2.05),
    JointType.KNEE_RIGHT: (0.1, -0.55, 2.05),
    JointType.ANKLE_LEFT: (-0.1, -0.95, 2.1),
    JointType.ANKLE_RIGHT: (0.1, -0.95, 2.1),
    JointType.FOOT_LEFT: (-0.1, -1.0, 2.0),
    JointType.FOOT_RIGHT: (0.1, -1.0, 2.0),
}
BASE_NORM = 0.75
IDENTITY = (1.0, 0.0, 0.0, 0.0)


def make_body(tracking_id=1, scale=1.0, orientation=IDENTITY):
    return Body(
        tracking_id=tracking_id,
        joints={j: tuple(scale * v for v in p) for j, p in BASE_POSITIONS.items()},
        orientations={j: orientation for j in JointType},
    )


def make_collapsed_body(tracking_id=1):
    return Body(
        tracking_id=tracking_id,
        joints={j: (0.1, 0.2, 1.5) for j in JointType},
        orientations={j: IDENTITY for j in JointType},
    )


def make_frame(bodies, gestures=None):
    """gestures: {tracking_id: {name: confidence}}."""
    gestures = gestures or {}
    return BodyFrame(
        bodies=list(bodies),
        gestures={
            tid: {name: GestureResult(conf > 0.5, conf) for name, conf in samples.items()}
            for tid, samples in gestures.items()
        },
    )
