"""File containing all global parameters, thresholds, and tables for phrase capture."""

from copycat_capture.skeleton.joints import JointType as J

BODY_COUNT = 6  # body slots reported by the sensor per frame

# Joints written to every record, in wire order. Orientation and position blocks share it.
ORIENTATION_JOINTS = [
    J.HEAD,
    J.NECK,
    J.SHOULDER_RIGHT,
    J.SHOULDER_LEFT,
    J.SPINE_SHOULDER,
    J.ELBOW_RIGHT,
    J.ELBOW_LEFT,
    J.WRIST_RIGHT,
    J.WRIST_LEFT,
    J.HAND_RIGHT,
    J.HAND_LEFT,
    J.THUMB_RIGHT,
    J.THUMB_LEFT,
    J.HAND_TIP_RIGHT,
    J.HAND_TIP_LEFT,
    J.HIP_RIGHT,
    J.HIP_LEFT,
    J.SPINE_BASE,
]
POSITION_JOINTS = list(ORIENTATION_JOINTS)

# Bones summed (then halved) into the body size normalization factor.
ANCHOR_BONES = [
    (J.NECK, J.SHOULDER_LEFT),
    (J.NECK, J.SHOULDER_RIGHT),
    (J.SHOULDER_LEFT, J.ELBOW_LEFT),
    (J.SHOULDER_RIGHT, J.ELBOW_RIGHT),
    (J.ELBOW_LEFT, J.WRIST_LEFT),
    (J.ELBOW_RIGHT, J.WRIST_RIGHT),
]

BONE_DECIMALS = 5
POSITION_DECIMALS = 5
QUATERNION_DECIMALS = 7
RECORD_DELIMITER = "|||"

# Discrete gestures: (name, trained database path). Loaded in this order.
GESTURE_DATABASES = [
    ("sw1", "Database/sw1.gbd"),
    ("sw2", "Database/sw2.gbd"),
    ("ct_Left", "Database/ct.gbd"),
    ("ct2", "Database/ct2.gbd"),
]

# inclusive=False means confidence must be strictly above threshold.
GESTURE_RULES = [
    {"name": "sw1", "threshold": 0.25, "inclusive": False, "requires": None},
    {"name": "sw2", "threshold": 0.23, "inclusive": False, "requires": "sw1"},
    {"name": "ct_Left", "threshold": 0.95, "inclusive": True, "requires": None},
    {"name": "ct2", "threshold": 0.95, "inclusive": True, "requires": "ct_Left"},
]
CONFIRM_GESTURE = "sw2"  # chain stage that lets a session be kept
START_GESTURE = "ct2"  # chain stage that asks the host to start recording

DATA_ROOT = "PhraseData"
SESSION_FILE_EXTENSION = "txt"
SESSION_ENCODING = "utf-16-le"
SESSION_BUFFER_SIZE = 25000  # bytes
BAD_SAMPLE_FILENAME = "bad_sample.txt"

LSL_STREAM_NAME = "PhraseCapture"
LSL_STREAM_TYPE = "Markers"
LSL_SOURCE_ID = "kinect-v2-copycat"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
