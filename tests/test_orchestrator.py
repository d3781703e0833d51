import json
import pathlib as pl
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from copycat_capture.classifiers import normalizer
from copycat_capture.core import config, orchestrator
from copycat_capture.core.export import (
    InvalidTransitionError,
    SessionRecorder,
    SessionState,
)

from helpers import BASE_POSITIONS, make_body, make_collapsed_body, make_frame

PHRASE = "go_to_school"
CONFIRM = {"sw1": 0.3, "sw2": 0.3}


def read_lines(path):
    return pl.Path(path).read_bytes().decode(config.SESSION_ENCODING).splitlines()


def pushed(outlet):
    return [c.args[0][0] for c in outlet.push_sample.call_args_list]


class CaptureLoopTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = pl.Path(self._tmp.name)
        self.outlet = MagicMock()
        self.recorder = SessionRecorder(self.root)
        self.loop = orchestrator.CaptureLoop(
            self.recorder, PHRASE, self.root, lsl_outlet=self.outlet
        )
        self._print = patch("builtins.print")
        self._print.start()

    def tearDown(self):
        self._print.stop()
        self.recorder.discard()
        self._tmp.cleanup()

    def tick(self, bodies, gestures=None):
        self.loop.process(make_frame(bodies, gestures))


class TestCaptureLoop(CaptureLoopTestCase):
    def test_absent_frame_is_skipped(self):
        self.loop.recording = True
        self.loop.process(None)
        self.assertEqual(self.loop.frame_count, 0)
        self.assertEqual(self.recorder.state, SessionState.IDLE)

    def test_no_writing_while_not_recording(self):
        self.tick([make_body(1)])
        self.assertEqual(self.recorder.state, SessionState.IDLE)
        self.assertFalse((self.root / PHRASE).exists())

    def test_confirmed_session_is_committed(self):
        self.loop.recording = True
        self.tick([make_body(7)], {7: CONFIRM})
        self.tick([make_body(7)])
        path = self.recorder.path
        self.loop.recording = False
        self.tick([make_body(7)])

        self.assertEqual(self.recorder.state, SessionState.COMMITTED)
        lines = read_lines(path)
        self.assertEqual(len(lines), 2)
        self.assertEqual(lines[0], normalizer.normalize(make_body(7)).to_line())
        self.assertTrue(any(m.startswith("session_commit: ") for m in pushed(self.outlet)))
        self.assertEqual(self.recorder.session_counter, 2)

    def test_unconfirmed_session_is_discarded(self):
        self.loop.record_button_pressed()
        self.tick([make_body(7)], {7: {"sw1": 0.3}})
        path = self.recorder.path
        self.loop.record_button_pressed()
        self.tick([make_body(7)])

        self.assertEqual(self.recorder.state, SessionState.DISCARDED)
        self.assertFalse(path.exists())
        self.assertEqual(self.recorder.session_counter, 1)
        self.assertTrue(any(m.startswith("session_discard: ") for m in pushed(self.outlet)))

    def test_every_tracked_body_is_written(self):
        self.loop.recording = True
        empty = make_body(0)
        self.tick([make_body(1), empty, make_body(2, scale=1.1)])
        self.tick([make_body(1), empty, make_body(2, scale=1.1)])
        self.assertEqual(self.loop.frames_captured, 4)
        self.recorder.commit()
        self.assertEqual(len(read_lines(self.recorder.path)), 4)

    def test_next_attempt_gets_next_number(self):
        for _ in range(2):
            self.loop.recording = True
            self.tick([make_body(3)], {3: CONFIRM})
            self.loop.recording = False
            self.tick([make_body(3)])
        self.assertEqual(self.recorder.last_session, 2)
        self.assertTrue((self.root / PHRASE / "1" / f"{PHRASE}_1.txt").exists())
        self.assertTrue((self.root / PHRASE / "2" / f"{PHRASE}_2.txt").exists())

    def test_tracking_change_resets_gate(self):
        self.tick([make_body(5)], {5: {"sw1": 0.9}})
        self.assertTrue(self.loop.slots[0].gate.done["sw1"])

        self.tick([make_body(6)], {6: {"sw2": 0.9}})
        self.assertEqual(self.loop.slots[0].tracking_id, 6)
        self.assertFalse(self.loop.slots[0].gate.done["sw1"])
        self.assertFalse(self.loop.slots[0].gate.done["sw2"])

    def test_lost_body_pauses_slot(self):
        self.tick([make_body(5)], {5: {"sw1": 0.9}})
        self.tick([make_body(0)])
        slot = self.loop.slots[0]
        self.assertTrue(slot.paused)
        self.assertFalse(slot.gate.done["sw1"])

    def test_lost_confirmation_discards(self):
        self.loop.recording = True
        self.tick([make_body(5)], {5: CONFIRM})
        self.tick([make_body(0)])
        path = self.recorder.path
        self.loop.recording = False
        self.tick([make_body(0)])
        self.assertEqual(self.recorder.state, SessionState.DISCARDED)
        self.assertFalse(path.exists())

    def test_gestures_of_other_bodies_are_ignored(self):
        self.tick([make_body(5)], {9: CONFIRM})
        self.assertFalse(self.loop.commit_confirmed)

    def test_degenerate_pose_is_skipped(self):
        self.loop.recording = True
        self.tick([make_collapsed_body(4)])
        self.tick([make_body(4)])

        self.assertEqual(self.loop.frames_captured, 1)
        self.assertTrue(any(m.startswith("degenerate_pose: ") for m in pushed(self.outlet)))
        self.recorder.commit()
        self.assertEqual(len(read_lines(self.recorder.path)), 1)

    def test_write_failure_fails_session(self):
        self.loop.recording = True
        self.tick([make_body(4)])
        path = self.recorder.path
        with patch.object(self.recorder, "append", side_effect=OSError("disk full")):
            self.tick([make_body(4)], {4: CONFIRM})

        self.assertEqual(self.recorder.state, SessionState.FAILED)
        self.assertTrue((path.parent / config.BAD_SAMPLE_FILENAME).exists())
        self.assertTrue(any(m.startswith("session_failed: ") for m in pushed(self.outlet)))

        self.tick([make_body(4)])
        self.loop.recording = False
        self.tick([make_body(4)])
        self.assertEqual(self.recorder.state, SessionState.FAILED)
        self.assertTrue(path.exists())

        self.loop.recording = True
        self.tick([make_body(4)])
        self.assertEqual(self.recorder.active_session, 2)

    def test_commit_failure_marks_session_bad(self):
        self.loop.recording = True
        self.tick([make_body(4)], {4: CONFIRM})
        path = self.recorder.path
        handle = self.recorder._handle
        broken = MagicMock()
        broken.close.side_effect = OSError("disk full")
        self.recorder._handle = broken
        try:
            self.loop.recording = False
            self.tick([make_body(4)])
        finally:
            handle.close()

        self.assertEqual(self.recorder.state, SessionState.FAILED)
        self.assertTrue((path.parent / config.BAD_SAMPLE_FILENAME).exists())
        self.assertTrue(any(m.startswith("session_failed: ") for m in pushed(self.outlet)))

    def test_refused_start_keeps_loop_running(self):
        with patch.object(
            self.recorder,
            "start_session",
            side_effect=InvalidTransitionError("already open"),
        ):
            self.loop.recording = True
            self.tick([make_body(4)])
        self.tick([make_body(4)], {4: {"sw1": 0.9}})

        self.assertFalse(self.recorder.is_writing)
        self.assertTrue(self.loop.slots[0].gate.done["sw1"])
        self.assertTrue(any(m.startswith("session_failed: ") for m in pushed(self.outlet)))

    def test_start_gesture_marker_on_rising_edge(self):
        self.tick([make_body(8)], {8: {"ct_Left": 0.99, "ct2": 0.99}})
        self.tick([make_body(8)], {8: {"ct_Left": 0.99, "ct2": 0.99}})
        markers = [m for m in pushed(self.outlet) if m.startswith("start_gesture_detected")]
        self.assertEqual(markers, ["start_gesture_detected: body 8"])

    def test_close_finishes_open_session(self):
        with self.loop:
            self.loop.recording = True
            self.tick([make_body(2)], {2: CONFIRM})
        self.assertEqual(self.recorder.state, SessionState.COMMITTED)

    def test_extra_body_slots_are_created(self):
        loop = orchestrator.CaptureLoop(self.recorder, PHRASE, body_count=1)
        loop.process(make_frame([make_body(1), make_body(2)]))
        self.assertEqual(len(loop.slots), 2)


def write_replay(path, ticks):
    with open(path, "w", encoding="utf-8") as f:
        for tick in ticks:
            f.write(json.dumps(tick) + "\n")


def body_json(tracking_id):
    return {
        "tracking_id": tracking_id,
        "joints": {j.name: list(p) for j, p in BASE_POSITIONS.items()},
        "orientations": {j.name: [1.0, 0.0, 0.0, 0.0] for j in BASE_POSITIONS},
    }


class TestRun(unittest.TestCase):
    def test_replay_session_is_committed(self):
        confirm = {"sw1": {"detected": True, "confidence": 0.4},
                   "sw2": {"detected": True, "confidence": 0.4}}
        ticks = [
            {"recording": False, "bodies": [body_json(3)]},
            {"recording": True, "bodies": [body_json(3)], "gestures": {"3": confirm}},
            None,
            {"recording": True, "bodies": [body_json(3)]},
            {"recording": True, "bodies": [body_json(3)]},
            {"recording": False, "bodies": [body_json(3)]},
        ]
        with tempfile.TemporaryDirectory() as tmp, patch("builtins.print"):
            replay = pl.Path(tmp) / "ticks.jsonl"
            write_replay(replay, ticks)

            recorder = orchestrator.run(PHRASE, replay, root_path=pl.Path(tmp) / "data")

            self.assertEqual(recorder.state, SessionState.COMMITTED)
            self.assertEqual(len(read_lines(recorder.path)), 3)

    def test_unfinished_replay_session_is_closed(self):
        ticks = [{"recording": True, "bodies": [body_json(3)]}]
        with tempfile.TemporaryDirectory() as tmp, patch("builtins.print"):
            replay = pl.Path(tmp) / "ticks.jsonl"
            write_replay(replay, ticks)

            recorder = orchestrator.run(PHRASE, replay, root_path=tmp)

            self.assertEqual(recorder.state, SessionState.DISCARDED)
            self.assertFalse(recorder.is_writing)

    def test_lsl_outlet_is_created_on_request(self):
        outlet = MagicMock()
        with tempfile.TemporaryDirectory() as tmp, patch("builtins.print"), patch(
            "copycat_capture.core.markers.create_outlet", return_value=outlet
        ) as create:
            replay = pl.Path(tmp) / "ticks.jsonl"
            write_replay(replay, [])
            orchestrator.run(PHRASE, replay, root_path=tmp, use_lsl=True, source_id="lab2")

        create.assert_called_once_with("lab2")
        messages = pushed(outlet)
        self.assertTrue(messages[0].startswith("capture_open: "))
        self.assertTrue(messages[-1].startswith("capture_close: "))


if __name__ == "__main__":
    unittest.main()
