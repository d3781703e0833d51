"""Python based runner."""

import pathlib as pl
from typing import Any, List, Optional

from copycat_capture.classifiers import normalizer
from copycat_capture.classifiers.gesture_gate import GestureSlot
from copycat_capture.core import config, markers
from copycat_capture.core.export import InvalidTransitionError, SessionRecorder
from copycat_capture.core.sensor import ReplayFrameSource, load_gestures
from copycat_capture.skeleton.joints import Body, BodyFrame


class CaptureLoop:
    """Per sensor tick orchestration of gesture gates and the session recorder.

    All state is touched from the thread calling process(); frames must not be
    fanned out to other threads.
    """

    def __init__(
        self,
        recorder: SessionRecorder,
        phrase: str,
        root_path=None,
        lsl_outlet: Any = None,
        body_count: Optional[int] = None,
    ):
        self.recorder = recorder
        self.phrase = phrase
        self.root_path = pl.Path(root_path) if root_path is not None else recorder.root_path
        self.lsl_outlet = lsl_outlet
        self.slots: List[GestureSlot] = [
            GestureSlot() for _ in range(body_count or config.BODY_COUNT)
        ]
        self.recording = False
        self.frame_count = 0
        self.frames_captured = 0
        self._was_recording = False

    def record_button_pressed(self) -> None:
        self.recording = not self.recording

    @property
    def commit_confirmed(self) -> bool:
        return any(slot.gate.commit_confirmed for slot in self.slots)

    def process(self, frame: Optional[BodyFrame]) -> None:
        """Handle one sensor tick.

        Args:
            frame: latest body frame, or None if the sensor had none this tick.
        """
        if frame is None:
            return
        self.frame_count += 1
        self._update_recording()

        for index, body in enumerate(frame.bodies):
            slot = self._slot(index)
            slot.sync(body.tracking_id)
            if not body.is_tracked:
                continue

            self._record_body(body)

            start_before = slot.gate.start_triggered
            slot.observe_frame(frame.gestures_for(body.tracking_id))
            if slot.gate.start_triggered and not start_before:
                markers.push_marker(
                    self.lsl_outlet, "start_gesture_detected", f"body {body.tracking_id}"
                )

    def close(self) -> None:
        """Finish an open session as if the record switch was turned off."""
        self.recording = False
        self._update_recording()

    def __enter__(self) -> "CaptureLoop":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _slot(self, index: int) -> GestureSlot:
        while index >= len(self.slots):
            self.slots.append(GestureSlot())
        return self.slots[index]

    def _update_recording(self) -> None:
        if self.recording and not self._was_recording:
            self._begin_session()
        elif not self.recording and self._was_recording:
            self._end_session()
        self._was_recording = self.recording

    def _begin_session(self) -> None:
        if self.recorder.phrase != self.phrase:
            self.recorder.set_phrase(self.phrase)
        try:
            path = self.recorder.start_session(root_path=self.root_path)
        except (OSError, InvalidTransitionError) as err:
            markers.push_marker(self.lsl_outlet, "session_failed", f"{self.phrase} ({err})")
            return
        self.frames_captured = 0
        markers.push_marker(self.lsl_outlet, "session_start", str(path))

    def _end_session(self) -> None:
        if not self.recorder.is_writing:
            return
        path = self.recorder.path
        if self.commit_confirmed:
            try:
                self.recorder.commit()
            except OSError as err:
                self._fail_session(err)
                return
            markers.push_marker(
                self.lsl_outlet, "session_commit", f"{path} ({self.frames_captured} frames)"
            )
        else:
            self.recorder.discard()
            markers.push_marker(self.lsl_outlet, "session_discard", str(path))

    def _record_body(self, body: Body) -> None:
        if not self.recorder.is_writing:
            return
        try:
            record = normalizer.normalize(body)
        except normalizer.DegeneratePoseError as err:
            markers.push_marker(
                self.lsl_outlet, "degenerate_pose", f"frame {self.frame_count} - {err}"
            )
            return
        try:
            self.recorder.append(record.to_line() + "\n")
        except OSError as err:
            self._fail_session(err)
            return
        self.frames_captured += 1

    def _fail_session(self, err: OSError) -> None:
        markers.push_marker(self.lsl_outlet, "session_failed", f"{self.recorder.path} ({err})")
        try:
            self.recorder.fail()
        except OSError as mark_err:
            print(f"Could not mark {self.recorder.path} as bad: {mark_err}")


def run(
    phrase: str,
    replay_path,
    root_path=None,
    use_lsl: bool = False,
    source_id: Optional[str] = None,
) -> SessionRecorder:
    """This function is responsible for the main processing of the pipeline.

    The gesture databases are registered with the frame source, then every tick
    of the source is handed to a CaptureLoop that writes the sessions of the
    phrase under root_path. The record switch follows the "recording" values of
    the replayed ticks. An open session is finished when the source runs out.

    Args:
        phrase: cli user input str naming the phrase being signed.
        replay_path: JSON lines file of recorded sensor ticks.
        root_path: directory the session files are written to.
        use_lsl: cli user input boolean to stream capture events over lsl.
        source_id: lsl source id of this capture station.

    Returns:
        the SessionRecorder, for inspection of the last session.
    """
    lsl_outlet = markers.create_outlet(source_id) if use_lsl else None
    markers.push_marker(lsl_outlet, "capture_open")

    recorder = SessionRecorder(root_path)
    with ReplayFrameSource(replay_path) as source, CaptureLoop(
        recorder, phrase, lsl_outlet=lsl_outlet
    ) as loop:
        load_gestures(source)
        for frame in source:
            if source.recording_signal is not None:
                loop.recording = source.recording_signal
            loop.process(frame)

    markers.push_marker(lsl_outlet, "capture_close")
    return recorder
