"""file containing the staged gesture gate that controls session capture."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Union

from copycat_capture.core import config
from copycat_capture.skeleton.joints import GestureResult


@dataclass(frozen=True)
class GestureRule:
    """Threshold rule for one discrete gesture.

    Attributes:
        name: gesture name as registered with the sensor.
        threshold: confidence the gesture has to reach.
        inclusive: if True the threshold itself counts, else confidence must exceed it.
        requires: name of the gesture that has to count first, if any.
    """

    name: str
    threshold: float
    inclusive: bool = False
    requires: Optional[str] = None

    def passes(self, confidence: float) -> bool:
        if self.inclusive:
            return confidence >= self.threshold
        return confidence > self.threshold


def rules_from_config(rules: Optional[Iterable[Mapping]] = None) -> List[GestureRule]:
    """Build GestureRule objects from a list of dictionaries (config.GESTURE_RULES by default)."""
    if rules is None:
        rules = config.GESTURE_RULES
    return [GestureRule(**rule) for rule in rules]


class GestureGate:
    """Monotonic unlock chains over per-frame gesture confidences of one body.

    A gesture counts once its confidence passes its threshold, and only if the
    gesture it requires already counted. Counted gestures stay counted until
    reset().
    """

    def __init__(
        self,
        rules: Optional[Iterable[GestureRule]] = None,
        confirm_gesture: Optional[str] = None,
        start_gesture: Optional[str] = None,
    ):
        self.rules: List[GestureRule] = (
            list(rules) if rules is not None else rules_from_config()
        )
        self._rules_by_name = {rule.name: rule for rule in self.rules}
        for rule in self.rules:
            if rule.requires is not None and rule.requires not in self._rules_by_name:
                raise ValueError(
                    f"Gesture '{rule.name}' requires unknown gesture '{rule.requires}'."
                )
        self.confirm_gesture = confirm_gesture or config.CONFIRM_GESTURE
        self.start_gesture = start_gesture or config.START_GESTURE
        self.done: Dict[str, bool] = {}
        self.reset()

    def reset(self) -> None:
        self.done = {rule.name: False for rule in self.rules}

    def observe(self, gesture_name: str, confidence: float) -> Dict[str, bool]:
        """Feed one confidence sample.

        Args:
            gesture_name: name of the gesture the sample belongs to. Unknown names are ignored.
            confidence: classifier confidence in [0, 1].

        Returns:
            copy of the gate flags after the sample.
        """
        rule = self._rules_by_name.get(gesture_name)
        if rule is not None and not self.done[rule.name]:
            unlocked = rule.requires is None or self.done[rule.requires]
            if unlocked and rule.passes(confidence):
                self.done[rule.name] = True
        return dict(self.done)

    def observe_all(
        self, samples: Mapping[str, Union[GestureResult, float]]
    ) -> Dict[str, bool]:
        """Feed one frame of samples in rule order.

        Args:
            samples: gesture name to GestureResult (or bare confidence).

        Returns:
            copy of the gate flags after the frame.
        """
        for rule in self.rules:
            if rule.name not in samples:
                continue
            sample = samples[rule.name]
            confidence = sample.confidence if isinstance(sample, GestureResult) else sample
            self.observe(rule.name, confidence)
        return dict(self.done)

    @property
    def commit_confirmed(self) -> bool:
        return self.done.get(self.confirm_gesture, False)

    @property
    def start_triggered(self) -> bool:
        return self.done.get(self.start_gesture, False)

    def __repr__(self) -> str:
        flags = ", ".join(f"{name}={done}" for name, done in self.done.items())
        return f"GestureGate({flags})"


class GestureSlot:
    """Gesture gate bound to one body slot of the sensor."""

    def __init__(self, gate: Optional[GestureGate] = None):
        self.gate = gate if gate is not None else GestureGate()
        self.tracking_id = 0
        self.paused = True

    def sync(self, tracking_id: int) -> bool:
        """Rebind the slot to tracking_id. Returns True if the id changed.

        A new id means a different person, so the gate starts over. The slot
        is paused while no body is tracked.
        """
        if tracking_id == self.tracking_id:
            return False
        self.tracking_id = tracking_id
        self.paused = tracking_id == 0
        self.gate.reset()
        return True

    def observe_frame(self, samples: Mapping[str, GestureResult]) -> Dict[str, bool]:
        if self.paused:
            return dict(self.gate.done)
        return self.gate.observe_all(samples)
