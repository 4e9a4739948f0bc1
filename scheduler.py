# scheduler.py
"""
Cycles the animation through its named states on a dwell timer.

The scheduler is the single writer of the animation state (current state,
clock origin, rotation angle). Once per frame it hands the kinematics an
AnimationContext value, which is the only state particles read.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Tuple
from sampler import is_volumetric

# --- Data Contracts ---
#
# class StateScheduler:
#   - __init__(self, params: Dict[str, Any]):
#     - Inputs:
#       - params: The "animation" section of config.json.
#         - "states": non-empty list of {"name", "shape", optional
#           "dwell_seconds", "palette"}
#         - "dwell_seconds": float > 0, default dwell
#         - "rotation_speed": float, radians added per frame while rotating
#         - "reset_rotation_on_enter": bool
#
#   - advance(self, now: float) -> Tuple[str, bool]:
#     - Outputs: (current state name, whether a transition happened).
#     - Invariants: With a uniform dwell D and the clock started at t0,
#       at t0 + k*D + d (0 <= d < D) the state index is k % len(states).
#
#   - tick(self, now: float) -> AnimationContext:
#     - Side Effects: Advances the state and, while the state rotates,
#       adds rotation_speed to the angle.

@dataclass(frozen=True)
class AnimationContext:
    """Everything a particle needs to know about the current frame."""
    state: str
    time: float
    angle: float
    rotating: bool
    transitioned: bool
    palette: str

class StateScheduler:
    """
    Dwell-timed state machine over a fixed, looping cycle of states.
    """
    def __init__(self, params: Dict[str, Any]):
        self.states: List[Dict[str, Any]] = list(params.get('states', []))
        self.default_dwell = float(params.get('dwell_seconds', 4.0))
        self.rotation_speed = float(params.get('rotation_speed', 0.01))
        self.reset_rotation_on_enter = bool(params.get('reset_rotation_on_enter', False))
        self._validate()

        self.index = 0
        self.angle = 0.0
        self.origin: Optional[float] = None
        self.cycles = 0

        logging.info(
            f"StateScheduler initialized with cycle "
            f"{' -> '.join(s['name'] for s in self.states)}."
        )

    def _validate(self):
        problems = []
        if not self.states:
            problems.append("at least one state is required")
        names = [s.get('name') for s in self.states]
        if any(not name for name in names):
            problems.append("every state needs a name")
        elif len(set(names)) != len(names):
            problems.append(f"state names must be unique, got {names}")
        if any('shape' not in s for s in self.states):
            problems.append("every state needs a shape")
        dwells = [self.default_dwell] + [float(s['dwell_seconds']) for s in self.states if 'dwell_seconds' in s]
        if min(dwells) <= 0:
            problems.append("dwell_seconds must be positive")
        if problems:
            msg = f"Configuration error in 'animation': {'; '.join(problems)}."
            logging.critical(msg)
            raise ValueError(msg)

    @property
    def current(self) -> Dict[str, Any]:
        return self.states[self.index]

    @property
    def state(self) -> str:
        return self.current['name']

    def dwell(self, index: int) -> float:
        return float(self.states[index].get('dwell_seconds', self.default_dwell))

    def is_rotating(self, index: Optional[int] = None) -> bool:
        entry = self.states[self.index if index is None else index]
        return is_volumetric(entry['shape'])

    def palette_for(self, index: Optional[int] = None) -> str:
        """Volumetric states use the "shape" palette, flat ones the "text" palette."""
        entry = self.states[self.index if index is None else index]
        default = 'shape' if is_volumetric(entry['shape']) else 'text'
        return entry.get('palette', default)

    def advance(self, now: float) -> Tuple[str, bool]:
        """
        Moves to the next state once the current dwell has elapsed.

        The origin moves forward by whole dwells, so a late frame catches up
        instead of stretching the following state.
        """
        if self.origin is None:
            self.origin = now
            return self.state, False

        transitioned = False
        while now - self.origin >= self.dwell(self.index):
            self.origin += self.dwell(self.index)
            self.index = (self.index + 1) % len(self.states)
            if self.index == 0:
                self.cycles += 1
            transitioned = True

        if transitioned:
            logging.info(f"Transition to state '{self.state}' (cycle {self.cycles}).")
            if self.reset_rotation_on_enter and self.is_rotating():
                self.angle = 0.0
        return self.state, transitioned

    def tick(self, now: float) -> AnimationContext:
        state, transitioned = self.advance(now)
        rotating = self.is_rotating()
        if rotating:
            self.angle += self.rotation_speed
        return AnimationContext(
            state=state,
            time=now,
            angle=self.angle,
            rotating=rotating,
            transitioned=transitioned,
            palette=self.palette_for(),
        )

    def restart(self, now: float):
        """Rewinds to the first state with the clock starting at `now`."""
        self.index = 0
        self.origin = now
        self.angle = 0.0
