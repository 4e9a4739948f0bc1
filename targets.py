# targets.py
"""
Named destination point sets, one per animation state.
"""
import logging
import numpy as np
from typing import Dict, Any, Iterable, List, Optional, Tuple
from sampler import ShapeSampler

# --- Data Contracts ---
#
# class TargetSet:
#   - __init__(self, points: Dict[str, np.ndarray]):
#     - Inputs: state name -> (N, 3) float array.
#
#   - resolve(self, state: str, indices: np.ndarray) -> np.ndarray:
#     - Outputs: (len(indices), 3) array; row k is
#       points[state][indices[k] % len(points[state])].
#     - Invariants: Never fails. An unknown or empty state resolves every
#       index to the origin.
#
# build_targets(sampler, states, viewport, limit, rng) -> TargetSet:
#   - Samples each state's shape, truncating to `limit` points after the
#     shuffle. Pure apart from consuming randomness from rng.

class TargetSet:
    """Immutable mapping from state name to target points."""

    def __init__(self, points: Dict[str, np.ndarray]):
        self._points = dict(points)
        self._warned = set()

    def __contains__(self, state: str) -> bool:
        return state in self._points

    def __getitem__(self, state: str) -> np.ndarray:
        return self._points[state]

    def __len__(self) -> int:
        return len(self._points)

    def names(self) -> List[str]:
        return list(self._points)

    def resolve(self, state: str, indices: np.ndarray) -> np.ndarray:
        points = self._points.get(state)
        if points is None or len(points) == 0:
            if state not in self._warned:
                logging.warning(f"No targets for state '{state}'; particles will head to the origin.")
                self._warned.add(state)
            return np.zeros((len(indices), 3), dtype=np.float64)
        return points[np.asarray(indices) % len(points)]

def build_targets(
    sampler: ShapeSampler,
    states: Iterable[Dict[str, Any]],
    viewport: Tuple[int, int],
    limit: Optional[int] = None,
    rng: Optional[np.random.Generator] = None
) -> TargetSet:
    """
    Samples the shape of every state against the given viewport.

    Args:
        sampler (ShapeSampler): The configured sampler.
        states (Iterable[Dict[str, Any]]): State entries with "name" and "shape".
        viewport (Tuple[int, int]): Display width and height.
        limit (Optional[int]): Keep at most this many points per state.
        rng (Optional[np.random.Generator]): Randomness for shuffling.
    """
    if rng is None:
        rng = np.random.default_rng()
    points = {}
    for state in states:
        sampled = sampler.sample(state['shape'], viewport, rng)
        if limit is not None and len(sampled) > limit:
            sampled = sampled[:limit]
        points[state['name']] = sampled
        logging.info(f"Target set '{state['name']}': {len(sampled)} points.")
    return TargetSet(points)
