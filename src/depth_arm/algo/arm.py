"""
Arm skeleton from the cluster graph.

Knowing roughly where the hand is removes most of the arm's degrees of
freedom: the center nearest the hand seed starts a chain that is walked
up the cluster graph towards the shoulder. Cluster indices are only valid
for one frame; what persists between frames are the smoothed joint
positions.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Dict, Any

import numpy as np

from ..core.types import ArmPose, ArmState
from .cluster_tracker import ClusterTracker

logger = logging.getLogger(__name__)

@dataclass
class ArmConfig:
    start_pos: tuple = (0.0, 0.0, 0.5)
    max_dist_to_start_m: float = 0.3
    # Walk stops when |dx| / dz between consecutive nodes exceeds this
    dxdz_threshold: float = 2.0
    smoothing_factor: float = 0.5
    max_missed_steps: int = 5

    @staticmethod
    def from_dict(config_dict: Dict[str, Any]) -> 'ArmConfig':
        cfg = ArmConfig()
        for k, v in config_dict.items():
            if hasattr(cfg, k):
                setattr(cfg, k, v)
        return cfg

def lerp(target: np.ndarray, current: np.ndarray, t: float) -> np.ndarray:
    """current + (target - current) * t"""
    return current + (target - current) * float(t)

def bend_angle_deg(hand: np.ndarray, elbow: np.ndarray, shoulder: np.ndarray) -> float:
    """Angle at the elbow in degrees, nan if either segment has zero length."""
    a = np.asarray(hand, dtype=np.float64) - np.asarray(elbow, dtype=np.float64)
    b = np.asarray(shoulder, dtype=np.float64) - np.asarray(elbow, dtype=np.float64)
    na = np.linalg.norm(a)
    nb = np.linalg.norm(b)
    if na < 1e-9 or nb < 1e-9:
        return float("nan")
    cos_a = np.clip(np.dot(a, b) / (na * nb), -1.0, 1.0)
    return float(np.degrees(np.arccos(cos_a)))

class Arm:
    def __init__(self, source: ClusterTracker, start_pos, max_dist_to_start: float,
                 dxdz_threshold: float, max_missed_steps: int = 5):
        """
        source: the tracker to use for data
        start_pos: approximate location of the hand [x, y, z]
        max_dist_to_start: the start node must lie within this distance of start_pos
        dxdz_threshold: terminate the walk when dx/dz > threshold
        """
        self.source = source
        self.start_pos = np.asarray(start_pos, dtype=np.float32).reshape(3)
        self.max_dist_to_start = float(max_dist_to_start)
        self.dxdz_threshold = float(dxdz_threshold)
        self.max_missed_steps = int(max_missed_steps)

        # Center indices from hand (front) to shoulder (back)
        self.kmean_ind: List[int] = []
        self.elbow_kmean_ind = 0  # position inside kmean_ind
        self.chain_complete = False

        self.hand_loc: Optional[np.ndarray] = None
        self.elbow_loc: Optional[np.ndarray] = None
        self.shoulder_loc: Optional[np.ndarray] = None

        self.tracking_step = 0
        self.missed_steps = 0
        self._last_valid = False

    @property
    def state(self) -> ArmState:
        if self.missed_steps > self.max_missed_steps:
            return ArmState.LOST
        if self._last_valid:
            return ArmState.TRACKED
        return ArmState.SEEKING

    def find_closest_center_hand(self) -> int:
        """
        Index of the center closest to start_pos whose z is greater than the
        start z and which lies within max_dist_to_start. -1 if none does.
        """
        centers = self.source.centers
        best = -1
        best_d = self.max_dist_to_start
        for i in range(centers.shape[0]):
            c = centers[i]
            if not c[2] > self.start_pos[2]:
                continue
            d = float(np.linalg.norm(c - self.start_pos))
            if d < best_d:
                best_d = d
                best = i
        return best

    def update_arm_list(self) -> bool:
        """
        Rebuilds the hand-to-shoulder chain. From the hand node the walk moves
        to the unvisited neighbour with a larger z that is furthest from the
        cloud centroid, until dx/dz to that neighbour exceeds the threshold
        (arm complete, True) or no neighbour is left (False).
        """
        self.kmean_ind = []
        self.chain_complete = False

        start = self.find_closest_center_hand()
        if start < 0:
            logger.debug("no hand candidate near %s", self.start_pos.tolist())
            return False

        centers = self.source.centers
        adj = self.source.adj_kmeans
        ref = self.source.global_mean
        dist_to_ref = np.linalg.norm(centers - ref, axis=1)

        visited = {start}
        self.kmean_ind.append(start)
        cur = start
        while True:
            nxt = -1
            for j in np.flatnonzero(adj[cur]):
                j = int(j)
                if j in visited or not centers[j, 2] > centers[cur, 2]:
                    continue
                # Strict > keeps the lowest index on ties
                if nxt < 0 or dist_to_ref[j] > dist_to_ref[nxt]:
                    nxt = j
            if nxt < 0:
                return False

            dx = abs(float(centers[nxt, 0] - centers[cur, 0]))
            dz = float(centers[nxt, 2] - centers[cur, 2])
            if dx / dz > self.dxdz_threshold:
                self.chain_complete = True
                return True

            visited.add(nxt)
            self.kmean_ind.append(nxt)
            cur = nxt

    def update_elbow_approx(self):
        """Picks the chain node maximizing |p - hand| * |p - shoulder|."""
        if not self.kmean_ind:
            self.elbow_kmean_ind = 0
            return
        pts = self.source.centers[self.kmean_ind]
        score = np.linalg.norm(pts - pts[0], axis=1) * np.linalg.norm(pts - pts[-1], axis=1)
        self.elbow_kmean_ind = int(np.argmax(score))

    def lerp(self, target: np.ndarray, current: np.ndarray, t: float) -> np.ndarray:
        return lerp(target, current, t)

    def _chain_valid(self) -> bool:
        """Complete chains shorter than hand, elbow and shoulder count as a miss."""
        return self.chain_complete and len(self.kmean_ind) >= 3

    def update_joints(self, smoothing_factor: float) -> bool:
        """
        Moves the stored joints towards the current chain. Failed frames are
        tolerated until more than max_missed_steps happen in a row, after
        which the joints are dropped and False is returned.
        """
        if self._chain_valid():
            centers = self.source.centers
            hand = centers[self.kmean_ind[0]].astype(np.float32)
            elbow = centers[self.kmean_ind[self.elbow_kmean_ind]].astype(np.float32)
            shoulder = centers[self.kmean_ind[-1]].astype(np.float32)
            if self.hand_loc is None:
                self.hand_loc, self.elbow_loc, self.shoulder_loc = hand, elbow, shoulder
            else:
                self.hand_loc = self.lerp(hand, self.hand_loc, smoothing_factor)
                self.elbow_loc = self.lerp(elbow, self.elbow_loc, smoothing_factor)
                self.shoulder_loc = self.lerp(shoulder, self.shoulder_loc, smoothing_factor)
            self.missed_steps = 0
            self.tracking_step += 1
            self._last_valid = True
            return True

        self._last_valid = False
        self.missed_steps += 1
        if self.missed_steps > self.max_missed_steps:
            if self.hand_loc is not None:
                logger.info("arm lost after %d missed steps", self.missed_steps)
            self.hand_loc = self.elbow_loc = self.shoulder_loc = None
            return False
        return self.hand_loc is not None

    def miss(self, smoothing_factor: float) -> bool:
        """Counts a frame without cluster data against the missed-step budget."""
        self.kmean_ind = []
        self.chain_complete = False
        return self.update_joints(smoothing_factor)

    def get_bend_angle(self) -> float:
        if self.hand_loc is None:
            return float("nan")
        return bend_angle_deg(self.hand_loc, self.elbow_loc, self.shoulder_loc)

    def update(self, smoothing_factor: float, seed=None, max_dist_to_start: Optional[float] = None,
               dxdz_threshold: Optional[float] = None) -> Optional[ArmPose]:
        """One frame of tracking. Arguments left as None keep their current value."""
        if seed is not None:
            self.start_pos = np.asarray(seed, dtype=np.float32).reshape(3)
        if max_dist_to_start is not None:
            self.max_dist_to_start = float(max_dist_to_start)
        if dxdz_threshold is not None:
            self.dxdz_threshold = float(dxdz_threshold)
        self.update_arm_list()
        self.update_elbow_approx()
        if not self.update_joints(smoothing_factor):
            return None
        return self.pose()

    def pose(self) -> Optional[ArmPose]:
        if self.hand_loc is None:
            return None
        return ArmPose(
            hand=self.hand_loc.copy(),
            elbow=self.elbow_loc.copy(),
            shoulder=self.shoulder_loc.copy(),
            bend_angle_deg=self.get_bend_angle(),
            state=self.state,
            tracking_step=self.tracking_step,
        )
