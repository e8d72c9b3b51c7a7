from dataclasses import dataclass, field
from enum import Enum
import numpy as np
from typing import Optional, List

@dataclass
class DepthFrame:
    """Raw depth frame handed to the tracking core"""
    timestamp: float
    frame_id: int
    depth: np.ndarray          # HxW uint16, 0 = no return
    depth_scale_m: float       # depth units -> meters
    intrinsics: np.ndarray     # [fx, fy, cx, cy] of the depth stream
    dist_coeffs: Optional[np.ndarray] = None # OpenCV order [k1, k2, p1, p2, k3]

@dataclass
class SegmentationResult:
    labels: np.ndarray         # HxW int32, -1 = unassigned
    largest_id: int            # -1 when no cluster was found
    largest_count: int
    cluster_sizes: List[int] = field(default_factory=list)

    @property
    def num_clusters(self) -> int:
        return len(self.cluster_sizes)

class ArmState(Enum):
    SEEKING = "seeking"
    TRACKED = "tracked"
    LOST = "lost"

@dataclass
class ArmPose:
    """Smoothed arm skeleton for one frame"""
    hand: np.ndarray           # [x, y, z] in meters
    elbow: np.ndarray
    shoulder: np.ndarray
    bend_angle_deg: float      # nan when the joints are degenerate
    state: ArmState
    tracking_step: int
    timestamp: float = 0.0

@dataclass
class Joint:
    name: str
    position: np.ndarray       # [x, y, z] in meters
    confidence: float

@dataclass
class Skeleton:
    joints: List[Joint]
    confidence: float
