import logging
import time
from typing import Any, Dict, Optional

import numpy as np

from depth_arm.algo.arm import Arm, ArmConfig
from depth_arm.algo.cluster_tracker import ClusterConfig, ClusterTracker
from depth_arm.algo.point_cloud import PointCloudConfig, deproject_grid, subsample_depth
from depth_arm.algo.segmentation import SegmentationConfig, segment_foreground
from depth_arm.core.interfaces import IArmTracker
from depth_arm.core.types import ArmPose, DepthFrame, Joint, Skeleton, ArmState

logger = logging.getLogger(__name__)


class ArmPipeline(IArmTracker):
    """
    Runs one depth frame through segmentation, point cloud construction,
    clustering and the arm model. Frames must be fed in order; the arm
    carries its smoothed joints from one call to the next.
    """

    def __init__(self, config: Dict[str, Any]):
        self.seg_cfg = SegmentationConfig.from_dict(config.get("segmentation", {}))
        self.cloud_cfg = PointCloudConfig.from_dict(config.get("point_cloud", {}))
        self.kmeans_cfg = ClusterConfig.from_dict(config.get("kmeans", {}))
        self.arm_cfg = ArmConfig.from_dict(config.get("arm", {}))

        self.tracker = ClusterTracker(int(self.kmeans_cfg.k), seed=self.kmeans_cfg.seed)
        self.arm = Arm(
            self.tracker,
            self.arm_cfg.start_pos,
            float(self.arm_cfg.max_dist_to_start_m),
            float(self.arm_cfg.dxdz_threshold),
            max_missed_steps=int(self.arm_cfg.max_missed_steps),
        )
        self.last_depth: Optional[np.ndarray] = None
        self.last_cloud: Optional[np.ndarray] = None
        self._perf_seg = 0.0
        self._perf_track = 0.0

    def process(self, frame: DepthFrame) -> Optional[ArmPose]:
        smoothing = float(self.arm_cfg.smoothing_factor)

        t0 = time.time()
        factor = max(1, int(self.cloud_cfg.subsample_factor))
        # Segment at cloud resolution; the radius counts strided pixels
        depth = subsample_depth(frame.depth, factor).copy()
        if self.seg_cfg.enabled:
            segment_foreground(
                depth,
                float(self.seg_cfg.max_dist_m),
                int(self.seg_cfg.manhattan_radius),
                depth_scale=float(frame.depth_scale_m),
            )
        cloud = deproject_grid(
            depth,
            frame.intrinsics,
            float(frame.depth_scale_m),
            stride=factor,
            dist_coeffs=frame.dist_coeffs,
        )
        self.last_depth = depth
        self.last_cloud = cloud
        t1 = time.time()

        self.tracker.update_point_cloud(cloud)
        if self.tracker.cluster(int(self.kmeans_cfg.restarts), int(self.kmeans_cfg.max_iter), float(self.kmeans_cfg.epsilon)):
            self.tracker.connect_means(float(self.kmeans_cfg.connect_threshold_m))
            pose = self.arm.update(smoothing)
        else:
            pose = self.arm.pose() if self.arm.miss(smoothing) else None
        t2 = time.time()

        self._perf_seg = t1 - t0
        self._perf_track = t2 - t1
        logger.debug(
            "frame %d: %d points, state=%s, seg %.1f ms, track %.1f ms",
            frame.frame_id, cloud.shape[0], self.arm.state.value,
            self._perf_seg * 1000.0, self._perf_track * 1000.0,
        )

        if pose is not None:
            pose.timestamp = frame.timestamp
        return pose

    @staticmethod
    def to_skeleton(pose: Optional[ArmPose]) -> Optional[Skeleton]:
        if pose is None:
            return None
        conf = 1.0 if pose.state == ArmState.TRACKED else 0.5
        joints = [
            Joint(name="hand", position=pose.hand, confidence=conf),
            Joint(name="elbow", position=pose.elbow, confidence=conf),
            Joint(name="shoulder", position=pose.shoulder, confidence=conf),
        ]
        return Skeleton(joints=joints, confidence=conf)
