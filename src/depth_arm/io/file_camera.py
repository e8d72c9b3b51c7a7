import os
import json
from typing import Optional, List
import numpy as np
import cv2

from ..core.interfaces import IDepthSource
from ..core.types import DepthFrame

class FileCamera(IDepthSource):
    """Replays a recorded dataset: depth/*.png (16 bit) plus meta.json."""

    def __init__(self, root_dir: str, depth_dir: str = "depth"):
        self.root_dir = root_dir
        self.depth_dir = os.path.join(root_dir, depth_dir)
        self.meta_path = os.path.join(root_dir, "meta.json")
        self._files: List[str] = []
        self._intrinsics: Optional[np.ndarray] = None
        self._dist_coeffs: Optional[np.ndarray] = None
        self._depth_scale_m = 0.001
        self._timestamps: Optional[List[float]] = None
        self._fps: Optional[float] = None
        self._frame_id = 0
        self._opened = False

    def open(self) -> bool:
        if not os.path.isdir(self.depth_dir):
            raise FileNotFoundError(self.depth_dir)
        depth_files = sorted([f for f in os.listdir(self.depth_dir) if f.lower().endswith(".png")])
        if len(depth_files) == 0:
            raise RuntimeError("empty dataset")
        self._files = [os.path.join(self.depth_dir, f) for f in depth_files]
        if not os.path.isfile(self.meta_path):
            raise FileNotFoundError(self.meta_path)
        with open(self.meta_path, "r", encoding="utf-8") as f:
            meta = json.load(f)
        intr = meta.get("intrinsics")
        if intr is None:
            raise ValueError("missing intrinsics")
        self._intrinsics = np.array([intr["fx"], intr["fy"], intr["cx"], intr["cy"]], dtype=np.float32)
        if meta.get("dist_coeffs") is not None:
            self._dist_coeffs = np.array(meta["dist_coeffs"], dtype=np.float32)
        self._depth_scale_m = float(meta.get("depth_scale", 0.001))
        self._timestamps = meta.get("timestamps")
        self._fps = meta.get("fps")
        self._frame_id = 0
        self._opened = True
        return True

    def get_frame(self) -> Optional[DepthFrame]:
        if not self._opened:
            return None
        if self._frame_id >= len(self._files):
            return None
        depth = cv2.imread(self._files[self._frame_id], cv2.IMREAD_UNCHANGED)
        if depth is None:
            raise RuntimeError("failed to read image")
        if depth.ndim != 2:
            raise ValueError("depth image must be single channel")
        if depth.dtype != np.uint16:
            depth = depth.astype(np.uint16)
        if self._timestamps and self._frame_id < len(self._timestamps):
            ts = float(self._timestamps[self._frame_id])
        else:
            if not self._fps or self._fps <= 0:
                raise ValueError("invalid fps")
            ts = self._frame_id / float(self._fps)
        frame = DepthFrame(
            timestamp=ts,
            frame_id=self._frame_id,
            depth=depth,
            depth_scale_m=self._depth_scale_m,
            intrinsics=self._intrinsics,
            dist_coeffs=self._dist_coeffs,
        )
        self._frame_id += 1
        return frame

    def close(self):
        self._opened = False
        self._files = []
