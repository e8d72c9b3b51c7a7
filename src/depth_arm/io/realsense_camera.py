import logging
import time
import numpy as np
from typing import Any, Optional, cast
import pyrealsense2 as rs

from ..core.interfaces import IDepthSource
from ..core.types import DepthFrame

rs = cast(Any, rs)

logger = logging.getLogger(__name__)

class RealSenseCamera(IDepthSource):
    def __init__(self, depth_width=640, depth_height=480, fps=30, preset="high_accuracy"):
        self._pipe: Optional[rs.pipeline] = None
        self._cfg: Optional[rs.config] = None
        self._frame_id = 0
        self._depth_w = int(depth_width)
        self._depth_h = int(depth_height)
        self._fps = int(fps)
        self._preset = str(preset).lower()
        self._intrinsics: Optional[np.ndarray] = None
        self._dist_coeffs: Optional[np.ndarray] = None
        self._depth_scale_m: Optional[float] = None

    def open(self) -> bool:
        started = False
        try:
            ctx = rs.context()
            if len(ctx.query_devices()) == 0:
                logger.error("No realsense devices are connected to the system at this time.")
                return False
            self._pipe = rs.pipeline()
            self._cfg = rs.config()
            self._cfg.enable_stream(rs.stream.depth, self._depth_w, self._depth_h, rs.format.z16, self._fps)
            profile = self._pipe.start(self._cfg)
            started = True

            depth_sensor = profile.get_device().first_depth_sensor()
            self._depth_scale_m = float(depth_sensor.get_depth_scale())
            if depth_sensor.supports(rs.option.visual_preset):
                preset_map = {
                    "default": 0.0,
                    "hand": 1.0,
                    "high_accuracy": 3.0,
                    "high_density": 4.0
                }
                depth_sensor.set_option(rs.option.visual_preset, preset_map.get(self._preset, 3.0))

            depth_sp = profile.get_stream(rs.stream.depth).as_video_stream_profile()
            d_intr = depth_sp.get_intrinsics()
        except RuntimeError as e:
            # pyrealsense2 reports device errors as RuntimeError subclasses
            logger.error("RealSense init failed: %s", e)
            if started:
                try:
                    self._pipe.stop()
                except RuntimeError as stop_err:
                    logger.warning("RealSense stop after failed init: %s", stop_err)
            self._pipe = None
            return False

        self._intrinsics = np.array([float(d_intr.fx), float(d_intr.fy), float(d_intr.ppx), float(d_intr.ppy)], dtype=np.float32)
        self._dist_coeffs = np.array(list(d_intr.coeffs), dtype=np.float32)
        logger.info("RealSense depth stream %dx%d@%d, scale %.6f m", self._depth_w, self._depth_h, self._fps, self._depth_scale_m)
        self._frame_id = 0
        return True

    def get_calibration_data(self):
        return {
            "intrinsics": {
                "fx": float(self._intrinsics[0]),
                "fy": float(self._intrinsics[1]),
                "cx": float(self._intrinsics[2]),
                "cy": float(self._intrinsics[3]),
            } if self._intrinsics is not None else None,
            "dist_coeffs": self._dist_coeffs.tolist() if self._dist_coeffs is not None else None,
            "depth_scale": self._depth_scale_m,
        }

    def get_frame(self) -> Optional[DepthFrame]:
        if self._pipe is None:
            return None
        frames = self._pipe.wait_for_frames()
        ts = time.time()
        depth_frame = frames.get_depth_frame()
        if not depth_frame:
            raise RuntimeError("failed to capture depth image")
        depth = np.asanyarray(depth_frame.get_data())
        if depth.dtype != np.uint16:
            depth = depth.astype(np.uint16)
        if self._intrinsics is None:
            raise RuntimeError("intrinsics not loaded")
        frame = DepthFrame(
            timestamp=ts,
            frame_id=self._frame_id,
            depth=depth.copy(),
            depth_scale_m=float(self._depth_scale_m),
            intrinsics=self._intrinsics,
            dist_coeffs=self._dist_coeffs,
        )
        self._frame_id += 1
        return frame

    def close(self):
        if self._pipe:
            try:
                self._pipe.stop()
            except RuntimeError as e:
                logger.warning("RealSense stop failed: %s", e)
            self._pipe = None
