import numpy as np
import cv2
from dataclasses import dataclass
from typing import Optional, Dict, Any

@dataclass
class PointCloudConfig:
    subsample_factor: int = 4

    @staticmethod
    def from_dict(config_dict: Dict[str, Any]) -> 'PointCloudConfig':
        cfg = PointCloudConfig()
        for k, v in config_dict.items():
            if hasattr(cfg, k):
                setattr(cfg, k, v)
        return cfg

def subsample_depth(depth: np.ndarray, factor: int) -> np.ndarray:
    """Strided view keeping every `factor`-th row and column."""
    factor = max(1, int(factor))
    return depth[::factor, ::factor]

def _normalized_coords(u: np.ndarray, v: np.ndarray, intrinsics: np.ndarray,
                       dist_coeffs: Optional[np.ndarray]) -> np.ndarray:
    fx, fy, cx, cy = [float(x) for x in intrinsics.tolist()]
    if dist_coeffs is None or not np.any(dist_coeffs):
        return np.column_stack(((u - cx) / fx, (v - cy) / fy))
    camera_matrix = np.array([[fx, 0, cx], [0, fy, cy], [0, 0, 1]], dtype=np.float64)
    pts = np.column_stack((u, v)).astype(np.float64).reshape(-1, 1, 2)
    # No P matrix: output is in normalized image coordinates (x/z, y/z)
    undist = cv2.undistortPoints(pts, camera_matrix, np.asarray(dist_coeffs, dtype=np.float64))
    return undist.reshape(-1, 2)

def deproject_grid(grid: np.ndarray, intrinsics: np.ndarray, depth_scale: float,
                   stride: int = 1, dist_coeffs: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Deprojects the non-zero samples of an already strided grid.

    Index i of `grid` is sensor pixel i * stride, so the full-resolution
    intrinsics apply. Returns (N, 3) float32 in meters.
    """
    stride = max(1, int(stride))
    vs, us = np.nonzero(grid)
    if us.size == 0:
        return np.zeros((0, 3), dtype=np.float32)

    z = grid[vs, us].astype(np.float64) * float(depth_scale)
    # Back to sensor pixel coordinates
    u = us.astype(np.float64) * stride
    v = vs.astype(np.float64) * stride

    xy_n = _normalized_coords(u, v, intrinsics, dist_coeffs)
    x = xy_n[:, 0] * z
    y = xy_n[:, 1] * z
    return np.column_stack((x, y, z)).astype(np.float32)

def build_cloud(depth: np.ndarray, intrinsics: np.ndarray, depth_scale: float,
                subsample_factor: int = 1, dist_coeffs: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Deprojects every non-zero depth sample into camera space.

    depth: HxW depth units at sensor resolution
    subsample_factor: only every n-th row/column is used; the strided index
        times the factor is the sensor pixel, so the intrinsics stay valid
    Returns: (N, 3) float32 in meters. Zero-depth pixels are skipped.
    """
    factor = max(1, int(subsample_factor))
    return deproject_grid(subsample_depth(depth, factor), intrinsics, depth_scale, factor, dist_coeffs)

def cloud_centroid(cloud: np.ndarray) -> np.ndarray:
    if cloud.shape[0] == 0:
        return np.zeros(3, dtype=np.float32)
    return cloud.mean(axis=0).astype(np.float32)
