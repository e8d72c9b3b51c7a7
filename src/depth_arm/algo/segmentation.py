import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, Any, List, Tuple

import numpy as np

from ..core.types import SegmentationResult

logger = logging.getLogger(__name__)

UNASSIGNED = -1

@dataclass
class SegmentationConfig:
    enabled: bool = True
    # Max depth step between neighbouring samples of one cluster (strict <)
    max_dist_m: float = 0.05
    # Neighbourhood radius in pixels, |dx| + |dy| <= radius
    manhattan_radius: int = 2

    @staticmethod
    def from_dict(config_dict: Dict[str, Any]) -> 'SegmentationConfig':
        cfg = SegmentationConfig()
        for k, v in config_dict.items():
            if hasattr(cfg, k):
                setattr(cfg, k, v)
        return cfg

def manhattan_offsets(radius: int) -> List[Tuple[int, int]]:
    """(dy, dx) pairs with 0 < |dy| + |dx| <= radius, row-major order."""
    r = int(radius)
    out = []
    for dy in range(-r, r + 1):
        span = r - abs(dy)
        for dx in range(-span, span + 1):
            if dy == 0 and dx == 0:
                continue
            out.append((dy, dx))
    return out

def label_clusters(depth: np.ndarray, max_dist: float, manhattan_radius: int,
                   depth_scale: float = 0.001) -> SegmentationResult:
    """
    Connected components of the non-zero depth samples.

    Two samples are connected when they are within `manhattan_radius` pixels
    of each other and their depth differs by less than `max_dist` meters.
    Clusters are numbered in row-major order of their first pixel. The input
    is not modified.
    """
    h, w = depth.shape[:2]
    if h == 0 or w == 0:
        return SegmentationResult(labels=np.full((h, w), UNASSIGNED, dtype=np.int32),
                                  largest_id=UNASSIGNED, largest_count=0)

    # Nested lists: scalar access on them is far cheaper than on ndarrays.
    # Claimed samples are zeroed so they are never revisited.
    work = depth.astype(np.int64).tolist()
    labels = [[UNASSIGNED] * w for _ in range(h)]
    offsets = manhattan_offsets(manhattan_radius)
    scale = float(depth_scale)
    max_dist = float(max_dist)

    sizes: List[int] = []
    largest_id = UNASSIGNED
    largest_count = 0

    for y0 in range(h):
        row0 = work[y0]
        for x0 in range(w):
            if row0[x0] == 0:
                continue
            cid = len(sizes)
            labels[y0][x0] = cid
            frontier = deque([(y0, x0, row0[x0])])
            row0[x0] = 0
            count = 1

            while frontier:
                y, x, d = frontier.popleft()
                for dy, dx in offsets:
                    ny = y + dy
                    nx = x + dx
                    if ny < 0 or nx < 0 or ny >= h or nx >= w:
                        continue
                    nrow = work[ny]
                    nd = nrow[nx]
                    if nd == 0:
                        continue
                    if abs(nd - d) * scale >= max_dist:
                        continue
                    nrow[nx] = 0
                    labels[ny][nx] = cid
                    frontier.append((ny, nx, nd))
                    count += 1

            sizes.append(count)
            if count > largest_count:
                largest_count = count
                largest_id = cid

    return SegmentationResult(labels=np.array(labels, dtype=np.int32), largest_id=largest_id,
                              largest_count=largest_count, cluster_sizes=sizes)

def segment_foreground(depth: np.ndarray, max_dist: float, manhattan_radius: int,
                       depth_scale: float = 0.001) -> SegmentationResult:
    """
    Keeps only the largest connected cluster of `depth`, zeroing everything
    else in place. Returns the labelling used to pick the cluster.
    """
    result = label_clusters(depth, max_dist, manhattan_radius, depth_scale)
    depth[result.labels != result.largest_id] = 0
    logger.debug("segmentation: %d clusters, kept id %d (%d px)",
                 result.num_clusters, result.largest_id, result.largest_count)
    return result
