import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Dict, Any

import cv2
import numpy as np

from .point_cloud import cloud_centroid

logger = logging.getLogger(__name__)

@dataclass
class ClusterConfig:
    k: int = 12
    restarts: int = 3
    max_iter: int = 20
    epsilon: float = 0.001
    # Two centers closer than this (meters) are connected
    connect_threshold_m: float = 0.15
    seed: Optional[int] = None

    @staticmethod
    def from_dict(config_dict: Dict[str, Any]) -> 'ClusterConfig':
        cfg = ClusterConfig()
        for k, v in config_dict.items():
            if hasattr(cfg, k):
                setattr(cfg, k, v)
        return cfg

def cluster(cloud: np.ndarray, k: int, n_restarts: int, max_iter: int,
            epsilon: float) -> Optional[Tuple[np.ndarray, np.ndarray, float]]:
    """
    k-means over an (N, 3) cloud with k-means++ seeding.

    Each of the `n_restarts` runs stops after `max_iter` iterations or once
    no center moves more than `epsilon`; the most compact run is kept.
    Returns (centers (k, 3), assignment (N,), compactness), or None when the
    cloud has no more than k points.
    """
    if cloud is None or cloud.shape[0] <= int(k):
        return None
    data = np.ascontiguousarray(cloud, dtype=np.float32).reshape(-1, 3)
    criteria = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, int(max_iter), float(epsilon))
    compactness, labels, centers = cv2.kmeans(
        data, int(k), None, criteria, max(1, int(n_restarts)), cv2.KMEANS_PP_CENTERS
    )
    return centers.astype(np.float32), labels.reshape(-1).astype(np.int32), float(compactness)

def connect_means(centers: np.ndarray, threshold: float) -> np.ndarray:
    """Symmetric (k, k) bool adjacency, True where two centers are closer than threshold."""
    diff = centers[:, None, :] - centers[None, :, :]
    dists = np.linalg.norm(diff, axis=2)
    adj = dists < float(threshold)
    np.fill_diagonal(adj, False)
    return adj

class ClusterTracker:
    """
    Clusters the user's point cloud into k groups and connects nearby group
    centers into a graph. Call update_point_cloud() every frame before
    cluster(); a failed cluster() leaves the previous centers in place.
    """
    def __init__(self, k: int, seed: Optional[int] = None):
        if int(k) < 1:
            raise ValueError("k must be positive")
        self.k = int(k)
        self.source_cloud = np.zeros((0, 3), dtype=np.float32)
        self.cluster_ind = np.zeros((0,), dtype=np.int32)
        self.centers = np.zeros((self.k, 3), dtype=np.float32)
        self.adj_kmeans = np.zeros((self.k, self.k), dtype=bool)
        self.compactness: Optional[float] = None
        if seed is not None:
            cv2.setRNGSeed(int(seed))

    def update_point_cloud(self, source: np.ndarray):
        self.source_cloud = np.asarray(source, dtype=np.float32).reshape(-1, 3)

    @property
    def global_mean(self) -> np.ndarray:
        return cloud_centroid(self.source_cloud)

    def cluster(self, n: int, max_iter: int, epsilon: float) -> bool:
        res = cluster(self.source_cloud, self.k, n, max_iter, epsilon)
        if res is None:
            logger.debug("kmeans skipped: %d points for k=%d", self.source_cloud.shape[0], self.k)
            return False
        self.centers, self.cluster_ind, self.compactness = res
        return True

    def connect_means(self, threshold: float):
        self.adj_kmeans = connect_means(self.centers, threshold)
