"""Statistical outlier removal on k-nearest-neighbor distances.

1. For each point, the mean Euclidean distance to its k nearest other points.
2. Global mean mu and population standard deviation sigma of those means.
3. A point is an inlier iff its mean distance < mu + std_ratio * sigma.

When the cloud has fewer than k + 1 points, k degrades to N - 1. The
KD-tree search returns the same neighbor distances as the exhaustive
scan; only the cost differs.
"""

from __future__ import annotations

import logging
from typing import Literal

import numpy as np

from recon3d.core.contracts import PointCloud

logger = logging.getLogger(__name__)


def _mean_knn_distances_kdtree(points: np.ndarray, k: int) -> np.ndarray:
    from scipy.spatial import cKDTree

    tree = cKDTree(points)
    # k + 1: the nearest hit is the query point itself at distance 0.
    dists, _ = tree.query(points, k=k + 1)
    return dists[:, 1:].mean(axis=1)


def _mean_knn_distances_exhaustive(points: np.ndarray, k: int) -> np.ndarray:
    diff = points[:, None, :] - points[None, :, :]
    dists = np.sqrt((diff ** 2).sum(axis=2))
    np.fill_diagonal(dists, np.inf)
    nearest = np.partition(dists, k - 1, axis=1)[:, :k]
    return nearest.mean(axis=1)


def mean_knn_distances(
    points: np.ndarray,
    k: int = 20,
    search: Literal["kdtree", "exhaustive"] = "kdtree",
) -> np.ndarray:
    """Mean distance from each point to its ``k`` nearest neighbors."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    n = len(points)
    if n < 2:
        return np.zeros(n)
    k_eff = min(k, n - 1)
    if search == "exhaustive":
        return _mean_knn_distances_exhaustive(points, k_eff)
    return _mean_knn_distances_kdtree(points, k_eff)


def statistical_inlier_mask(
    points: np.ndarray,
    nb_neighbors: int = 20,
    std_ratio: float = 2.0,
    search: Literal["kdtree", "exhaustive"] = "kdtree",
) -> tuple[np.ndarray, float, float]:
    """Boolean inlier mask plus the (mu, sigma) the threshold was built from."""
    n = len(points)
    if n < 2:
        return np.ones(n, dtype=bool), 0.0, 0.0

    mean_dists = mean_knn_distances(points, nb_neighbors, search)
    mu = float(mean_dists.mean())
    sigma = float(mean_dists.std())
    if sigma == 0.0:
        # Deviates from the strict rule, which would drop every point here
        # (threshold == mu). Identical neighborhoods have no outliers: keep all.
        return np.ones(n, dtype=bool), mu, sigma
    return mean_dists < mu + std_ratio * sigma, mu, sigma


def remove_statistical_outliers(
    cloud: PointCloud,
    nb_neighbors: int = 20,
    std_ratio: float = 2.0,
    search: Literal["kdtree", "exhaustive"] = "kdtree",
) -> tuple[PointCloud, np.ndarray]:
    """Return a new cloud of inliers and the mask that selected them.

    The input cloud is left untouched.
    """
    mask, mu, sigma = statistical_inlier_mask(cloud.positions, nb_neighbors, std_ratio, search)
    filtered = cloud.subset(mask)
    logger.info(
        f"Outlier removal (k={nb_neighbors}, ratio={std_ratio}): "
        f"{len(cloud)} -> {len(filtered)} points (mu={mu:.4f}, sigma={sigma:.4f})"
    )
    return filtered, mask
