"""SSD block matching over a bounded horizontal disparity range.

For every pixel far enough from the border to hold a full
(2r+1) x (2r+1) patch, each disparity d in [0, D) is scored by the sum of
squared differences between the left patch at (x, y) and the right patch
at (x - d, y). The smallest score wins; ties go to the smaller d.

Scoring is vectorized per disparity. When both images hold integer
intensities, the squared-difference image is box summed through an
integral image: totals stay integer-valued in float64, so tie-breaking is
exact and one pass over d costs O(W*H). Other images are summed window by
window, since differences of a float integral image leave rounding noise
that would break ties between equal costs.

Pixels too close to the border for a full patch are never matched. They
get ``border_depth`` (1.0 by default, the same value as a zero-disparity
match); pass 0 to drop them as invalid.
"""

from __future__ import annotations

import logging

import numpy as np

from recon3d.core.errors import InvalidInputError

logger = logging.getLogger(__name__)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Return a float64 single-channel copy of ``image``."""
    image = np.asarray(image)
    if image.ndim == 3 and image.shape[2] == 1:
        image = image[:, :, 0]
    elif image.ndim == 3:
        import cv2

        code = cv2.COLOR_RGBA2GRAY if image.shape[2] == 4 else cv2.COLOR_RGB2GRAY
        image = cv2.cvtColor(image.astype(np.float32), code)
    if image.ndim != 2:
        raise InvalidInputError(f"Expected a 2D image, got shape {image.shape}")
    return image.astype(np.float64)


def _box_sum(values: np.ndarray, r: int) -> np.ndarray:
    """Sum of each (2r+1)^2 window, for centers [r, h-r) x [r, w-r)."""
    h, w = values.shape
    ii = np.zeros((h + 1, w + 1))
    ii[1:, 1:] = values.cumsum(axis=0).cumsum(axis=1)
    k = 2 * r + 1
    return ii[k:, k:] - ii[:h - k + 1, k:] - ii[k:, :w - k + 1] + ii[:h - k + 1, :w - k + 1]


def _window_sum(values: np.ndarray, r: int) -> np.ndarray:
    """Same windows as :func:`_box_sum`, each summed directly."""
    k = 2 * r + 1
    return np.lib.stride_tricks.sliding_window_view(values, (k, k)).sum(axis=(2, 3))


def _is_integral(image: np.ndarray) -> bool:
    return bool(np.all(image == np.floor(image)))


def compute_disparity(
    left: np.ndarray,
    right: np.ndarray,
    patch_radius: int = 3,
    max_disparity: int = 64,
    invalidate_truncated_search: bool = False,
) -> tuple[np.ndarray, np.ndarray]:
    """Winner-take-all disparity for every patch-complete pixel.

    Returns:
        (disparity, valid): (H, W) int array and boolean mask of pixels that
        received a disparity. Border pixels are invalid.
    """
    left = to_grayscale(left)
    right = to_grayscale(right)
    if left.shape != right.shape:
        raise InvalidInputError(
            f"Stereo images differ in size: {left.shape} vs {right.shape}"
        )

    h, w = left.shape
    r = patch_radius
    disparity = np.zeros((h, w), dtype=np.int32)
    valid = np.zeros((h, w), dtype=bool)
    if h < 2 * r + 1 or w < 2 * r + 1:
        logger.warning(f"Image {w}x{h} smaller than a {2 * r + 1}px patch; no depth computed")
        return disparity, valid

    inner_h, inner_w = h - 2 * r, w - 2 * r
    xs = np.arange(r, w - r)
    best_cost = np.full((inner_h, inner_w), np.inf)
    best_d = np.zeros((inner_h, inner_w), dtype=np.int32)
    window_sum = _box_sum if _is_integral(left) and _is_integral(right) else _window_sum

    for d in range(max_disparity):
        # Right patch at x - d must lie fully inside the image: x - d >= r.
        searchable = xs - d >= r
        if not searchable.any():
            break
        sq = np.zeros((h, w))
        sq[:, d:] = (left[:, d:] - right[:, :w - d]) ** 2
        cost = window_sum(sq, r)
        cost[:, ~searchable] = np.inf
        better = cost < best_cost
        best_cost[better] = cost[better]
        best_d[better] = d

    disparity[r:h - r, r:w - r] = best_d
    valid[r:h - r, r:w - r] = True
    if invalidate_truncated_search:
        valid[:, : r + max_disparity - 1] = False
    return disparity, valid


def disparity_to_depth(
    disparity: np.ndarray,
    valid: np.ndarray,
    baseline: float,
    focal_length: float,
    zero_disparity_depth: float = 1.0,
) -> np.ndarray:
    """``depth = baseline * focal / d``; d == 0 maps to a fixed depth, invalid to 0."""
    depth = np.zeros(disparity.shape, dtype=np.float64)
    positive = valid & (disparity > 0)
    depth[positive] = baseline * focal_length / disparity[positive]
    depth[valid & (disparity == 0)] = zero_disparity_depth
    return depth


def estimate_depth(
    left: np.ndarray,
    right: np.ndarray,
    baseline: float,
    focal_length: float,
    patch_radius: int = 3,
    max_disparity: int = 64,
    zero_disparity_depth: float = 1.0,
    invalidate_truncated_search: bool = False,
    border_depth: float = 1.0,
) -> np.ndarray:
    """Block-match a rectified stereo pair into an (H, W) depth map."""
    disparity, valid = compute_disparity(
        left, right, patch_radius, max_disparity, invalidate_truncated_search
    )
    depth = disparity_to_depth(disparity, valid, baseline, focal_length, zero_disparity_depth)

    h, w = depth.shape
    r = patch_radius
    border = np.ones((h, w), dtype=bool)
    border[r:h - r, r:w - r] = False
    depth[border] = border_depth
    logger.debug(
        f"Block matching: {int(valid.sum())} pixels, "
        f"{int((valid & (disparity == 0)).sum())} at zero disparity"
    )
    return depth
