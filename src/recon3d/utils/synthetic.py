"""Synthetic capture sequences for demos and tests.

A fronto-parallel textured plane at constant depth, seen by a camera
sliding sideways along +X. The texture is anchored to the world, so
frames overlap consistently and every stereo pair has the same integer
disparity.
"""

from __future__ import annotations

import numpy as np

from recon3d.core.contracts import CameraIntrinsics, CameraObservation, CameraPose


def textured_plane_sequence(
    num_frames: int = 15,
    width: int = 160,
    height: int = 32,
    depth: float = 2.0,
    focal_length: float = 100.0,
    disparity: int = 4,
    step_px: int = 3,
    stereo: bool = True,
    seed: int = 0,
) -> list[CameraObservation]:
    """Build a list of observations of a plane at ``depth``.

    The stereo baseline is chosen so that ``baseline * focal / disparity
    == depth`` holds exactly. With ``stereo=False`` each frame carries a
    constant sensor depth field instead of a right image.
    """
    rng = np.random.default_rng(seed)
    total_w = width + disparity + step_px * max(num_frames - 1, 0)
    texture = rng.integers(0, 256, size=(height, total_w), dtype=np.uint8)

    baseline = depth * disparity / focal_length
    intrinsics = CameraIntrinsics(
        fx=focal_length,
        fy=focal_length,
        cx=(width - 1) / 2.0,
        cy=(height - 1) / 2.0,
        width=width,
        height=height,
    )

    frames = []
    for i in range(num_frames):
        s = i * step_px
        left = texture[:, s:s + width].copy()
        pose = CameraPose(translation=[s * depth / focal_length, 0.0, 0.0])
        if stereo:
            right = texture[:, s + disparity:s + disparity + width].copy()
            frames.append(CameraObservation(
                image_left=left, image_right=right, intrinsics=intrinsics,
                pose=pose, baseline=baseline, timestamp=float(i),
            ))
        else:
            frames.append(CameraObservation(
                image_left=left, depth=np.full((height, width), depth, dtype=np.float32),
                intrinsics=intrinsics, pose=pose, timestamp=float(i),
            ))
    return frames
