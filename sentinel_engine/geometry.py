# =============================================================================
# sentinel_engine/geometry.py
#
# Geometry extractors — pure functions turning one frame's landmark set and
# optional pose transform into the scalar signals the engine consumes.
#
# ── EAR (Soukupová & Čech) ───────────────────────────────────────────────────
#
#          ||p2−p6|| + ||p3−p5||
#  EAR  =  ──────────────────────
#               2 · ||p1−p4||
#
# ── MAR (inner lip) ──────────────────────────────────────────────────────────
#
#          ||top−bottom||
#  MAR  =  ──────────────
#          ||left−right||
#
# ── Pitch / Yaw ──────────────────────────────────────────────────────────────
#  Decomposed from the upper-left 3×3 rotation block of the 4×4 row-major
#  facial transform (ZYX convention), in degrees.
#
# Degenerate geometry (near-zero denominators) never raises: the denominator
# is floored at GEOMETRY_EPSILON so the ratio comes out large but finite.
# =============================================================================

from typing import Optional, Sequence, Tuple

import numpy as np

from config import (
    LEFT_EYE_EAR_IDX, RIGHT_EYE_EAR_IDX,
    MOUTH_INNER_TOP, MOUTH_INNER_BOTTOM, MOUTH_LEFT, MOUTH_RIGHT,
    GEOMETRY_EPSILON,
)
from sentinel_engine.data_structures import FrameSignals


def _as_points(landmarks: Sequence, indices: Sequence[int]) -> np.ndarray:
    """(len(indices), 2) array of the x, y coordinates of the picked landmarks."""
    return np.array(
        [(landmarks[i][0], landmarks[i][1]) for i in indices],
        dtype=np.float64,
    )


def _safe_ratio(numerator: float, denominator: float) -> float:
    return float(numerator / max(denominator, GEOMETRY_EPSILON))


def compute_ear(landmarks: Sequence, indices: Sequence[int]) -> float:
    """
    Eye Aspect Ratio for one eye.

    Args:
        landmarks: full face-mesh landmark list ((x, y, z) per point)
        indices:   6-element list [p1, p2, p3, p4, p5, p6]

    Returns:
        EAR scalar value (≈0.3 open, →0 closed)
    """
    p = _as_points(landmarks, indices)
    d_top    = np.linalg.norm(p[1] - p[5])
    d_middle = np.linalg.norm(p[2] - p[4])
    d_horiz  = np.linalg.norm(p[0] - p[3])
    return _safe_ratio(d_top + d_middle, 2.0 * d_horiz)


def compute_mean_ear(landmarks: Sequence) -> float:
    left  = compute_ear(landmarks, LEFT_EYE_EAR_IDX)
    right = compute_ear(landmarks, RIGHT_EYE_EAR_IDX)
    return (left + right) / 2.0


def compute_mar(landmarks: Sequence) -> float:
    """Mouth Aspect Ratio; higher values indicate an open mouth / yawn."""
    p = _as_points(
        landmarks,
        [MOUTH_INNER_TOP, MOUTH_INNER_BOTTOM, MOUTH_LEFT, MOUTH_RIGHT],
    )
    vert  = np.linalg.norm(p[0] - p[1])
    horiz = np.linalg.norm(p[2] - p[3])
    return _safe_ratio(vert, horiz)


def extract_euler_angles(matrix) -> Tuple[float, float]:
    """
    Pitch and yaw (degrees) from a 4×4 row-major transform.

    Accepts a flat 16-value sequence or a 4×4 array.

    Returns:
        (pitch, yaw)
        pitch: rotation around X (head up/down)
        yaw:   rotation around Y (head left/right)
    """
    R = np.asarray(matrix, dtype=np.float64).reshape(4, 4)[:3, :3]

    sy = np.sqrt(R[0, 0] ** 2 + R[1, 0] ** 2)
    if sy >= 1e-6:
        pitch = np.degrees(np.arctan2(R[2, 1], R[2, 2]))
    else:
        # Gimbal lock: yaw at ±90°, pitch taken from the remaining column
        pitch = np.degrees(np.arctan2(-R[1, 2], R[1, 1]))
    yaw = np.degrees(np.arctan2(-R[2, 0], sy))

    return float(pitch), float(yaw)


def extract_signals(landmarks: Sequence, transform: Optional[object] = None) -> FrameSignals:
    """
    Combined extraction for one frame.

    Args:
        landmarks: face-mesh landmark list for the single tracked face
        transform: optional 4×4 facial transform; None or not 16 values
                   → pitch = yaw = 0

    Returns:
        FrameSignals(ear, mar, pitch, yaw)
    """
    pitch, yaw = 0.0, 0.0
    if transform is not None and np.size(transform) == 16:
        pitch, yaw = extract_euler_angles(transform)
    return FrameSignals(
        ear=compute_mean_ear(landmarks),
        mar=compute_mar(landmarks),
        pitch=pitch,
        yaw=yaw,
    )
