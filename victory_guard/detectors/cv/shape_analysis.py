"""
Shape heuristics on skin and edge maps
- finger gap: skin / non-skin / skin runs in the middle band of the frame
- V angle: pairs of diverging edge diagonals in the lower half
"""
from dataclasses import dataclass

import numpy as np

from ...core.config import IDEAL_SKIN_RATIO, IDEAL_EDGE_RATIO, DIAGONAL_LENGTH


@dataclass(frozen=True)
class ShapeFeatures:
    has_v_shape: bool
    has_finger_gap: bool
    center_gap: bool
    skin_ratio: float
    edge_ratio: float
    v_shape_score: int
    shape_confidence: float


def find_finger_gaps(skin_map):
    """
    Look for non-skin pixels with skin on both sides in the middle third

    The search radius on each side is a fifth of the map width.

    Returns:
        (gap_found, center_gap_found)
    """
    h, w = skin_map.shape
    rows = np.arange(h)
    band = skin_map[(rows > h / 3) & (rows < 2 * h / 3)]
    if band.size == 0 or w < 3:
        return False, False

    radius = max(1, int(np.ceil(w / 5)))
    cumulative = np.zeros((band.shape[0], w + 1), dtype=np.int32)
    cumulative[:, 1:] = np.cumsum(band, axis=1)

    xs = np.arange(w)
    left_start = np.maximum(0, xs - radius)
    right_end = np.minimum(w, xs + radius)
    left_skin = cumulative[:, xs] - cumulative[:, left_start]
    right_skin = cumulative[:, right_end] - cumulative[:, np.minimum(w, xs + 1)]

    gaps = ~band & (left_skin > 0) & (right_skin > 0)
    if not gaps.any():
        return False, False

    center_cols = (xs > w * 0.4) & (xs < w * 0.6)
    return True, bool(gaps[:, center_cols].any())


def _diagonal_counts(mask, dx, dy, length):
    """Count of True pixels along a diagonal ray of `length` starting at each pixel"""
    h, w = mask.shape
    padded = np.zeros((h + 2 * length, w + 2 * length), dtype=np.int32)
    padded[length:length + h, length:length + w] = mask
    counts = np.zeros((h, w), dtype=np.int32)
    for i in range(length):
        oy = length + i * dy
        ox = length + i * dx
        counts += padded[oy:oy + h, ox:ox + w]
    return counts


def score_v_shape(skin_map, edges, length=DIAGONAL_LENGTH):
    """
    Two points for each lower-half edge pixel with finger-like diagonals
    rising both to the left and to the right
    """
    h, _ = edges.shape
    lower = (np.arange(h) > h / 2)[:, None]
    candidates = edges & lower
    if not candidates.any():
        return 0

    def finger_like(dx):
        edge_hits = _diagonal_counts(edges, dx, -1, length)
        skin_hits = _diagonal_counts(skin_map, dx, -1, length)
        return (edge_hits >= length / 3) & (skin_hits >= length / 2)

    pairs = candidates & finger_like(-1) & finger_like(1)
    return int(2 * np.count_nonzero(pairs))


def calculate_shape_confidence(skin_ratio, edge_ratio, v_shape_score, center_gap, height):
    ideal_v_score = height / 15
    skin_score = 1 - min(abs(skin_ratio - IDEAL_SKIN_RATIO) / IDEAL_SKIN_RATIO, 1)
    edge_score = 1 - min(abs(edge_ratio - IDEAL_EDGE_RATIO) / IDEAL_EDGE_RATIO, 1)
    v_score = min(v_shape_score / ideal_v_score, 1) if ideal_v_score > 0 else 0.0
    gap_bonus = 0.3 if center_gap else 0.0

    combined = skin_score * 0.2 + edge_score * 0.2 + v_score * 0.3 + gap_bonus
    return min(combined, 1.0)


def analyze_shape(skin_map, edges, v_shape_min_score=5):
    h, w = skin_map.shape
    total = float(h * w) if h and w else 1.0
    skin_ratio = np.count_nonzero(skin_map) / total
    edge_ratio = np.count_nonzero(edges) / total

    gap_found, center_gap = find_finger_gaps(skin_map)
    v_score = score_v_shape(skin_map, edges)

    return ShapeFeatures(
        has_v_shape=v_score > v_shape_min_score,
        has_finger_gap=gap_found,
        center_gap=center_gap,
        skin_ratio=skin_ratio,
        edge_ratio=edge_ratio,
        v_shape_score=v_score,
        shape_confidence=calculate_shape_confidence(
            skin_ratio, edge_ratio, v_score, center_gap, h
        ),
    )
