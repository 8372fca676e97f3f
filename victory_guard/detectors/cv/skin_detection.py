"""
Skin detection in normalized RGB space
Builds a subsampled boolean skin map, cleans it with a 3x3 neighbourhood
vote and derives an edge map from skin/non-skin transitions
"""
import cv2
import numpy as np

from ...core.config import (
    LUMA_SAMPLE_STEP, DARK_PIXEL_LEVEL, DARK_FRAME_FRACTION,
    BRIGHT_PIXEL_LEVEL, BRIGHT_FRAME_FRACTION,
    SKIN_MIN_RED, SKIN_MIN_GREEN, SKIN_MIN_BLUE, SKIN_WHITE_LEVEL, SKIN_MIN_CHANNEL_SPREAD,
    SKIN_RED_BAND, SKIN_GREEN_BAND, SKIN_BLUE_BAND, SKIN_MIN_RED_GREEN_GAP,
    REFINE_REMOVE_BELOW, REFINE_FILL_FROM
)

_NEIGHBOURHOOD = np.ones((3, 3), dtype=np.float32)


def sampled_brightness(frame, step=LUMA_SAMPLE_STEP):
    """Per-pixel mean of the three channels on a grid sampled every `step` pixels"""
    sample = frame[::step, ::step].astype(np.float32)
    return sample.mean(axis=2)


def is_frame_too_dark(frame, step=LUMA_SAMPLE_STEP):
    brightness = sampled_brightness(frame, step)
    return bool(np.mean(brightness < DARK_PIXEL_LEVEL) > DARK_FRAME_FRACTION)


def is_frame_too_bright(frame, step=LUMA_SAMPLE_STEP):
    brightness = sampled_brightness(frame, step)
    return bool(np.mean(brightness > BRIGHT_PIXEL_LEVEL) > BRIGHT_FRAME_FRACTION)


def detect_skin_normalized_rgb(frame, stride=1):
    """
    Classify pixels as skin using raw and normalized RGB rules

    Args:
        frame: BGR uint8 frame
        stride: sampling step on both axes (2-4 keeps real-time budgets)

    Returns:
        Boolean skin map of shape (ceil(h/stride), ceil(w/stride))
    """
    sample = frame[::stride, ::stride].astype(np.float32)
    b, g, r = sample[..., 0], sample[..., 1], sample[..., 2]

    # Skip very dark or washed out pixels
    bright_enough = (r >= SKIN_MIN_RED) & (g >= SKIN_MIN_GREEN) & (b >= SKIN_MIN_BLUE)
    not_white = ~((r > SKIN_WHITE_LEVEL) & (g > SKIN_WHITE_LEVEL) & (b > SKIN_WHITE_LEVEL))

    rgb_max = np.maximum(np.maximum(r, g), b)
    rgb_min = np.minimum(np.minimum(r, g), b)
    saturated = (rgb_max - rgb_min) >= SKIN_MIN_CHANNEL_SPREAD

    total = r + g + b
    total[total == 0] = 1.0
    rn, gn, bn = r / total, g / total, b / total

    chroma = (
        (rn > SKIN_RED_BAND[0]) & (rn < SKIN_RED_BAND[1]) &
        (gn > SKIN_GREEN_BAND[0]) & (gn < SKIN_GREEN_BAND[1]) &
        (bn > SKIN_BLUE_BAND[0]) & (bn < SKIN_BLUE_BAND[1]) &
        (np.abs(rn - gn) > SKIN_MIN_RED_GREEN_GAP)
    )

    return bright_enough & not_white & saturated & chroma


def _neighbour_counts(mask):
    """Number of True pixels in each 3x3 window (centre included)"""
    counts = cv2.filter2D(mask.astype(np.float32), -1, _NEIGHBOURHOOD,
                          borderType=cv2.BORDER_CONSTANT)
    return np.rint(counts).astype(np.int32)


def _interior(shape):
    interior = np.zeros(shape, dtype=bool)
    if shape[0] > 2 and shape[1] > 2:
        interior[1:-1, 1:-1] = True
    return interior


def refine_skin_map(skin_map, remove_below=REFINE_REMOVE_BELOW, fill_from=REFINE_FILL_FROM):
    """
    Remove isolated skin pixels and fill small gaps

    Skin pixels with fewer than `remove_below` skin pixels in their 3x3
    window are dropped; non-skin pixels with at least `fill_from` are
    filled. Border pixels keep their original label.
    """
    counts = _neighbour_counts(skin_map)
    interior = _interior(skin_map.shape)

    refined = skin_map.copy()
    refined[interior & skin_map & (counts < remove_below)] = False
    refined[interior & ~skin_map & (counts >= fill_from)] = True
    return refined


def detect_edges(skin_map, min_neighbors=2):
    """
    Mark skin pixels bordering non-skin regions

    A skin pixel is an edge when at least `min_neighbors` of its eight
    neighbours are non-skin.
    """
    counts = _neighbour_counts(skin_map)
    non_skin_neighbours = 8 - (counts - 1)
    return _interior(skin_map.shape) & skin_map & (non_skin_neighbours >= min_neighbors)


def build_skin_and_edge_maps(frame, stride=2, edge_min_neighbors=2):
    """Skin map (refined) and edge map for a BGR frame"""
    skin_map = refine_skin_map(detect_skin_normalized_rgb(frame, stride))
    edges = detect_edges(skin_map, edge_min_neighbors)
    return skin_map, edges
