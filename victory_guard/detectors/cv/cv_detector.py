"""
Pixel heuristic victory sign detector
Fallback used when no landmark model is available: skin map, edge map,
template matching and shape heuristics fused into one confidence
"""
import logging

import numpy as np

from ..hand_detector_base import HandDetectorBase
from ...core.config import ABSENCE_CONFIDENCE
from ...core.models import FrameVerdict
from ...core.utils import ensure_bgr

from .skin_detection import is_frame_too_dark, is_frame_too_bright, build_skin_and_edge_maps
from .template_matching import V_SIGN_TEMPLATES, best_template_match
from .shape_analysis import analyze_shape

logger = logging.getLogger(__name__)

SOURCE = "pixels"


class CVDetector(HandDetectorBase):
    """Skin-map based V sign detector with template matching"""
    name = "cv"

    def __init__(self, profile, templates=V_SIGN_TEMPLATES):
        super().__init__(profile)
        self.templates = templates
        self.last_skin_map = None

        self.debug_metrics = {
            'total_frames': 0,
            'detected_frames': 0,
            'prefiltered_frames': 0,
            'failed_frames': 0,
            'last_template': None,
            'last_template_score': 0.0,
            'last_skin_ratio': 0.0,
        }

    def analyze(self, frame):
        self.debug_metrics['total_frames'] += 1
        if frame is None:
            return FrameVerdict.negative(source=SOURCE, reason='no_frame')

        try:
            return self._analyze(frame)
        except Exception as e:
            self.debug_metrics['failed_frames'] += 1
            logger.warning("Pixel analysis failed: %s", e)
            return FrameVerdict.negative(source=SOURCE, reason='analysis_error')

    def _analyze(self, frame):
        frame = ensure_bgr(np.asarray(frame))
        if frame.dtype != np.uint8:
            frame = np.clip(frame, 0, 255).astype(np.uint8)

        # Confident absence: skip the expensive part on unusable exposure
        if is_frame_too_dark(frame) or is_frame_too_bright(frame):
            self.debug_metrics['prefiltered_frames'] += 1
            self.last_skin_map = None
            return FrameVerdict.negative(ABSENCE_CONFIDENCE, SOURCE, reason='exposure')

        profile = self.profile
        skin_map, edges = build_skin_and_edge_maps(
            frame, profile.sample_stride, profile.edge_min_neighbors
        )
        self.last_skin_map = skin_map

        best_score, best_name, scores = best_template_match(skin_map, self.templates)
        shape = analyze_shape(skin_map, edges, profile.v_shape_min_score)

        confidence = (
            profile.template_weight * min(best_score, 1.0) +
            profile.shape_weight * shape.shape_confidence
        )

        is_victory = (
            best_score >= profile.min_template_score and
            profile.min_skin_ratio <= shape.skin_ratio <= profile.max_skin_ratio and
            shape.has_finger_gap
        )

        self.debug_metrics['last_template'] = best_name
        self.debug_metrics['last_template_score'] = best_score
        self.debug_metrics['last_skin_ratio'] = shape.skin_ratio
        if is_victory:
            self.debug_metrics['detected_frames'] += 1

        metadata = {
            'template': best_name,
            'template_scores': scores,
            'skin_ratio': shape.skin_ratio,
            'edge_ratio': shape.edge_ratio,
            'finger_gap': shape.has_finger_gap,
            'v_shape': shape.has_v_shape,
            'v_shape_score': shape.v_shape_score,
        }
        if not is_victory:
            return FrameVerdict(False, min(0.1, confidence), SOURCE, metadata)
        return FrameVerdict(True, confidence, SOURCE, metadata)

    def cleanup(self):
        self.last_skin_map = None
