"""
Template matching of skin maps against idealized V sign layouts
"""
from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class TemplateRegion:
    """Rectangle in normalized frame coordinates with the expected skin label"""
    x: float
    y: float
    width: float
    height: float
    is_skin: bool


@dataclass(frozen=True)
class VSignTemplate:
    name: str
    regions: Tuple[TemplateRegion, ...]
    weight: float


V_SIGN_TEMPLATES = (
    VSignTemplate("classic_v", (
        TemplateRegion(0.40, 0.30, 0.10, 0.40, True),   # left finger
        TemplateRegion(0.50, 0.40, 0.10, 0.10, False),  # gap
        TemplateRegion(0.60, 0.30, 0.10, 0.40, True),   # right finger
        TemplateRegion(0.45, 0.70, 0.20, 0.20, True),   # base of hand
    ), weight=1.0),
    VSignTemplate("wide_v", (
        TemplateRegion(0.30, 0.30, 0.10, 0.40, True),
        TemplateRegion(0.40, 0.35, 0.20, 0.20, False),
        TemplateRegion(0.60, 0.30, 0.10, 0.40, True),
        TemplateRegion(0.40, 0.70, 0.20, 0.20, True),
    ), weight=0.8),
    VSignTemplate("tilted_v", (
        TemplateRegion(0.35, 0.25, 0.10, 0.40, True),
        TemplateRegion(0.45, 0.40, 0.10, 0.10, False),
        TemplateRegion(0.55, 0.35, 0.10, 0.40, True),
        TemplateRegion(0.45, 0.70, 0.20, 0.20, True),
    ), weight=0.7),
    VSignTemplate("high_v", (
        TemplateRegion(0.40, 0.15, 0.10, 0.40, True),
        TemplateRegion(0.50, 0.25, 0.10, 0.10, False),
        TemplateRegion(0.60, 0.15, 0.10, 0.40, True),
        TemplateRegion(0.45, 0.55, 0.20, 0.20, True),
    ), weight=0.75),
)


def region_match_fraction(skin_map, region):
    """Fraction of pixels inside the region whose label matches the expectation"""
    h, w = skin_map.shape
    x0 = int(region.x * w)
    y0 = int(region.y * h)
    x1 = min(w, x0 + int(region.width * w))
    y1 = min(h, y0 + int(region.height * h))
    patch = skin_map[y0:y1, x0:x1]
    if patch.size == 0:
        return 0.0
    return float(np.mean(patch == region.is_skin))


def match_template(skin_map, template):
    """Mean region agreement scaled by the template weight, in [0, 1]"""
    if not template.regions:
        return 0.0
    score = sum(region_match_fraction(skin_map, r) for r in template.regions)
    return (score / len(template.regions)) * template.weight


def best_template_match(skin_map, templates=V_SIGN_TEMPLATES):
    """
    Score every template and return the best

    Returns:
        (best_score, best_template_name, {name: score})
    """
    scores = {t.name: match_template(skin_map, t) for t in templates}
    if not scores:
        return 0.0, None, scores
    best_name = max(scores, key=scores.get)
    return scores[best_name], best_name, scores
