"""
Visualization and debug overlay for the detection preview
"""
import cv2
import numpy as np

from ...core.config import GESTURE_COLORS, GESTURE_DISPLAY_NAMES


def draw_status_overlay(frame, status, sensitivity, fps=None):
    """
    Draw the detection status panel (top left)

    Args:
        frame: Frame to draw on
        status: DetectionStatus snapshot
        sensitivity: Active sensitivity level name
        fps: Optional preview FPS

    Returns:
        Modified frame
    """
    overlay = frame.copy()
    cv2.rectangle(overlay, (5, 5), (330, 130), (0, 0, 0), -1)
    cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)

    cv2.putText(frame, f"Detection: {status.detector_name}", (10, 25),
               cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2)

    gesture = status.gesture.value
    cv2.putText(frame, f"Gesture: {GESTURE_DISPLAY_NAMES.get(gesture, gesture)}", (10, 50),
               cv2.FONT_HERSHEY_SIMPLEX, 0.55, GESTURE_COLORS.get(gesture, (255, 255, 255)), 2)

    confidence = int(status.confidence * 100)
    cv2.putText(frame, f"Confidence: {confidence}%", (10, 75),
               cv2.FONT_HERSHEY_SIMPLEX, 0.55, (0, 255, 0) if confidence > 50 else (0, 255, 255), 2)

    sensitivity_text = f"Sensitivity: {sensitivity}"
    if fps is not None:
        sensitivity_text += f"  FPS: {fps}"
    cv2.putText(frame, sensitivity_text, (10, 100),
               cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1)

    if status.cooldown_active:
        # Cooldown progress bar
        bar_width = int(300 * status.cooldown_progress)
        cv2.rectangle(frame, (10, 110), (10 + bar_width, 122), (0, 165, 255), -1)
        cv2.rectangle(frame, (10, 110), (310, 122), (255, 255, 255), 1)
    elif status.message:
        cv2.putText(frame, status.message, (10, 122),
                   cv2.FONT_HERSHEY_SIMPLEX, 0.4, (0, 165, 255), 1)

    return frame


def draw_skin_preview(frame, skin_map, scale=0.25):
    """Paste a thumbnail of the skin map into the top right corner"""
    if skin_map is None or skin_map.size == 0:
        return frame
    h, w = frame.shape[:2]
    thumb_w = max(1, int(w * scale))
    thumb_h = max(1, int(h * scale))

    mask = skin_map.astype(np.uint8) * 255
    thumb = cv2.resize(mask, (thumb_w, thumb_h), interpolation=cv2.INTER_NEAREST)
    frame[5:5 + thumb_h, w - thumb_w - 5:w - 5] = cv2.cvtColor(thumb, cv2.COLOR_GRAY2BGR)
    cv2.rectangle(frame, (w - thumb_w - 5, 5), (w - 5, 5 + thumb_h), (255, 255, 255), 1)
    return frame


def draw_extended_debug_metrics(frame, metrics, history):
    """
    Draw pixel-analyzer counters and the recent verdict history

    Args:
        frame: Frame to draw on
        metrics: CVDetector.debug_metrics dictionary
        history: Iterable of recent FrameVerdicts

    Returns:
        Modified frame
    """
    debug_y = 150

    overlay = frame.copy()
    cv2.rectangle(overlay, (5, debug_y - 10), (330, debug_y + 120), (20, 20, 20), -1)
    cv2.addWeighted(overlay, 0.7, frame, 0.3, 0, frame)

    cv2.putText(frame, "=== DEBUG METRICS ===", (10, debug_y),
               cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 0), 1)
    debug_y += 22

    detection_rate = (metrics.get('detected_frames', 0) / max(1, metrics.get('total_frames', 0))) * 100
    lines = [
        f"Detection Rate: {detection_rate:.1f}%",
        f"Total Frames: {metrics.get('total_frames', 0)}",
        f"Exposure Rejects: {metrics.get('prefiltered_frames', 0)}",
        f"Template: {metrics.get('last_template')} ({metrics.get('last_template_score', 0.0):.2f})",
        f"Skin Ratio: {metrics.get('last_skin_ratio', 0.0):.3f}",
    ]
    for line in lines:
        cv2.putText(frame, line, (10, debug_y),
                   cv2.FONT_HERSHEY_SIMPLEX, 0.4, (255, 255, 255), 1)
        debug_y += 18

    history_str = ' '.join('V' if v.is_victory else '.' for v in list(history)[-8:])
    cv2.putText(frame, f"History: {history_str}", (10, debug_y),
               cv2.FONT_HERSHEY_SIMPLEX, 0.4, (0, 255, 255), 1)

    return frame
