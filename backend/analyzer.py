"""Skin tone -> color season pipeline boundary.

``SkinToneAnalyzer.analyze`` runs locator, sampler, gray-world correction,
robust Lab aggregation, the attribute classifiers and the season decision
engine, in that order. It returns either a ``SkinToneResult`` or a
``FaceNotDetected``. Once a face region is accepted a season is always
returned: unexpected errors map to a fixed fallback classification.
"""

import logging

import numpy as np

from analysis_types import (
    Clarity,
    ClassificationResult,
    Depth,
    Diagnostics,
    FaceBox,
    FaceNotDetected,
    LabColor,
    Lean,
    PixelSample,
    Season,
    SkinToneResult,
    Undertone,
)
from color_logic import SeasonDecisionEngine, classify_clarity, classify_depth, classify_undertone
from skin_detection import FaceRegionLocator
from validation_utils import (
    calculate_overall_confidence,
    detect_quality_issues,
    generate_confidence_message,
    has_enough_skin_samples,
    quality_messages,
)
from vision_engine import (
    SkinSampler,
    apply_gray_world_correction,
    compute_robust_lab_stats,
    display_color,
    estimate_lighting_bias,
    lab_swatch,
)

logger = logging.getLogger(__name__)


class InvalidImageError(ValueError):
    """The input is not a decoded RGB image."""


def fallback_result(reason, diagnostics=None):
    """Fixed answer used when the pipeline fails internally."""
    diagnostics = diagnostics or Diagnostics(detection_method="fallback")
    diagnostics.reason = reason
    diagnostics.confidence_message = generate_confidence_message(0.0)
    diagnostics.quality_messages = quality_messages([], needs_confirmation=True)
    return SkinToneResult(
        rgb=PixelSample(0, 0, 0),
        lab=LabColor(0.0, 0.0, 0.0),
        undertone=ClassificationResult(Undertone.NEUTRAL, 0.0, Lean.NONE),
        depth=ClassificationResult(Depth.MEDIUM, 0.0),
        clarity=ClassificationResult(Clarity.MUTED, 0.0),
        season=Season.AUTUMN,
        season_confidence=0.0,
        overall_confidence=0.0,
        needs_confirmation=True,
        diagnostics=diagnostics,
        status="fallback",
    )


def validate_image(image_rgb):
    if not isinstance(image_rgb, np.ndarray):
        raise InvalidImageError(f"Expected a numpy array, got {type(image_rgb).__name__}")
    if image_rgb.ndim != 3 or image_rgb.shape[2] < 3:
        raise InvalidImageError(f"Expected an (H, W, 3) image, got shape {image_rgb.shape}")
    if image_rgb.shape[0] == 0 or image_rgb.shape[1] == 0:
        raise InvalidImageError("Image is empty")
    if image_rgb.dtype != np.uint8:
        image_rgb = np.clip(image_rgb, 0, 255).astype(np.uint8)
    return np.ascontiguousarray(image_rgb[..., :3])


class SkinToneAnalyzer:

    def __init__(self, locator=None, sampler=None, engine=None):
        self.locator = locator or FaceRegionLocator()
        self.sampler = sampler or SkinSampler()
        self.engine = engine or SeasonDecisionEngine()

    def resolve_face_box(self, image_rgb, face_box=None, normalized_face_box=None, cropped=False):
        """Pick the face box: caller-supplied if usable, otherwise the locator's.

        A ``cropped`` image is already the face, so the whole frame is used.
        Returns (box or None, method, locator report or None).
        """
        h, w = image_rgb.shape[:2]
        if cropped:
            return FaceBox(0, 0, w, h), "cropped", None

        candidates = []
        if face_box is not None:
            candidates.append(("provided", face_box))
        if normalized_face_box is not None:
            if normalized_face_box.is_valid():
                candidates.append(("normalized", FaceBox.from_normalized(
                    normalized_face_box.x, normalized_face_box.y,
                    normalized_face_box.width, normalized_face_box.height, w, h,
                )))
            else:
                logger.warning(f"Ignoring invalid normalized face box {normalized_face_box}")

        for method, box in candidates:
            if not box.is_valid():
                logger.warning(f"Ignoring invalid {method} face box {box}")
                continue
            clamped = box.clamp(w, h)
            if clamped is None:
                logger.warning(f"{method} face box {box} lies outside the {w}x{h} image")
                continue
            return clamped, method, None

        box, report = self.locator.locate(image_rgb)
        return box, "heuristic", report

    def analyze(self, image_rgb, face_box=None, normalized_face_box=None, cropped=False):
        image_rgb = validate_image(image_rgb)
        diagnostics = Diagnostics(detection_method="heuristic")

        try:
            return self._run(image_rgb, face_box, normalized_face_box, cropped, diagnostics)
        except Exception as e:
            logger.error(f"Skin tone pipeline failed: {e}", exc_info=True)
            return fallback_result(f"internal error: {type(e).__name__}", diagnostics)

    def _run(self, image_rgb, face_box, normalized_face_box, cropped, diagnostics):
        # Independent of face detection; only reads the image
        lighting = estimate_lighting_bias(image_rgb)
        diagnostics.lighting = lighting

        box, method, report = self.resolve_face_box(image_rgb, face_box, normalized_face_box, cropped)
        diagnostics.detection_method = method
        if report is not None:
            diagnostics.locator_skin_ratio = report['skin_ratio']

        if box is None:
            return FaceNotDetected(
                stage="locator",
                message="No skin-colored face region found. Center your face in good light.",
                skin_ratio=report['skin_ratio'],
                skin_count=report['skin_pixels'],
                total_count=report['total_pixels'],
                zones=report['zones'],
            )
        diagnostics.face_box = box

        sampling = self.sampler.sample(image_rgb, box)
        skin_samples = sampling['skin_samples']
        total = len(sampling['all_samples'])
        skin_count = len(skin_samples)
        ratio = skin_count / total if total else 0.0

        diagnostics.total_samples = total
        diagnostics.skin_samples = skin_count
        diagnostics.sampling_skin_ratio = ratio
        diagnostics.zone_skin_counts = sampling['zone_counts']

        if not has_enough_skin_samples(skin_count, total):
            logger.info(f"Sample gate failed: {skin_count}/{total} skin samples ({ratio:.2f})")
            return FaceNotDetected(
                stage="samples",
                message="Not enough usable skin pixels. Try daylight near a window, avoid shadows, no filters.",
                skin_ratio=ratio,
                skin_count=skin_count,
                total_count=total,
            )

        corrected, gains, gains_clamped = apply_gray_world_correction(skin_samples)
        diagnostics.gains = gains
        diagnostics.gains_clamped = gains_clamped

        stats = compute_robust_lab_stats(corrected)
        lab = stats['median_lab']
        diagnostics.gamut_samples = stats['gamut_count']
        diagnostics.used_samples = stats['used_count']
        diagnostics.mad = stats['mad']
        diagnostics.is_noisy = stats['is_noisy']
        diagnostics.chroma = stats['chroma']
        diagnostics.corrected_lab = lab
        diagnostics.corrected_swatch = lab_swatch(lab)

        raw_stats = compute_robust_lab_stats(skin_samples)
        diagnostics.raw_lab = raw_stats['median_lab']
        diagnostics.raw_chroma = raw_stats['chroma']
        diagnostics.raw_swatch = lab_swatch(raw_stats['median_lab'])

        undertone = classify_undertone(lab.a, lab.b, lighting.severity)
        depth = classify_depth(lab.l, stats['mad'][0])
        clarity = classify_clarity(stats['chroma'], stats['mad'][2])

        decision = self.engine.decide(
            undertone, lab, stats['chroma'],
            is_noisy=stats['is_noisy'], gains_clamped=gains_clamped,
        )
        overall = calculate_overall_confidence(
            undertone, depth, clarity,
            is_noisy=stats['is_noisy'], gains_clamped=gains_clamped,
        )

        diagnostics.reason = decision.reason
        diagnostics.confidence_message = generate_confidence_message(overall)
        diagnostics.quality_issues = detect_quality_issues(
            stats['used_count'], stats['is_noisy'], gains_clamped, lighting.severity, stats['chroma'],
        )
        diagnostics.quality_messages = quality_messages(diagnostics.quality_issues, decision.needs_confirmation)

        logger.info(
            f"Analysis: season={decision.season.value} conf={decision.season_confidence:.2f} "
            f"undertone={undertone.value.value} depth={depth.value.value} clarity={clarity.value.value} "
            f"confirm={decision.needs_confirmation} method={method}"
        )

        return SkinToneResult(
            rgb=display_color(corrected),
            lab=lab,
            undertone=undertone,
            depth=depth,
            clarity=clarity,
            season=decision.season,
            season_confidence=decision.season_confidence,
            overall_confidence=overall,
            needs_confirmation=decision.needs_confirmation,
            diagnostics=diagnostics,
        )
