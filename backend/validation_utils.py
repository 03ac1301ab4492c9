MIN_SKIN_SAMPLES = 50
MIN_SKIN_RATIO = 0.30
ABS_MIN_SKIN_SAMPLES = 40
ABS_MIN_SKIN_RATIO = 0.25

LOW_SAMPLE_WARNING = 120
STRONG_WARM_CAST = 0.45
WASHED_OUT_CHROMA = 4.0

RETAKE_TIPS = [
    "Try daylight near a window.",
    "Avoid heavy shadows across the face.",
    "Disable beauty filters / HDR if possible.",
]


def has_enough_skin_samples(skin_count, total_count):
    """Sample sufficiency gate applied before any color statistics are computed."""
    ratio = skin_count / total_count if total_count else 0.0
    soft_ok = skin_count >= MIN_SKIN_SAMPLES or ratio >= MIN_SKIN_RATIO
    hard_ok = skin_count >= ABS_MIN_SKIN_SAMPLES and ratio >= ABS_MIN_SKIN_RATIO
    return soft_ok and hard_ok


def calculate_overall_confidence(undertone, depth, clarity, is_noisy=False, gains_clamped=False):
    """Weighted attribute confidence, never above 0.95."""
    score = 0.45 * undertone.confidence + 0.30 * depth.confidence + 0.25 * clarity.confidence

    if is_noisy:
        score -= 0.08
    if gains_clamped:
        score -= 0.06

    return max(0.0, min(0.95, score))


def detect_quality_issues(used_samples, is_noisy, gains_clamped, lighting_severity, chroma):
    """Image quality notes for the user. Informational only."""
    issues = []

    if used_samples < LOW_SAMPLE_WARNING:
        issues.append(("WARNING", "Not enough stable skin pixels. Move closer to the camera."))

    if is_noisy:
        issues.append(("WARNING", "Uneven lighting or shadows detected across the face."))

    if lighting_severity > STRONG_WARM_CAST:
        issues.append(("WARNING", "Strong warm lighting cast. Try neutral lighting."))

    if chroma < WASHED_OUT_CHROMA:
        issues.append(("INFO", "Image looks gray or washed out."))

    if gains_clamped:
        issues.append(("INFO", "Color cast was too strong to fully correct."))

    return issues


def generate_confidence_message(score):
    """Generate user-friendly confidence message"""
    if score >= 0.85:
        return "Analysis confidence is very high. Results are highly reliable."
    elif score >= 0.72:
        return "Analysis confidence is high. Results are reliable."
    elif score >= 0.55:
        return "Analysis confidence is moderate. Please confirm your season."
    else:
        return "Analysis confidence is low. Please confirm your season or retake the photo with better lighting."


def quality_messages(issues, needs_confirmation):
    if not issues and not needs_confirmation:
        return []
    return list(RETAKE_TIPS)
