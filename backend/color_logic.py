import itertools
import logging

from analysis_types import (
    ChromaGroup,
    Clarity,
    ClassificationResult,
    Depth,
    Lean,
    Season,
    SeasonDecision,
    Undertone,
    ValueGroup,
)

logger = logging.getLogger(__name__)

SEVERE_LIGHTING = 0.35
NEUTRAL_BAND = 6.0
NEUTRAL_BAND_SEVERE = 8.0
DEFINITE_B = 8.0

SEASON_CEILING = 0.95
NEUTRAL_CEILING = 0.55
VERY_NEUTRAL_CEILING = 0.45
CONFIRM_BELOW = 0.72
CONFIRM_UNDERTONE_BELOW = 0.70

NOISY_PENALTY = 0.08
CLAMPED_GAINS_PENALTY = 0.06


def clamp(value, lo, hi):
    return max(lo, min(hi, value))


def value_group(l):
    # Inclusive at 65, unlike classify_depth
    if l >= 65:
        return ValueGroup.LIGHT
    if l <= 45:
        return ValueGroup.DEEP
    return ValueGroup.MEDIUM


def chroma_group(c):
    if c < 10:
        return ChromaGroup.MUTED
    if c < 18:
        return ChromaGroup.CLEAR
    return ChromaGroup.VIVID


def lean_from_b(b):
    if b > 0:
        return Lean.WARM
    if b < 0:
        return Lean.COOL
    return Lean.NONE


def classify_undertone(a, b, lighting_severity=0.0):
    """Warm / cool / neutral from the Lab b* axis, with a lean for neutral."""
    severe = lighting_severity > SEVERE_LIGHTING
    band = NEUTRAL_BAND_SEVERE if severe else NEUTRAL_BAND
    in_band = abs(b) < band

    if in_band:
        undertone, lean = Undertone.NEUTRAL, lean_from_b(b)
    elif b >= DEFINITE_B:
        undertone, lean = Undertone.WARM, None
    elif b <= -DEFINITE_B:
        undertone, lean = Undertone.COOL, None
    else:
        undertone, lean = Undertone.NEUTRAL, lean_from_b(b)

    confidence = 0.5 + 0.4 * clamp(abs(b) / 12.0, 0.0, 1.0)
    if in_band:
        confidence = min(confidence, 0.6)
    if severe:
        confidence -= 0.1
    return ClassificationResult(undertone, clamp(confidence, 0.0, 1.0), lean)


def classify_depth(l, mad_l=0.0):
    if l > 65:
        depth = Depth.LIGHT
    elif l <= 45:
        depth = Depth.DEEP
    else:
        depth = Depth.MEDIUM

    dist = min(abs(l - 65), abs(l - 45))
    confidence = clamp(0.62 + dist / 28.0, 0.55, 0.92)
    if mad_l > 10:
        confidence = clamp(confidence - 0.06, 0.0, 1.0)
    return ClassificationResult(depth, confidence)


def classify_clarity(c, mad_b=0.0):
    """Clarity from Lab chroma, not HSV saturation."""
    if c < 10:
        clarity = Clarity.MUTED
    elif c < 18:
        clarity = Clarity.CLEAR
    else:
        clarity = Clarity.VIVID

    d = min(abs(c - 10), abs(c - 18))
    confidence = clamp(0.55 + d / 10.0, 0.55, 0.9)
    if mad_b > 4.5:
        confidence = clamp(confidence - 0.06, 0.0, 1.0)
    return ClassificationResult(clarity, confidence)


def _warm_rule(value, chroma_key, lean):
    if value == ValueGroup.LIGHT and chroma_key != ChromaGroup.MUTED:
        return Season.SPRING, "warm + light + not muted"
    return Season.AUTUMN, "warm, not light-and-bright"


def _cool_rule(value, chroma_key, lean):
    if chroma_key == ChromaGroup.MUTED:
        return Season.SUMMER, "cool + muted"
    return Season.WINTER, "cool + clear/vivid"


def _neutral_rule(value, chroma_key, lean):
    # Undefined lean (b == 0) follows the cool side
    warm = lean == Lean.WARM
    side = "warm lean" if warm else "cool lean"
    if chroma_key == ChromaGroup.MUTED:
        return (Season.AUTUMN if warm else Season.SUMMER), f"neutral + muted, {side}"
    if value == ValueGroup.LIGHT:
        return (Season.SPRING if warm else Season.SUMMER), f"neutral + light, {side}"
    if value == ValueGroup.DEEP:
        return (Season.AUTUMN if warm else Season.WINTER), f"neutral + deep, {side}"
    return (Season.AUTUMN if warm else Season.SUMMER), f"neutral + medium, {side}"


_RULES = {
    Undertone.WARM: _warm_rule,
    Undertone.COOL: _cool_rule,
    Undertone.NEUTRAL: _neutral_rule,
}


def _build_season_table():
    table = {}
    for key in itertools.product(Undertone, ValueGroup, ChromaGroup, Lean):
        undertone, value, chroma_key, lean = key
        table[key] = _RULES[undertone](value, chroma_key, lean)
    return table


# Every (undertone, value group, chroma group, lean) combination
SEASON_TABLE = _build_season_table()


def lookup_season(undertone, value, chroma_key, lean=None):
    return SEASON_TABLE[(undertone, value, chroma_key, lean or Lean.NONE)]


class SeasonDecisionEngine:
    """Undertone-gated season lookup plus confidence capping.

    Warm only yields spring/autumn, cool only summer/winter. Neutral outcomes
    are allowed any season the table gives them, but their confidence is held
    down and they always ask for confirmation.
    """

    def decide(self, undertone, lab, chroma_value, is_noisy=False, gains_clamped=False):
        value = value_group(lab.l)
        chroma_key = chroma_group(chroma_value)
        season, why = lookup_season(undertone.value, value, chroma_key, undertone.lean)

        abs_b = abs(lab.b)
        if undertone.value == Undertone.NEUTRAL:
            confidence = min(clamp(undertone.confidence * 0.7, 0.0, NEUTRAL_CEILING), NEUTRAL_CEILING)
            ceiling = NEUTRAL_CEILING
            if chroma_key == ChromaGroup.MUTED:
                very_neutral = abs_b < 2
            else:
                very_neutral = chroma_value < 6 and abs_b < 3
            if very_neutral:
                ceiling = VERY_NEUTRAL_CEILING
                confidence = min(confidence, VERY_NEUTRAL_CEILING)
            needs_confirmation = True
        else:
            confidence = clamp(undertone.confidence * 0.9, 0.0, SEASON_CEILING)
            ceiling = SEASON_CEILING
            needs_confirmation = (
                undertone.confidence < CONFIRM_UNDERTONE_BELOW or confidence < CONFIRM_BELOW
            )

        if is_noisy:
            confidence -= NOISY_PENALTY
        if gains_clamped:
            confidence -= CLAMPED_GAINS_PENALTY
        confidence = clamp(confidence, 0.0, ceiling)

        if undertone.value != Undertone.NEUTRAL and confidence < CONFIRM_BELOW:
            needs_confirmation = True

        reason = (
            f"{why} (L={lab.l:.1f} {value.value}, C={chroma_value:.1f} {chroma_key.value}, "
            f"b={lab.b:.1f}) -> {season.value}"
        )
        logger.debug(f"Season decision: {reason}, confidence={confidence:.3f}")
        return SeasonDecision(season, confidence, needs_confirmation, reason)

