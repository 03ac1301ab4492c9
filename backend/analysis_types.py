"""Value types shared by the skin tone pipeline."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple


class Undertone(str, Enum):
    WARM = "warm"
    COOL = "cool"
    NEUTRAL = "neutral"


class Lean(str, Enum):
    WARM = "warm"
    COOL = "cool"
    NONE = "none"


class Depth(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    DEEP = "deep"


class Clarity(str, Enum):
    MUTED = "muted"
    CLEAR = "clear"
    VIVID = "vivid"


class ValueGroup(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    DEEP = "deep"


class ChromaGroup(str, Enum):
    MUTED = "muted"
    CLEAR = "clear"
    VIVID = "vivid"


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"


class PixelSample(NamedTuple):
    r: int
    g: int
    b: int

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


class LabColor(NamedTuple):
    l: float
    a: float
    b: float

    @property
    def chroma(self) -> float:
        return math.hypot(self.a, self.b)

    def rounded(self, digits: int = 1) -> Dict[str, float]:
        return {"L": round(self.l, digits), "a": round(self.a, digits), "b": round(self.b, digits)}


@dataclass(frozen=True)
class FaceBox:
    """Face rectangle in source-image pixel coordinates."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_normalized(cls, x: float, y: float, width: float, height: float,
                        image_width: int, image_height: int) -> "FaceBox":
        """Scale a box given as fractions of the image size to pixels."""
        return cls(x * image_width, y * image_height, width * image_width, height * image_height)

    def is_valid(self) -> bool:
        values = (self.x, self.y, self.width, self.height)
        if not all(isinstance(v, numbers.Real) and math.isfinite(v) for v in values):
            return False
        return self.x >= 0 and self.y >= 0 and self.width > 0 and self.height > 0

    def clamp(self, image_width: int, image_height: int) -> Optional["FaceBox"]:
        """Integer box clipped to the image, or None if nothing is left."""
        x0 = max(0, int(round(self.x)))
        y0 = max(0, int(round(self.y)))
        x1 = min(image_width, int(round(self.x + self.width)))
        y1 = min(image_height, int(round(self.y + self.height)))
        if x1 <= x0 or y1 <= y0:
            return None
        return FaceBox(x0, y0, x1 - x0, y1 - y0)

    def to_dict(self) -> Dict[str, int]:
        return {"x": int(self.x), "y": int(self.y), "width": int(self.width), "height": int(self.height)}


@dataclass(frozen=True)
class ClassificationResult:
    value: Enum
    confidence: float
    lean: Optional[Lean] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"value": self.value.value, "confidence": round(self.confidence, 2)}
        if self.lean is not None:
            out["lean"] = self.lean.value
        return out


@dataclass(frozen=True)
class SeasonDecision:
    season: Season
    season_confidence: float
    needs_confirmation: bool
    reason: str


@dataclass(frozen=True)
class LightingBias:
    warm_index: float
    is_warm: bool
    severity: float
    average_rgb: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "warmIndex": round(self.warm_index, 3),
            "isWarm": self.is_warm,
            "severity": round(self.severity, 3),
            "averageRgb": [round(c, 1) for c in self.average_rgb],
        }


@dataclass
class Diagnostics:
    """Observability payload. Nothing downstream reads these values back."""

    detection_method: str
    face_box: Optional[FaceBox] = None
    locator_skin_ratio: Optional[float] = None
    total_samples: int = 0
    skin_samples: int = 0
    gamut_samples: int = 0
    used_samples: int = 0
    sampling_skin_ratio: float = 0.0
    zone_skin_counts: Dict[str, int] = field(default_factory=dict)
    gains: Tuple[float, float, float] = (1.0, 1.0, 1.0)
    gains_clamped: bool = False
    mad: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    is_noisy: bool = False
    chroma: float = 0.0
    lighting: Optional[LightingBias] = None
    # Medians before and after gray-world correction; only the corrected one is classified
    raw_lab: Optional[LabColor] = None
    raw_chroma: float = 0.0
    raw_swatch: Optional[PixelSample] = None
    corrected_lab: Optional[LabColor] = None
    corrected_swatch: Optional[PixelSample] = None
    reason: str = ""
    confidence_message: str = ""
    quality_issues: List[Tuple[str, str]] = field(default_factory=list)
    quality_messages: List[str] = field(default_factory=list)

    @staticmethod
    def _lab_entry(lab: Optional[LabColor], chroma: float,
                   swatch: Optional[PixelSample]) -> Optional[Dict[str, Any]]:
        if lab is None:
            return None
        entry: Dict[str, Any] = lab.rounded(1)
        entry["chroma"] = round(chroma, 2)
        entry["hex"] = swatch.to_hex() if swatch else None
        return entry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.detection_method,
            "faceBox": self.face_box.to_dict() if self.face_box else None,
            "locatorSkinRatio": None if self.locator_skin_ratio is None else round(self.locator_skin_ratio, 3),
            "sampling": {
                "totalCount": self.total_samples,
                "skinCount": self.skin_samples,
                "gamutCount": self.gamut_samples,
                "usedCount": self.used_samples,
                "skinRatio": round(self.sampling_skin_ratio, 3),
                "zones": dict(self.zone_skin_counts),
                "correctionGains": {"r": round(self.gains[0], 3), "g": round(self.gains[1], 3), "b": round(self.gains[2], 3)},
                "gainsClamped": self.gains_clamped,
            },
            "robustStats": {
                "madL": round(self.mad[0], 2),
                "madA": round(self.mad[1], 2),
                "madB": round(self.mad[2], 2),
                "isNoisy": self.is_noisy,
                "chroma": round(self.chroma, 2),
            },
            "lighting": self.lighting.to_dict() if self.lighting else None,
            "labValues": {
                "raw": self._lab_entry(self.raw_lab, self.raw_chroma, self.raw_swatch),
                "corrected": self._lab_entry(self.corrected_lab, self.chroma, self.corrected_swatch),
            },
            "reason": self.reason,
            "confidenceMessage": self.confidence_message,
            "qualityIssues": [{"severity": sev, "message": msg} for sev, msg in self.quality_issues],
            "qualityMessages": list(self.quality_messages),
        }


@dataclass
class SkinToneResult:
    rgb: PixelSample
    lab: LabColor
    undertone: ClassificationResult
    depth: ClassificationResult
    clarity: ClassificationResult
    season: Season
    season_confidence: float
    overall_confidence: float
    needs_confirmation: bool
    diagnostics: Diagnostics
    status: str = "success"

    @property
    def hex(self) -> str:
        return self.rgb.to_hex()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "rgb": {"r": self.rgb.r, "g": self.rgb.g, "b": self.rgb.b},
            "hex": self.hex,
            "lab": self.lab.rounded(1),
            "undertone": self.undertone.to_dict(),
            "depth": self.depth.to_dict(),
            "clarity": self.clarity.to_dict(),
            "season": self.season.value,
            "seasonConfidence": round(self.season_confidence, 2),
            "confidence": round(self.overall_confidence, 2),
            "needsConfirmation": self.needs_confirmation,
            "diagnostics": self.diagnostics.to_dict(),
        }


@dataclass
class FaceNotDetected:
    """Terminal outcome when no usable face region was found."""

    stage: str
    message: str
    skin_ratio: float = 0.0
    skin_count: int = 0
    total_count: int = 0
    zones: Dict[str, Dict[str, float]] = field(default_factory=dict)
    status: str = "FACE_NOT_DETECTED"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "error": self.status,
            "stage": self.stage,
            "message": self.message,
            "needsConfirmation": True,
            "diagnostics": {
                "skinRatio": round(self.skin_ratio, 3),
                "skinCount": self.skin_count,
                "totalCount": self.total_count,
                "zones": self.zones,
            },
        }
