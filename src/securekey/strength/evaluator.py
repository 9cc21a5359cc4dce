"""Password strength scoring.

Wraps a pattern-based classifier (zxcvbn: dictionary, sequence, keyboard
and entropy heuristics) and normalises its 0-4 class onto the 0-100 score
stored with every vault record.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from zxcvbn import zxcvbn

logger = logging.getLogger(__name__)

Classifier = Callable[[str], Dict[str, Any]]

# Fixed mapping from classifier class to stored score
SCORE_MAPPING = {
    0: 25,   # Very weak
    1: 45,   # Weak
    2: 65,   # Medium
    3: 85,   # Strong
    4: 100,  # Very strong
}

# Feedback is only surfaced below this score
FEEDBACK_THRESHOLD = 60

# zxcvbn refuses longer inputs; the tail adds nothing to its estimate
MAX_EVALUATED_LENGTH = 72


class StrengthCategory(str, Enum):
    WEAK = "Weak"
    MEDIUM = "Medium"
    STRONG = "Strong"
    VERY_STRONG = "Very Strong"


def score_for_class(raw_class: int) -> int:
    """Map a classifier class (0-4) onto the 0-100 score."""
    try:
        return SCORE_MAPPING[raw_class]
    except KeyError:
        raise ValueError(f"Classifier class must be 0-4, got {raw_class!r}") from None


def category_for_score(score: int) -> StrengthCategory:
    """Bucket a 0-100 score: <40 Weak, <60 Medium, <80 Strong, else Very Strong."""
    if score >= 80:
        return StrengthCategory.VERY_STRONG
    if score >= 60:
        return StrengthCategory.STRONG
    if score >= 40:
        return StrengthCategory.MEDIUM
    return StrengthCategory.WEAK


@dataclass(frozen=True)
class StrengthFeedback:
    warning: str = ""
    suggestions: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"warning": self.warning, "suggestions": list(self.suggestions)}


@dataclass(frozen=True)
class StrengthResult:
    """Outcome of one evaluation.

    ``feedback`` is None unless the score is below 60; the classifier's raw
    feedback is always kept in ``classifier_feedback`` for the details view.
    """

    raw_class: int
    score: int
    category: StrengthCategory
    feedback: Optional[StrengthFeedback]
    classifier_feedback: StrengthFeedback = StrengthFeedback()
    crack_times_seconds: Dict[str, float] = field(default_factory=dict)
    crack_times_display: Dict[str, str] = field(default_factory=dict)

    def details(self) -> Dict[str, Any]:
        return {
            "crackTimesSeconds": dict(self.crack_times_seconds),
            "crackTimesDisplay": dict(self.crack_times_display),
            "score": self.raw_class,
            "feedback": self.classifier_feedback.to_dict(),
        }


class StrengthEvaluator:
    """
    Classifies plaintext passwords.

    Args:
        classifier: Callable returning a zxcvbn-shaped result dict
                    (defaults to zxcvbn itself)
    """

    def __init__(self, classifier: Optional[Classifier] = None):
        self.classifier = classifier or zxcvbn

    def evaluate(self, plaintext: str) -> StrengthResult:
        result = self.classifier(plaintext[:MAX_EVALUATED_LENGTH])

        raw_class = int(result["score"])
        score = score_for_class(raw_class)

        raw_feedback = result.get("feedback") or {}
        classifier_feedback = StrengthFeedback(
            warning=raw_feedback.get("warning") or "",
            suggestions=tuple(raw_feedback.get("suggestions") or ()),
        )

        return StrengthResult(
            raw_class=raw_class,
            score=score,
            category=category_for_score(score),
            feedback=classifier_feedback if score < FEEDBACK_THRESHOLD else None,
            classifier_feedback=classifier_feedback,
            # zxcvbn reports Decimal seconds; floats keep the response JSON-friendly
            crack_times_seconds={
                k: float(v) for k, v in (result.get("crack_times_seconds") or {}).items()
            },
            crack_times_display=dict(result.get("crack_times_display") or {}),
        )
