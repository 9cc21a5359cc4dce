"""Recommended-password generator.

Builds a 16-character password with at least one character from each of
four classes, shuffles it, and reports its own strength. All randomness
comes from the ``secrets`` CSPRNG.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..core.errors import RecommendationError
from .evaluator import StrengthCategory, StrengthEvaluator

logger = logging.getLogger(__name__)

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SPECIAL = "!@#$%^&*()-_=+[]{}|;:,.<>?"

CHARACTER_CLASSES = (UPPERCASE, LOWERCASE, DIGITS, SPECIAL)
ALL_CHARACTERS = "".join(CHARACTER_CLASSES)

DEFAULT_LENGTH = 16
DEFAULT_MIN_SCORE = 85
DEFAULT_MAX_ATTEMPTS = 5

RandBelow = Callable[[int], int]


def _shuffle(chars: List[str], randbelow: RandBelow) -> None:
    """In-place Fisher-Yates shuffle."""
    for i in range(len(chars) - 1, 0, -1):
        j = randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]


def generate_password(
    length: int = DEFAULT_LENGTH,
    randbelow: RandBelow = secrets.randbelow,
) -> str:
    """
    Generate one candidate password.

    The first four positions take one character per class, the rest are
    drawn from the union of all classes, then the whole string is shuffled
    so the seeded characters carry no positional signal.
    """
    if length < len(CHARACTER_CLASSES):
        raise ValueError(f"Password length must be at least {len(CHARACTER_CLASSES)}")

    chars = [charset[randbelow(len(charset))] for charset in CHARACTER_CLASSES]
    chars.extend(
        ALL_CHARACTERS[randbelow(len(ALL_CHARACTERS))]
        for _ in range(length - len(chars))
    )
    _shuffle(chars, randbelow)
    return "".join(chars)


def has_all_character_classes(password: str) -> bool:
    return all(any(c in charset for c in password) for charset in CHARACTER_CLASSES)


@dataclass(frozen=True)
class Recommendation:
    value: str
    score: int
    category: StrengthCategory

    def to_dict(self) -> Dict[str, object]:
        return {"value": self.value, "score": self.score, "category": self.category.value}


class RecommendationGenerator:
    """
    Produces a replacement password that scores itself.

    Candidates scoring below ``min_score`` are redrawn, at most
    ``max_attempts`` times in total; after that the best candidate seen is
    returned as-is.

    Args:
        evaluator: Strength evaluator used to score each candidate
        length: Password length
        min_score: Acceptance gate on the 0-100 score
        max_attempts: Upper bound on candidates drawn per call
        randbelow: Random source (``secrets.randbelow``)
    """

    def __init__(
        self,
        evaluator: StrengthEvaluator,
        length: int = DEFAULT_LENGTH,
        min_score: int = DEFAULT_MIN_SCORE,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        randbelow: RandBelow = secrets.randbelow,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.evaluator = evaluator
        self.length = length
        self.min_score = min_score
        self.max_attempts = max_attempts
        self.randbelow = randbelow

    def generate(self) -> Recommendation:
        """
        Raises:
            RecommendationError: If a candidate is missing a character class,
                which means the construction itself is broken.
        """
        best: Optional[Recommendation] = None

        for attempt in range(1, self.max_attempts + 1):
            candidate = generate_password(self.length, self.randbelow)
            if len(candidate) != self.length or not has_all_character_classes(candidate):
                raise RecommendationError(
                    "Password generator produced a candidate without every character class"
                )

            result = self.evaluator.evaluate(candidate)
            recommendation = Recommendation(
                value=candidate, score=result.score, category=result.category
            )
            if result.score >= self.min_score:
                return recommendation

            logger.debug(
                "Recommended password candidate %d scored %d (< %d), redrawing",
                attempt, result.score, self.min_score,
            )
            if best is None or recommendation.score > best.score:
                best = recommendation

        logger.warning(
            "No recommended password reached score %d after %d attempts; using best (%d)",
            self.min_score, self.max_attempts, best.score,
        )
        return best
