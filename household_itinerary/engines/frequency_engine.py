"""Frequency Engine - Target-count inference from free-text step descriptions.

Recognized phrasings (case-insensitive, anywhere in the text):
- "Run 3 times per week", "3 times a month", "2 times each day"
- "go to crossfit at least 2x/week", "4x per month"
- "once a week", "twice per day"

Steps without a recognizable count fall back to the per-timescale default
in const.DEFAULT_TARGET_BY_TIMESCALE.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import TYPE_CHECKING, Any, Final

from .. import const
from .rule_engine import step_value

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..type_defs import SourceStepData

_UNIT_PATTERN: Final = r"(day|week|month|quarter|year)s?\b"

_NUMERIC_FREQUENCY_PATTERN: Final = re.compile(
    r"\b(\d+)\s*(?:times|time|x)\s*(?:per|a|an|each|every|/)\s*" + _UNIT_PATTERN,
    re.IGNORECASE,
)

_WORD_FREQUENCY_PATTERN: Final = re.compile(
    r"\b(once|twice)\s+(?:per|a|an|each|every)\s+" + _UNIT_PATTERN,
    re.IGNORECASE,
)

_WORD_COUNTS: Final = {"once": 1, "twice": 2}

TARGET_SOURCE_TEXT = "text"
TARGET_SOURCE_DEFAULT = "default"


@dataclass(frozen=True)
class FrequencyTarget:
    """Parsed "<N> times per <unit>" phrase.

    Attributes:
        count: Occurrences expected per unit (always >= 1)
        timescale: Timescale named by the unit word
    """

    count: int
    timescale: str


class FrequencyEngine:
    """Pure helpers for inferring progress targets."""

    @staticmethod
    def parse_frequency_text(text: str | None) -> FrequencyTarget | None:
        """Find the first frequency phrase in a step description.

        Returns:
            FrequencyTarget, or None if no phrase with a positive count exists.
        """
        if not text:
            return None

        match = _NUMERIC_FREQUENCY_PATTERN.search(text)
        if match:
            count = int(match.group(1))
            unit = match.group(2).lower()
        else:
            match = _WORD_FREQUENCY_PATTERN.search(text)
            if not match:
                return None
            count = _WORD_COUNTS[match.group(1).lower()]
            unit = match.group(2).lower()

        if count <= 0:
            return None

        return FrequencyTarget(
            count=count, timescale=const.FREQUENCY_UNIT_TO_TIMESCALE[unit]
        )

    @staticmethod
    def get_default_target(timescale: str | None) -> int:
        """Return the compatibility default target for a timescale.

        Unknown or missing timescales use the DEFAULT_TIMESCALE target.
        """
        return const.DEFAULT_TARGET_BY_TIMESCALE.get(
            timescale or const.DEFAULT_TIMESCALE,
            const.DEFAULT_TARGET_BY_TIMESCALE[const.DEFAULT_TIMESCALE],
        )

    @staticmethod
    def infer_target(step: SourceStepData | Mapping[str, Any]) -> tuple[int, str]:
        """Compute a step's progress target.

        Returns:
            (target, source) where source is TARGET_SOURCE_TEXT when parsed from
            the description and TARGET_SOURCE_DEFAULT otherwise.
        """
        parsed = FrequencyEngine.parse_frequency_text(
            step_value(step, const.DATA_STEP_TEXT)
        )
        if parsed:
            return parsed.count, TARGET_SOURCE_TEXT

        timescale = step_value(step, const.DATA_STEP_TIMESCALE)
        return FrequencyEngine.get_default_target(timescale), TARGET_SOURCE_DEFAULT
