"""
RISE Cut-Score Lookup

Maps (domain, grade, scale score) to a proficiency band name using the
grade-specific cut scores in config.py. The table is built once and never
modified, so a single instance can be shared by every caller.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, NamedTuple, Optional, Sequence, Tuple

from config import (
    PASSING_BANDS,
    PROFICIENCY_BANDS,
    RISE_ELA_CUT_SCORES,
    RISE_MATH_CUT_SCORES,
)


class Domain(Enum):
    """Assessment domain a cut-score table applies to."""
    ELA = "ELA"
    MATH = "Math"


class CutScoreBand(NamedTuple):
    """One proficiency band with inclusive score bounds."""
    name: str
    lower: float
    upper: float

    def contains(self, score: float) -> bool:
        return self.lower <= score <= self.upper


NOT_APPLICABLE_PREFIX = "N/A"

GRADE_NOT_SUPPORTED = {
    Domain.ELA: "N/A (Grade not in ELA 3-8)",
    Domain.MATH: "N/A (Math Grade not in 3-8)",
}

SCORE_OUT_OF_RANGE = {
    Domain.ELA: "N/A (Score out of ELA range)",
    Domain.MATH: "N/A (Score out of Math range)",
}

_PASSING = frozenset(band.lower() for band in PASSING_BANDS)


def normalize_grade(grade: str) -> str:
    """
    Strip whitespace and leading zeros from a grade identifier.

    "03" -> "3", "10" -> "10", "000" -> "0"
    """
    return re.sub(r'^0+(?!$)', '', str(grade).strip())


def build_bands(lower_bounds: Sequence[Optional[int]],
                names: Sequence[str] = PROFICIENCY_BANDS) -> Tuple[CutScoreBand, ...]:
    """
    Turn a row of lower bounds into contiguous bands.

    The first band is open below and the last band open above; every other
    band ends one point before the next one starts.
    """
    if len(lower_bounds) != len(names):
        raise ValueError(
            f"Expected {len(names)} lower bounds, got {len(lower_bounds)}"
        )

    bands = []
    for i, name in enumerate(names):
        lower = -math.inf if i == 0 or lower_bounds[i] is None else float(lower_bounds[i])
        if i + 1 < len(names):
            upper = float(lower_bounds[i + 1] - 1)
        else:
            upper = math.inf
        bands.append(CutScoreBand(name, lower, upper))
    return tuple(bands)


@dataclass(frozen=True)
class CutScoreTable:
    """Read-only cut scores for every supported domain and grade."""
    bands: Mapping[Domain, Mapping[str, Tuple[CutScoreBand, ...]]]

    def grades(self, domain: Domain) -> Tuple[str, ...]:
        return tuple(self.bands.get(domain, {}).keys())

    def classify(self, domain: Domain, grade: str, score: float) -> str:
        """
        Return the band the score falls into for this grade.

        Unsupported grades and scores that fall between two bands' integer
        bounds return an "N/A (...)" sentinel instead of a band name.
        """
        grade_bands = self.bands.get(domain, {}).get(normalize_grade(grade))
        if grade_bands is None:
            return GRADE_NOT_SUPPORTED[domain]

        for band in grade_bands:
            if band.contains(score):
                return band.name

        return SCORE_OUT_OF_RANGE[domain]


def is_not_applicable(band: Optional[str]) -> bool:
    """True for missing classifications and "N/A (...)" sentinels."""
    return band is None or band.startswith(NOT_APPLICABLE_PREFIX)


def is_passing(band: Optional[str]) -> bool:
    """Proficient and Highly Proficient count as passing."""
    if band is None:
        return False
    return band.lower() in _PASSING


def load_cut_score_table(ela: Dict[str, Sequence[Optional[int]]] = RISE_ELA_CUT_SCORES,
                         math_scores: Dict[str, Sequence[Optional[int]]] = RISE_MATH_CUT_SCORES) -> CutScoreTable:
    """Build the immutable RISE cut-score table from configuration."""
    bands = {
        Domain.ELA: MappingProxyType({
            normalize_grade(grade): build_bands(bounds) for grade, bounds in ela.items()
        }),
        Domain.MATH: MappingProxyType({
            normalize_grade(grade): build_bands(bounds) for grade, bounds in math_scores.items()
        }),
    }
    return CutScoreTable(bands=MappingProxyType(bands))


RISE_CUT_SCORES = load_cut_score_table()
