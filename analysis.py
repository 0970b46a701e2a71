"""
RISE Assessment Analysis

Aggregates unpivoted student records into the year-keyed summaries shown on
the dashboard: distributions, average scale scores and pass rates.

Two views of the same records are used:
- RowView: every record, one per (student, year, subject area). Subject-area
  statistics are computed here.
- StudentView: one record per (student, year), first seen wins. Anything
  measured per student (scale score averages, proficiency bands, pass rates)
  is computed here so that unpivoting does not count a student once per
  subject area.

All outer and inner keys keep the order in which they first appear in the
input. Averages and rates are rounded half-up to 2 decimals when emitted.
"""

import argparse
import json
import logging
import math
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from config import DEFAULT_OUTPUT_PATH
from cut_scores import Domain, is_not_applicable
from load_data import IngestError, StudentRecord, ingest, records_to_frame

logger = logging.getLogger(__name__)

STUDENT_KEY = ["student_id", "year"]
UNKNOWN_LABEL = "Unknown"

# (band column, passing column) per domain
DOMAIN_COLUMNS = {
    Domain.ELA: ("ela_proficiency", "ela_passing"),
    Domain.MATH: ("math_proficiency", "math_passing"),
}


def round_half_up(value: float, places: int = 2) -> float:
    """
    Round to a fixed number of decimals, halves up.

    Rounds the scaled double, floor(value * 10**places + 0.5) / 10**places. So
    1499.995 -> 1500.0 (scaled value is exactly 149999.5) but
    402.005 -> 402.0 (scaled value is 40200.49999999999).
    """
    value = float(value)
    if not math.isfinite(value):
        return value
    scale = 10 ** places
    return math.floor(value * scale + 0.5) / scale


def _plain(value: Any) -> Any:
    """Convert numpy scalars to built-in Python types for JSON output."""
    if isinstance(value, np.generic):
        return value.item()
    return value


# ==================== VIEWS ====================

class RowView:
    """Every unpivoted record: one row per (student, year, subject area)."""

    def __init__(self, frame: pd.DataFrame):
        self.frame = frame

    @classmethod
    def from_records(cls, records: Sequence[StudentRecord]) -> "RowView":
        return cls(records_to_frame(records))

    def __len__(self) -> int:
        return len(self.frame)

    def subject_area_rows(self) -> pd.DataFrame:
        """Rows carrying a subject area, each student counted once per area."""
        frame = self.frame[self.frame["subject_area"].notna()]
        return frame.drop_duplicates(subset=STUDENT_KEY + ["subject_area"], keep="first")


class StudentView:
    """One row per (student_id, year); the first record seen represents the student."""

    def __init__(self, frame: pd.DataFrame):
        self.frame = frame

    @classmethod
    def from_rows(cls, rows: RowView) -> "StudentView":
        if not isinstance(rows, RowView):
            raise TypeError(f"StudentView is built from a RowView, not {type(rows).__name__}")
        frame = rows.frame.drop_duplicates(subset=STUDENT_KEY, keep="first")
        return cls(frame.reset_index(drop=True))

    def __len__(self) -> int:
        return len(self.frame)


Records = Union[Sequence[StudentRecord], RowView]


def _row_view(records: Records) -> RowView:
    if isinstance(records, RowView):
        return records
    return RowView.from_records(records)


def _student_view(records: Records) -> StudentView:
    return StudentView.from_rows(_row_view(records))


# ==================== DISTRIBUTIONS ====================

def nested_frequency_distribution(view: Union[RowView, StudentView],
                                  first: str,
                                  second: str) -> Dict[int, Dict[Any, Dict[Any, int]]]:
    """
    Count records by year, then `first`, then `second`.

    Rows missing either dimension are skipped.

    Returns:
        {year: {first_value: {second_value: count}}}
    """
    frame = view.frame.dropna(subset=[first, second])
    if frame.empty:
        return {}

    counts = frame.groupby(["year", first, second], sort=False).size()

    result: Dict[int, Dict[Any, Dict[Any, int]]] = {}
    for (year, outer, inner), count in counts.items():
        result.setdefault(int(year), {}).setdefault(_plain(outer), {})[_plain(inner)] = int(count)
    return result


def subject_performance_distribution_by_year(records: Records) -> Dict[int, Dict[str, Dict[str, int]]]:
    """Performance level counts per subject area (one count per student per area)."""
    return nested_frequency_distribution(
        _row_view(records), "subject_area", "subject_performance_level"
    )


def ela_proficiency_distribution_by_grade_by_year(records: Records) -> Dict[int, Dict[str, Dict[str, int]]]:
    """Students per ELA band within each grade."""
    return nested_frequency_distribution(_student_view(records), "grade_level", "ela_proficiency")


def math_proficiency_distribution_by_grade_by_year(records: Records) -> Dict[int, Dict[str, Dict[str, int]]]:
    """Students per Math band within each grade."""
    return nested_frequency_distribution(_student_view(records), "grade_level", "math_proficiency")


# ==================== AVERAGES ====================

def _rounded_means(frame: pd.DataFrame, keys: Union[str, List[str]]) -> pd.Series:
    means = frame.groupby(keys, sort=False)["scale_score"].mean()
    return means.map(round_half_up)


def average_scale_score_by_year(records: Records) -> Dict[int, float]:
    """Mean overall scale score per year, each student counted once."""
    frame = _student_view(records).frame
    if frame.empty:
        return {}

    means = _rounded_means(frame, "year")
    return {int(year): float(avg) for year, avg in means.items()}


def average_scale_score_by_subject_area_by_year(records: Records) -> Dict[int, Dict[str, float]]:
    """Mean overall scale score of the students reported in each subject area."""
    frame = _row_view(records).subject_area_rows()
    if frame.empty:
        return {}

    result: Dict[int, Dict[str, float]] = {}
    for (year, subject_area), avg in _rounded_means(frame, ["year", "subject_area"]).items():
        result.setdefault(int(year), {})[subject_area] = float(avg)
    return result


def average_scale_score_by_special_ed_and_subject_area_by_year(
        records: Records) -> Dict[bool, Dict[int, Dict[str, float]]]:
    """
    Mean overall scale score split by Special Ed status, then year and subject area.

    Returns:
        {special_ed: {year: {subject_area: average}}}
    """
    frame = _row_view(records).subject_area_rows()
    if frame.empty:
        return {}

    result: Dict[bool, Dict[int, Dict[str, float]]] = {}
    means = _rounded_means(frame, ["special_ed", "year", "subject_area"])
    for (special_ed, year, subject_area), avg in means.items():
        result.setdefault(bool(special_ed), {}).setdefault(int(year), {})[subject_area] = float(avg)
    return result


# ==================== PASS RATES ====================

def _assessment_summary(records: Records, domain: Domain) -> pd.DataFrame:
    """Assessed and passing student counts per year for one domain."""
    frame = _student_view(records).frame
    band_column, passing_column = DOMAIN_COLUMNS[domain]

    assessed = ~frame[band_column].map(is_not_applicable).astype(bool)
    passing = assessed & frame[passing_column].astype(bool)

    summary = pd.DataFrame({
        "year": frame["year"],
        "assessed": assessed.astype(int),
        "passing": passing.astype(int),
    })
    return summary.groupby("year", sort=False)[["assessed", "passing"]].sum()


def passing_count_by_year(records: Records, domain: Domain) -> Dict[int, int]:
    """Students whose band for the domain is Proficient or Highly Proficient."""
    if len(_row_view(records)) == 0:
        return {}

    summary = _assessment_summary(records, domain)
    return {int(year): int(row["passing"]) for year, row in summary.iterrows()}


def pass_rate_by_year(records: Records, domain: Domain) -> Dict[int, float]:
    """
    Percent of assessed students passing, per year.

    Students whose band is an "N/A (...)" sentinel are not assessed. A year
    with no assessed students reports 0.0.
    """
    if len(_row_view(records)) == 0:
        return {}

    rates: Dict[int, float] = {}
    for year, row in _assessment_summary(records, domain).iterrows():
        assessed = int(row["assessed"])
        if assessed > 0:
            rates[int(year)] = round_half_up(100.0 * int(row["passing"]) / assessed)
        else:
            rates[int(year)] = 0.0
    return rates


# ==================== DEMOGRAPHICS ====================

class Demographic(Enum):
    """Student attributes the scale score average can be broken down by."""
    ETHNICITY = "ethnicity"
    GENDER = "gender"
    GRADE_LEVEL = "grade_level"
    OVERALL_PERFORMANCE = "overall_performance"
    ELA_PROFICIENCY = "ela_proficiency"
    MATH_PROFICIENCY = "math_proficiency"
    ELL = "ell"
    SPECIAL_ED = "special_ed"


def _text_labels(column: str) -> Callable[[pd.DataFrame], pd.Series]:
    def labels(frame: pd.DataFrame) -> pd.Series:
        return frame[column]
    return labels


def _flag_labels(column: str) -> Callable[[pd.DataFrame], pd.Series]:
    def labels(frame: pd.DataFrame) -> pd.Series:
        return pd.Series(np.where(frame[column].astype(bool), "Yes", "No"), index=frame.index)
    return labels


DEMOGRAPHIC_ACCESSORS: Dict[Demographic, Callable[[pd.DataFrame], pd.Series]] = {
    Demographic.ETHNICITY: _text_labels("ethnicity"),
    Demographic.GENDER: _text_labels("gender"),
    Demographic.GRADE_LEVEL: _text_labels("grade_level"),
    Demographic.OVERALL_PERFORMANCE: _text_labels("overall_performance"),
    Demographic.ELA_PROFICIENCY: _text_labels("ela_proficiency"),
    Demographic.MATH_PROFICIENCY: _text_labels("math_proficiency"),
    Demographic.ELL: _flag_labels("ell"),
    Demographic.SPECIAL_ED: _flag_labels("special_ed"),
}


def _label_or_unknown(value: Any) -> str:
    if value is None or pd.isna(value) or not str(value).strip():
        return UNKNOWN_LABEL
    return str(value)


def demographic_labels(frame: pd.DataFrame, dimension: Demographic) -> pd.Series:
    """Display label of `dimension` for every row; blanks become "Unknown"."""
    return DEMOGRAPHIC_ACCESSORS[dimension](frame).map(_label_or_unknown)


def average_scale_score_by_demographic_by_year(records: Records,
                                               dimension: Union[Demographic, str]) -> Dict[int, Dict[str, float]]:
    """
    Mean overall scale score per year for each value of a demographic.

    Args:
        records: Unpivoted records (or a RowView of them)
        dimension: A Demographic, or its value (e.g. "ethnicity")

    Returns:
        {year: {label: average}}
    """
    dimension = Demographic(dimension)
    frame = _student_view(records).frame
    if frame.empty:
        return {}

    grouped = pd.DataFrame({
        "year": frame["year"],
        "label": demographic_labels(frame, dimension),
        "scale_score": frame["scale_score"],
    })

    result: Dict[int, Dict[str, float]] = {}
    for (year, label), avg in _rounded_means(grouped, ["year", "label"]).items():
        result.setdefault(int(year), {})[label] = float(avg)
    return result


# ==================== FULL ANALYSIS ====================

def build_analysis(records: Sequence[StudentRecord], file_name: str, year: int) -> Dict[str, Any]:
    """
    Compute every summary for one upload.

    This is the main entry point for the dashboard and the CLI.

    Returns:
        Dictionary of all statistics plus upload metadata
    """
    rows = RowView.from_records(records)
    students = StudentView.from_rows(rows)

    analysis: Dict[str, Any] = {
        "subject_performance_distribution_by_year": subject_performance_distribution_by_year(rows),
        "ela_proficiency_distribution_by_grade_by_year": ela_proficiency_distribution_by_grade_by_year(rows),
        "math_proficiency_distribution_by_grade_by_year": math_proficiency_distribution_by_grade_by_year(rows),
        "average_scale_score_by_year": average_scale_score_by_year(rows),
        "average_scale_score_by_subject_area_by_year": average_scale_score_by_subject_area_by_year(rows),
        "average_scale_score_by_special_ed_and_subject_area_by_year":
            average_scale_score_by_special_ed_and_subject_area_by_year(rows),
        "ela_pass_rate_by_year": pass_rate_by_year(rows, Domain.ELA),
        "math_pass_rate_by_year": pass_rate_by_year(rows, Domain.MATH),
    }

    for dimension in Demographic:
        analysis[f"average_scale_score_by_{dimension.value}_by_year"] = \
            average_scale_score_by_demographic_by_year(rows, dimension)

    analysis.update({
        "total_records_processed": len(rows),
        "total_students": len(students),
        "file_name": file_name,
        "dataset_year": year,
    })

    logger.info(
        "Analysis complete for %s (%d records, %d students, year %s)",
        file_name, len(rows), len(students), year
    )
    return analysis


def save_analysis(analysis: Dict[str, Any], output_path: str = DEFAULT_OUTPUT_PATH) -> None:
    """Save the analysis payload to JSON."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        json.dump(analysis, f, indent=2)
    print(f"\nAnalysis saved to {output_path}")


def load_analysis(json_path: str = DEFAULT_OUTPUT_PATH) -> Dict[str, Any]:
    """Load a saved analysis payload from JSON."""
    with open(json_path, 'r') as f:
        return json.load(f)


# CLI entry point
def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Analyze a RISE assessment results CSV.")
    parser.add_argument("csv_path", help="RISE results CSV file")
    parser.add_argument("--year", type=int, required=True, help="Dataset year, e.g. 2023")
    parser.add_argument("--output", default=DEFAULT_OUTPUT_PATH, help="Where to write the JSON payload")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    print("=" * 60)
    print("RISE Assessment Analyzer")
    print("=" * 60)

    csv_path = Path(args.csv_path)
    try:
        records = ingest(csv_path.read_bytes(), args.year)
    except IngestError as e:
        print(f"ERROR: {e}")
        return 1

    analysis = build_analysis(records, csv_path.name, args.year)
    save_analysis(analysis, args.output)

    print("\n" + "=" * 60)
    print("Analysis Summary")
    print("=" * 60)
    print(f"  File: {analysis['file_name']}")
    print(f"  Year: {analysis['dataset_year']}")
    print(f"  Records Processed: {analysis['total_records_processed']}")
    print(f"  Students: {analysis['total_students']}")
    for year, avg in analysis['average_scale_score_by_year'].items():
        print(f"  {year} Average Scale Score: {avg:.2f}")
    for year, rate in analysis['ela_pass_rate_by_year'].items():
        print(f"  {year} ELA Pass Rate: {rate:.2f}%")
    for year, rate in analysis['math_pass_rate_by_year'].items():
        print(f"  {year} Math Pass Rate: {rate:.2f}%")
    return 0


if __name__ == "__main__":
    sys.exit(main())
