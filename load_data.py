"""
RISE Assessment Data Loader

Parses an uploaded RISE results CSV into unpivoted student records that the
analysis module aggregates.

Parses the RISE export structure:
- One header row, then one row per student test event
- Common columns: Student ID, Student Name, Grade, ELL, Special Ed,
  Scale Score, Performance, Ethnicity, Gender
- Optional subject-area performance columns (ELA and/or Math reporting
  categories), one per area

Each student row is unpivoted into one record per subject-area column found
in the header. A file without subject-area columns yields one record per
student with empty subject fields.
"""

import io
import math
import logging
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from cut_scores import RISE_CUT_SCORES, CutScoreTable, Domain, is_passing

logger = logging.getLogger(__name__)


# ==================== CSV HEADERS ====================

HEADER_STUDENT_ID = "Student ID"
HEADER_STUDENT_NAME = "Student Name"
HEADER_GRADE = "Grade"
HEADER_ELL = "ELL"
HEADER_SPECIAL_ED = "Special Ed"
HEADER_SCALE_SCORE = "Scale Score"
HEADER_OVERALL_PERFORMANCE = "Performance"
HEADER_ETHNICITY = "Ethnicity"
HEADER_GENDER = "Gender"

REQUIRED_HEADERS = [
    HEADER_STUDENT_ID, HEADER_STUDENT_NAME, HEADER_GRADE, HEADER_ELL, HEADER_SPECIAL_ED,
    HEADER_SCALE_SCORE, HEADER_OVERALL_PERFORMANCE, HEADER_ETHNICITY, HEADER_GENDER,
]

# Subject-area performance columns, in unpivot order
ELA_PERFORMANCE_COLUMNS = [
    "Language Performance",
    "Listening Comprehension Performance",
    "Reading Informational Text Performance",
    "Reading Literature Performance",
]

MATH_PERFORMANCE_COLUMNS = [
    "Expressions and Equations Performance",
    "Functions Performance",
    "Geometry / The Number System Performance",
    "Statistics and Probability Performance",
]

TRUE_FLAG_VALUES = {"yes", "true", "1"}


class DataType(Enum):
    """Which subject-area columns a file carries."""
    ELA = "ELA"
    MATH = "MATH"
    BOTH = "BOTH"
    UNKNOWN = "UNKNOWN"


# ==================== ERRORS ====================

class IngestError(ValueError):
    """Base class for problems with an uploaded CSV."""


class FormatError(IngestError):
    """The CSV structure is unusable (no header, missing column, short row)."""


class NumericFormatError(IngestError):
    """A numeric field on a specific row could not be parsed."""

    def __init__(self, row_number: int, message: str):
        super().__init__(f"Error parsing numeric value at record {row_number}: {message}")
        self.row_number = row_number


# ==================== RECORD MODEL ====================

@dataclass(frozen=True)
class StudentRecord:
    """One student's result for one subject area (or the whole test)."""
    student_id: str
    student_name: str
    year: int
    grade_level: str
    ethnicity: str
    gender: str
    special_ed: bool
    ell: bool
    scale_score: float
    overall_performance: str
    ela_proficiency: str
    math_proficiency: str
    ela_passing: bool
    math_passing: bool
    subject_area: Optional[str] = None
    subject_performance_level: Optional[str] = None


RECORD_COLUMNS = [f.name for f in fields(StudentRecord)]


# ==================== FIELD PARSING ====================

def format_student_name(raw_name: str) -> str:
    """
    Reformat "Last, First" names as "First Last".

    Handles variations like:
    - "Doe, Jane" -> "Jane Doe"
    - "Doe, Jane Ann" -> "Jane Ann Doe"
    - "Jane Doe" -> "Jane Doe" (no comma, passed through trimmed)
    """
    if "," not in raw_name:
        return raw_name.strip()

    last, first = raw_name.split(",", 1)
    return f"{first.strip()} {last.strip()}".strip()


def parse_flag(raw_value: str) -> bool:
    """ELL / Special Ed flags: "yes", "true" and "1" (any case) are true."""
    return str(raw_value).strip().lower() in TRUE_FLAG_VALUES


def detect_subject_columns(headers: Sequence[str]) -> List[str]:
    """Return the subject-area columns present in the header, ELA first."""
    present = set(headers)
    ela_cols = [col for col in ELA_PERFORMANCE_COLUMNS if col in present]
    math_cols = [col for col in MATH_PERFORMANCE_COLUMNS if col in present]
    return ela_cols + math_cols


def detect_data_type(headers: Sequence[str]) -> DataType:
    present = set(headers)
    has_ela = any(col in present for col in ELA_PERFORMANCE_COLUMNS)
    has_math = any(col in present for col in MATH_PERFORMANCE_COLUMNS)

    if has_ela and has_math:
        return DataType.BOTH
    if has_ela:
        return DataType.ELA
    if has_math:
        return DataType.MATH
    return DataType.UNKNOWN


def _read_table(raw: Union[str, bytes]) -> pd.DataFrame:
    """Read the raw upload into a DataFrame of trimmed string columns."""
    if isinstance(raw, (bytes, bytearray)):
        text = bytes(raw).decode("utf-8-sig")
    else:
        text = raw.lstrip("\ufeff")

    if not text.strip():
        raise FormatError("CSV file has no header row.")

    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            index_col=False,
        )
    except pd.errors.EmptyDataError as e:
        raise FormatError("CSV file has no header row.") from e
    except pd.errors.ParserError as e:
        raise FormatError(f"Could not parse CSV file: {e}") from e

    # Clean column names
    df.columns = [str(col).strip() for col in df.columns]
    return df


def _cell(row: pd.Series, column: str) -> Optional[str]:
    """Trimmed cell value, or None when the row has no value for the column."""
    value = row.get(column)
    if value is None or pd.isna(value):
        return None
    return str(value).strip()


def _required_cell(row: pd.Series, column: str, row_number: int) -> str:
    value = _cell(row, column)
    if value is None:
        raise FormatError(
            f"Error accessing data at record {row_number}: no value for '{column}'."
        )
    return value


def _parse_scale_score(raw_value: str, row_number: int) -> float:
    """Finite decimal number; "nan", "inf" and "1_000" are rejected."""
    message = f"'{raw_value}' is not a valid {HEADER_SCALE_SCORE}"
    if "_" in raw_value:
        raise NumericFormatError(row_number, message)
    try:
        score = float(raw_value)
    except ValueError as e:
        raise NumericFormatError(row_number, message) from e
    if not math.isfinite(score):
        raise NumericFormatError(row_number, message)
    return score


# ==================== INGESTION ====================

def ingest(raw: Union[str, bytes],
           year: int,
           cut_scores: Optional[CutScoreTable] = None) -> List[StudentRecord]:
    """
    Parse a RISE results CSV into unpivoted student records.

    Args:
        raw: CSV content as bytes (UTF-8) or text
        year: Dataset year applied to every record
        cut_scores: Cut-score table used for ELA/Math classification
            (defaults to the RISE table from config.py)

    Returns:
        List of StudentRecord, one per (student row, subject-area column),
        or one per student row when no subject-area columns are present

    Raises:
        FormatError: no header row, a required header is missing, or a row
            has no value for a required column
        NumericFormatError: a Scale Score value is not a number
    """
    if cut_scores is None:
        cut_scores = RISE_CUT_SCORES

    df = _read_table(raw)

    headers = list(df.columns)
    logger.info("CSV headers found: %s", headers)

    data_type = detect_data_type(headers)
    logger.info("Detected CSV data type: %s", data_type.value)

    for required_header in REQUIRED_HEADERS:
        if required_header not in headers:
            raise FormatError(
                f"CSV file is missing the common required header: '{required_header}'."
            )

    subject_columns = detect_subject_columns(headers)

    records = []
    for row_number, (_, row) in enumerate(df.iterrows(), start=1):
        student_id = _required_cell(row, HEADER_STUDENT_ID, row_number)
        student_name = format_student_name(_required_cell(row, HEADER_STUDENT_NAME, row_number))
        grade_level = _required_cell(row, HEADER_GRADE, row_number)
        ell = parse_flag(_required_cell(row, HEADER_ELL, row_number))
        special_ed = parse_flag(_required_cell(row, HEADER_SPECIAL_ED, row_number))
        scale_score = _parse_scale_score(
            _required_cell(row, HEADER_SCALE_SCORE, row_number), row_number
        )
        overall_performance = _required_cell(row, HEADER_OVERALL_PERFORMANCE, row_number)
        ethnicity = _required_cell(row, HEADER_ETHNICITY, row_number)
        gender = _required_cell(row, HEADER_GENDER, row_number)

        # Both classifications are always computed; callers filter by relevance
        ela_proficiency = cut_scores.classify(Domain.ELA, grade_level, scale_score)
        math_proficiency = cut_scores.classify(Domain.MATH, grade_level, scale_score)

        common = dict(
            student_id=student_id,
            student_name=student_name,
            year=year,
            grade_level=grade_level,
            ethnicity=ethnicity,
            gender=gender,
            special_ed=special_ed,
            ell=ell,
            scale_score=scale_score,
            overall_performance=overall_performance,
            ela_proficiency=ela_proficiency,
            math_proficiency=math_proficiency,
            ela_passing=is_passing(ela_proficiency),
            math_passing=is_passing(math_proficiency),
        )

        if not subject_columns:
            records.append(StudentRecord(**common))
            continue

        for column in subject_columns:
            level = _cell(row, column)
            records.append(StudentRecord(
                **common,
                subject_area=column,
                subject_performance_level=level or None,
            ))

    logger.info(
        "Parsed %d unpivoted student-subject records from %d rows",
        len(records), len(df)
    )
    return records


def records_to_frame(records: Sequence[StudentRecord]) -> pd.DataFrame:
    """Convert records into a DataFrame with one column per record field."""
    rows: List[Dict[str, Any]] = [asdict(record) for record in records]
    return pd.DataFrame(rows, columns=RECORD_COLUMNS)
