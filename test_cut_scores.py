"""
Tests for the RISE cut-score lookup.

Run: pytest test_cut_scores.py -v
"""

import math
from dataclasses import FrozenInstanceError

import pytest

from cut_scores import (
    RISE_CUT_SCORES,
    CutScoreBand,
    CutScoreTable,
    Domain,
    build_bands,
    is_not_applicable,
    is_passing,
    load_cut_score_table,
    normalize_grade,
)


class TestNormalizeGrade:

    @pytest.mark.parametrize("raw,expected", [
        ("3", "3"),
        ("03", "3"),
        ("008", "8"),
        ("10", "10"),
        ("0", "0"),
        ("000", "0"),
        (" 4 ", "4"),
        ("K", "K"),
    ])
    def test_strips_leading_zeros(self, raw, expected):
        assert normalize_grade(raw) == expected


class TestBuildBands:

    def test_bands_are_contiguous_and_open_ended(self):
        bands = build_bands((None, 291, 334, 406))

        assert [b.name for b in bands] == [
            "Below Proficient", "Approaching Proficient", "Proficient", "Highly Proficient"
        ]
        assert bands[0].lower == -math.inf
        assert bands[0].upper == 290
        assert (bands[1].lower, bands[1].upper) == (291, 333)
        assert (bands[2].lower, bands[2].upper) == (334, 405)
        assert bands[3].lower == 406
        assert bands[3].upper == math.inf

    def test_wrong_number_of_bounds_rejected(self):
        with pytest.raises(ValueError):
            build_bands((None, 291, 334))

    def test_band_contains_is_inclusive(self):
        band = CutScoreBand("Proficient", 334, 405)
        assert band.contains(334)
        assert band.contains(405)
        assert not band.contains(405.5)


class TestCutScoreTable:
    """Classification examples for grade 3 ELA and Math."""

    # --- ELA ---

    @pytest.mark.parametrize("score,expected", [
        (100, "Below Proficient"),
        (290, "Below Proficient"),
        (291, "Approaching Proficient"),
        (333, "Approaching Proficient"),
        (334, "Proficient"),
        (405, "Proficient"),
        (406, "Highly Proficient"),
        (900, "Highly Proficient"),
    ])
    def test_grade_3_ela_bands(self, score, expected):
        assert RISE_CUT_SCORES.classify(Domain.ELA, "3", score) == expected

    def test_float_score_on_integer_boundary(self):
        assert RISE_CUT_SCORES.classify(Domain.ELA, "3", 291.0) == "Approaching Proficient"

    def test_score_between_integer_bounds_is_out_of_range(self):
        assert RISE_CUT_SCORES.classify(Domain.ELA, "3", 290.5) == "N/A (Score out of ELA range)"
        assert RISE_CUT_SCORES.classify(Domain.MATH, "3", 296.5) == "N/A (Score out of Math range)"

    def test_unsupported_grade_is_not_applicable(self):
        assert RISE_CUT_SCORES.classify(Domain.ELA, "9", 500) == "N/A (Grade not in ELA 3-8)"
        assert RISE_CUT_SCORES.classify(Domain.MATH, "9", 500) == "N/A (Math Grade not in 3-8)"
        assert RISE_CUT_SCORES.classify(Domain.ELA, "K", 500) == "N/A (Grade not in ELA 3-8)"

    def test_leading_zero_grade(self):
        assert RISE_CUT_SCORES.classify(Domain.ELA, "03", 406) == "Highly Proficient"

    # --- Math ---

    @pytest.mark.parametrize("grade,score,expected", [
        ("3", 296, "Below Proficient"),
        ("3", 297, "Approaching Proficient"),
        ("3", 317, "Proficient"),
        ("3", 337, "Highly Proficient"),
        ("8", 446, "Below Proficient"),
        ("8", 498, "Approaching Proficient"),
        ("8", 499, "Proficient"),
        ("8", 554, "Highly Proficient"),
    ])
    def test_math_bands(self, grade, score, expected):
        assert RISE_CUT_SCORES.classify(Domain.MATH, grade, score) == expected

    def test_domains_use_separate_tables(self):
        # Grade 3 score 340: Proficient in ELA, Highly Proficient in Math
        assert RISE_CUT_SCORES.classify(Domain.ELA, "3", 340) == "Proficient"
        assert RISE_CUT_SCORES.classify(Domain.MATH, "3", 340) == "Highly Proficient"

    def test_supported_grades(self):
        assert RISE_CUT_SCORES.grades(Domain.ELA) == ("3", "4", "5", "6", "7", "8")
        assert RISE_CUT_SCORES.grades(Domain.MATH) == ("3", "4", "5", "6", "7", "8")

    # --- Immutability ---

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            RISE_CUT_SCORES.bands[Domain.ELA]["9"] = ()

    def test_table_fields_are_frozen(self):
        with pytest.raises(FrozenInstanceError):
            RISE_CUT_SCORES.bands = {}

    def test_custom_table(self):
        table = load_cut_score_table(ela={"09": (None, 10, 20, 30)}, math_scores={})
        assert isinstance(table, CutScoreTable)
        assert table.classify(Domain.ELA, "9", 25) == "Proficient"
        assert table.classify(Domain.MATH, "9", 25) == "N/A (Math Grade not in 3-8)"


class TestPassing:

    @pytest.mark.parametrize("band,expected", [
        ("Proficient", True),
        ("Highly Proficient", True),
        ("proficient", True),
        ("HIGHLY PROFICIENT", True),
        ("Approaching Proficient", False),
        ("Below Proficient", False),
        ("N/A (Grade not in ELA 3-8)", False),
        (None, False),
    ])
    def test_is_passing(self, band, expected):
        assert is_passing(band) is expected

    @pytest.mark.parametrize("band,expected", [
        ("N/A (Grade not in ELA 3-8)", True),
        ("N/A (Score out of Math range)", True),
        (None, True),
        ("Proficient", False),
        ("Below Proficient", False),
    ])
    def test_is_not_applicable(self, band, expected):
        assert is_not_applicable(band) is expected
