"""
Shared CSV fixtures for the test suite.

Usage:
    pytest -v
"""

import pytest

COMMON_HEADER = "Student ID,Student Name,Grade,ELL,Special Ed,Scale Score,Performance,Ethnicity,Gender"


def make_csv(header: str, *rows: str) -> str:
    """Join a header and data rows into CSV text."""
    return "\n".join((header,) + rows) + "\n"


@pytest.fixture
def ela_csv():
    """Two grade 3 students with two ELA subject-area columns."""
    return make_csv(
        COMMON_HEADER + ",Language Performance,Reading Literature Performance",
        '1001,"Doe, Jane",3,No,Yes,350,Proficient,Hispanic,F,Proficient,Approaching',
        '1002,"Smith, John",3,yes,no,280,Below Proficient,White,M,Below,Below',
    )


@pytest.fixture
def mixed_csv():
    """ELA and Math columns, several grades, one unsupported grade."""
    return make_csv(
        COMMON_HEADER + ",Language Performance,Functions Performance",
        '2001,"Lee, Ana",4,No,No,450,Highly Proficient,Asian,F,Proficient,Proficient',
        '2002,"Park, Min",4,No,Yes,330,Approaching Proficient,Asian,M,Approaching,Below',
        '2003,"Brown, Sam",5,TRUE,No,410,Proficient,Black,M,Proficient,Approaching',
        '2004,"Green, Eve",9,No,No,500,Proficient,,F,Highly Proficient,Proficient',
    )


@pytest.fixture
def common_only_csv():
    """No subject-area columns at all."""
    return make_csv(
        COMMON_HEADER,
        "3001,Alex Kim,6,No,No,440,Proficient,White,M",
        "3002,Robin Ray,7,1,No,400,Below Proficient,White,F",
        "3003,Jo Fox,8,No,1,480,Proficient,Black,F",
    )


@pytest.fixture
def csv_builder():
    """Build CSV text from a header and rows inside a test."""
    return make_csv
