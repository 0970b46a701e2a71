"""
Configuration for the RISE Assessment Analyzer

Contains the RISE cut-score tables, accepted year range and dashboard
display settings. To adjust a cut score, simply edit the values below.
"""

# =============================================================================
# RISE CUT SCORES
# =============================================================================
# Lower bound (inclusive) of each band per grade, lowest band first.
# The lowest band is open below; the highest band is open above. Each
# band ends one point below the next band's lower bound.

PROFICIENCY_BANDS = (
    "Below Proficient",
    "Approaching Proficient",
    "Proficient",
    "Highly Proficient",
)

RISE_ELA_CUT_SCORES = {
    "3": (None, 291, 334, 406),
    "4": (None, 323, 378, 442),
    "5": (None, 361, 410, 465),
    "6": (None, 394, 434, 493),
    "7": (None, 404, 450, 514),
    "8": (None, 416, 471, 533),
}

# "Sec Math I" is not included; grades are expected as 3-8
RISE_MATH_CUT_SCORES = {
    "3": (None, 297, 317, 337),
    "4": (None, 326, 349, 376),
    "5": (None, 360, 384, 416),
    "6": (None, 397, 432, 464),
    "7": (None, 415, 450, 499),
    "8": (None, 447, 499, 554),
}

PASSING_BANDS = ("Proficient", "Highly Proficient")

# =============================================================================
# UPLOAD SETTINGS
# =============================================================================

MIN_YEAR = 1900
MAX_YEAR = 2100

DEFAULT_OUTPUT_PATH = "output/analysis.json"

# =============================================================================
# DISPLAY SETTINGS
# =============================================================================

ELA_LEVELS_ORDERED = list(PROFICIENCY_BANDS) + [
    "N/A (Grade not in ELA 3-8)",
    "N/A (Score out of ELA range)",
]

MATH_LEVELS_ORDERED = list(PROFICIENCY_BANDS) + [
    "N/A (Math Grade not in 3-8)",
    "N/A (Score out of Math range)",
]

PROFICIENCY_COLORS = {
    "Below Proficient": "#dc3545",        # Red
    "Approaching Proficient": "#ffc107",  # Yellow
    "Proficient": "#28a745",              # Green
    "Highly Proficient": "#1976d2",       # Blue
}

NOT_APPLICABLE_COLOR = "#9e9e9e"          # Grey

CHART_PALETTE = [
    "#1976d2", "#dc3545", "#26a69a", "#ffc107",
    "#7e57c2", "#f57c00", "#66bb6a", "#5c6bc0",
]
