"""
Upload handling for the RISE Assessment Analyzer

Validates an uploaded CSV and year, runs ingestion and every analysis, and
turns failures into client (400) or server (500) responses for the dashboard.
"""

import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Dict, Optional

from analysis import build_analysis
from config import MAX_YEAR, MIN_YEAR
from load_data import IngestError, ingest

logger = logging.getLogger(__name__)

EMPTY_FILE_ERROR = "Please select a CSV file to upload."
INVALID_YEAR_ERROR = "Please provide a valid year (e.g., 2023)."
NO_RECORDS_MESSAGE = "CSV file contains no data records after header."
SERVER_ERROR = "An unexpected server error occurred. Please try again later."


@dataclass
class UploadResponse:
    """Status and JSON body returned for one upload."""
    status: HTTPStatus
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == HTTPStatus.OK

    @property
    def error(self) -> Optional[str]:
        return self.body.get("error")


def parse_year(raw_year: Any) -> Optional[int]:
    """Return the year as an int if it is a whole number within range, else None."""
    if raw_year is None or isinstance(raw_year, bool):
        return None
    try:
        year = int(str(raw_year).strip())
    except ValueError:
        return None
    if year < MIN_YEAR or year > MAX_YEAR:
        return None
    return year


def handle_upload(content: Optional[bytes], file_name: str, year: Any) -> UploadResponse:
    """
    Analyze one uploaded CSV for the given year.

    Args:
        content: Raw bytes of the uploaded file
        file_name: Original file name, echoed back in the payload
        year: Dataset year as entered by the user

    Returns:
        UploadResponse with the full analysis payload on success, or an
        "error" body with a 400 (bad upload) or 500 (unexpected failure)
    """
    logger.info("Received file upload request: %s for year: %s", file_name, year)

    if not content:
        logger.warning("Upload attempt with an empty file.")
        return UploadResponse(HTTPStatus.BAD_REQUEST, {"error": EMPTY_FILE_ERROR})

    dataset_year = parse_year(year)
    if dataset_year is None:
        logger.warning("Invalid year provided: %s", year)
        return UploadResponse(HTTPStatus.BAD_REQUEST, {"error": INVALID_YEAR_ERROR})

    try:
        records = ingest(content, dataset_year)

        if not records:
            logger.info("CSV file was parsed but contained no data records.")
            return UploadResponse(HTTPStatus.OK, {
                "message": NO_RECORDS_MESSAGE,
                "total_records_processed": 0,
                "file_name": file_name,
                "dataset_year": dataset_year,
            })

        analysis = build_analysis(records, file_name, dataset_year)
    except IngestError as e:
        logger.warning("Error processing CSV file: %s", e)
        return UploadResponse(HTTPStatus.BAD_REQUEST, {"error": f"Error in CSV data or format: {e}"})
    except UnicodeDecodeError as e:
        logger.warning("Uploaded file is not UTF-8 text: %s", e)
        return UploadResponse(
            HTTPStatus.BAD_REQUEST,
            {"error": "Could not read the file as UTF-8 CSV text."}
        )
    except Exception:
        logger.exception("An unexpected error occurred during file upload and analysis")
        return UploadResponse(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": SERVER_ERROR})

    logger.info("Analysis complete. Sending results for year %s", dataset_year)
    return UploadResponse(HTTPStatus.OK, analysis)
