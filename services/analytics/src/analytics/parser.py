"""
Record parser for the users CSV.

Turns raw comma-separated text into validated ``UserRecord`` objects.
The first line is always treated as a header. There is no quoting support:
a comma inside a field splits it.

Expected column order (field 0 is an ignored row index):

    Index, User_ID, Age, Gender, Location, Income, Interests, Last_Login,
    Freq, AOV, Total, Category, Time, Pages, Newsletter
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from libs.insights_shared.logging import get_logger
from libs.insights_shared.metrics import Metrics
from pydantic import ValidationError

from .models import Dataset, UserRecord

logger = get_logger(__name__)

MIN_FIELDS = 15

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


class EmptyResultError(ValueError):
    """Raised when a parse produces no valid user records."""

    def __init__(self, skipped_count: int = 0):
        self.skipped_count = skipped_count
        super().__init__(
            "Could not parse valid user data from the CSV file. "
            "Please check the format."
        )


class SkipReason(str, Enum):
    TOO_FEW_FIELDS = "too_few_fields"
    INVALID_INCOME = "invalid_income"
    INVALID_ROW = "invalid_row"


@dataclass(frozen=True)
class SkippedRow:
    line_number: int
    reason: SkipReason
    detail: str = ""


@dataclass(frozen=True)
class RowOutcome:
    """Either a parsed record or the reason the row was skipped."""

    record: Optional[UserRecord] = None
    skipped: Optional[SkippedRow] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass
class ParseReport:
    records: List[UserRecord] = field(default_factory=list)
    skipped: List[SkippedRow] = field(default_factory=list)


def parse_int(raw: str) -> Optional[int]:
    """
    Read the leading integer of a field.

    Surrounding whitespace and a sign are accepted and anything after the
    leading digits is ignored ("3.7" -> 3, "12abc" -> 12). Returns None
    when the field does not start with an ASCII digit.
    """
    match = _LEADING_INT.match(raw)
    if match is None:
        return None
    return int(match.group(1))


def parse_row(line: str, line_number: int) -> RowOutcome:
    """
    Validate and convert a single trimmed, non-empty data line.

    Args:
        line: The data line, without its newline
        line_number: 0-based position of the line in the input (for reporting)

    Returns:
        RowOutcome holding the record or the skip reason
    """
    parts = line.split(",")
    if len(parts) < MIN_FIELDS:
        return RowOutcome(
            skipped=SkippedRow(
                line_number,
                SkipReason.TOO_FEW_FIELDS,
                f"expected at least {MIN_FIELDS} fields, got {len(parts)}",
            )
        )

    income = parse_int(parts[5])
    if income is None:
        return RowOutcome(
            skipped=SkippedRow(
                line_number, SkipReason.INVALID_INCOME, f"income={parts[5]!r}"
            )
        )

    try:
        record = UserRecord(
            id=parts[1].strip(),
            age=parse_int(parts[2]),
            gender=parts[3].strip(),
            location=parts[4].strip(),
            income=income,
            interests=parts[6].strip(),
            last_login_days_ago=parse_int(parts[7]),
            purchase_frequency=parse_int(parts[8]),
            average_order_value=parse_int(parts[9]),
            total_spending=parse_int(parts[10]),
            product_category_preference=parts[11].strip(),
            time_spent_minutes=parse_int(parts[12]),
            pages_viewed=parse_int(parts[13]),
            newsletter_subscription=parts[14].strip().lower() == "true",
        )
    except ValidationError as e:
        logger.warning(f"Error parsing line {line_number}: {e.errors()[0]['msg']}")
        return RowOutcome(
            skipped=SkippedRow(line_number, SkipReason.INVALID_ROW, str(e))
        )

    return RowOutcome(record=record)


def parse_rows(raw_text: str) -> ParseReport:
    """
    Parse every data line of the input, collecting records and skips.

    Never raises; an input with no valid rows yields an empty report.
    """
    report = ParseReport()

    # Line 0 is the header, whatever it contains
    for line_number, raw_line in enumerate(raw_text.split("\n")):
        if line_number == 0:
            continue
        line = raw_line.strip()
        if not line:
            continue

        outcome = parse_row(line, line_number)
        if outcome.ok:
            report.records.append(outcome.record)
        else:
            logger.debug(
                f"Skipping line {line_number}: {outcome.skipped.reason.value} "
                f"{outcome.skipped.detail}"
            )
            report.skipped.append(outcome.skipped)

    Metrics.counter("rows_parsed_total", value=len(report.records))
    if report.skipped:
        Metrics.counter("rows_skipped_total", value=len(report.skipped))
    logger.info(
        f"Parsed {len(report.records)} user records "
        f"({len(report.skipped)} rows skipped)"
    )
    return report


def parse(raw_text: str) -> Dataset:
    """
    Parse raw CSV text into a new dataset.

    Args:
        raw_text: Full file contents, header line included

    Returns:
        List of UserRecord in input order

    Raises:
        EmptyResultError: If no row produced a valid record
    """
    report = parse_rows(raw_text)
    if not report.records:
        raise EmptyResultError(skipped_count=len(report.skipped))
    return report.records
