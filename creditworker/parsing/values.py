import re
from datetime import date

TWO_DIGIT_YEAR_PIVOT = 50

_NUMERIC_DATE_RE = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2}|\d{4})$")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_MONTH_NAME_DATE_RE = re.compile(r"^([A-Za-z]{3,9})\.?\s+(\d{1,2}),?\s+(\d{4})$")
_MONTHS = {
    name: index
    for index, names in enumerate(
        (
            ("jan", "january"), ("feb", "february"), ("mar", "march"),
            ("apr", "april"), ("may",), ("jun", "june"), ("jul", "july"),
            ("aug", "august"), ("sep", "sept", "september"), ("oct", "october"),
            ("nov", "november"), ("dec", "december"),
        ),
        start=1,
    )
    for name in names
}


def parse_amount(raw: str | None) -> float | None:
    """Parse a currency amount such as "$1,250.00". Unparsable input gives None."""
    if raw is None:
        return None
    cleaned = re.sub(r"[$,\s]", "", raw)
    negative = cleaned.startswith("(") and cleaned.endswith(")")
    cleaned = cleaned.strip("()")
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    return -value if negative else value


def _expand_year(year: str) -> int:
    value = int(year)
    if len(year) == 2:
        return value + (2000 if value < TWO_DIGIT_YEAR_PIVOT else 1900)
    return value


def normalize_date(raw: str | None) -> str | None:
    """Normalize a report date to ISO YYYY-MM-DD.

    Accepts MM/DD/YYYY, MM/DD/YY (years below 50 are 20xx), MM-DD-YYYY,
    YYYY-MM-DD and "Month DD, YYYY". Impossible dates such as 02/30/2023
    are rejected rather than guessed.
    """
    if raw is None:
        return None
    value = raw.strip()

    numeric = _NUMERIC_DATE_RE.match(value)
    iso = _ISO_DATE_RE.match(value)
    named = _MONTH_NAME_DATE_RE.match(value)
    if numeric:
        month, day = int(numeric.group(1)), int(numeric.group(2))
        year = _expand_year(numeric.group(3))
    elif iso:
        year, month, day = int(iso.group(1)), int(iso.group(2)), int(iso.group(3))
    elif named:
        month = _MONTHS.get(named.group(1).lower(), 0)
        day, year = int(named.group(2)), int(named.group(3))
    else:
        return None

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None
