"""Ordered rule tables for the structured entity parser.

Every field has a tuple of FieldRule entries. Rules are tried in order and,
within a rule, matches in text order; the first match whose extractor
returns a value wins. Extractors return None to reject a match, which lets
a later match or rule take over.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

from creditworker.parsing.values import normalize_date, parse_amount

FieldValue = str | float | None


@dataclass(frozen=True)
class FieldRule:
    pattern: re.Pattern[str]
    extract: Callable[[re.Match[str]], FieldValue]


def first_match(rules: tuple[FieldRule, ...], text: str) -> FieldValue:
    for rule in rules:
        for match in rule.pattern.finditer(text):
            value = rule.extract(match)
            if value is not None:
                return value
    return None


def _collapse(value: str) -> str:
    return " ".join(value.split())


# ----------------------------------------------------------------------
# Shared fragments
# ----------------------------------------------------------------------

DATE = (
    r"\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}"
    r"|\d{4}-\d{1,2}-\d{1,2}"
    r"|[A-Z][a-z]{2,8}\.?[ \t]+\d{1,2},?[ \t]+\d{4}"
)
# A digit run that continues into a date ("01/15/2023") is not an amount
AMOUNT = r"\(?-?\$?[ \t]?\d[\d,]*(?:\.\d{1,2})?(?!\d|[/\-.]\d)\)?"
AS_OF_DATE = rf"(?:(?i:as[ \t]+of)[ \t]+)?(?:{DATE})[ \t]*:?[ \t]*"
PERSON_NAME = r"[A-Z][A-Za-z'.\-]*(?:[ \t]+[A-Z][A-Za-z'.\-]*){1,4}"

DATE_RE = re.compile(rf"(?<![\d/])(?:{DATE})(?![\d/])")
CURRENCY_RE = re.compile(r"\$[ \t]?\d[\d,]*(?:\.\d{1,2})?")

# Words that end a name or creditor captured from a single-line transcript
LABEL_WORDS = frozenset({
    "account", "acct", "address", "aka", "balance", "birth", "current",
    "date", "dob", "high", "limit", "number", "opened", "past", "payment",
    "phone", "report", "reported", "social", "ssn", "status", "type",
})


def truncate_at_label(value: str) -> str:
    words = []
    for word in value.split():
        if word.strip(":#.,").lower() in LABEL_WORDS:
            break
        words.append(word)
    return " ".join(words).strip(" ,.-:")


def _date_value(match: re.Match[str]) -> FieldValue:
    return normalize_date(match.group("value"))


def _amount_value(match: re.Match[str]) -> FieldValue:
    return parse_amount(match.group("value"))


# ----------------------------------------------------------------------
# Personal information
# ----------------------------------------------------------------------


def _name_value(match: re.Match[str]) -> FieldValue:
    name = truncate_at_label(match.group("value"))
    return name if len(name.split()) >= 2 else None


def _ssn_value(match: re.Match[str]) -> FieldValue:
    return f"XXX-XX-{match.group('last4')}"


def _address_value(match: re.Match[str]) -> FieldValue:
    lines = [_collapse(line).strip(" ,") for line in match.group("value").splitlines()]
    return ", ".join(line for line in lines if line)


def _phone_value(match: re.Match[str]) -> FieldValue:
    digits = re.sub(r"\D", "", match.group("value"))
    if len(digits) != 10:
        return None
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


SSN_LABEL = r"(?i:ssn|social[ \t]+security(?:[ \t]+(?:number|no\.?|#))?)[ \t]*:?[ \t]*"
STREET_SUFFIX = (
    r"(?:Street|St|Avenue|Ave|Road|Rd|Drive|Dr|Lane|Ln|Boulevard|Blvd"
    r"|Court|Ct|Way|Place|Pl|Circle|Cir|Parkway|Pkwy|Terrace|Ter)"
)

PERSONAL_INFO_RULES: dict[str, tuple[FieldRule, ...]] = {
    "full_name": (
        FieldRule(
            re.compile(rf"(?i:consumer|full|legal)[ \t]+(?i:name)[ \t]*:[ \t]*(?P<value>{PERSON_NAME})"),
            _name_value,
        ),
        FieldRule(
            re.compile(rf"^[ \t]*(?i:name)[ \t]*:[ \t]*(?P<value>{PERSON_NAME})", re.M),
            _name_value,
        ),
        FieldRule(
            re.compile(rf"(?i:report[ \t]+(?:prepared[ \t]+)?for)[ \t]*:?[ \t]*(?P<value>{PERSON_NAME})"),
            _name_value,
        ),
    ),
    "date_of_birth": (
        FieldRule(
            re.compile(
                rf"(?i:date[ \t]+of[ \t]+birth|birth[ \t]*date|dob|born)[ \t]*:?[ \t]*(?P<value>{DATE})"
            ),
            _date_value,
        ),
    ),
    "ssn_partial": (
        FieldRule(
            re.compile(
                SSN_LABEL + r"(?:[*Xx#]{3}-?[*Xx#]{2}-?|[*Xx#]{3,})(?P<last4>\d{4})\b"
            ),
            _ssn_value,
        ),
        FieldRule(
            re.compile(SSN_LABEL + r"\d{3}-?\d{2}-?(?P<last4>\d{4})\b"),
            _ssn_value,
        ),
    ),
    "current_address": (
        FieldRule(
            re.compile(
                r"(?i:current[ \t]+address|address|residence)[ \t]*:?[ \t]*"
                r"(?P<value>\d+[ \t][^\n]*?(?:\n[^\n]*?)?\b[A-Z]{2}[ \t]+\d{5}(?:-\d{4})?)"
            ),
            _address_value,
        ),
        FieldRule(
            re.compile(
                rf"(?P<value>\b\d+[ \t]+[A-Za-z0-9 .]+?[ \t]{STREET_SUFFIX}\b\.?,?"
                r"[ \t]+[A-Za-z .]+?,?[ \t]+[A-Z]{2}[ \t]+\d{5}(?:-\d{4})?)"
            ),
            _address_value,
        ),
    ),
    "phone_number": (
        FieldRule(
            re.compile(
                r"(?i:phone|telephone|tel)(?:[ \t]+(?i:number))?[ \t]*:?[ \t]*"
                r"(?P<value>\(?\d{3}\)?[-. \t]?\d{3}[-. \t]\d{4})\b"
            ),
            _phone_value,
        ),
    ),
}


# ----------------------------------------------------------------------
# Accounts
# ----------------------------------------------------------------------

CREDITOR_SUFFIX = (
    r"(?:Bank|Card|Credit(?:[ \t]+Card)?|Financial|Mortgage|Express|Auto|Loan|Lending"
    r"|Funding|Corp|Inc|LLC|Union|Services|Servicing)"
)
KNOWN_ISSUERS = (
    r"(?:Capital[ \t]+One|Chase|Wells[ \t]+Fargo|Discover|Citi(?:bank)?|Bank[ \t]+of[ \t]+America"
    r"|American[ \t]+Express|Amex|Synchrony|Barclays|U\.?S\.?[ \t]+Bank|Navient|Sallie[ \t]+Mae"
    r"|Ally|Nelnet|Credit[ \t]+One|Goldman[ \t]+Sachs|Apple[ \t]+Card)"
)
CREDITOR_WORD = r"[A-Z][A-Za-z0-9&'.\-]*"

# Each pattern captures the creditor name at the start of an anchor line
ACCOUNT_ANCHOR_RULES: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"^[ \t]*(?i:creditor(?:[ \t]+name)?|company(?:[ \t]+name)?|lender|furnisher)[ \t]*:[ \t]*"
        r"(?P<creditor>[^\n]+)"
    ),
    re.compile(
        rf"^[ \t]*(?P<creditor>{CREDITOR_WORD}(?:[ \t]+{CREDITOR_WORD})*?[ \t]+{CREDITOR_SUFFIX})\b"
    ),
    re.compile(rf"^[ \t]*(?P<creditor>{KNOWN_ISSUERS}(?:[ \t]+{CREDITOR_WORD})*)"),
)

# Creditor candidates made only of these words are headings, not creditors
GENERIC_CREDITOR_WORDS = frozenset({
    "account", "accounts", "auto", "bank", "card", "cards", "credit",
    "financial", "loan", "loans", "mortgage", "services",
})

ACCOUNT_FIELD_RULES: dict[str, tuple[FieldRule, ...]] = {
    "account_number": (
        FieldRule(
            re.compile(
                r"(?i:account|acct\.?)(?:[ \t]*(?i:number|no\.?|#))?[ \t]*:?[ \t]*"
                r"(?P<value>[*Xx\d][*Xx\d\-]{1,22}[\dXx*](?:[ ][*Xx\d]{4}(?![\w/\-]))*)(?![\w/])"
            ),
            lambda match: _collapse(match.group("value")),
        ),
        FieldRule(
            re.compile(r"(?<![\w*])(?P<value>\*{3,}\d{4}|[Xx]{4,}\d{4}|\d{4}[Xx*]{4,}\d{0,4})\b"),
            lambda match: match.group("value"),
        ),
    ),
    "current_balance": (
        FieldRule(
            re.compile(
                rf"(?i:current[ \t]+balance|balance(?:[ \t]+owed)?|amount[ \t]+owed|bal\.)[ \t]*:?[ \t]*"
                rf"(?:{AS_OF_DATE})?(?P<value>{AMOUNT})"
            ),
            _amount_value,
        ),
    ),
    "credit_limit": (
        FieldRule(
            re.compile(
                rf"(?i:credit[ \t]+limit|high[ \t]+credit|limit)[ \t]*:?[ \t]*(?P<value>{AMOUNT})"
            ),
            _amount_value,
        ),
    ),
    "account_type": (
        FieldRule(
            re.compile(r"(?i:account[ \t]+type|loan[ \t]+type|type)[ \t]*:[ \t]*(?P<value>[A-Za-z][A-Za-z /\-]{2,40})"),
            lambda match: match.group("value").strip(),
        ),
    ),
    "account_status": (
        FieldRule(
            re.compile(
                r"(?i:account[ \t]+status|payment[ \t]+status|status|condition)[ \t]*:?[ \t]*"
                r"(?P<value>(?i:open|closed|current|paid(?:[ \t]+as[ \t]+agreed)?|pays[ \t]+as[ \t]+agreed"
                r"|past[ \t]+due|late|charged?[ \t-]*off|in[ \t]+collections?|collection"
                r"|delinquent|transferred|never[ \t]+late))\b"
            ),
            lambda match: _collapse(match.group("value")).lower(),
        ),
    ),
}

ACCOUNT_TYPE_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("mortgage", re.compile(r"\bmortgage|\bhome[ \t]+(?:loan|equity)|\bheloc\b", re.I)),
    ("auto_loan", re.compile(r"\bauto\b|\bvehicle\b|\bcar[ \t]+loan", re.I)),
    ("student_loan", re.compile(r"\bstudent\b|\beducation", re.I)),
    ("credit_card", re.compile(r"\bcredit[ \t]+card\b|\bcard\b|\brevolving\b|\bcharge[ \t]+account", re.I)),
    ("personal_loan", re.compile(r"\bpersonal[ \t]+loan\b|\binstallment\b", re.I)),
    ("collection", re.compile(r"\bcollection", re.I)),
)

NEGATIVE_STATUS_RE = re.compile(
    r"past[ \t]+due|\blate\b|charged?[ \t-]*off|collection|delinquent", re.I
)


def classify_account_type(text: str) -> str:
    for account_type, pattern in ACCOUNT_TYPE_RULES:
        if pattern.search(text):
            return account_type
    return "other"


# ----------------------------------------------------------------------
# Inquiries
# ----------------------------------------------------------------------

INQUIRER_NAME = r"[A-Z][A-Za-z0-9&'.,\-]*(?:[ \t]+[A-Za-z0-9&'.,\-]+){0,5}?"

INQUIRY_LINE_RULES: tuple[re.Pattern[str], ...] = (
    re.compile(
        rf"(?i:inquiry[ \t]+(?:by|from))[ \t]*:?[ \t]*(?P<name>{INQUIRER_NAME})[ \t,]+(?:on[ \t]+)?(?P<date>{DATE})"
    ),
    re.compile(rf"^[ \t]*(?P<name>{INQUIRER_NAME})[ \t]*[:\-]?[ \t]+(?P<date>{DATE})"),
)

# Name followed by a date anywhere, but only when inquiry vocabulary follows
INQUIRY_PHRASE_RULE = re.compile(
    rf"(?P<name>[A-Z][A-Za-z&'.\-]*(?:[ \t]+[A-Z][A-Za-z&'.\-]*){{0,4}})[ \t]+(?P<date>{DATE})"
    r"[ \t]+[A-Za-z ]{0,30}?(?i:inquiry|hard[ \t]+pull|soft[ \t]+pull|credit[ \t]+check)"
)

INQUIRY_DATE_LABEL_RE = re.compile(
    rf"^[ \t]*(?i:(?:inquiry[ \t]+)?date(?:[ \t]+of[ \t]+inquiry)?)?[ \t]*:?[ \t]*(?P<date>{DATE})[ \t]*$"
)
INQUIRY_VOCAB_RE = re.compile(r"inquir|credit[ \t]+check|hard[ \t]+pull|soft[ \t]+pull", re.I)
SOFT_INQUIRY_RE = re.compile(r"\bsoft\b|promotional|account[ \t]+review|pre-?approv", re.I)

INQUIRER_STOP_WORDS = frozenset({
    "date", "dates", "inquiry", "inquiries", "hard", "soft", "type", "bureau",
    "opened", "reported", "closed", "balance", "report", "dob", "born",
})


def clean_inquirer(name: str) -> str | None:
    name = _collapse(name).strip(" ,.-:")
    if not name or name.split()[0].lower() in INQUIRER_STOP_WORDS:
        return None
    if not re.search(r"[A-Za-z]{2}", name):
        return None
    return name


# ----------------------------------------------------------------------
# Negative items
# ----------------------------------------------------------------------

NEGATIVE_TYPE_RULES: tuple[tuple[str, int, re.Pattern[str]], ...] = (
    ("bankruptcy", 10, re.compile(r"\bbankrupt(?:cy|cies)?\b|\bchapter[ \t]*(?:7|11|13)\b", re.I)),
    ("foreclosure", 9, re.compile(r"\bforeclos(?:ure|ed)\b", re.I)),
    ("charge_off", 8, re.compile(r"\bcharged?[ \t-]*off\b", re.I)),
    ("repossession", 8, re.compile(r"\brepossess(?:ion|ed)\b", re.I)),
    ("collection", 6, re.compile(r"\bcollections?\b", re.I)),
    ("late_payment", 3, re.compile(
        r"\b(?:30|60|90|120)[ \t]*days?[ \t]*(?:late|past[ \t]+due)\b|\blate[ \t]+payments?\b"
        r"|\bpast[ \t]+due\b|\bdelinquen(?:t|cy)\b",
        re.I,
    )),
)

NEGATED_LINE_RE = re.compile(r"^\W*(?:no|none|zero|0)\b|:\s*(?:none|no|n/a)\s*$", re.I)


# ----------------------------------------------------------------------
# Sections
# ----------------------------------------------------------------------

SECTION_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("inquiries", re.compile(r"inquir", re.I)),
    ("negative", re.compile(r"collection|negative|derogatory|public[ \t]+record|adverse", re.I)),
    ("accounts", re.compile(
        r"\baccounts\b|tradelines?|account[ \t]+(?:information|history|summary|details)", re.I
    )),
    ("personal", re.compile(r"personal|identification|consumer[ \t]+information", re.I)),
)


def section_of(line: str) -> str | None:
    """Section name when the line is a section heading, otherwise None."""
    stripped = line.strip()
    body = stripped.rstrip(":").strip()
    if not body or ":" in body or re.search(r"\d", body) or len(body.split()) > 5:
        return None
    if not (stripped.endswith(":") or body.isupper()):
        return None
    for section, pattern in SECTION_RULES:
        if pattern.search(body):
            return section
    return None
