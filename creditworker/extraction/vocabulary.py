"""Word lists shared by the confidence scorer and the content validator."""

import re

# Terms that show up in consumer credit reports from all three bureaus.
# Lowercase; matched on word boundaries against lowercased text.
CREDIT_VOCAB: frozenset[str] = frozenset({
    "credit report", "consumer report", "account", "accounts", "balance",
    "payment", "payments", "payment history", "inquiry", "inquiries",
    "creditor", "credit limit", "high credit", "past due", "date opened",
    "tradeline", "collection", "collections", "charge off", "charge-off",
    "revolving", "installment", "mortgage", "experian", "equifax",
    "transunion", "fico", "vantagescore", "credit score", "bureau",
    "public records", "delinquent",
})

# Patterns the validator counts as credit-report evidence. Each pattern
# contributes at most one hit however often it matches.
CREDIT_EVIDENCE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bcredit\s+report\b",
        r"\b(?:experian|equifax|transunion)\b",
        r"\b(?:fico|vantagescore|credit\s+score)\b",
        r"\baccount\s*(?:number|no\.?|#)",
        r"\bcreditor\b",
        r"\bbalance\b",
        r"\bcredit\s+limit\b|\bhigh\s+credit\b",
        r"\bpayment\s+(?:history|status)\b",
        r"\binquir(?:y|ies)\b",
        r"\btradelines?\b",
        r"\bcollections?\b|\bcharge[\s-]?off\b",
        r"\bdate\s+opened\b",
        r"(?:\*{2,}|x{3,})\d{4}\b",
        r"\$\s?\d[\d,]*(?:\.\d{2})?",
    )
)

# PDF container syntax that leaks into text recovered from browser exports.
CONTAINER_MARKERS: tuple[str, ...] = (
    "obj", "endobj", "stream", "endstream", "xref", "trailer", "startxref",
    "/Filter", "/FlateDecode", "/Length", "/Type", "/Subtype", "/XObject",
    "/Image", "/Width", "/Height", "/ColorSpace", "/DeviceRGB", "/DeviceGray",
    "/BitsPerComponent", "/SMask", "/Font", "/Page", "/Pages", "/Resources",
    "/MediaBox", "/Contents", "/Producer", "/Creator",
)

_VOCAB_PATTERN = re.compile(
    r"\b(?:"
    + "|".join(re.escape(term) for term in sorted(CREDIT_VOCAB, key=len, reverse=True))
    + r")\b"
)
_CONTAINER_PATTERN = re.compile(
    r"(?<![\w/])(?:"
    + "|".join(re.escape(marker) for marker in sorted(CONTAINER_MARKERS, key=len, reverse=True))
    + r")(?!\w)"
)


def count_vocab_matches(text: str) -> int:
    """Number of credit vocabulary occurrences in the text."""
    return len(_VOCAB_PATTERN.findall(text.lower()))


def count_evidence_hits(text: str) -> int:
    """Number of distinct credit evidence patterns present in the text."""
    return sum(1 for pattern in CREDIT_EVIDENCE_PATTERNS if pattern.search(text))


def count_container_markers(text: str) -> int:
    return len(_CONTAINER_PATTERN.findall(text))


def alnum_ratio(text: str) -> float:
    """Share of characters that are letters or digits."""
    if not text:
        return 0.0
    return sum(1 for char in text if char.isalnum()) / len(text)
