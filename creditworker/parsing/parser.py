"""Regex-based structured entity parser for credit report transcripts.

Four independent passes run over the same consolidated text:
1. Personal information: first match per field over the whole text.
2. Accounts: creditor anchor lines open a window of following lines that
   is searched for number, balance, limit, type and status.
3. Inquiries: inquirer names paired with a date on the same line or a
   short window below, inside an inquiries section or next to inquiry
   vocabulary.
4. Negative items: negative vocabulary lines paired with the nearest
   amount and date, weighted by severity.

The parser is pure: the same text always yields the same entities.
Fields that cannot be recovered are left unset.
"""

import re

from creditworker.logging.logger import Log
from creditworker.parsing.models import (
    CreditAccount,
    CreditInquiry,
    NegativeItem,
    ParsedReport,
    PersonalInfo,
)
from creditworker.parsing.rules import (
    ACCOUNT_ANCHOR_RULES,
    ACCOUNT_FIELD_RULES,
    CURRENCY_RE,
    DATE_RE,
    GENERIC_CREDITOR_WORDS,
    INQUIRY_DATE_LABEL_RE,
    INQUIRY_LINE_RULES,
    INQUIRY_PHRASE_RULE,
    INQUIRY_VOCAB_RE,
    NEGATED_LINE_RE,
    NEGATIVE_STATUS_RE,
    NEGATIVE_TYPE_RULES,
    PERSONAL_INFO_RULES,
    SOFT_INQUIRY_RE,
    classify_account_type,
    clean_inquirer,
    first_match,
    section_of,
    truncate_at_label,
)
from creditworker.parsing.values import normalize_date, parse_amount

MAX_DESCRIPTION_LENGTH = 200


class StructuredEntityParser:
    """Extracts personal info, accounts, inquiries and negative items."""

    def __init__(
        self,
        account_window: int = 6,
        inquiry_window: int = 3,
        negative_window: int = 2,
    ) -> None:
        self._account_window = account_window
        self._inquiry_window = inquiry_window
        self._negative_window = negative_window

    def parse(self, text: str) -> ParsedReport:
        lines = text.splitlines()
        sections = self._sections(lines)
        report = ParsedReport(
            personal_info=self._parse_personal_info(text),
            accounts=self._parse_accounts(lines, sections),
            inquiries=self._parse_inquiries(text, lines, sections),
            negative_items=self._parse_negative_items(lines, sections),
        )
        Log.info(
            f"Parsed {len(report.accounts)} accounts, {len(report.inquiries)} inquiries, "
            f"{len(report.negative_items)} negative items"
        )
        return report

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    @staticmethod
    def _sections(lines: list[str]) -> list[str | None]:
        """Section in effect for each line; heading lines map to their own section."""
        current: str | None = None
        result: list[str | None] = []
        for line in lines:
            heading = section_of(line)
            if heading is not None:
                current = heading
            result.append(current)
        return result

    # ------------------------------------------------------------------
    # Personal information
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_personal_info(text: str) -> PersonalInfo:
        values = {field: first_match(rules, text) for field, rules in PERSONAL_INFO_RULES.items()}
        return PersonalInfo(**{field: value for field, value in values.items() if value is not None})

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def _parse_accounts(self, lines: list[str], sections: list[str | None]) -> list[CreditAccount]:
        anchors: list[tuple[int, tuple[str, str]]] = []
        for index, line in enumerate(lines):
            if sections[index] == "inquiries" or section_of(line) is not None:
                continue
            anchor = self._account_anchor(line)
            if anchor is not None:
                anchors.append((index, anchor))

        accounts: dict[tuple[str, str], CreditAccount] = {}
        for position, (index, (creditor, rest)) in enumerate(anchors):
            next_anchor = anchors[position + 1][0] if position + 1 < len(anchors) else len(lines)
            end = min(index + 1 + self._account_window, next_anchor)
            window = "\n".join([rest, *lines[index + 1 : end]])
            account = self._build_account(creditor, window)
            if account is not None and account.natural_key not in accounts:
                accounts[account.natural_key] = account
        return list(accounts.values())

    @staticmethod
    def _account_anchor(line: str) -> tuple[str, str] | None:
        """Creditor name and the rest of the line, when the line opens an account."""
        if INQUIRY_VOCAB_RE.search(line):
            return None
        for pattern in ACCOUNT_ANCHOR_RULES:
            match = pattern.match(line)
            if match is None:
                continue
            creditor = truncate_at_label(match.group("creditor"))
            words = {word.lower() for word in creditor.split()}
            if not words or words <= GENERIC_CREDITOR_WORDS:
                continue
            return creditor, line[match.end("creditor") :]
        return None

    @staticmethod
    def _build_account(creditor: str, window: str) -> CreditAccount | None:
        fields = {field: first_match(rules, window) for field, rules in ACCOUNT_FIELD_RULES.items()}
        if all(fields[key] is None for key in ("account_number", "current_balance", "credit_limit")):
            return None

        status = fields["account_status"]
        labeled_type = fields["account_type"]
        account_type = classify_account_type(
            str(labeled_type) if labeled_type is not None else f"{creditor}\n{window}"
        )
        return CreditAccount(
            creditor_name=creditor,
            account_number=fields["account_number"],
            account_type=account_type,
            current_balance=fields["current_balance"],
            credit_limit=fields["credit_limit"],
            account_status=status,
            is_negative=bool(status and NEGATIVE_STATUS_RE.search(str(status))),
        )

    # ------------------------------------------------------------------
    # Inquiries
    # ------------------------------------------------------------------

    def _parse_inquiries(
        self,
        text: str,
        lines: list[str],
        sections: list[str | None],
    ) -> list[CreditInquiry]:
        inquiries: dict[tuple[str, str], CreditInquiry] = {}

        def add(name: str, raw_date: str, context: str) -> None:
            inquirer = clean_inquirer(name)
            inquiry_date = normalize_date(raw_date)
            if inquirer is None or inquiry_date is None:
                return
            inquiry = CreditInquiry(
                inquirer_name=inquirer,
                inquiry_date=inquiry_date,
                inquiry_type="soft" if SOFT_INQUIRY_RE.search(context) else "hard",
            )
            inquiries.setdefault(inquiry.natural_key, inquiry)

        for index, line in enumerate(lines):
            in_section = sections[index] == "inquiries"
            if section_of(line) is not None:
                continue
            entry = self._inquiry_entry(lines, index)

            matched = False
            if in_section or INQUIRY_VOCAB_RE.search(line):
                for pattern in INQUIRY_LINE_RULES:
                    match = pattern.search(line)
                    if match is not None:
                        add(match.group("name"), match.group("date"), entry)
                        matched = True
                        break

            if not matched and in_section and self._is_name_line(line):
                for following in lines[index + 1 : index + 1 + self._inquiry_window]:
                    date_match = INQUIRY_DATE_LABEL_RE.match(following)
                    if date_match is not None:
                        add(line, date_match.group("date"), entry)
                        break

        for match in INQUIRY_PHRASE_RULE.finditer(text):
            add(match.group("name"), match.group("date"), match.group(0))

        return list(inquiries.values())

    def _inquiry_entry(self, lines: list[str], index: int) -> str:
        """The inquiry line plus its detail lines, stopping at the next entry."""
        entry = [lines[index]]
        for following in lines[index + 1 : index + 1 + self._inquiry_window]:
            if section_of(following) is not None or self._is_name_line(following):
                break
            dated_entry = INQUIRY_LINE_RULES[-1].search(following)
            if dated_entry is not None and INQUIRY_DATE_LABEL_RE.match(following) is None:
                break
            entry.append(following)
        return "\n".join(entry)

    @staticmethod
    def _is_name_line(line: str) -> bool:
        stripped = line.strip()
        return (
            bool(stripped)
            and ":" not in stripped
            and not re.search(r"\d", stripped)
            and stripped[0].isupper()
            and len(stripped.split()) <= 6
        )

    # ------------------------------------------------------------------
    # Negative items
    # ------------------------------------------------------------------

    def _parse_negative_items(
        self,
        lines: list[str],
        sections: list[str | None],
    ) -> list[NegativeItem]:
        items: dict[tuple[str, str], NegativeItem] = {}
        consumed = -1
        for index, line in enumerate(lines):
            if index <= consumed or section_of(line) is not None or sections[index] == "inquiries":
                continue
            if NEGATED_LINE_RE.search(line):
                continue
            matched = next(
                ((name, severity) for name, severity, pattern in NEGATIVE_TYPE_RULES if pattern.search(line)),
                None,
            )
            if matched is None:
                continue

            negative_type, severity = matched
            amount, date_occurred, last_used = self._nearby_amount_and_date(lines, index)
            consumed = last_used
            description = " ".join(line.split())[:MAX_DESCRIPTION_LENGTH]
            item = NegativeItem(
                negative_type=negative_type,
                description=description,
                severity_score=severity,
                amount=amount,
                date_occurred=date_occurred,
            )
            items.setdefault(item.natural_key, item)
        return list(items.values())

    def _nearby_amount_and_date(
        self,
        lines: list[str],
        index: int,
    ) -> tuple[float | None, str | None, int]:
        """First amount and valid date on the line or the lines just below it.

        Also returns the index of the last line a value was taken from, so
        lines that only carried those values are not read as items again.
        """
        amount: float | None = None
        date_occurred: str | None = None
        last_used = index
        for offset in range(self._negative_window + 1):
            position = index + offset
            if position >= len(lines):
                break
            line = lines[position]
            if offset > 0 and (section_of(line) is not None or self._opens_new_item(line)):
                break
            if amount is None:
                currency = CURRENCY_RE.search(line)
                if currency is not None:
                    amount = parse_amount(currency.group(0))
                    last_used = position
            if date_occurred is None:
                for candidate in DATE_RE.finditer(line):
                    date_occurred = normalize_date(candidate.group(0))
                    if date_occurred is not None:
                        last_used = position
                        break
        return amount, date_occurred, last_used

    @staticmethod
    def _opens_new_item(line: str) -> bool:
        """True for a line that names a different creditor rather than a detail."""
        return ":" not in line and StructuredEntityParser._account_anchor(line) is not None
