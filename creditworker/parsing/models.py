from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class PersonalInfo:
    full_name: str | None = None
    date_of_birth: str | None = None
    current_address: str | None = None
    ssn_partial: str | None = None
    phone_number: str | None = None

    def is_empty(self) -> bool:
        return not any(asdict(self).values())


@dataclass(frozen=True)
class CreditAccount:
    creditor_name: str
    account_number: str | None = None
    account_type: str = "other"
    current_balance: float | None = None
    credit_limit: float | None = None
    account_status: str | None = None
    is_negative: bool = False

    @property
    def natural_key(self) -> tuple[str, str]:
        return (_key(self.creditor_name), _key(self.account_number or ""))


@dataclass(frozen=True)
class CreditInquiry:
    inquirer_name: str
    inquiry_date: str
    inquiry_type: str = "hard"

    @property
    def natural_key(self) -> tuple[str, str]:
        return (_key(self.inquirer_name), self.inquiry_date)


@dataclass(frozen=True)
class NegativeItem:
    negative_type: str
    description: str
    severity_score: int
    amount: float | None = None
    date_occurred: str | None = None

    @property
    def natural_key(self) -> tuple[str, str]:
        return (self.negative_type, _key(self.description))


@dataclass(frozen=True)
class ParsedReport:
    """Structured entities recovered from one consolidated transcript."""

    personal_info: PersonalInfo = field(default_factory=PersonalInfo)
    accounts: list[CreditAccount] = field(default_factory=list)
    inquiries: list[CreditInquiry] = field(default_factory=list)
    negative_items: list[NegativeItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def entity_count(self) -> int:
        return (
            len(self.accounts)
            + len(self.inquiries)
            + len(self.negative_items)
            + (0 if self.personal_info.is_empty() else 1)
        )


def _key(value: str) -> str:
    return " ".join(value.split()).casefold()
