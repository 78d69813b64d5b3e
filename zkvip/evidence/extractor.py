"""
Balance Extraction & Normalization
==================================

Walks account records out of a verified view, selects the account to
attest, and converts its balance into micro-units for the proof system.

Selection policy: the account with the highest balance wins; on a tie the
first one in source order is kept.

Normalization truncates (floor). The proof claims balance >= threshold, so
the normalized amount must never overstate the real balance.

Version: 0.1.0
"""

from decimal import ROUND_FLOOR, Decimal, InvalidOperation, localcontext
from enum import Enum
from operator import attrgetter
from typing import NewType

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from zkvip.errors import MalformedEvidence, NegativeBalance, NoAccountsFound
from zkvip.evidence.verifier import VerifiedView
from zkvip.logging import get_logger


logger = get_logger(__name__)

MICRO_UNITS = 10**6
U64_MAX = 2**64 - 1

NormalizedAmount = NewType("NormalizedAmount", int)


class AccountKind(str, Enum):
    """Kinds of bank account."""

    CHECKING = "checking"
    SAVINGS = "savings"


class AccountRecord(BaseModel):
    """A bank account extracted from evidence."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    display_name: str
    kind: AccountKind
    balance: Decimal
    currency_code: str = Field(..., min_length=1)


def extract_accounts(view: VerifiedView) -> list[AccountRecord]:
    """
    Extract every account record, in source order.

    Raises:
        PathNotFound: The accounts array or a record field is missing
        MalformedEvidence: A record fails validation
    """
    count = len(view.get_list("accounts"))

    records: list[AccountRecord] = []
    for index in range(count):
        prefix = f"accounts.{index}"
        try:
            record = AccountRecord(
                id=view.get_string(f"{prefix}.id"),
                display_name=view.get_string(f"{prefix}.name"),
                kind=view.get_string(f"{prefix}.type"),
                balance=view.get_number(f"{prefix}.balance"),
                currency_code=view.get_string(f"{prefix}.currency"),
            )
        except ValidationError as e:
            raise MalformedEvidence(f"Invalid account record at {prefix}: {e}") from e
        records.append(record)

    return records


def select_account(view: VerifiedView) -> AccountRecord:
    """
    Select the account to attest.

    Returns:
        The record with the maximum balance (first one on ties)

    Raises:
        NoAccountsFound: The view holds zero account records
    """
    records = extract_accounts(view)
    if not records:
        raise NoAccountsFound()

    # max() keeps the first maximal element
    selected = max(records, key=attrgetter("balance"))

    logger.info(
        "account_selected",
        account_id=selected.id,
        kind=selected.kind.value,
        currency=selected.currency_code,
        candidates=len(records),
    )

    return selected


def as_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert to Decimal; floats go through their shortest repr."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal amount: {value!r}") from e


def to_micro_units(
    amount: Decimal | int | float | str,
    *,
    cap: bool = True,
) -> NormalizedAmount:
    """
    Scale an amount to micro-units, truncating toward zero.

    Amounts above the u64 range are capped at its maximum, which can only
    understate a balance. Thresholds pass cap=False so they are never
    lowered.

    Raises:
        ValueError: Amount is negative, not finite, or out of range with cap=False
    """
    amount = as_decimal(amount)
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {amount}")
    if amount < 0:
        raise ValueError(f"Amount must be non-negative, got {amount}")

    with localcontext() as ctx:
        ctx.prec = 60
        scaled = (amount * MICRO_UNITS).to_integral_value(rounding=ROUND_FLOOR)

    micro = int(scaled)
    if micro > U64_MAX:
        if not cap:
            raise ValueError(f"Amount {amount} exceeds the u64 micro-unit range")
        micro = U64_MAX
    return NormalizedAmount(micro)


def normalize(
    record: AccountRecord,
    exchange_rate: Decimal | int | float | str,
) -> NormalizedAmount:
    """
    Convert an account balance into micro-units of the target currency.

    Args:
        record: Selected account
        exchange_rate: Units of target currency per unit of account currency

    Raises:
        NegativeBalance: The balance is negative
        ValueError: The exchange rate is not positive
    """
    rate = as_decimal(exchange_rate)
    if not rate.is_finite() or rate <= 0:
        raise ValueError(f"Exchange rate must be positive, got {exchange_rate}")

    if record.balance < 0:
        raise NegativeBalance(record.id)

    with localcontext() as ctx:
        ctx.prec = 60
        converted = record.balance * rate

    return to_micro_units(converted)
