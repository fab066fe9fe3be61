from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

_QUANT = Decimal("0.01")
ZERO = Decimal("0.00")


def parse_decimal(value: str | int | Decimal) -> Decimal:
    """
    Robust parse from string (or an already exact number).
    Accepts "12.34", "-12.34", "12" and the "12,34" comma form.
    Floats are refused: binary floating point never enters the ledger.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError("Amount must be provided as a string or Decimal")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if not isinstance(value, str):
        raise TypeError("Amount must be provided as a string or Decimal")

    raw = value.strip()
    if raw == "":
        raise ValueError("Amount cannot be empty")

    raw = raw.replace(",", ".")

    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid decimal amount: {value!r}") from exc


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(_QUANT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """
    Money = non-negative quantity of currency, two decimal places.
    Used for balances and transaction amounts.
    """
    amount: Decimal

    @classmethod
    def from_str(cls, amount: str | int | Decimal) -> "Money":
        dec = parse_decimal(amount)
        if not dec.is_finite():
            raise ValueError("Amount must be finite")
        return cls(amount=quantize_money(dec))

    @classmethod
    def zero(cls) -> "Money":
        return cls(amount=ZERO)

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise TypeError("Money.amount must be a Decimal")
        if not self.amount.is_finite():
            raise ValueError("Money amount must be finite")

        q = quantize_money(self.amount)
        object.__setattr__(self, "amount", q)

        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def is_zero(self) -> bool:
        return self.amount == ZERO

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(amount=self.amount + other.amount)

    def __sub__(self, other: "Money") -> "Money":
        # raises ValueError when the result would be negative
        if not isinstance(other, Money):
            return NotImplemented
        return Money(amount=self.amount - other.amount)

    def __str__(self) -> str:
        return f"{self.amount:.2f}"
