"""
Human-facing document numbers.

A ``NumberingScheme`` turns a raw counter value into the printed number::

    ORD-0001/202510     prefix "ORD-", width 4, period "%Y%m"
    0042/202510         budgets carry no prefix

``width`` is a minimum; a counter past ``10**width - 1`` keeps growing
(``ORD-10000/202510``) until it reaches ``max_value``.  The allocator never
wraps a counter.

With ``reset_each_period`` the counter is keyed by type *and* period
(``ORDER:202510``) and restarts at 1 each period; otherwise one counter per
type runs forever and the period is only decoration.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class NumberingScheme:
    type_key: str
    prefix: str = ""
    width: int = 4
    period_format: str | None = "%Y%m"
    reset_each_period: bool = False
    max_value: int | None = None

    def __post_init__(self) -> None:
        if not self.type_key:
            raise ValueError("NumberingScheme.type_key must be non-empty")
        if self.width < 1:
            raise ValueError(f"NumberingScheme {self.type_key}: width must be >= 1")
        if self.reset_each_period and not self.period_format:
            raise ValueError(
                f"NumberingScheme {self.type_key}: reset_each_period "
                f"requires a period_format"
            )
        if self.max_value is not None and self.max_value < 1:
            raise ValueError(f"NumberingScheme {self.type_key}: max_value must be >= 1")

    @property
    def effective_max(self) -> int:
        if self.max_value is not None:
            return self.max_value
        return 10 ** self.width - 1

    def period(self, at: datetime) -> str | None:
        if not self.period_format:
            return None
        return at.strftime(self.period_format)

    def counter_key(self, at: datetime) -> str:
        if self.reset_each_period:
            return f"{self.type_key}:{self.period(at)}"
        return self.type_key

    def render(self, value: int, at: datetime) -> DocumentNumber:
        period = self.period(at)
        text = f"{self.prefix}{value:0{self.width}d}"
        if period:
            text = f"{text}/{period}"
        return DocumentNumber(
            type_key=self.type_key,
            value=value,
            period=period,
            text=text,
        )


@dataclass(frozen=True)
class DocumentNumber:
    """An issued number.  ``str()`` gives the printed form."""

    type_key: str
    value: int
    period: str | None
    text: str

    def __str__(self) -> str:
        return self.text


DEFAULT_SCHEMES: dict[str, NumberingScheme] = {
    "ORDER": NumberingScheme(type_key="ORDER", prefix="ORD-", max_value=999_999),
    "BUDGET": NumberingScheme(type_key="BUDGET", prefix="", max_value=999_999),
}
