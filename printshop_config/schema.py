"""
Configuration schema (``printshop_config.schema``).

Frozen dataclasses produced by ``printshop_config.loader``.  Nothing here
reads files; nothing here has defaults for required keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from printshop_kernel.domain.numbering import NumberingScheme


@dataclass(frozen=True)
class DatabaseDef:
    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    sqlite_busy_timeout: float = 30.0


@dataclass(frozen=True)
class NumberingDef:
    """One document type's numbering rule."""

    type_key: str
    prefix: str
    width: int
    period_format: str | None
    reset_each_period: bool
    max_value: int | None

    def to_scheme(self) -> NumberingScheme:
        return NumberingScheme(
            type_key=self.type_key,
            prefix=self.prefix,
            width=self.width,
            period_format=self.period_format,
            reset_each_period=self.reset_each_period,
            max_value=self.max_value,
        )


@dataclass(frozen=True)
class WorkflowDef:
    rejection_note_template: str = "Rejeitado em {date}: {reason}"
    rejection_date_format: str = "%d/%m/%Y"


@dataclass(frozen=True)
class LoggingDef:
    level: str = "INFO"


@dataclass(frozen=True)
class PrintShopConfig:
    """The runtime configuration artifact."""

    config_id: str
    version: int
    database: DatabaseDef
    numbering: tuple[NumberingDef, ...]
    workflow: WorkflowDef = field(default_factory=WorkflowDef)
    logging: LoggingDef = field(default_factory=LoggingDef)
    checksum: str = ""

    def numbering_schemes(self) -> dict[str, NumberingScheme]:
        return {n.type_key: n.to_scheme() for n in self.numbering}
