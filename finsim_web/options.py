"""Query-string options for schedule and projection requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

VIEWS = ("detailed", "monthly")


class InvalidQueryParameter(ValueError):
    """A query-string option has a value outside its recognised set."""


def parse_flag(value: Optional[str], name: str, default: bool = True) -> bool:
    if value is None or value == "":
        return default
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise InvalidQueryParameter(f"{name} must be 'true' or 'false'; got {value!r}")


@dataclass(frozen=True)
class ScheduleOptions:
    """What a schedule/projection response should contain.

    ``view`` picks one row per compounding period (``detailed``) or one row
    per month (``monthly``). The two flags toggle the secondary data of the
    loan and investment responses.
    """

    view: str = "monthly"
    include_comparisons: bool = True
    include_extra_payments: bool = True

    @classmethod
    def from_query(cls, args: Mapping[str, str]) -> "ScheduleOptions":
        view = (args.get("view") or "monthly").strip().lower()
        if view not in VIEWS:
            raise InvalidQueryParameter(f"view must be one of {', '.join(VIEWS)}; got {view!r}")
        return cls(
            view=view,
            include_comparisons=parse_flag(args.get("includeComparisons"), "includeComparisons"),
            include_extra_payments=parse_flag(args.get("includeExtraPayments"), "includeExtraPayments"),
        )
