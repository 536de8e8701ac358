# utils/helpers.py
from datetime import datetime, time as dtime, date
import logging
import time
from typing import Union, Optional

NumberLike = Union[float, int, str]

_log = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds (the unit of created_at/sort_index)."""
    return int(time.time() * 1000)


def day_start_ms(d: date) -> int:
    return int(datetime.combine(d, dtime.min).timestamp() * 1000)


def day_end_ms(d: date) -> int:
    return int(datetime.combine(d, dtime.max).timestamp() * 1000)


def parse_iso_date(value: str | None) -> Optional[date]:
    """YYYY-MM-DD -> date; anything else (including impossible dates) -> None."""
    if not value:
        return None
    text = value.strip()
    if len(text) != 10:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    Behavior on parse failure:
      - By default returns str(v).
      - If `sentinel` is provided (e.g., "-"), returns that sentinel instead.
      - If `strict=True`, raises ValueError.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"


def fmt_percent(v: float) -> str:
    """42.5 -> '42.5%', 50.0 -> '50%'."""
    text = f"{float(v):.1f}".rstrip("0").rstrip(".")
    return f"{text}%"
