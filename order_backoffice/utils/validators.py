# utils/validators.py
import math


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


def min_length(text: str | None, n: int) -> bool:
    return len((text or "").strip()) >= n


# ---- Numeric parsing & validators ----

def normalize_decimal(x) -> str:
    """'15,50' -> '15.50'. Only the decimal comma is rewritten."""
    return str(x).strip().replace(",", ".")


def try_parse_float(x):
    """
    Parse to a finite float, accepting comma or dot as the decimal separator.

    Returns:
        (ok: bool, value: float|None)
    """
    if x is None or isinstance(x, bool):
        return False, None
    try:
        val = float(normalize_decimal(x)) if isinstance(x, str) else float(x)
    except (TypeError, ValueError):
        return False, None
    if not math.isfinite(val):
        return False, None
    return True, val


def try_parse_int(x):
    """Whole numbers only: '3' -> (True, 3); '2.5', 'abc', '' -> (False, None)."""
    if x is None or isinstance(x, bool):
        return False, None
    if isinstance(x, int):
        return True, x
    text = str(x).strip()
    if text.startswith(("+", "-")):
        sign, digits = text[0], text[1:]
    else:
        sign, digits = "", text
    if not digits.isdigit():
        return False, None
    return True, int(sign + digits)

