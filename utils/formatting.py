"""
Text helpers for notification and message bodies
"""
from typing import Optional, Union

Number = Union[int, float]


def format_number(number: Number, decimal_places: int = 2) -> str:
    """
    Render a number with thousands separators

    Whole values drop their decimals, so 5000.0 renders as "5,000" and
    1234.5 as "1,234.50".
    """
    if isinstance(number, float) and not number.is_integer():
        return f"{number:,.{decimal_places}f}"
    return f"{int(number):,}"


def format_amount(amount: Optional[Number], currency: str) -> str:
    """Payment amount as shown to admins, e.g. "PKR 5,000" """
    return f"{currency} {format_number(amount or 0)}"


def truncate_text(text: str, max_length: int = 100, suffix: str = "...", preserve_words: bool = False) -> str:
    """
    Cut ``text`` to ``max_length`` characters and append ``suffix``

    With ``preserve_words`` the cut moves back to the last space inside the
    kept part. Text that already fits is returned unchanged.
    """
    if not text or len(text) <= max_length:
        return text or ""

    kept = text[:max_length]
    if preserve_words:
        head, space, _ = kept.rpartition(" ")
        if space:
            kept = head
    return f"{kept}{suffix}"
