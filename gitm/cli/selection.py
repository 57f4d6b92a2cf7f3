"""Parsing of interactive repository selections."""

from typing import List


def parse_selection(text: str, count: int) -> List[int]:
    """Turn ``"1,3,5-7"`` or ``"all"`` into zero-based indices.

    Indices are returned sorted and without duplicates.

    Raises:
        ValueError: a token is not a number or range, or is out of bounds
    """
    text = text.strip().lower()
    if text in ("all", "*"):
        return list(range(count))

    selected = set()
    for token in text.replace(" ", ",").split(","):
        if not token:
            continue
        start_text, sep, end_text = token.partition("-")
        try:
            start = int(start_text)
            end = int(end_text) if sep else start
        except ValueError as e:
            raise ValueError(f"invalid selection: '{token}'") from e
        if start > end:
            start, end = end, start
        if start < 1 or end > count:
            raise ValueError(f"selection '{token}' is out of range 1-{count}")
        selected.update(range(start - 1, end))
    return sorted(selected)
