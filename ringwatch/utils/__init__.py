from decimal import Decimal, ROUND_HALF_UP


def round_half_up(value: float, digits: int = 1) -> float:
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def hours_between(start, end) -> int:
    """Whole hours from start to end, truncated toward zero."""
    return int((end - start).total_seconds() / 3600)


def minutes_between(start, end) -> int:
    """Whole minutes from start to end, truncated toward zero."""
    return int((end - start).total_seconds() / 60)
