def fmt_amount(value: float, decimals: int = 8) -> str:
    """Decimal string without exponent or trailing zeros (API amounts are strings)."""
    s = f"{float(value):.{decimals}f}".rstrip("0").rstrip(".")
    return s or "0"
