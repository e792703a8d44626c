from decimal import Decimal, InvalidOperation

CENT = Decimal("0.01")


def format_money(amount: Decimal) -> str:
    """Format an amount as a BRL string: Decimal('2850') -> 'R$ 2.850,00'"""
    formatted = f"{amount.quantize(CENT):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {formatted}"


def parse_money(value: str) -> Decimal | None:
    """Parse user input such as '2850.00', '2.850,00' or '2850' into a Decimal.

    Returns None when the input is not a number.
    """
    cleaned = value.strip().replace("R$", "").strip()
    if not cleaned:
        return None
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount.quantize(CENT)
