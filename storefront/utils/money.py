"""
Arithmétique monétaire: Stripe travaille en unités mineures (entiers), la base en unités majeures.
Toutes les conversions passent par Decimal et sont arrondies à 2 décimales (ROUND_HALF_UP).
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

CENT = Decimal("0.01")

def to_decimal(value: Union[int, str, float, Decimal, None]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() évite d'hériter de la représentation binaire d'un float
    return Decimal(str(value))

def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)

def minor_to_major(amount: Optional[int]) -> Decimal:
    """150000 -> Decimal('1500.00'). None est traité comme 0."""
    return quantize(Decimal(int(amount or 0)) / 100)

def unit_price(line_total_minor: Optional[int], quantity: Optional[int]) -> Decimal:
    """Prix unitaire d'une ligne: total de ligne / 100 / quantité (quantité 1 par défaut)."""
    qty = int(quantity or 1) or 1
    return quantize(Decimal(int(line_total_minor or 0)) / 100 / qty)

def major_to_minor(amount: Union[int, str, float, Decimal, None]) -> int:
    """Prix catalogue (unités majeures) -> unités mineures pour Stripe."""
    return int((quantize(to_decimal(amount)) * 100).to_integral_value(rounding=ROUND_HALF_UP))

def as_db_amount(amount: Decimal) -> str:
    """Sérialisation pour PostgREST (colonnes numeric): chaîne à 2 décimales."""
    return f"{quantize(amount):.2f}"

def format_amount(amount: Union[Decimal, float, int, str], symbol: str = "") -> str:
    return f"{symbol}{quantize(to_decimal(amount)):.2f}"
