"""
Money helpers
Target and display money is held as integer halalas (1/100 SAR).
"""
import math
from typing import Optional, Union

HALALAS_PER_SAR = 100
PLACEHOLDER = "—"


def sar_to_halalas(amount_sar: int) -> int:
    return int(amount_sar) * HALALAS_PER_SAR


def format_sar_from_halala(amount: Optional[Union[int, float]]) -> str:
    """
    Render halalas as a SAR string: 191950 -> "1,919.50 SAR"

    None, NaN and infinities render as a dash.
    """
    if amount is None or isinstance(amount, bool):
        return PLACEHOLDER
    if isinstance(amount, float):
        if not math.isfinite(amount):
            return PLACEHOLDER
        amount = round(amount)
    sign = "-" if amount < 0 else ""
    riyals, halalas = divmod(abs(int(amount)), HALALAS_PER_SAR)
    return f"{sign}{riyals:,}.{halalas:02d} SAR"
