"""Small numeric helpers shared by the metrics modules."""

import math


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with halves going up (2.5 -> 3, -2.5 -> -2).

    Unlike round(), which rounds halves to even.
    """
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor
