"""
Numeric sampling of graph expressions.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from expression import MAX_EXPRESSION_LENGTH, compile_expression

logger = logging.getLogger(__name__)


@dataclass
class Samples:
    """Parallel x/y sequences; a None y is a gap in the plotted line."""
    xs: list[float]
    ys: list[Optional[float]]


def sample_expression(
    expr: str,
    x_min: float = -10.0,
    x_max: float = 10.0,
    intervals: int = 300,
    max_length: int = MAX_EXPRESSION_LENGTH,
) -> Samples:
    """
    Evaluate an expression at intervals + 1 evenly spaced points.

    Raises ExpressionError if the expression does not parse. Points that fail
    to evaluate (domain errors, division by zero, overflow, non-finite
    results) become gaps instead of aborting the pass.
    """
    if intervals < 1:
        raise ValueError("intervals must be at least 1")
    if not x_min < x_max:
        raise ValueError(f"x_min ({x_min}) must be less than x_max ({x_max})")
    if not math.isfinite(x_max - x_min):
        raise ValueError(f"range [{x_min}, {x_max}] is not finite")

    f = compile_expression(expr, max_length=max_length)

    xs = np.linspace(x_min, x_max, intervals + 1).tolist()
    ys: list[Optional[float]] = []
    gaps = 0
    for x in xs:
        try:
            y = f(x)
        except (ValueError, ZeroDivisionError, OverflowError):
            y = None
        if y is not None and not math.isfinite(y):
            y = None
        if y is None:
            gaps += 1
        ys.append(y)

    if gaps:
        logger.debug(f"[Sampler] {gaps}/{len(xs)} points undefined for {expr!r}")

    return Samples(xs=xs, ys=ys)
