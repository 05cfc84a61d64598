"""
Shared polars expressions for report arithmetic.
"""

import polars as pl


def round_half_up(expr: pl.Expr, decimals: int = 0) -> pl.Expr:
    """Round non-negative values half away from zero, independent of the polars rounding mode"""
    factor = 10 ** decimals
    return (expr * factor + 0.5).floor() / factor


def round_signed(expr: pl.Expr, decimals: int = 0) -> pl.Expr:
    """Half-away-from-zero rounding for values that may be negative"""
    return pl.when(expr < 0).then(-round_half_up(-expr, decimals)).otherwise(round_half_up(expr, decimals))


def safe_ratio(numerator: pl.Expr, denominator: pl.Expr) -> pl.Expr:
    """numerator / denominator, or null when the denominator is zero or null"""
    return (
        pl.when(denominator.is_null() | (denominator == 0))
        .then(None)
        .otherwise(numerator / denominator)
    )
