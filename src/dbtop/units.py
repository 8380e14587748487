"""Numeric helpers shared by ranking and rendering.

Division never raises here: a zero divisor yields +Inf, -Inf or NaN the way
IEEE floats do, and the formatters turn those into printable strings.
"""

import math


def safe_div(numerator: float, denominator: float) -> float:
    """Divide with IEEE semantics instead of raising ZeroDivisionError."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.inf if numerator > 0 else -math.inf
    return numerator / denominator


def format_float(value: float, precision: int = 1) -> str:
    """Format a float with fixed precision; non-finite values read +Inf/-Inf/NaN."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:.{precision}f}"


def per_second(delta: float, elapsed_seconds: float) -> float:
    return safe_div(delta, elapsed_seconds)


def percent_of(part: float, whole: float) -> float:
    return safe_div(part, whole) * 100


def percentage(value: int, out_of: int) -> float:
    """Percentage that is 0 instead of undefined when either side is 0."""
    if value == 0 or out_of == 0:
        return 0.0
    return 100 * (value / out_of)


def average(value: int, out_of: int) -> int:
    """Integer average that is 0 instead of undefined when either side is 0."""
    if value == 0 or out_of == 0:
        return 0
    return int(value / out_of)


def truncating_rate(new: int, old: int, elapsed_seconds: float) -> int:
    """Per-second rate truncated toward zero; 0 when no time has elapsed."""
    if elapsed_seconds <= 0:
        return 0
    return int((new - old) / elapsed_seconds)


def micros_to_millis(micros: int) -> int:
    """Integer division by 1000 truncating toward zero."""
    return -(-micros // 1000) if micros < 0 else micros // 1000


def _scaled(size: float, units: tuple[str, ...], step: int) -> str:
    for unit in units[:-1]:
        if abs(size) < step:
            return f"{size:.1f}{unit}" if unit != units[0] else f"{int(size)}{unit}"
        size = size / step
    return f"{size:.1f}{units[-1]}"


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    return _scaled(size, ("b", "k", "m", "g", "t"), 1024)


def format_bits(size: int) -> str:
    """Format a byte count as a human-readable bit amount."""
    return _scaled(size * 8, ("b", "k", "m", "g", "t"), 1000)


def format_megabytes(size: int) -> str:
    """Format a megabyte count as a human-readable byte amount."""
    return format_bytes(size * 1024 * 1024)
