"""Alert condition evaluation - pure functions, no I/O."""
from dataclasses import dataclass
from typing import Sequence, Tuple

from weather_data import Alert, Condition, WeatherReport

COMBINATORS = ("AND", "OR")

# Tolerance used by the "=" operator
EQUALITY_TOLERANCE = 0.01


@dataclass(frozen=True)
class Evaluation:
    """Outcome of checking one alert against one report."""
    triggered: bool
    results: Tuple[bool, ...]
    message: str


def extract_value(parameter: str, report: WeatherReport) -> float:
    """
    Get the observed value a condition parameter refers to.

    Args:
        parameter: One of temperature, precipitation, wind, humidity (any case)
        report: Report to read from

    Returns:
        The matching report value, or 0.0 for an unknown parameter
    """
    name = parameter.lower()
    if name == "temperature":
        return report.high_temp
    elif name == "precipitation":
        return report.precipitation_chance
    elif name == "wind":
        return report.wind_speed
    elif name == "humidity":
        return report.humidity
    return 0.0


def check_condition(condition: Condition, report: WeatherReport) -> bool:
    """Check a single condition. Unknown operators never match."""
    value = extract_value(condition.parameter, report)
    if condition.operator == ">":
        return value > condition.threshold
    elif condition.operator == "<":
        return value < condition.threshold
    elif condition.operator == "=":
        return abs(value - condition.threshold) < EQUALITY_TOLERANCE
    return False


def normalize_combinator(combinator: str) -> str:
    """
    Return the canonical upper-case combinator.

    Raises:
        ValueError: If the combinator is not AND or OR
    """
    normalized = (combinator or "").strip().upper()
    if normalized not in COMBINATORS:
        raise ValueError(f"Unknown combinator: {combinator!r} (expected AND or OR)")
    return normalized


def evaluate(
    conditions: Sequence[Condition],
    combinator: str,
    report: WeatherReport,
) -> Tuple[bool, Tuple[bool, ...]]:
    """
    Evaluate conditions in order and combine the results.

    Returns:
        (triggered, per-condition results in declaration order)

    Raises:
        ValueError: If the combinator is not AND or OR
    """
    mode = normalize_combinator(combinator)
    results = tuple(check_condition(c, report) for c in conditions)
    if mode == "AND":
        triggered = all(results)
    else:
        triggered = any(results)
    return triggered, results


def format_message(
    conditions: Sequence[Condition],
    combinator: str,
    report: WeatherReport,
) -> str:
    """Build e.g. ``temperature > 30.0 (Current value: 35.0) AND wind > 10.0 (Current value: 5.0)``."""
    clauses = [
        f"{c.parameter} {c.operator} {c.threshold:.1f} "
        f"(Current value: {extract_value(c.parameter, report):.1f})"
        for c in conditions
    ]
    return f" {combinator.strip().upper()} ".join(clauses)


def evaluate_alert(alert: Alert, report: WeatherReport) -> Evaluation:
    triggered, results = evaluate(alert.conditions, alert.combinator, report)
    return Evaluation(
        triggered=triggered,
        results=results,
        message=format_message(alert.conditions, alert.combinator, report),
    )
