"""
Shared numeric helpers for capacity math.

Unknown values are always None, never 0, NaN or inf. Thresholds below are
product behavior: changing them changes which links are reported as hot.
"""
import math
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

HOT_UTIL_THRESHOLD = 0.85
LAG_SPREAD_THRESHOLD = 0.25


def finite(value: Any) -> Optional[float]:
    """Coerce to float, returning None for missing, non-numeric or non-finite input."""
    if value is None or isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def safe_ratio(numerator: Any, denominator: Any) -> Optional[float]:
    n = finite(numerator)
    d = finite(denominator)
    if n is None or d is None or d == 0:
        return None
    return n / d


def util_to_gbps(util: Any, speed_mbps: Any) -> Optional[float]:
    u = finite(util)
    s = finite(speed_mbps)
    if u is None or s is None or s <= 0:
        return None
    return u * s / 1000.0


def headroom_gbps(threshold: float, speed_mbps: Any, traffic_gbps: Any) -> Optional[float]:
    """threshold * speed - traffic, in Gbps. Negative means already past threshold."""
    s = finite(speed_mbps)
    t = finite(traffic_gbps)
    if s is None or s <= 0 or t is None:
        return None
    return threshold * (s / 1000.0) - t


def headroom_util(threshold: float, util: Any) -> Optional[float]:
    u = finite(util)
    if u is None:
        return None
    return threshold - u


def parse_rfc3339(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    s = value.strip()
    if s.endswith("Z") or s.endswith("z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def earlier_forecast(current: Optional[str], candidate: Optional[str]) -> Optional[str]:
    """Return whichever ISO-8601 timestamp is sooner, ignoring blanks."""
    cand = (candidate or "").strip()
    if not cand:
        return current
    if not current:
        return cand
    a = parse_rfc3339(current)
    b = parse_rfc3339(cand)
    if a is not None and b is not None:
        return cand if b < a else current
    return cand if cand < current else current


def soonest_forecast(values: Iterable[Optional[str]]) -> Optional[str]:
    out: Optional[str] = None
    for v in values:
        out = earlier_forecast(out, v)
    return out


def is_utilization_metric(metric: str) -> bool:
    return metric.startswith("util_")


def metric_to_interface_type(metric: str) -> str:
    if metric.startswith("util_"):
        return "UTILIZATION"
    if "packet_loss" in metric:
        return "PACKET_LOSS"
    return "ERROR"


def metric_to_device_type(metric: str) -> str:
    if "memory" in metric:
        return "MEMORY"
    return "CPU"


def direction_for_metric(metric: str) -> str:
    return "EGRESS" if metric == "util_egress" else "INGRESS"
