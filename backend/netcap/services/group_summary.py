"""
Group aggregator: rolls projected rows up by location, tag, group or VRF.

A row tagged with several tags (or groups) is counted once in each bucket.
Speed-weighted sums are kept only for utilization metrics so callers can
derive headroom and utilization-at-p95 per group.
"""
import logging
from collections import defaultdict
from typing import Iterable, List

from netcap.schemas.inventory import BgpNeighborRow, RouteScaleRow
from netcap.schemas.rollup import DeviceRow, InterfaceRow
from netcap.schemas.summary import GroupSummaryRow
from netcap.services.headroom import (
    HOT_UTIL_THRESHOLD,
    earlier_forecast,
    finite,
    is_utilization_metric,
)

logger = logging.getLogger(__name__)

UNKNOWN_BUCKET = "unknown"
UNTAGGED_BUCKET = "untagged"
UNGROUPED_BUCKET = "ungrouped"


def group_keys(row, group_by: str) -> List[str]:
    if group_by == "location":
        return [row.location_name or UNKNOWN_BUCKET]
    if group_by == "tag":
        return list(row.tag_names) if row.tag_names else [UNTAGGED_BUCKET]
    if group_by == "group":
        return list(row.group_names) if row.group_names else [UNGROUPED_BUCKET]
    if group_by == "vrf":
        vrf = getattr(row, "vrf", None)
        names = getattr(row, "vrf_names", None) or []
        return [vrf or (names[0] if names else UNKNOWN_BUCKET)]
    return []


def _max_opt(current, value):
    if value is None:
        return current
    return value if current is None else max(current, value)


def _is_hot(row, util_metric: bool) -> bool:
    if not util_metric:
        return False
    threshold = finite(row.threshold)
    return (finite(row.max) or 0.0) >= (threshold if threshold is not None else HOT_UTIL_THRESHOLD)


def _add_interface(cur: GroupSummaryRow, row: InterfaceRow, util_metric: bool) -> None:
    cur.count += 1
    p95 = finite(row.p95)
    max_v = finite(row.max)
    cur.max_max = _max_opt(cur.max_max, max_v if max_v is not None else 0.0)
    cur.max_p95 = _max_opt(cur.max_p95, p95)
    if _is_hot(row, util_metric):
        cur.hot_count += 1
    if not util_metric:
        return

    speed = finite(row.speed_mbps)
    if speed is not None and speed > 0:
        speed_gbps = speed / 1000.0
        cur.sum_speed_gbps += speed_gbps
        if p95 is not None:
            cur.sum_p95_gbps += p95 * speed_gbps
            cur.p95_count += 1
            cur.max_p95_gbps = _max_opt(cur.max_p95_gbps, p95 * speed_gbps)
        if max_v is not None:
            cur.sum_max_gbps += max_v * speed_gbps
    cur.soonest_forecast = earlier_forecast(cur.soonest_forecast, row.forecast_crossing_ts)


def _sort_value(row: GroupSummaryRow) -> float:
    if row.max_p95_gbps is not None:
        return row.max_p95_gbps
    return row.max_p95 or 0.0


def aggregate_interface_groups(
    rows: Iterable[InterfaceRow],
    group_by: str,
    metric: str,
    route_scale: Iterable[RouteScaleRow] = (),
    bgp_neighbors: Iterable[BgpNeighborRow] = (),
) -> List[GroupSummaryRow]:
    if group_by == "none":
        return []
    util_metric = is_utilization_metric(metric)
    buckets: dict[str, GroupSummaryRow] = {}
    devices_by_group: dict[str, set] = defaultdict(set)

    for row in rows:
        for key in group_keys(row, group_by):
            cur = buckets.get(key)
            if cur is None:
                cur = GroupSummaryRow(group=key)
                if util_metric:
                    cur.sum_speed_gbps = 0.0
                    cur.sum_p95_gbps = 0.0
                    cur.sum_max_gbps = 0.0
                    cur.p95_count = 0
                buckets[key] = cur
            _add_interface(cur, row, util_metric)
            devices_by_group[key].add(row.device)

    out = list(buckets.values())
    for cur in out:
        cur.device_count = len(devices_by_group[cur.group])

    if group_by == "vrf":
        _join_routing(out, devices_by_group, list(route_scale), list(bgp_neighbors))

    out.sort(key=_sort_value, reverse=True)
    logger.debug("Grouped interface rows by %s into %d buckets", group_by, len(out))
    return out


def _join_routing(out, devices_by_group, route_scale, bgp_neighbors) -> None:
    for cur in out:
        devs = devices_by_group.get(cur.group, set())
        v4 = v6 = neighbors = established = 0
        for r in route_scale:
            if r.vrf != cur.group or r.device_name not in devs:
                continue
            v4 += r.ipv4_routes or 0
            v6 += r.ipv6_routes or 0
        for n in bgp_neighbors:
            if n.vrf != cur.group or n.device_name not in devs:
                continue
            neighbors += 1
            if n.is_established:
                established += 1
        cur.ipv4_routes_sum = v4
        cur.ipv6_routes_sum = v6
        cur.bgp_neighbors = neighbors
        cur.bgp_established = established


def aggregate_device_groups(rows: Iterable[DeviceRow], group_by: str) -> List[GroupSummaryRow]:
    """Device rows have no speed, so only counts and maxima are kept."""
    if group_by in ("none", "vrf"):
        return []
    buckets: dict[str, GroupSummaryRow] = {}
    devices_by_group: dict[str, set] = defaultdict(set)
    for row in rows:
        for key in group_keys(row, group_by):
            cur = buckets.setdefault(key, GroupSummaryRow(group=key))
            cur.count += 1
            max_v = finite(row.max)
            cur.max_max = _max_opt(cur.max_max, max_v if max_v is not None else 0.0)
            cur.max_p95 = _max_opt(cur.max_p95, finite(row.p95))
            threshold = finite(row.threshold)
            if (max_v or 0.0) >= (threshold if threshold is not None else HOT_UTIL_THRESHOLD):
                cur.hot_count += 1
            cur.soonest_forecast = earlier_forecast(cur.soonest_forecast, row.forecast_crossing_ts)
            devices_by_group[key].add(row.device)

    out = list(buckets.values())
    for cur in out:
        cur.device_count = len(devices_by_group[cur.group])
    out.sort(key=lambda r: r.max_p95 or 0.0, reverse=True)
    return out
