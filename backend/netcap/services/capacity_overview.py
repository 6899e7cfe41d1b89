"""Network-wide overview and per-VRF routing/utilization summary."""
import logging
from typing import Iterable, List

from netcap.schemas.inventory import BgpNeighborRow, RouteScaleRow
from netcap.schemas.rollup import CapacityRollup
from netcap.schemas.summary import CapacityOverview, VrfSummaryRow
from netcap.services.headroom import (
    HOT_UTIL_THRESHOLD,
    earlier_forecast,
    finite,
    is_utilization_metric,
    parse_rfc3339,
)

logger = logging.getLogger(__name__)


def capacity_overview(rollups: Iterable[CapacityRollup]) -> CapacityOverview:
    util = [r for r in rollups if is_utilization_metric(r.metric)]
    out = CapacityOverview(
        util_rollups=len(util),
        above_threshold=sum(1 for r in util if (finite(r.max) or 0.0) >= HOT_UTIL_THRESHOLD),
    )
    soonest = None
    soonest_at = None
    for r in util:
        at = parse_rfc3339(r.forecast_crossing_ts)
        if at is None:
            continue
        if soonest_at is None or at < soonest_at:
            soonest, soonest_at = r, at
    if soonest is not None:
        out.soonest_object_id = soonest.object_id
        out.soonest_metric = soonest.metric
        out.soonest_forecast = soonest.forecast_crossing_ts
    return out


def vrf_summary_rows(
    route_scale: Iterable[RouteScaleRow],
    bgp_neighbors: Iterable[BgpNeighborRow],
    rollups: Iterable[CapacityRollup],
    window: str,
) -> List[VrfSummaryRow]:
    rows: dict[str, VrfSummaryRow] = {}

    def row_for(device: str, vrf: str) -> VrfSummaryRow:
        key = f"{device}||{vrf}"
        if key not in rows:
            rows[key] = VrfSummaryRow(id=key, device_name=device, vrf=vrf)
        return rows[key]

    for r in route_scale:
        device, vrf = r.device_name.strip(), r.vrf.strip()
        if not device or not vrf:
            continue
        cur = row_for(device, vrf)
        cur.ipv4_routes = r.ipv4_routes or 0
        cur.ipv6_routes = r.ipv6_routes or 0

    for n in bgp_neighbors:
        device, vrf = n.device_name.strip(), n.vrf.strip()
        if not device or not vrf:
            continue
        cur = row_for(device, vrf)
        cur.bgp_neighbors += 1
        if n.is_established:
            cur.bgp_established += 1

    # Interface utilization hotspots per VRF for the active window.
    for rr in rollups:
        if rr.object_type != "interface" or rr.window != window or not is_utilization_metric(rr.metric):
            continue
        d = rr.details or {}
        device = str(d.get("deviceName") or "").strip()
        vrf = str(d.get("vrf") or "").strip()
        if not device or not vrf:
            continue
        cur = row_for(device, vrf)
        max_v = finite(rr.max) or 0.0
        cur.max_iface_max = max_v if cur.max_iface_max is None else max(cur.max_iface_max, max_v)
        p95 = finite(rr.p95)
        if p95 is not None:
            cur.max_iface_p95 = p95 if cur.max_iface_p95 is None else max(cur.max_iface_p95, p95)
        cur.soonest_forecast = earlier_forecast(cur.soonest_forecast, rr.forecast_crossing_ts)

    out = list(rows.values())
    out.sort(key=lambda r: r.max_iface_max or 0.0, reverse=True)
    return out
