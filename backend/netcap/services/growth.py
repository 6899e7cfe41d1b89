"""
Growth analyzer: now-vs-previous deltas per object.

Both sides are narrowed to one object type, window and metric before joining
on objectId. An object with no previous rollup gets prev/delta of None (no prior data),
which is deliberately different from a delta of 0 (no change).
"""
import logging
from typing import Iterable, List, Optional

from netcap.schemas.rollup import CapacityRollup, RowFilters
from netcap.schemas.summary import DeviceGrowthRow, InterfaceGrowthRow
from netcap.services.headroom import finite
from netcap.services.rollup_projection import (
    matches_categories,
    rollup_to_device_row,
    rollup_to_interface_row,
)

logger = logging.getLogger(__name__)


def interface_object_id(rollup: CapacityRollup) -> str:
    if rollup.object_id:
        return rollup.object_id
    row = rollup_to_interface_row(rollup)
    return f"{row.device}:{row.iface}:{row.dir}"


def device_object_id(rollup: CapacityRollup) -> str:
    if rollup.object_id:
        return rollup.object_id
    return rollup_to_device_row(rollup).device


def _delta(now: Optional[float], prev: Optional[float]) -> Optional[float]:
    if now is None or prev is None:
        return None
    return now - prev


def _select(rows: Iterable[CapacityRollup], object_type: str, window: str, metric: str) -> List[CapacityRollup]:
    return [r for r in rows if r.object_type == object_type and r.window == window and r.metric == metric]


def _index(rows: Iterable[CapacityRollup], key_fn) -> dict:
    out = {}
    for r in rows:
        out.setdefault(key_fn(r), r)
    return out


def _growth_sort_key(row) -> tuple:
    # Largest growth first; objects without prior data sink to the bottom.
    return (row.delta_p95 is None, -(row.delta_p95 or 0.0))


def interface_growth(
    now_rows: Iterable[CapacityRollup],
    prev_rows: Iterable[CapacityRollup],
    window: str = "7d",
    metric: str = "util_ingress",
    filters: Optional[RowFilters] = None,
) -> List[InterfaceGrowthRow]:
    filters = filters or RowFilters()
    prev_by_id = _index(_select(prev_rows, "interface", window, metric), interface_object_id)
    out = []
    seen = set()
    for now in _select(now_rows, "interface", window, metric):
        oid = interface_object_id(now)
        if oid in seen:
            continue
        seen.add(oid)
        row = rollup_to_interface_row(now)
        if not matches_categories(row, filters, check_vrf=False):
            continue

        prev = prev_by_id.get(oid)
        now_p95, now_max = finite(now.p95), finite(now.max)
        prev_p95 = finite(prev.p95) if prev else None
        prev_max = finite(prev.max) if prev else None
        delta_p95 = _delta(now_p95, prev_p95)
        speed = row.speed_mbps
        out.append(InterfaceGrowthRow(
            id=oid,
            device=row.device,
            iface=row.iface,
            dir=row.dir,
            location_name=row.location_name,
            tag_names=row.tag_names,
            group_names=row.group_names,
            speed_mbps=speed,
            now_p95=now_p95,
            prev_p95=prev_p95,
            delta_p95=delta_p95,
            delta_p95_gbps=(delta_p95 * speed / 1000.0) if delta_p95 is not None and speed else None,
            now_max=now_max,
            prev_max=prev_max,
            delta_max=_delta(now_max, prev_max),
            now_forecast=row.forecast_crossing_ts,
        ))

    out.sort(key=_growth_sort_key)
    logger.debug("Interface growth: %d objects, %d without prior data",
                 len(out), sum(1 for r in out if r.prev_p95 is None))
    return out


def device_growth(
    now_rows: Iterable[CapacityRollup],
    prev_rows: Iterable[CapacityRollup],
    window: str = "7d",
    metric: str = "cpu_util",
    filters: Optional[RowFilters] = None,
) -> List[DeviceGrowthRow]:
    filters = filters or RowFilters()
    prev_by_id = _index(_select(prev_rows, "device", window, metric), device_object_id)
    out = []
    seen = set()
    for now in _select(now_rows, "device", window, metric):
        oid = device_object_id(now)
        if oid in seen:
            continue
        seen.add(oid)
        row = rollup_to_device_row(now)
        if not matches_categories(row, filters, check_vrf=False):
            continue

        prev = prev_by_id.get(oid)
        now_p95, now_max = finite(now.p95), finite(now.max)
        prev_p95 = finite(prev.p95) if prev else None
        prev_max = finite(prev.max) if prev else None
        out.append(DeviceGrowthRow(
            id=oid,
            device=row.device,
            location_name=row.location_name,
            tag_names=row.tag_names,
            group_names=row.group_names,
            vendor=row.vendor,
            os=row.os,
            model=row.model,
            now_p95=now_p95,
            prev_p95=prev_p95,
            delta_p95=_delta(now_p95, prev_p95),
            now_max=now_max,
            prev_max=prev_max,
            delta_max=_delta(now_max, prev_max),
            now_forecast=row.forecast_crossing_ts,
        ))

    out.sort(key=_growth_sort_key)
    return out
