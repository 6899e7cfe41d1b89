"""
Rollup projection: turns raw rollup records into typed interface/device rows
for one window+metric, then applies the text and categorical filters.

Rows come back sorted by max descending (stable), which downstream views rely
on for "worst link first".
"""
import logging
from typing import Any, Iterable, List, Optional

from netcap.schemas.inventory import InventoryInterface
from netcap.schemas.rollup import (
    CapacityRollup,
    DeviceRow,
    FilterOptions,
    InterfaceRow,
    RowFilters,
)
from netcap.services.headroom import finite, metric_to_device_type, metric_to_interface_type

logger = logging.getLogger(__name__)

ALL = "all"


def _text(details: dict, key: str) -> Optional[str]:
    s = str(details.get(key) or "").strip()
    return s or None


def _names(details: dict, key: str) -> Optional[List[str]]:
    # Absent or non-list stays None; a present list keeps its (possibly empty) shape.
    value = details.get(key)
    if not isinstance(value, list):
        return None
    return [str(x).strip() for x in value if x is not None and str(x).strip()]


def _sort_key(row) -> float:
    v = finite(row.max)
    return v if v is not None else 0.0


def build_inventory_index(interfaces: Iterable[InventoryInterface]) -> dict:
    index = {}
    for inv in interfaces:
        dev = inv.device_name.strip()
        ifn = inv.interface_name.strip()
        if not dev or not ifn:
            continue
        index[f"{dev}|{ifn}"] = inv
    return index


def matches_categories(row: Any, filters: RowFilters, check_vrf: bool) -> bool:
    if filters.location != ALL and (row.location_name or "") != filters.location:
        return False
    if check_vrf and filters.vrf != ALL:
        if row.vrf != filters.vrf and filters.vrf not in (row.vrf_names or []):
            return False
    if filters.tag != ALL and filters.tag not in (row.tag_names or []):
        return False
    if filters.group != ALL and filters.group not in (row.group_names or []):
        return False
    return True


def rollup_to_interface_row(rollup: CapacityRollup, inventory_index: Optional[dict] = None) -> InterfaceRow:
    d = rollup.details or {}
    device = _text(d, "deviceName") or ""
    iface = _text(d, "interfaceName") or ""
    direction = _text(d, "direction") or ""
    if not device or not iface:
        # objectId is "device:interface:direction" when details are sparse.
        parts = (rollup.object_id or "").split(":")
        device = device or (parts[0].strip() if parts else "")
        iface = iface or (parts[1].strip() if len(parts) > 1 else "")
        direction = direction or (parts[2].strip() if len(parts) > 2 else "")

    inv = (inventory_index or {}).get(f"{device}|{iface}")
    return InterfaceRow(
        id=f"{device}:{iface}:{direction}:{rollup.metric}:{rollup.window}",
        device=device,
        iface=iface,
        dir=direction,
        metric=rollup.metric,
        metric_type=metric_to_interface_type(rollup.metric),
        window=rollup.window,
        aggregate_id=((inv.aggregate_id or "").strip() or None) if inv else None,
        is_aggregate=inv.is_aggregate if inv else False,
        vrf=_text(d, "vrf"),
        vrf_names=_names(d, "vrfNames"),
        location_name=_text(d, "locationName"),
        tag_names=_names(d, "tagNames"),
        group_names=_names(d, "groupNames"),
        speed_mbps=finite(d.get("speedMbps")),
        admin=_text(d, "adminStatus"),
        oper=_text(d, "operStatus"),
        p95=finite(rollup.p95),
        p99=finite(rollup.p99),
        max=finite(rollup.max),
        slope_per_day=finite(rollup.slope_per_day),
        forecast_crossing_ts=(rollup.forecast_crossing_ts or "").strip() or None,
        threshold=finite(rollup.threshold),
        samples=rollup.samples,
    )


def rollup_to_device_row(rollup: CapacityRollup) -> DeviceRow:
    d = rollup.details or {}
    device = _text(d, "deviceName") or (rollup.object_id or "").strip()
    return DeviceRow(
        id=f"{device}:{rollup.metric}:{rollup.window}",
        device=device,
        metric=rollup.metric,
        metric_type=metric_to_device_type(rollup.metric),
        window=rollup.window,
        location_name=_text(d, "locationName"),
        tag_names=_names(d, "tagNames"),
        group_names=_names(d, "groupNames"),
        vendor=_text(d, "vendor"),
        os=_text(d, "os"),
        model=_text(d, "model"),
        p95=finite(rollup.p95),
        p99=finite(rollup.p99),
        max=finite(rollup.max),
        slope_per_day=finite(rollup.slope_per_day),
        forecast_crossing_ts=(rollup.forecast_crossing_ts or "").strip() or None,
        threshold=finite(rollup.threshold),
        samples=rollup.samples,
    )


def project_interface_rows(
    rollups: Iterable[CapacityRollup],
    window: str,
    metric: str,
    text_filter: str = "",
    filters: Optional[RowFilters] = None,
    inventory: Iterable[InventoryInterface] = (),
) -> List[InterfaceRow]:
    filters = filters or RowFilters()
    inventory_index = build_inventory_index(inventory)
    q = (text_filter or "").strip().lower()

    rows = [
        rollup_to_interface_row(r, inventory_index)
        for r in rollups
        if r.object_type == "interface" and r.window == window and r.metric == metric
    ]
    if q:
        rows = [
            r for r in rows
            if q in r.device.lower() or q in r.iface.lower() or q in (r.dir or "").lower()
        ]
    rows = [r for r in rows if matches_categories(r, filters, check_vrf=True)]
    rows.sort(key=_sort_key, reverse=True)
    return rows


def project_device_rows(
    rollups: Iterable[CapacityRollup],
    window: str,
    metric: str,
    text_filter: str = "",
    filters: Optional[RowFilters] = None,
) -> List[DeviceRow]:
    filters = filters or RowFilters()
    q = (text_filter or "").strip().lower()

    rows = [
        rollup_to_device_row(r)
        for r in rollups
        if r.object_type == "device" and r.window == window and r.metric == metric
    ]
    if q:
        rows = [
            r for r in rows
            if q in r.device.lower()
            or q in (r.vendor or "").lower()
            or q in (r.os or "").lower()
            or q in (r.model or "").lower()
        ]
    rows = [r for r in rows if matches_categories(r, filters, check_vrf=False)]
    rows.sort(key=_sort_key, reverse=True)
    return rows


def filter_options(rollups: Iterable[CapacityRollup], window: Optional[str] = None) -> FilterOptions:
    """Distinct values offered to the location/VRF/tag/group filters."""
    locations, vrfs, tags, groups = set(), set(), set(), set()
    for r in rollups:
        if window and r.window != window:
            continue
        d = r.details or {}
        if _text(d, "locationName"):
            locations.add(_text(d, "locationName"))
        if _text(d, "vrf"):
            vrfs.add(_text(d, "vrf"))
        vrfs.update(_names(d, "vrfNames") or [])
        tags.update(_names(d, "tagNames") or [])
        groups.update(_names(d, "groupNames") or [])
    return FilterOptions(
        locations=sorted(locations),
        vrfs=sorted(vrfs),
        tags=sorted(tags),
        groups=sorted(groups),
    )
