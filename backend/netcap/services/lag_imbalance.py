"""
LAG imbalance detection.

Aggregate membership is merged from two inventory signals: a member's own
aggregateId, and the aggregate's configured (else operational) member list.
Only groups that are hot or visibly lopsided are reported.
"""
import logging
from typing import Iterable, List, Optional

from netcap.config import settings
from netcap.schemas.inventory import InventoryInterface
from netcap.schemas.rollup import CapacityRollup
from netcap.schemas.summary import LagImbalanceRow, LagMemberRow
from netcap.services.headroom import (
    HOT_UTIL_THRESHOLD,
    LAG_SPREAD_THRESHOLD,
    direction_for_metric,
    finite,
    soonest_forecast,
)
from netcap.services.iface_names import iface_join_key
from netcap.services.quantile import lower_median
from netcap.services.rollup_projection import rollup_to_interface_row

logger = logging.getLogger(__name__)

UTIL_METRICS = ("util_ingress", "util_egress")


class _Group:
    __slots__ = ("device_name", "lag_name", "members")

    def __init__(self, device_name: str, lag_name: str):
        self.device_name = device_name
        self.lag_name = lag_name
        self.members: dict[str, str] = {}  # join key -> display name


def build_lag_groups(interfaces: Iterable[InventoryInterface]) -> dict:
    groups: dict[str, _Group] = {}

    def add_member(device: str, lag: str, member: str) -> None:
        device, lag, member = device.strip(), lag.strip(), str(member or "").strip()
        if not device or not lag or not member:
            return
        key = iface_join_key(device, lag)
        g = groups.get(key)
        if g is None:
            g = groups[key] = _Group(device, lag)
        g.members.setdefault(iface_join_key(device, member), member)

    for inv in interfaces:
        if not inv.device_name.strip() or not inv.interface_name.strip():
            continue
        if (inv.aggregate_id or "").strip():
            add_member(inv.device_name, inv.aggregate_id, inv.interface_name)
        for m in inv.member_names:
            add_member(inv.device_name, inv.interface_name, m)
    return groups


def _worst_util_by_member(rollups: Iterable[CapacityRollup], window: str, speed_by_key: dict) -> dict:
    """Per interface, the ingress/egress rollup with the highest max."""
    worst: dict[str, dict] = {}
    for r in rollups:
        if r.object_type != "interface" or r.window != window or r.metric not in UTIL_METRICS:
            continue
        row = rollup_to_interface_row(r)
        if not row.device or not row.iface:
            continue
        max_util = finite(r.max)
        if max_util is None:
            continue
        key = iface_join_key(row.device, row.iface)
        prev = worst.get(key)
        if prev is not None and max_util <= prev["max_util"]:
            continue
        worst[key] = {
            "max_util": max_util,
            "p95_util": finite(r.p95),
            "worst_direction": (row.dir or direction_for_metric(r.metric)).upper(),
            "speed_mbps": row.speed_mbps or speed_by_key.get(key),
            "forecast": row.forecast_crossing_ts,
        }
    return worst


def _sort_key(row: LagImbalanceRow) -> tuple:
    return (-row.worst_member_max_util, -row.spread, row.device_name, row.lag_name)


def detect_lag_imbalance(
    interfaces: Iterable[InventoryInterface],
    rollups: Iterable[CapacityRollup],
    window: str,
    limit: Optional[int] = None,
) -> List[LagImbalanceRow]:
    interfaces = list(interfaces)
    limit = settings.LAG_RESULT_LIMIT if limit is None else limit

    speed_by_key = {}
    for inv in interfaces:
        speed = finite(inv.speed_mbps)
        if speed and speed > 0:
            speed_by_key[iface_join_key(inv.device_name, inv.interface_name)] = speed

    groups = build_lag_groups(interfaces)
    util_by_key = _worst_util_by_member(rollups, window, speed_by_key)

    rows = []
    considered = 0
    for g in groups.values():
        if len(g.members) < 2:
            continue
        considered += 1

        members = []
        for key, name in sorted(g.members.items(), key=lambda kv: kv[1]):
            u = util_by_key.get(key) or {}
            members.append(LagMemberRow(
                interface_name=name,
                speed_mbps=speed_by_key.get(key) or u.get("speed_mbps"),
                worst_direction=u.get("worst_direction"),
                p95_util=u.get("p95_util"),
                max_util=u.get("max_util"),
                forecast=u.get("forecast"),
            ))

        maxes = [m.max_util for m in members if m.max_util is not None]
        if not maxes:
            continue
        worst = max(maxes)
        spread = worst - lower_median(maxes)
        if not (worst >= HOT_UTIL_THRESHOLD or spread >= LAG_SPREAD_THRESHOLD):
            continue

        total_speed = sum(m.speed_mbps or 0 for m in members)
        rows.append(LagImbalanceRow(
            id=f"{g.device_name}|{g.lag_name}",
            device_name=g.device_name,
            lag_name=g.lag_name,
            member_count=len(members),
            total_speed_mbps=total_speed or None,
            worst_member_max_util=worst,
            spread=spread,
            hot_members=sum(1 for m in maxes if m >= HOT_UTIL_THRESHOLD),
            soonest_forecast=soonest_forecast(m.forecast for m in members),
            members=members,
        ))

    rows.sort(key=_sort_key)
    logger.info("LAG imbalance: %d aggregates with 2+ members, %d surfaced", considered, len(rows))
    return rows[:limit]
