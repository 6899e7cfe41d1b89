"""
Upgrade-plan simulation.

Joins batch bottlenecks to precomputed upgrade candidates and re-derives
headroom at the upgraded speed. Traffic is held constant at the current p95,
so results are an estimate for planning, never a guarantee.
"""
import logging
from typing import Iterable, List, Optional

from netcap.config import settings
from netcap.schemas.path import PathBottleneck, PathBottleneckResult, PathBottleneckSummaryRow
from netcap.schemas.upgrade import (
    PlanSimItem,
    PlanSimSummary,
    PlanSimulation,
    UpgradeCandidate,
    UpgradeImpactRow,
)
from netcap.services.headroom import HOT_UTIL_THRESHOLD, finite, headroom_gbps, headroom_util, util_to_gbps
from netcap.services.iface_names import iface_join_key
from netcap.services.path_bottleneck import summarize_bottlenecks

logger = logging.getLogger(__name__)

REASON_NO_CANDIDATE = "no upgrade candidate matches this bottleneck"
REASON_NO_SPEED = "upgrade missing recommended speed"
REASON_NO_TRAFFIC = "missing speed/util (cannot estimate traffic)"
REASON_SIMULATED = "simulated using constant traffic (p95)"


def upgrade_id(device: str, iface: str, direction: str) -> str:
    return iface_join_key(device, iface, direction)


def index_candidates(candidates: Iterable[UpgradeCandidate]) -> dict:
    index = {}
    for c in candidates:
        if not c.device.strip() or not c.name.strip():
            continue
        index.setdefault(upgrade_id(c.device, c.name, c.worst_direction), c)
    return index


def _inf_if_none(v: Optional[float]) -> float:
    return float("inf") if v is None else v


def upgrade_impact_rows(
    summary_rows: Iterable[PathBottleneckSummaryRow],
    candidates: Iterable[UpgradeCandidate],
) -> List[UpgradeImpactRow]:
    """Bottleneck summary rows that have a matching upgrade candidate."""
    index = index_candidates(candidates)
    if not index:
        return []
    rows = []
    for r in summary_rows:
        if not r.device_name.strip() or not r.interface_name.strip():
            continue
        key = upgrade_id(r.device_name, r.interface_name, r.direction)
        c = index.get(key)
        if c is None:
            continue
        rows.append(UpgradeImpactRow(
            id=key,
            device_name=r.device_name.strip(),
            interface_name=r.interface_name.strip(),
            direction=r.direction.strip().upper() or c.worst_direction.strip(),
            flows=r.count,
            min_headroom_gbps=r.min_headroom_gbps,
            min_headroom_util=r.min_headroom_util,
            recommended_speed_mbps=c.recommended_speed_mbps,
            required_speed_mbps=c.required_speed_mbps,
            reason=(c.reason or "").strip() or None,
        ))
    rows.sort(key=lambda r: (
        -r.flows,
        _inf_if_none(r.min_headroom_gbps),
        _inf_if_none(r.min_headroom_util),
        r.id,
    ))
    return rows


def default_selection(impact_rows: List[UpgradeImpactRow], count: Optional[int] = None) -> List[str]:
    count = settings.UPGRADE_AUTOSELECT_COUNT if count is None else count
    return [r.id for r in impact_rows[:count]]


def _current_traffic_gbps(b: PathBottleneck) -> Optional[float]:
    p95_gbps = finite(b.p95_gbps)
    if p95_gbps is not None:
        return p95_gbps
    return util_to_gbps(b.p95_util, b.speed_mbps)


def _at_risk(headroom: Optional[float]) -> bool:
    return headroom is not None and headroom < 0


def simulate_plan(
    results: Iterable[PathBottleneckResult],
    candidates: Iterable[UpgradeCandidate],
    selected_upgrade_ids: Optional[Iterable[str]] = None,
) -> PlanSimulation:
    results = list(results)
    impact = upgrade_impact_rows(summarize_bottlenecks(results), candidates)
    upgrades = {u.id: u for u in impact}
    selected = list(selected_upgrade_ids) if selected_upgrade_ids is not None else default_selection(impact)
    selected_set = set(selected)

    summary = PlanSimSummary(total_flows=len(results))
    items = []
    for it in results:
        b = it.bottleneck
        before_gbps = b.headroom_gbps if b else None
        before_util = b.headroom_util if b else None
        item = PlanSimItem(
            index=it.index,
            before_headroom_gbps=before_gbps,
            before_headroom_util=before_util,
            after_headroom_gbps=before_gbps,
            after_headroom_util=before_util,
        )
        items.append(item)
        if _at_risk(before_util):
            summary.at_risk_before += 1
        if b is None:
            continue
        summary.with_bottleneck += 1

        key = upgrade_id(b.device_name, b.interface_name, b.direction)
        if key in selected_set:
            _simulate_item(item, b, key, upgrades.get(key), summary)
        if _at_risk(item.after_headroom_util):
            summary.at_risk_after += 1

    logger.info("Plan simulation: %d flows, %d simulated, %d cannot simulate, %d improved",
                summary.total_flows, summary.simulated, summary.cannot_simulate, summary.improved)
    return PlanSimulation(summary=summary, items=items, selected_upgrade_ids=selected)


def _simulate_item(item: PlanSimItem, b: PathBottleneck, key: str,
                   upgrade: Optional[UpgradeImpactRow], summary: PlanSimSummary) -> None:
    if upgrade is None:
        item.reason = REASON_NO_CANDIDATE
        summary.cannot_simulate += 1
        return

    new_speed = finite(upgrade.recommended_speed_mbps)
    if new_speed is None:
        new_speed = finite(upgrade.required_speed_mbps)
    if new_speed is None or new_speed <= 0:
        item.reason = REASON_NO_SPEED
        summary.cannot_simulate += 1
        return

    traffic = _current_traffic_gbps(b)
    if traffic is None:
        item.reason = REASON_NO_TRAFFIC
        summary.cannot_simulate += 1
        return

    threshold = finite(b.threshold)
    if threshold is None:
        threshold = HOT_UTIL_THRESHOLD
    new_util = traffic / (new_speed / 1000.0)
    item.after_util = new_util
    item.after_headroom_util = headroom_util(threshold, new_util)
    item.after_headroom_gbps = headroom_gbps(threshold, new_speed, traffic)
    item.applied_upgrade_id = key
    item.applied_speed_mbps = new_speed
    item.reason = REASON_SIMULATED
    summary.simulated += 1

    before = finite(item.before_headroom_util)
    if before is not None and item.after_headroom_util is not None and item.after_headroom_util > before:
        item.improved = True
        summary.improved += 1
