import pytest

from netcap.schemas.flow import FlowQuery
from netcap.schemas.path import PathBottleneck, PathBottleneckResult
from netcap.schemas.upgrade import UpgradeCandidate
from netcap.services.path_bottleneck import summarize_bottlenecks
from netcap.services.upgrade_plan import (
    REASON_NO_CANDIDATE,
    REASON_NO_SPEED,
    REASON_NO_TRAFFIC,
    default_selection,
    simulate_plan,
    upgrade_id,
    upgrade_impact_rows,
)

FLOW = FlowQuery(dst_ip="10.0.0.2")


def _result(index, device="leaf1", iface="Ethernet1", p95_util=0.4, speed=10_000, p95_gbps=None):
    headroom_util = None if p95_util is None else 0.85 - p95_util
    traffic = p95_gbps if p95_gbps is not None else (
        p95_util * speed / 1000.0 if p95_util is not None and speed else None
    )
    return PathBottleneckResult(
        index=index,
        query=FLOW,
        bottleneck=PathBottleneck(
            device_name=device,
            interface_name=iface,
            direction="EGRESS",
            source="rollup",
            speed_mbps=speed,
            threshold=0.85,
            headroom_util=headroom_util,
            headroom_gbps=(0.85 * speed / 1000.0 - traffic) if speed and traffic is not None else None,
            p95_util=p95_util,
            p95_gbps=p95_gbps,
            max_util=0.5,
        ),
    )


def _candidate(device="LEAF1", name="Ethernet1", speed=10_000, recommended=40_000, required=None):
    return UpgradeCandidate(
        device=device,
        name=name,
        worst_direction="EGRESS",
        speed_mbps=speed,
        recommended_speed_mbps=recommended,
        required_speed_mbps=required,
        reason="p95 above threshold",
    )


class TestUpgradeImpactRows:
    def test_joins_on_normalized_names(self):
        summary = summarize_bottlenecks([_result(0, iface="Et1"), _result(1, iface="Et1")])
        rows = upgrade_impact_rows(summary, [_candidate(name="et1")])
        assert len(rows) == 1
        assert rows[0].id == upgrade_id("leaf1", "Et1", "EGRESS")
        assert rows[0].flows == 2
        assert rows[0].recommended_speed_mbps == 40_000

    def test_unmatched_rows_are_dropped(self):
        summary = summarize_bottlenecks([_result(0, device="spine9")])
        assert upgrade_impact_rows(summary, [_candidate()]) == []

    def test_sorted_by_flows_then_headroom(self):
        results = [
            _result(0, device="a", p95_util=0.2),
            _result(1, device="b", p95_util=0.8),
            _result(2, device="c", p95_util=0.1),
            _result(3, device="c", p95_util=0.1),
        ]
        candidates = [_candidate(device=d) for d in ("a", "b", "c")]
        rows = upgrade_impact_rows(summarize_bottlenecks(results), candidates)
        assert [r.device_name for r in rows] == ["c", "b", "a"]
        assert default_selection(rows, 2) == [rows[0].id, rows[1].id]


class TestSimulatePlan:
    def test_constant_traffic_estimate(self):
        plan = simulate_plan([_result(0)], [_candidate()])
        [item] = plan.items
        assert item.before_headroom_gbps == pytest.approx(4.5)
        assert item.after_headroom_gbps == pytest.approx(30.0)
        assert item.after_util == pytest.approx(0.1)
        assert item.improved is True
        assert item.applied_speed_mbps == 40_000
        assert plan.summary.simulated == 1
        assert plan.summary.improved == 1
        assert plan.approximation is True
        assert "constant" in plan.assumption.lower()

    def test_p95_gbps_preferred_over_util(self):
        plan = simulate_plan([_result(0, p95_util=0.1, p95_gbps=4.0)], [_candidate()])
        assert plan.items[0].after_headroom_gbps == pytest.approx(30.0)

    def test_default_selection_is_applied(self):
        plan = simulate_plan([_result(0)], [_candidate()])
        assert plan.selected_upgrade_ids == [upgrade_id("leaf1", "Ethernet1", "EGRESS")]

    def test_unselected_upgrade_leaves_item_untouched(self):
        plan = simulate_plan([_result(0)], [_candidate()], selected_upgrade_ids=[])
        [item] = plan.items
        assert item.reason is None
        assert item.after_headroom_util == item.before_headroom_util
        assert plan.summary.simulated == 0

    def test_selected_without_candidate(self):
        key = upgrade_id("leaf1", "Ethernet1", "EGRESS")
        plan = simulate_plan([_result(0)], [], selected_upgrade_ids=[key])
        assert plan.items[0].reason == REASON_NO_CANDIDATE
        assert plan.summary.cannot_simulate == 1

    def test_missing_speed_on_candidate(self):
        plan = simulate_plan([_result(0)], [_candidate(recommended=None, required=None)])
        assert plan.items[0].reason == REASON_NO_SPEED

    def test_required_speed_is_fallback(self):
        plan = simulate_plan([_result(0)], [_candidate(recommended=None, required=20_000)])
        assert plan.items[0].applied_speed_mbps == 20_000

    def test_cannot_estimate_traffic(self):
        plan = simulate_plan([_result(0, p95_util=None)], [_candidate()])
        [item] = plan.items
        assert item.reason == REASON_NO_TRAFFIC
        assert item.after_headroom_gbps is None
        assert plan.summary.cannot_simulate == 1

    def test_at_risk_counts(self):
        plan = simulate_plan([_result(0, p95_util=0.95)], [_candidate()])
        assert plan.summary.at_risk_before == 1
        assert plan.summary.at_risk_after == 0
        assert plan.summary.with_bottleneck == 1
        assert plan.summary.total_flows == 1

    def test_flow_without_bottleneck(self):
        plan = simulate_plan([PathBottleneckResult(index=0, query=FLOW)], [_candidate()])
        assert plan.summary.total_flows == 1
        assert plan.summary.with_bottleneck == 0
        assert plan.items[0].before_headroom_gbps is None
