from netcap.schemas.inventory import BgpNeighborRow, RouteScaleRow
from netcap.services.capacity_overview import capacity_overview, vrf_summary_rows

from conftest import make_device_rollup, make_iface_rollup


class TestCapacityOverview:
    def test_counts_and_soonest(self):
        rollups = [
            make_iface_rollup("r1", "a", max=0.9, forecast="2027-01-01T00:00:00Z"),
            make_iface_rollup("r1", "b", metric="util_egress", max=0.85, forecast="2026-11-05T10:00:00+02:00"),
            make_iface_rollup("r1", "c", max=0.2),
            make_device_rollup("r1", metric="cpu_util", max=0.99),
        ]
        out = capacity_overview(rollups)
        assert out.util_rollups == 3
        assert out.above_threshold == 2
        assert out.threshold == 0.85
        assert out.soonest_object_id == "r1:b:EGRESS"
        assert out.soonest_metric == "util_egress"

    def test_empty(self):
        out = capacity_overview([])
        assert out.util_rollups == 0
        assert out.soonest_forecast is None


class TestVrfSummaryRows:
    def test_routes_neighbors_and_hotspots(self):
        route_scale = [RouteScaleRow(device_name="r1", vrf="blue", ipv4_routes=120, ipv6_routes=4)]
        neighbors = [
            BgpNeighborRow(device_name="r1", vrf="blue", session_state="ESTABLISHED"),
            BgpNeighborRow(device_name="r1", vrf="blue", session_state="ACTIVE"),
            BgpNeighborRow(device_name="r2", vrf="red", session_state="ESTABLISHED"),
        ]
        rollups = [
            make_iface_rollup("r1", "a", p95=0.4, max=0.6, vrf="blue"),
            make_iface_rollup("r1", "b", p95=0.7, max=0.5, vrf="blue", forecast="2026-12-01T00:00:00Z"),
            make_iface_rollup("r1", "c", p95=0.9, max=0.99, vrf="blue", window="30d"),
        ]
        rows = vrf_summary_rows(route_scale, neighbors, rollups, "7d")
        assert [r.id for r in rows] == ["r1||blue", "r2||red"]
        blue = rows[0]
        assert blue.ipv4_routes == 120
        assert blue.bgp_neighbors == 2
        assert blue.bgp_established == 1
        assert blue.max_iface_max == 0.6
        assert blue.max_iface_p95 == 0.7
        assert blue.soonest_forecast == "2026-12-01T00:00:00Z"
        assert rows[1].max_iface_max is None
