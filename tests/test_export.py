from netcap.schemas.flow import FlowQuery
from netcap.schemas.path import (
    PathBatchResponse,
    PathBottleneck,
    PathBottleneckResult,
    PathBottleneckSummaryRow,
    PathCoverage,
)
from netcap.schemas.upgrade import UpgradeImpactRow
from netcap.services.export import (
    PATH_RESULT_HEADERS,
    batch_report_markdown,
    bottleneck_summary_csv,
    csv_escape,
    fmt_pct01,
    fmt_speed_mbps,
    path_results_csv,
    proto_label,
    to_csv,
)


def _batch():
    return PathBatchResponse(
        snapshot_id="snap-1",
        window="7d",
        coverage=PathCoverage(
            hop_interface_keys=3, rollup_matched=2, unknown=1,
            unmatched_hop_interfaces_sample=["r9:Eth1:INGRESS"],
        ),
        items=[
            PathBottleneckResult(
                index=0,
                query=FlowQuery(src_ip="10.0.0.1", dst_ip="10.0.0.2", ip_proto=6, dst_port="443"),
                forwarding_outcome="DELIVERED",
                bottleneck=PathBottleneck(
                    device_name="r1", interface_name="Ethernet1", direction="EGRESS", source="rollup",
                    speed_mbps=10_000, headroom_gbps=4.5, headroom_util=0.45, p95_util=0.4, max_util=0.5,
                ),
            ),
            PathBottleneckResult(index=1, query=FlowQuery(dst_ip="10.0.0.3"), error='no "route", sorry'),
        ],
    )


class TestToCsv:
    def test_plain_values(self):
        assert to_csv(["a", "b"], [[1, None], [True, "x"]]) == "a,b\n1,\ntrue,x\n"

    def test_escaping(self):
        out = to_csv(["v"], [['say "hi"'], ["a,b"], ["line1\nline2"], ["x\ry"], ["plain"]])
        assert out == 'v\n"say ""hi"""\n"a,b"\n"line1\nline2"\n"x\ry"\nplain\n'

    def test_escape_carriage_return(self):
        assert csv_escape("x\ry") == '"x\ry"'
        assert csv_escape(None) == ""


class TestPathResultsCsv:
    def test_header_and_rows(self):
        lines = path_results_csv(_batch()).split("\n")
        assert lines[0] == ",".join(PATH_RESULT_HEADERS)
        assert lines[1].startswith("0,10.0.0.1,10.0.0.2,tcp,443,DELIVERED,,,r1,Ethernet1,EGRESS,rollup,10000")
        assert lines[2].endswith(',"no ""route"", sorry"')
        assert lines[3] == ""


class TestSummaryCsv:
    def test_rows(self):
        rows = [PathBottleneckSummaryRow(id="r1|Eth1|EGRESS", device_name="r1", interface_name="Eth1",
                                         direction="EGRESS", count=3, min_headroom_gbps=1.5)]
        out = bottleneck_summary_csv(rows)
        assert out.splitlines()[1] == "r1,Eth1,EGRESS,3,1.5,,,"


class TestLabels:
    def test_proto_label(self):
        assert proto_label(6) == "tcp"
        assert proto_label(17) == "udp"
        assert proto_label(1) == "icmp"
        assert proto_label(47) == "47"
        assert proto_label(None) == ""

    def test_speed_label(self):
        assert fmt_speed_mbps(100_000) == "100G"
        assert fmt_speed_mbps(2500) == "2.5G"
        assert fmt_speed_mbps(100) == "100M"
        assert fmt_speed_mbps(0) == "—"
        assert fmt_speed_mbps(None) == "—"

    def test_pct(self):
        assert fmt_pct01(0.456) == "45.6%"
        assert fmt_pct01(None) == "—"


class TestBatchReport:
    def test_memo_sections(self):
        batch = _batch()
        summary = [PathBottleneckSummaryRow(id="r1|Ethernet1|EGRESS", device_name="r1",
                                            interface_name="Ethernet1", direction="EGRESS", count=1,
                                            min_headroom_gbps=4.5, soonest_forecast="2026-12-01T00:00:00Z")]
        upgrades = [UpgradeImpactRow(id="r1|eth1|EGRESS", device_name="r1", interface_name="Ethernet1",
                                     direction="EGRESS", flows=1, recommended_speed_mbps=40_000)]
        memo = batch_report_markdown(batch, summary, upgrades, network_label="prod")
        assert memo.startswith("# Capacity Memo\n")
        assert "- Network: `prod`" in memo
        assert "- Paths snapshot: `snap-1`" in memo
        assert "- unknown: 1" in memo
        assert "r9:Eth1:INGRESS" in memo
        assert "| `r1` | `Ethernet1` | `EGRESS` | 1 | 4.50G | `2026-12-01` |" in memo
        assert "## Implied Upgrades (From This Batch)" in memo
        assert "`40G`" in memo
        assert "## Notes" in memo

    def test_top_twenty_bottlenecks_only(self):
        summary = [
            PathBottleneckSummaryRow(id=f"r{i}", device_name=f"r{i}", interface_name="e", direction="EGRESS",
                                     count=1)
            for i in range(25)
        ]
        memo = batch_report_markdown(_batch(), summary, [])
        assert "`r19`" in memo
        assert "`r20`" not in memo
        assert "Implied Upgrades" not in memo
