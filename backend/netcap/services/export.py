"""
Exports: CSV tables and the Markdown capacity memo for a path batch.

CSV fields that contain a quote, comma, CR or LF are wrapped in quotes with
embedded quotes doubled.
"""
from typing import Iterable, List, Optional, Sequence

from netcap.schemas.path import PathBatchResponse, PathBottleneckSummaryRow
from netcap.schemas.upgrade import UpgradeImpactRow
from netcap.services.headroom import finite

PATH_RESULT_HEADERS = [
    "index", "srcIp", "dstIp", "ipProto", "dstPort",
    "forwardingOutcome", "securityOutcome", "forwardQueryUrl",
    "bottleneckDevice", "bottleneckInterface", "direction", "source",
    "speedMbps", "headroomGbps", "headroomUtil", "p95Util", "maxUtil",
    "forecastCrossingTs", "error",
]

SUMMARY_HEADERS = [
    "deviceName", "interfaceName", "direction", "flows",
    "minHeadroomGbps", "minHeadroomUtil", "worstMaxUtil", "soonestForecast",
]

UPGRADE_HEADERS = [
    "deviceName", "interfaceName", "direction", "flows",
    "minHeadroomGbps", "minHeadroomUtil", "recommendedSpeedMbps", "requiredSpeedMbps", "reason",
]


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def csv_escape(value) -> str:
    s = _cell(value)
    if any(ch in s for ch in '",\r\n'):
        return '"' + s.replace('"', '""') + '"'
    return s


def to_csv(headers: Sequence[str], rows: Iterable[Sequence]) -> str:
    lines = [",".join(csv_escape(h) for h in headers)]
    for row in rows:
        lines.append(",".join(csv_escape(v) for v in row))
    return "\n".join(lines) + "\n"


def proto_label(proto) -> str:
    n = finite(proto)
    if n is None:
        return ""
    n = int(n)
    return {6: "tcp", 17: "udp", 1: "icmp"}.get(n, str(n))


def fmt_pct01(value) -> str:
    v = finite(value)
    if v is None:
        return "—"
    return f"{v * 100:.1f}%"


def fmt_speed_mbps(speed_mbps) -> str:
    n = finite(speed_mbps)
    if n is None or n <= 0:
        return "—"
    if n >= 10_000:
        return f"{n / 1000:.0f}G"
    if n >= 1000:
        return f"{n / 1000:.1f}G"
    return f"{n:g}M"


def path_results_csv(batch: PathBatchResponse) -> str:
    rows = []
    for it in batch.items:
        q = it.query
        b = it.bottleneck
        rows.append([
            it.index, q.src_ip, q.dst_ip, proto_label(q.ip_proto), q.dst_port,
            it.forwarding_outcome, it.security_outcome, it.forward_query_url,
            b.device_name if b else None,
            b.interface_name if b else None,
            b.direction if b else None,
            b.source if b else None,
            b.speed_mbps if b else None,
            b.headroom_gbps if b else None,
            b.headroom_util if b else None,
            b.p95_util if b else None,
            b.max_util if b else None,
            b.forecast_crossing_ts if b else None,
            it.error,
        ])
    return to_csv(PATH_RESULT_HEADERS, rows)


def bottleneck_summary_csv(rows: Iterable[PathBottleneckSummaryRow]) -> str:
    return to_csv(SUMMARY_HEADERS, [
        [r.device_name, r.interface_name, r.direction, r.count,
         r.min_headroom_gbps, r.min_headroom_util, r.worst_max_util, r.soonest_forecast]
        for r in rows
    ])


def upgrade_impact_csv(rows: Iterable[UpgradeImpactRow]) -> str:
    return to_csv(UPGRADE_HEADERS, [
        [r.device_name, r.interface_name, r.direction, r.flows,
         r.min_headroom_gbps, r.min_headroom_util, r.recommended_speed_mbps,
         r.required_speed_mbps, r.reason]
        for r in rows
    ])


def _headroom_label(r: PathBottleneckSummaryRow) -> str:
    if r.min_headroom_gbps is not None:
        return f"{r.min_headroom_gbps:.2f}G"
    if r.min_headroom_util is not None:
        return f"{fmt_pct01(r.min_headroom_util)} util"
    return "—"


def batch_report_markdown(
    batch: PathBatchResponse,
    summary_rows: List[PathBottleneckSummaryRow],
    upgrade_rows: List[UpgradeImpactRow],
    network_label: Optional[str] = None,
) -> str:
    lines = ["# Capacity Memo", ""]
    if network_label:
        lines.append(f"- Network: `{network_label}`")
    lines.append(f"- Window: `{batch.window}`")
    lines.append(f"- Paths snapshot: `{batch.snapshot_id or 'latest'}`")
    lines.append("")

    lines += ["## Coverage", ""]
    c = batch.coverage
    lines.append(f"- hop-keys: {c.hop_interface_keys}")
    lines.append(f"- rollup matched: {c.rollup_matched}")
    lines.append(f"- perf fallback used: {c.perf_fallback_used}")
    lines.append(f"- unknown: {c.unknown}")
    lines.append(f"- fallback truncated: {'yes' if c.truncated else 'no'}")
    lines.append("")
    if c.unmatched_hop_interfaces_sample:
        lines.append("Unmatched hop interfaces (sample):")
        lines.append("```")
        lines.extend(c.unmatched_hop_interfaces_sample)
        lines.append("```")
        lines.append("")

    lines += ["## Top Bottlenecks (Batch)", ""]
    lines.append("| device | interface | dir | flows | min headroom | soonest forecast |")
    lines.append("|---|---|---:|---:|---:|---:|")
    for r in summary_rows[:20]:
        forecast = (r.soonest_forecast or "")[:10] or "—"
        lines.append(
            f"| `{r.device_name}` | `{r.interface_name}` | `{r.direction}` | {r.count} "
            f"| {_headroom_label(r)} | `{forecast}` |"
        )
    lines.append("")

    if upgrade_rows:
        lines += ["## Implied Upgrades (From This Batch)", ""]
        lines.append("| device | interface | dir | flows | rec | reason |")
        lines.append("|---|---|---:|---:|---:|---|")
        for r in upgrade_rows[:10]:
            reason = f"`{r.reason}`" if r.reason else "—"
            lines.append(
                f"| `{r.device_name}` | `{r.interface_name}` | `{r.direction}` | {r.flows} "
                f"| `{fmt_speed_mbps(r.recommended_speed_mbps)}` | {reason} |"
            )
        lines.append("")

    lines += ["## Notes", ""]
    lines.append(
        "- Paths are computed against a (possibly older) snapshot; rollups are "
        "time-windowed and may reflect more recent utilization."
    )
    lines.append(
        "- Unknown coverage usually means missing rollups and/or missing perf data "
        "for hop interfaces; see the unmatched sample above."
    )
    lines.append(
        "- Upgrade simulations hold p95 traffic constant; treat them as planning estimates."
    )
    lines.append("")
    return "\n".join(lines)
