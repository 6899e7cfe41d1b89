"""
Path bottleneck batch analysis.

For each flow, every hop interface the path traverses is resolved to a
utilization figure: the window's rollup first, then a bounded on-demand perf
lookup, otherwise it is counted as unknown. The bottleneck is the interface
with the least utilization headroom (threshold - p95Util); ties go to the
higher max utilization. Headroom in Gbps is reported alongside whenever the
link speed is known, but it is not used to rank hops so that links of
different speeds are compared in one unit.
"""
import logging
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from netcap.config import settings
from netcap.schemas.flow import FlowQuery
from netcap.schemas.path import (
    FlowPath,
    PathBatchRequest,
    PathBatchResponse,
    PathBottleneck,
    PathBottleneckResult,
    PathBottleneckSummaryRow,
    PathCoverage,
    PathHop,
    PathNote,
    PerfSample,
)
from netcap.schemas.rollup import CapacityRollup
from netcap.services.headroom import (
    HOT_UTIL_THRESHOLD,
    direction_for_metric,
    earlier_forecast,
    finite,
    headroom_gbps,
    headroom_util,
    util_to_gbps,
)
from netcap.services.iface_names import iface_join_key
from netcap.services.rollup_projection import rollup_to_interface_row

logger = logging.getLogger(__name__)

PerfLookup = Callable[[str, str, str], Optional[PerfSample]]

SOURCE_ROLLUP = "rollup"
SOURCE_PERF = "perf_fallback"
UTIL_METRICS = ("util_ingress", "util_egress")


def build_rollup_index(rollups: Iterable[CapacityRollup], window: str) -> dict:
    """(device, interface, direction) -> utilization sample for the window."""
    index: dict[str, dict] = {}
    for r in rollups:
        if r.object_type != "interface" or r.window != window or r.metric not in UTIL_METRICS:
            continue
        row = rollup_to_interface_row(r)
        if not row.device or not row.iface:
            continue
        direction = (row.dir or direction_for_metric(r.metric)).upper()
        key = iface_join_key(row.device, row.iface, direction)
        prev = index.get(key)
        if prev is not None and (finite(r.max) or 0.0) <= (prev["max_util"] or 0.0):
            continue
        index[key] = {
            "p95_util": finite(r.p95),
            "max_util": finite(r.max),
            "speed_mbps": row.speed_mbps,
            "threshold": finite(r.threshold),
            "forecast": row.forecast_crossing_ts,
        }
    return index


def perf_lookup_from_samples(samples: Iterable[PerfSample]) -> PerfLookup:
    by_key = {}
    for s in samples:
        by_key.setdefault(iface_join_key(s.device_name, s.interface_name, s.direction), s)

    def lookup(device: str, iface: str, direction: str) -> Optional[PerfSample]:
        return by_key.get(iface_join_key(device, iface, direction))

    return lookup


def hop_interfaces(hops: Sequence[PathHop]) -> List[Tuple[str, str, str, str]]:
    """Ordered, de-duplicated (key, device, interface, direction) for a path."""
    out = []
    seen = set()
    for hop in hops:
        device = (hop.device_name or "").strip()
        if not device:
            continue
        for iface, direction in ((hop.ingress_interface, "INGRESS"), (hop.egress_interface, "EGRESS")):
            iface = (iface or "").strip()
            if not iface:
                continue
            key = iface_join_key(device, iface, direction)
            if key in seen:
                continue
            seen.add(key)
            out.append((key, device, iface, direction))
    return out


def make_candidate(sample: dict, source: str, device: str, iface: str, direction: str) -> PathBottleneck:
    threshold = sample.get("threshold")
    if threshold is None:
        threshold = HOT_UTIL_THRESHOLD
    speed = sample.get("speed_mbps")
    p95_util = sample.get("p95_util")
    p95_gbps = util_to_gbps(p95_util, speed)
    return PathBottleneck(
        device_name=device,
        interface_name=iface,
        direction=direction,
        source=source,
        speed_mbps=speed,
        threshold=threshold,
        headroom_gbps=headroom_gbps(threshold, speed, p95_gbps),
        headroom_util=headroom_util(threshold, p95_util),
        p95_util=p95_util,
        p95_gbps=p95_gbps,
        max_util=sample.get("max_util"),
        forecast_crossing_ts=sample.get("forecast"),
    )


def pick_bottleneck(candidates: Iterable[PathBottleneck]) -> Optional[PathBottleneck]:
    """Least headroom wins; among equals the higher max utilization."""
    best = None
    best_key = None
    for c in candidates:
        if c.headroom_util is None:
            continue
        key = (c.headroom_util, -(c.max_util if c.max_util is not None else float("-inf")))
        if best_key is None or key < best_key:
            best, best_key = c, key
    return best


class _Resolver:
    """Resolves hop interfaces once per batch and keeps the coverage counters."""

    def __init__(self, rollup_index: dict, perf_fallback: Optional[PerfLookup],
                 max_lookups: int, sample_size: int):
        self.rollup_index = rollup_index
        self.perf_fallback = perf_fallback
        self.max_lookups = max_lookups
        self.sample_size = sample_size
        self.cache: dict[str, Tuple[Optional[dict], Optional[str]]] = {}
        self.lookups = 0
        self.coverage = PathCoverage()

    def _perf(self, device: str, iface: str, direction: str) -> Optional[dict]:
        if self.perf_fallback is None:
            return None
        if self.lookups >= self.max_lookups:
            self.coverage.truncated = True
            return None
        self.lookups += 1
        s = self.perf_fallback(device, iface, direction)
        if s is None:
            return None
        sample = {
            "p95_util": finite(s.p95_util),
            "max_util": finite(s.max_util),
            "speed_mbps": finite(s.speed_mbps),
            "threshold": finite(s.threshold),
            "forecast": None,
        }
        if sample["p95_util"] is None and sample["max_util"] is None:
            return None
        return sample

    def resolve(self, key: str, device: str, iface: str, direction: str):
        if key in self.cache:
            return self.cache[key]
        self.coverage.hop_interface_keys += 1
        sample = self.rollup_index.get(key)
        source = SOURCE_ROLLUP if sample is not None else None
        if sample is None:
            sample = self._perf(device, iface, direction)
            source = SOURCE_PERF if sample is not None else None

        if source == SOURCE_ROLLUP:
            self.coverage.rollup_matched += 1
        elif source == SOURCE_PERF:
            self.coverage.perf_fallback_used += 1
        else:
            self.coverage.unknown += 1
            if len(self.coverage.unmatched_hop_interfaces_sample) < self.sample_size:
                self.coverage.unmatched_hop_interfaces_sample.append(f"{device}:{iface}:{direction}")
        self.cache[key] = (sample, source)
        return sample, source


def _as_path(p: Union[FlowPath, Sequence[PathHop], None]) -> Optional[FlowPath]:
    if p is None or isinstance(p, FlowPath):
        return p
    return FlowPath(hops=list(p))


def analyze_batch(
    flows: Sequence[FlowQuery],
    hops_per_flow: Sequence[Union[FlowPath, Sequence[PathHop]]],
    rollup_index: dict,
    perf_fallback: Optional[PerfLookup] = None,
    include_hops: bool = False,
    max_fallback_lookups: Optional[int] = None,
    sample_size: Optional[int] = None,
) -> Tuple[List[PathBottleneckResult], PathCoverage]:
    resolver = _Resolver(
        rollup_index,
        perf_fallback,
        settings.PERF_FALLBACK_MAX_LOOKUPS if max_fallback_lookups is None else max_fallback_lookups,
        settings.UNMATCHED_SAMPLE_SIZE if sample_size is None else sample_size,
    )

    results = []
    for index, query in enumerate(flows):
        path = _as_path(hops_per_flow[index] if index < len(hops_per_flow) else None)
        result = PathBottleneckResult(index=index, query=query)
        if path is None:
            result.notes.append(PathNote(code="no_path", message="No path returned for this flow."))
            results.append(result)
            continue

        result.forwarding_outcome = path.forwarding_outcome
        result.security_outcome = path.security_outcome
        result.forward_query_url = path.forward_query_url
        result.error = path.error
        if include_hops:
            result.hops = list(path.hops)

        traversed = hop_interfaces(path.hops)
        if not traversed:
            result.notes.append(PathNote(code="no_hops", message="Path has no hop interfaces."))
            results.append(result)
            continue

        candidates = []
        unknown = []
        used_fallback = False
        for key, device, iface, direction in traversed:
            sample, source = resolver.resolve(key, device, iface, direction)
            if sample is None:
                unknown.append(f"{device}:{iface}:{direction}")
                continue
            used_fallback = used_fallback or source == SOURCE_PERF
            candidates.append(make_candidate(sample, source, device, iface, direction))

        result.bottleneck = pick_bottleneck(candidates)
        if used_fallback:
            result.notes.append(PathNote(
                code="perf_fallback",
                message="Some hop interfaces had no rollup; on-demand perf data was used.",
            ))
        if unknown:
            result.notes.append(PathNote(
                code="unknown_utilization",
                message=f"{len(unknown)} of {len(traversed)} hop interfaces have no utilization data.",
            ))
            result.unmatched_hop_interfaces_sample = unknown[:resolver.sample_size]
        if result.bottleneck is None:
            result.notes.append(PathNote(
                code="no_bottleneck",
                message="No hop interface had a p95 utilization to compare.",
            ))
        results.append(result)

    c = resolver.coverage
    logger.info("Path batch: %d flows, %d hop keys (rollup %d, perf %d, unknown %d)%s",
                len(results), c.hop_interface_keys, c.rollup_matched, c.perf_fallback_used,
                c.unknown, " [fallback truncated]" if c.truncated else "")
    return results, c


def run_path_batch(request: PathBatchRequest) -> PathBatchResponse:
    """Entry point for {window, snapshotId?, includeHops?, queries} batches."""
    index = build_rollup_index(request.rollups, request.window)
    lookup = perf_lookup_from_samples(request.perf_samples) if request.perf_samples else None
    items, coverage = analyze_batch(
        request.queries,
        request.paths,
        index,
        perf_fallback=lookup,
        include_hops=request.include_hops,
    )
    return PathBatchResponse(
        snapshot_id=request.snapshot_id or "",
        window=request.window,
        coverage=coverage,
        items=items,
    )


def _inf_if_none(v: Optional[float]) -> float:
    return float("inf") if v is None else v


def summarize_bottlenecks(results: Iterable[PathBottleneckResult]) -> List[PathBottleneckSummaryRow]:
    """What is actually limiting this batch: bottleneck occurrences per interface."""
    rows: dict[str, PathBottleneckSummaryRow] = {}
    for it in results:
        b = it.bottleneck
        if b is None:
            continue
        key = f"{b.device_name}|{b.interface_name}|{b.direction}"
        row = rows.get(key)
        if row is None:
            row = rows[key] = PathBottleneckSummaryRow(
                id=key,
                device_name=b.device_name,
                interface_name=b.interface_name,
                direction=b.direction,
            )
        row.count += 1
        h = finite(b.headroom_gbps)
        if h is not None:
            row.min_headroom_gbps = h if row.min_headroom_gbps is None else min(row.min_headroom_gbps, h)
        hu = finite(b.headroom_util)
        if hu is not None:
            row.min_headroom_util = hu if row.min_headroom_util is None else min(row.min_headroom_util, hu)
        mu = finite(b.max_util)
        if mu is not None:
            row.worst_max_util = mu if row.worst_max_util is None else max(row.worst_max_util, mu)
        row.soonest_forecast = earlier_forecast(row.soonest_forecast, b.forecast_crossing_ts)

    out = list(rows.values())
    out.sort(key=lambda r: (
        -r.count,
        _inf_if_none(r.min_headroom_gbps),
        _inf_if_none(r.min_headroom_util),
        r.id,
    ))
    return out
