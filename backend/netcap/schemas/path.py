from typing import List, Literal, Optional

from pydantic import Field

from netcap.schemas.base import CamelModel
from netcap.schemas.flow import FlowQuery
from netcap.schemas.rollup import CapacityRollup, WindowLabel

BottleneckSource = Literal["rollup", "perf_fallback"]


class PathHop(CamelModel):
    device_name: str
    ingress_interface: Optional[str] = None
    egress_interface: Optional[str] = None


class FlowPath(CamelModel):
    """Path-service output for one submitted flow."""

    hops: List[PathHop] = Field(default_factory=list)
    forwarding_outcome: Optional[str] = None
    security_outcome: Optional[str] = None
    forward_query_url: Optional[str] = None
    error: Optional[str] = None


class PerfSample(CamelModel):
    """On-demand utilization measurement for an interface without a rollup."""

    device_name: str
    interface_name: str
    direction: str
    p95_util: Optional[float] = None
    max_util: Optional[float] = None
    speed_mbps: Optional[float] = None
    threshold: Optional[float] = None


class PathNote(CamelModel):
    code: str
    message: str


class PathBottleneck(CamelModel):
    device_name: str
    interface_name: str
    direction: str
    source: BottleneckSource
    speed_mbps: Optional[float] = None
    threshold: Optional[float] = None
    headroom_gbps: Optional[float] = None
    headroom_util: Optional[float] = None
    p95_util: Optional[float] = None
    p95_gbps: Optional[float] = None
    max_util: Optional[float] = None
    forecast_crossing_ts: Optional[str] = None


class PathBottleneckResult(CamelModel):
    index: int
    query: FlowQuery
    forwarding_outcome: Optional[str] = None
    security_outcome: Optional[str] = None
    forward_query_url: Optional[str] = None
    bottleneck: Optional[PathBottleneck] = None
    hops: Optional[List[PathHop]] = None
    notes: List[PathNote] = Field(default_factory=list)
    unmatched_hop_interfaces_sample: Optional[List[str]] = None
    error: Optional[str] = None


class PathCoverage(CamelModel):
    hop_interface_keys: int = 0
    rollup_matched: int = 0
    perf_fallback_used: int = 0
    unknown: int = 0
    truncated: bool = False
    unmatched_hop_interfaces_sample: List[str] = Field(default_factory=list)


class PathBatchRequest(CamelModel):
    window: WindowLabel = "7d"
    snapshot_id: Optional[str] = None
    include_hops: bool = False
    queries: List[FlowQuery]
    paths: List[FlowPath] = Field(default_factory=list)
    rollups: List[CapacityRollup] = Field(default_factory=list)
    perf_samples: List[PerfSample] = Field(default_factory=list)


class PathBatchResponse(CamelModel):
    snapshot_id: str = ""
    window: str
    coverage: PathCoverage
    items: List[PathBottleneckResult]


class PathBottleneckSummaryRow(CamelModel):
    id: str
    device_name: str
    interface_name: str
    direction: str
    count: int = 0
    min_headroom_gbps: Optional[float] = None
    min_headroom_util: Optional[float] = None
    worst_max_util: Optional[float] = None
    soonest_forecast: Optional[str] = None
