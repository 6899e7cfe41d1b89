from typing import Any, List, Literal, Optional

from pydantic import Field

from netcap.schemas.base import CamelModel

WindowLabel = Literal["24h", "7d", "30d"]
GroupBy = Literal["none", "location", "tag", "group", "vrf"]


class CapacityRollup(CamelModel):
    """One precomputed percentile/max/slope summary for one object and window."""

    object_type: str                    # interface, device
    window: str                         # 24h, 7d, 30d
    metric: str
    object_id: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    p95: Optional[float] = None
    p99: Optional[float] = None
    max: Optional[float] = None
    slope_per_day: Optional[float] = None
    forecast_crossing_ts: Optional[str] = None
    threshold: Optional[float] = None
    samples: int = 0


class RowFilters(CamelModel):
    location: str = "all"
    vrf: str = "all"
    tag: str = "all"
    group: str = "all"


class InterfaceRow(CamelModel):
    id: str
    device: str
    iface: str
    dir: str
    metric: str
    metric_type: str = "UTILIZATION"        # UTILIZATION, PACKET_LOSS, ERROR
    window: str
    aggregate_id: Optional[str] = None
    is_aggregate: bool = False
    vrf: Optional[str] = None
    vrf_names: Optional[List[str]] = None
    location_name: Optional[str] = None
    tag_names: Optional[List[str]] = None
    group_names: Optional[List[str]] = None
    speed_mbps: Optional[float] = None
    admin: Optional[str] = None
    oper: Optional[str] = None
    p95: Optional[float] = None
    p99: Optional[float] = None
    max: Optional[float] = None
    slope_per_day: Optional[float] = None
    forecast_crossing_ts: Optional[str] = None
    threshold: Optional[float] = None
    samples: int = 0


class DeviceRow(CamelModel):
    id: str
    device: str
    metric: str
    metric_type: str = "CPU"                # CPU, MEMORY
    window: str
    location_name: Optional[str] = None
    tag_names: Optional[List[str]] = None
    group_names: Optional[List[str]] = None
    vendor: Optional[str] = None
    os: Optional[str] = None
    model: Optional[str] = None
    p95: Optional[float] = None
    p99: Optional[float] = None
    max: Optional[float] = None
    slope_per_day: Optional[float] = None
    forecast_crossing_ts: Optional[str] = None
    threshold: Optional[float] = None
    samples: int = 0


class FilterOptions(CamelModel):
    locations: List[str] = Field(default_factory=list)
    vrfs: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    groups: List[str] = Field(default_factory=list)
