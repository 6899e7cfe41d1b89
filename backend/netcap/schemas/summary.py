from typing import List, Optional

from pydantic import Field, computed_field

from netcap.schemas.base import CamelModel
from netcap.services.headroom import HOT_UTIL_THRESHOLD, safe_ratio


class GroupSummaryRow(CamelModel):
    group: str
    count: int = 0
    hot_count: int = 0
    max_p95: Optional[float] = None
    max_p95_gbps: Optional[float] = None
    max_max: Optional[float] = None
    sum_speed_gbps: Optional[float] = None
    sum_p95_gbps: Optional[float] = None
    sum_max_gbps: Optional[float] = None
    p95_count: Optional[int] = None
    soonest_forecast: Optional[str] = None
    device_count: int = 0
    ipv4_routes_sum: Optional[int] = None
    ipv6_routes_sum: Optional[int] = None
    bgp_neighbors: Optional[int] = None
    bgp_established: Optional[int] = None

    @computed_field(alias="utilAtP95")
    @property
    def util_at_p95(self) -> Optional[float]:
        return safe_ratio(self.sum_p95_gbps, self.sum_speed_gbps)

    @computed_field(alias="headroomGbps")
    @property
    def headroom_gbps(self) -> Optional[float]:
        if not self.sum_speed_gbps or self.sum_p95_gbps is None:
            return None
        return self.sum_speed_gbps * HOT_UTIL_THRESHOLD - self.sum_p95_gbps

    @computed_field(alias="p95Coverage")
    @property
    def p95_coverage(self) -> Optional[float]:
        if self.p95_count is None:
            return None
        return safe_ratio(self.p95_count, self.count)


class InterfaceGrowthRow(CamelModel):
    id: str
    device: str
    iface: str
    dir: str
    location_name: Optional[str] = None
    tag_names: Optional[List[str]] = None
    group_names: Optional[List[str]] = None
    speed_mbps: Optional[float] = None
    now_p95: Optional[float] = None
    prev_p95: Optional[float] = None
    delta_p95: Optional[float] = None
    delta_p95_gbps: Optional[float] = None
    now_max: Optional[float] = None
    prev_max: Optional[float] = None
    delta_max: Optional[float] = None
    now_forecast: Optional[str] = None


class DeviceGrowthRow(CamelModel):
    id: str
    device: str
    location_name: Optional[str] = None
    tag_names: Optional[List[str]] = None
    group_names: Optional[List[str]] = None
    vendor: Optional[str] = None
    os: Optional[str] = None
    model: Optional[str] = None
    now_p95: Optional[float] = None
    prev_p95: Optional[float] = None
    delta_p95: Optional[float] = None
    now_max: Optional[float] = None
    prev_max: Optional[float] = None
    delta_max: Optional[float] = None
    now_forecast: Optional[str] = None


class LagMemberRow(CamelModel):
    interface_name: str
    speed_mbps: Optional[float] = None
    worst_direction: Optional[str] = None
    p95_util: Optional[float] = None
    max_util: Optional[float] = None
    forecast: Optional[str] = None


class LagImbalanceRow(CamelModel):
    id: str
    device_name: str
    lag_name: str
    member_count: int
    total_speed_mbps: Optional[float] = None
    worst_member_max_util: float
    spread: float
    hot_members: int = 0
    soonest_forecast: Optional[str] = None
    members: List[LagMemberRow] = Field(default_factory=list)


class VrfSummaryRow(CamelModel):
    id: str
    device_name: str
    vrf: str
    ipv4_routes: int = 0
    ipv6_routes: int = 0
    bgp_neighbors: int = 0
    bgp_established: int = 0
    max_iface_max: Optional[float] = None
    max_iface_p95: Optional[float] = None
    soonest_forecast: Optional[str] = None


class CapacityOverview(CamelModel):
    util_rollups: int = 0
    above_threshold: int = 0
    threshold: float = HOT_UTIL_THRESHOLD
    soonest_object_id: Optional[str] = None
    soonest_metric: Optional[str] = None
    soonest_forecast: Optional[str] = None
