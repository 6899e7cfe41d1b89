from typing import List, Literal, Optional

from pydantic import Field

from netcap.schemas.base import CamelModel

CONSTANT_TRAFFIC_ASSUMPTION = (
    "Approximation: traffic (p95 Gbps) is held constant and utilization scales "
    "inversely with link speed. Planning aid only, not a guarantee."
)


class UpgradeCandidate(CamelModel):
    scope_type: Literal["link", "lag"] = "link"
    device: str
    name: str
    members: Optional[List[str]] = None
    speed_mbps: Optional[float] = None
    worst_direction: str = ""
    p95_util: Optional[float] = None
    max_util: Optional[float] = None
    required_speed_mbps: Optional[float] = None
    recommended_speed_mbps: Optional[float] = None
    reason: Optional[str] = None


class UpgradeImpactRow(CamelModel):
    id: str
    device_name: str
    interface_name: str
    direction: str
    flows: int
    min_headroom_gbps: Optional[float] = None
    min_headroom_util: Optional[float] = None
    recommended_speed_mbps: Optional[float] = None
    required_speed_mbps: Optional[float] = None
    reason: Optional[str] = None


class PlanSimItem(CamelModel):
    index: int
    before_headroom_gbps: Optional[float] = None
    before_headroom_util: Optional[float] = None
    after_headroom_gbps: Optional[float] = None
    after_headroom_util: Optional[float] = None
    after_util: Optional[float] = None
    applied_upgrade_id: Optional[str] = None
    applied_speed_mbps: Optional[float] = None
    improved: bool = False
    reason: Optional[str] = None


class PlanSimSummary(CamelModel):
    total_flows: int = 0
    with_bottleneck: int = 0
    simulated: int = 0
    cannot_simulate: int = 0
    at_risk_before: int = 0
    at_risk_after: int = 0
    improved: int = 0


class PlanSimulation(CamelModel):
    summary: PlanSimSummary
    items: List[PlanSimItem] = Field(default_factory=list)
    selected_upgrade_ids: List[str] = Field(default_factory=list)
    approximation: bool = True
    assumption: str = CONSTANT_TRAFFIC_ASSUMPTION
