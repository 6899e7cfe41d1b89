from netcap.schemas.rollup import CapacityRollup, RowFilters, InterfaceRow, DeviceRow, FilterOptions
from netcap.schemas.inventory import InventoryInterface, RouteScaleRow, BgpNeighborRow
from netcap.schemas.flow import FlowQuery, FlowParseResult, FlowParseRequest
from netcap.schemas.path import (
    PathHop, FlowPath, PerfSample, PathBottleneck, PathBottleneckResult, PathCoverage,
    PathBatchRequest, PathBatchResponse, PathBottleneckSummaryRow,
)
from netcap.schemas.summary import (
    GroupSummaryRow, InterfaceGrowthRow, DeviceGrowthRow, LagImbalanceRow, VrfSummaryRow, CapacityOverview,
)
from netcap.schemas.upgrade import UpgradeCandidate, UpgradeImpactRow, PlanSimulation
from netcap.schemas.batch import SavedPathBatch, SavedPathBatchCreate, SavedPathBatchList

__all__ = [
    "CapacityRollup", "RowFilters", "InterfaceRow", "DeviceRow", "FilterOptions",
    "InventoryInterface", "RouteScaleRow", "BgpNeighborRow",
    "FlowQuery", "FlowParseResult", "FlowParseRequest",
    "PathHop", "FlowPath", "PerfSample", "PathBottleneck", "PathBottleneckResult", "PathCoverage",
    "PathBatchRequest", "PathBatchResponse", "PathBottleneckSummaryRow",
    "GroupSummaryRow", "InterfaceGrowthRow", "DeviceGrowthRow", "LagImbalanceRow", "VrfSummaryRow",
    "CapacityOverview",
    "UpgradeCandidate", "UpgradeImpactRow", "PlanSimulation",
    "SavedPathBatch", "SavedPathBatchCreate", "SavedPathBatchList",
]
