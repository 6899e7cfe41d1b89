"""
Capacity API: rollup projections, growth, LAG imbalance, path bottlenecks and
upgrade planning over caller-supplied snapshots, plus saved path batches.
"""
import io
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse, StreamingResponse
from pydantic import Field

from netcap.config import settings
from netcap.schemas.base import CamelModel
from netcap.schemas.batch import SavedPathBatch, SavedPathBatchCreate, SavedPathBatchList
from netcap.schemas.flow import FlowParseRequest, FlowParseResult
from netcap.schemas.inventory import BgpNeighborRow, InventoryInterface, RouteScaleRow
from netcap.schemas.path import (
    PathBatchRequest,
    PathBatchResponse,
    PathBottleneckResult,
    PathBottleneckSummaryRow,
)
from netcap.schemas.rollup import (
    CapacityRollup,
    DeviceRow,
    FilterOptions,
    GroupBy,
    InterfaceRow,
    RowFilters,
    WindowLabel,
)
from netcap.schemas.summary import (
    CapacityOverview,
    DeviceGrowthRow,
    GroupSummaryRow,
    InterfaceGrowthRow,
    LagImbalanceRow,
    VrfSummaryRow,
)
from netcap.schemas.upgrade import PlanSimulation, UpgradeCandidate, UpgradeImpactRow
from netcap.services.batch_store import (
    BatchStoreError,
    delete_batch,
    get_batch_store,
    load_batches,
    save_batch,
)
from netcap.services.capacity_overview import capacity_overview, vrf_summary_rows
from netcap.services.export import (
    batch_report_markdown,
    bottleneck_summary_csv,
    path_results_csv,
    upgrade_impact_csv,
)
from netcap.services.flow_parser import parse_flow_queries
from netcap.services.group_summary import aggregate_device_groups, aggregate_interface_groups
from netcap.services.growth import device_growth, interface_growth
from netcap.services.lag_imbalance import detect_lag_imbalance
from netcap.services.path_bottleneck import run_path_batch, summarize_bottlenecks
from netcap.services.rollup_projection import filter_options, project_device_rows, project_interface_rows
from netcap.services.upgrade_plan import simulate_plan, upgrade_impact_rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/capacity", tags=["Capacity"])


# ── Request bodies ────────────────────────────────────────────────────────────

class RowsRequest(CamelModel):
    rollups: List[CapacityRollup] = Field(default_factory=list)
    inventory: List[InventoryInterface] = Field(default_factory=list)
    window: WindowLabel = "7d"
    metric: str = "util_ingress"
    filter: str = ""
    filters: RowFilters = Field(default_factory=RowFilters)


class GroupsRequest(RowsRequest):
    group_by: GroupBy = "location"
    route_scale: List[RouteScaleRow] = Field(default_factory=list)
    bgp_neighbors: List[BgpNeighborRow] = Field(default_factory=list)


class GrowthRequest(CamelModel):
    now: List[CapacityRollup] = Field(default_factory=list)
    prev: List[CapacityRollup] = Field(default_factory=list)
    window: WindowLabel = "7d"
    metric: Optional[str] = None
    filters: RowFilters = Field(default_factory=RowFilters)


class LagRequest(CamelModel):
    interfaces: List[InventoryInterface] = Field(default_factory=list)
    rollups: List[CapacityRollup] = Field(default_factory=list)
    window: WindowLabel = "7d"


class VrfSummaryRequest(CamelModel):
    route_scale: List[RouteScaleRow] = Field(default_factory=list)
    bgp_neighbors: List[BgpNeighborRow] = Field(default_factory=list)
    rollups: List[CapacityRollup] = Field(default_factory=list)
    window: WindowLabel = "7d"


class OverviewRequest(CamelModel):
    rollups: List[CapacityRollup] = Field(default_factory=list)


class FilterOptionsRequest(CamelModel):
    rollups: List[CapacityRollup] = Field(default_factory=list)
    window: Optional[WindowLabel] = None


class PathItemsRequest(CamelModel):
    items: List[PathBottleneckResult] = Field(default_factory=list)
    candidates: List[UpgradeCandidate] = Field(default_factory=list)


class PlanRequest(PathItemsRequest):
    selected_upgrade_ids: Optional[List[str]] = None


class ReportRequest(CamelModel):
    batch: PathBatchResponse
    candidates: List[UpgradeCandidate] = Field(default_factory=list)
    network_label: Optional[str] = None


# ── Rollup projections ────────────────────────────────────────────────────────

@router.post("/interfaces/rows", response_model=List[InterfaceRow])
async def interface_rows(body: RowsRequest):
    return project_interface_rows(
        body.rollups, body.window, body.metric, body.filter, body.filters, body.inventory,
    )


@router.post("/devices/rows", response_model=List[DeviceRow])
async def device_rows(body: RowsRequest):
    return project_device_rows(body.rollups, body.window, body.metric, body.filter, body.filters)


@router.post("/filter-options", response_model=FilterOptions)
async def rollup_filter_options(body: FilterOptionsRequest):
    return filter_options(body.rollups, body.window)


@router.post("/interfaces/groups", response_model=List[GroupSummaryRow])
async def interface_groups(body: GroupsRequest):
    rows = project_interface_rows(
        body.rollups, body.window, body.metric, body.filter, body.filters, body.inventory,
    )
    return aggregate_interface_groups(rows, body.group_by, body.metric, body.route_scale, body.bgp_neighbors)


@router.post("/devices/groups", response_model=List[GroupSummaryRow])
async def device_groups(body: GroupsRequest):
    if body.group_by == "vrf":
        raise HTTPException(status_code=400, detail="Device groups support location, tag or group")
    rows = project_device_rows(body.rollups, body.window, body.metric, body.filter, body.filters)
    return aggregate_device_groups(rows, body.group_by)


@router.post("/growth/interfaces", response_model=List[InterfaceGrowthRow])
async def growth_interfaces(body: GrowthRequest):
    return interface_growth(body.now, body.prev, body.window, body.metric or "util_ingress", body.filters)


@router.post("/growth/devices", response_model=List[DeviceGrowthRow])
async def growth_devices(body: GrowthRequest):
    return device_growth(body.now, body.prev, body.window, body.metric or "cpu_util", body.filters)


@router.post("/lag-imbalance", response_model=List[LagImbalanceRow])
async def lag_imbalance(body: LagRequest):
    return detect_lag_imbalance(body.interfaces, body.rollups, body.window)


@router.post("/vrf-summary", response_model=List[VrfSummaryRow])
async def vrf_summary(body: VrfSummaryRequest):
    return vrf_summary_rows(body.route_scale, body.bgp_neighbors, body.rollups, body.window)


@router.post("/overview", response_model=CapacityOverview)
async def overview(body: OverviewRequest):
    return capacity_overview(body.rollups)


# ── Path bottlenecks and upgrade planning ─────────────────────────────────────

@router.post("/paths/parse", response_model=FlowParseResult)
async def parse_paths(body: FlowParseRequest):
    return parse_flow_queries(body.text)


@router.post("/paths/analyze", response_model=PathBatchResponse)
async def analyze_paths(body: PathBatchRequest):
    if len(body.queries) > settings.MAX_BATCH_QUERIES:
        raise HTTPException(
            status_code=400,
            detail=f"Batch has {len(body.queries)} queries; the limit is {settings.MAX_BATCH_QUERIES}",
        )
    return run_path_batch(body)


@router.post("/paths/summary", response_model=List[PathBottleneckSummaryRow])
async def path_summary(body: PathItemsRequest):
    return summarize_bottlenecks(body.items)


@router.post("/paths/upgrades", response_model=List[UpgradeImpactRow])
async def path_upgrades(body: PathItemsRequest):
    return upgrade_impact_rows(summarize_bottlenecks(body.items), body.candidates)


@router.post("/paths/plan", response_model=PlanSimulation)
async def path_plan(body: PlanRequest):
    return simulate_plan(body.items, body.candidates, body.selected_upgrade_ids)


def _csv_response(text: str, filename: str) -> StreamingResponse:
    output = io.StringIO(text)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/paths/export.csv")
async def export_paths_csv(body: PathBatchResponse):
    return _csv_response(path_results_csv(body), "path-bottlenecks.csv")


@router.post("/paths/summary.csv")
async def export_summary_csv(body: PathItemsRequest):
    return _csv_response(bottleneck_summary_csv(summarize_bottlenecks(body.items)), "bottleneck-summary.csv")


@router.post("/paths/upgrades.csv")
async def export_upgrades_csv(body: PathItemsRequest):
    rows = upgrade_impact_rows(summarize_bottlenecks(body.items), body.candidates)
    return _csv_response(upgrade_impact_csv(rows), "upgrade-impact.csv")


@router.post("/paths/report.md", response_class=PlainTextResponse)
async def export_paths_report(body: ReportRequest):
    summary = summarize_bottlenecks(body.batch.items)
    upgrades = upgrade_impact_rows(summary, body.candidates)
    return PlainTextResponse(
        batch_report_markdown(body.batch, summary, upgrades, body.network_label),
        media_type="text/markdown",
    )


# ── Saved path batches ────────────────────────────────────────────────────────

@router.get("/batches/{workspace_id}/{network_ref}", response_model=SavedPathBatchList)
async def list_batches(workspace_id: str, network_ref: str, store=Depends(get_batch_store)):
    try:
        batches = await load_batches(store, workspace_id, network_ref)
    except BatchStoreError as e:
        logger.warning("Saved batch list failed for %s/%s: %s", workspace_id, network_ref, e)
        raise HTTPException(status_code=503, detail="Saved batch storage unavailable")
    return SavedPathBatchList(workspace_id=workspace_id, network_ref=network_ref, batches=batches)


@router.put("/batches/{workspace_id}/{network_ref}", response_model=SavedPathBatch)
async def put_batch(workspace_id: str, network_ref: str, body: SavedPathBatchCreate,
                    store=Depends(get_batch_store)):
    try:
        return await save_batch(store, workspace_id, network_ref, body)
    except BatchStoreError as e:
        logger.warning("Saving batch failed for %s/%s: %s", workspace_id, network_ref, e)
        raise HTTPException(status_code=503, detail="Saved batch storage unavailable")


@router.delete("/batches/{workspace_id}/{network_ref}/{batch_id}")
async def remove_batch(workspace_id: str, network_ref: str, batch_id: str,
                       store=Depends(get_batch_store)):
    try:
        deleted = await delete_batch(store, workspace_id, network_ref, batch_id)
    except BatchStoreError as e:
        logger.warning("Deleting batch failed for %s/%s: %s", workspace_id, network_ref, e)
        raise HTTPException(status_code=503, detail="Saved batch storage unavailable")
    if not deleted:
        raise HTTPException(status_code=404, detail="Saved batch not found")
    return {"deleted": batch_id}
