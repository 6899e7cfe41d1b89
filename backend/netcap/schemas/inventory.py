from typing import List, Optional

from pydantic import AliasChoices, Field

from netcap.schemas.base import CamelModel

AGGREGATE_INTERFACE_TYPE = "IF_AGGREGATE"


class InventoryInterface(CamelModel):
    device_name: str
    interface_name: str
    speed_mbps: Optional[float] = None
    aggregate_id: Optional[str] = None
    interface_type: Optional[str] = None
    # Older inventory exports use the aggregation* field names.
    configured_member_names: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices(
            "configuredMemberNames", "aggregationConfiguredMemberNames", "configured_member_names",
        ),
    )
    actual_member_names: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices(
            "actualMemberNames", "aggregationMemberNames", "actual_member_names",
        ),
    )
    admin_status: Optional[str] = None
    oper_status: Optional[str] = None
    vrf: Optional[str] = None
    vrf_names: Optional[List[str]] = None
    tag_names: Optional[List[str]] = None
    group_names: Optional[List[str]] = None
    location_name: Optional[str] = None

    @property
    def is_aggregate(self) -> bool:
        return (self.interface_type or "").strip() == AGGREGATE_INTERFACE_TYPE

    @property
    def member_names(self) -> List[str]:
        """Configured members win; the operational list is only a fallback."""
        return list(self.configured_member_names or self.actual_member_names or [])


class RouteScaleRow(CamelModel):
    device_name: str
    vrf: str
    ipv4_routes: int = 0
    ipv6_routes: int = 0


class BgpNeighborRow(CamelModel):
    device_name: str
    vrf: str
    neighbor_address: Optional[str] = None
    session_state: Optional[str] = None

    @property
    def is_established(self) -> bool:
        return "ESTABLISHED" in (self.session_state or "").upper()
