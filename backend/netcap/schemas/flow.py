from ipaddress import ip_network
from typing import List, Optional

from pydantic import Field, field_validator

from netcap.schemas.base import CamelModel

PROTOCOL_NUMBERS = {"tcp": 6, "udp": 17, "icmp": 1}


class FlowQuery(CamelModel):
    """Normalized flow descriptor submitted to the path service."""

    src_ip: Optional[str] = None
    src_port: Optional[str] = None
    dst_ip: str
    dst_port: Optional[str] = None
    ip_proto: Optional[int] = Field(default=None, ge=0, le=255)

    @field_validator("src_ip", "dst_ip", mode="before")
    @classmethod
    def strip_host(cls, v):
        if v is None:
            return v
        return str(v).strip()

    @field_validator("src_ip", "dst_ip")
    @classmethod
    def validate_ip_or_cidr(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ip_network(v, strict=False)
        except ValueError:
            raise ValueError(f"Invalid IP address or prefix: {v}")
        return v

    @field_validator("src_port", "dst_port", mode="before")
    @classmethod
    def port_as_text(cls, v):
        # Ports may be a number or a range such as "1000-2000".
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @field_validator("ip_proto", mode="before")
    @classmethod
    def proto_number(cls, v):
        if isinstance(v, bool):
            raise ValueError("ipProto must be a protocol number or name")
        if v is None or isinstance(v, int):
            return v
        s = str(v).strip().lower()
        if not s:
            return None
        if s in PROTOCOL_NUMBERS:
            return PROTOCOL_NUMBERS[s]
        return v


class FlowParseResult(CamelModel):
    queries: List[FlowQuery]
    error: Optional[str] = None


class FlowParseRequest(CamelModel):
    text: str = ""
