"""Shared fixtures: rollup and inventory builders used across the capacity tests."""
from typing import Any, Dict, Optional

import pytest

from netcap.schemas.rollup import CapacityRollup


def make_iface_rollup(
    device: str,
    iface: str,
    metric: str = "util_ingress",
    window: str = "7d",
    p95: Optional[float] = None,
    max: Optional[float] = None,
    speed_mbps: Optional[float] = None,
    forecast: Optional[str] = None,
    threshold: Optional[float] = None,
    **details: Any,
) -> CapacityRollup:
    direction = "EGRESS" if metric == "util_egress" else "INGRESS"
    d: Dict[str, Any] = {"deviceName": device, "interfaceName": iface, "direction": direction}
    if speed_mbps is not None:
        d["speedMbps"] = speed_mbps
    d.update(details)
    return CapacityRollup(
        object_type="interface",
        window=window,
        metric=metric,
        object_id=f"{device}:{iface}:{direction}",
        details=d,
        p95=p95,
        max=max,
        forecast_crossing_ts=forecast,
        threshold=threshold,
        samples=100,
    )


def make_device_rollup(
    device: str,
    metric: str = "cpu_util",
    window: str = "7d",
    p95: Optional[float] = None,
    max: Optional[float] = None,
    **details: Any,
) -> CapacityRollup:
    d: Dict[str, Any] = {"deviceName": device}
    d.update(details)
    return CapacityRollup(
        object_type="device",
        window=window,
        metric=metric,
        object_id=device,
        details=d,
        p95=p95,
        max=max,
        samples=100,
    )


@pytest.fixture
def iface_rollup():
    return make_iface_rollup


@pytest.fixture
def device_rollup():
    return make_device_rollup
