from netcap.schemas.inventory import InventoryInterface
from netcap.schemas.rollup import CapacityRollup, RowFilters
from netcap.services.rollup_projection import (
    filter_options,
    project_device_rows,
    project_interface_rows,
    rollup_to_interface_row,
)

from conftest import make_device_rollup, make_iface_rollup


class TestInterfaceProjection:
    def test_selects_window_and_metric_exactly(self):
        rollups = [
            make_iface_rollup("r1", "Gi0/1", max=0.5),
            make_iface_rollup("r1", "Gi0/1", metric="util_egress", max=0.6),
            make_iface_rollup("r1", "Gi0/2", window="24h", max=0.7),
            make_device_rollup("r1", metric="util_ingress", max=0.9),
        ]
        rows = project_interface_rows(rollups, "7d", "util_ingress")
        assert [(r.iface, r.dir) for r in rows] == [("Gi0/1", "INGRESS")]

    def test_sorted_by_max_desc_and_stable(self):
        rollups = [
            make_iface_rollup("r1", "a", max=0.2),
            make_iface_rollup("r1", "b", max=0.9),
            make_iface_rollup("r1", "c", max=0.2),
            make_iface_rollup("r1", "d", max=None),
        ]
        rows = project_interface_rows(rollups, "7d", "util_ingress")
        assert [r.iface for r in rows] == ["b", "a", "c", "d"]

    def test_details_projection_keeps_absent_arrays_as_none(self):
        r = make_iface_rollup("r1", "Gi0/1", max=0.5, speed_mbps=10_000,
                              tagNames=[], locationName="DC1", adminStatus="UP")
        row = rollup_to_interface_row(r)
        assert row.tag_names == []
        assert row.group_names is None
        assert row.vrf_names is None
        assert row.location_name == "DC1"
        assert row.speed_mbps == 10_000
        assert row.admin == "UP"

    def test_object_id_fallback_when_details_sparse(self):
        r = CapacityRollup(object_type="interface", window="7d", metric="util_egress",
                           object_id="leaf1:Ethernet1:EGRESS", max=0.3)
        row = rollup_to_interface_row(r)
        assert (row.device, row.iface, row.dir) == ("leaf1", "Ethernet1", "EGRESS")

    def test_text_filter_case_insensitive(self):
        rollups = [
            make_iface_rollup("Spine1", "Ethernet1", max=0.5),
            make_iface_rollup("Leaf1", "Ethernet2", max=0.4),
        ]
        rows = project_interface_rows(rollups, "7d", "util_ingress", text_filter="SPINE")
        assert [r.device for r in rows] == ["Spine1"]
        rows = project_interface_rows(rollups, "7d", "util_ingress", text_filter="ingress")
        assert len(rows) == 2

    def test_categorical_filters(self):
        rollups = [
            make_iface_rollup("r1", "a", max=0.5, locationName="DC1", vrf="blue", tagNames=["core"]),
            make_iface_rollup("r1", "b", max=0.4, locationName="DC1", vrfNames=["red", "blue"]),
            make_iface_rollup("r2", "c", max=0.3, locationName="DC2", groupNames=["edge"]),
        ]
        by_vrf = project_interface_rows(rollups, "7d", "util_ingress", filters=RowFilters(vrf="blue"))
        assert [r.iface for r in by_vrf] == ["a", "b"]
        by_loc = project_interface_rows(rollups, "7d", "util_ingress", filters=RowFilters(location="DC2"))
        assert [r.iface for r in by_loc] == ["c"]
        by_tag = project_interface_rows(rollups, "7d", "util_ingress", filters=RowFilters(tag="core"))
        assert [r.iface for r in by_tag] == ["a"]
        by_group = project_interface_rows(rollups, "7d", "util_ingress", filters=RowFilters(group="edge"))
        assert [r.iface for r in by_group] == ["c"]

    def test_inventory_join_marks_aggregates(self):
        inventory = [
            InventoryInterface(device_name="r1", interface_name="Po1", interface_type="IF_AGGREGATE"),
            InventoryInterface(device_name="r1", interface_name="Eth1", aggregate_id="Po1"),
        ]
        rollups = [
            make_iface_rollup("r1", "Po1", max=0.5),
            make_iface_rollup("r1", "Eth1", max=0.4),
        ]
        rows = project_interface_rows(rollups, "7d", "util_ingress", inventory=inventory)
        assert rows[0].is_aggregate is True
        assert rows[1].aggregate_id == "Po1"
        assert rows[1].is_aggregate is False

    def test_metric_family(self):
        assert rollup_to_interface_row(make_iface_rollup("r1", "e1")).metric_type == "UTILIZATION"
        loss = rollup_to_interface_row(make_iface_rollup("r1", "e1", metric="packet_loss_ingress"))
        assert loss.metric_type == "PACKET_LOSS"
        errs = rollup_to_interface_row(make_iface_rollup("r1", "e1", metric="errors_ingress"))
        assert errs.metric_type == "ERROR"


class TestDeviceProjection:
    def test_text_filter_over_vendor(self):
        rollups = [
            make_device_rollup("r1", max=0.5, vendor="Arista"),
            make_device_rollup("r2", max=0.9, vendor="Cisco"),
        ]
        rows = project_device_rows(rollups, "7d", "cpu_util", text_filter="arista")
        assert [r.device for r in rows] == ["r1"]

    def test_vrf_filter_ignored_for_devices(self):
        rollups = [make_device_rollup("r1", max=0.5)]
        rows = project_device_rows(rollups, "7d", "cpu_util", filters=RowFilters(vrf="blue"))
        assert len(rows) == 1

    def test_metric_family(self):
        [mem] = project_device_rows([make_device_rollup("r1", metric="memory_util")], "7d", "memory_util")
        [cpu] = project_device_rows([make_device_rollup("r1")], "7d", "cpu_util")
        assert mem.metric_type == "MEMORY"
        assert cpu.metric_type == "CPU"


class TestFilterOptions:
    def test_distinct_sorted_values(self):
        rollups = [
            make_iface_rollup("r1", "a", locationName="DC2", vrf="blue", tagNames=["b", "a"]),
            make_iface_rollup("r1", "b", locationName="DC1", vrfNames=["red"], groupNames=["g1"]),
            make_iface_rollup("r1", "c", window="30d", locationName="DC9"),
        ]
        opts = filter_options(rollups, "7d")
        assert opts.locations == ["DC1", "DC2"]
        assert opts.vrfs == ["blue", "red"]
        assert opts.tags == ["a", "b"]
        assert opts.groups == ["g1"]
