"""Chassis cluster: ``chassis cluster``.

A device holds at most one cluster configuration, so the resource has no key.
Redundancy groups are keyed by their group number; interface monitors inside
a group by interface name.
"""
from dataclasses import dataclass, field
from typing import Optional

from ..config_engine.engine import Resource
from ..config_engine.schema import FieldDef, FieldKind, Schema


@dataclass
class InterfaceMonitor:
    name: str
    weight: Optional[int] = None


INTERFACE_MONITOR_SCHEMA = Schema(InterfaceMonitor, [
    FieldDef("name", identifier=True),
    FieldDef("weight", "weight", FieldKind.NUMBER),
])


@dataclass
class RedundancyGroup:
    id: int
    node0_priority: Optional[int] = None
    node1_priority: Optional[int] = None
    gratuitous_arp_count: Optional[int] = None
    hold_down_interval: Optional[int] = None
    interface_monitor: list[InterfaceMonitor] = field(default_factory=list)
    preempt: Optional[bool] = None
    preempt_delay: Optional[int] = None
    preempt_limit: Optional[int] = None
    preempt_period: Optional[int] = None


REDUNDANCY_GROUP_SCHEMA = Schema(RedundancyGroup, [
    FieldDef("id", kind=FieldKind.NUMBER, identifier=True),
    FieldDef("node0_priority", "node 0 priority", FieldKind.NUMBER),
    FieldDef("node1_priority", "node 1 priority", FieldKind.NUMBER),
    FieldDef("gratuitous_arp_count", "gratuitous-arp-count", FieldKind.NUMBER),
    FieldDef("hold_down_interval", "hold-down-interval", FieldKind.NUMBER),
    FieldDef("interface_monitor", "interface-monitor", FieldKind.BLOCK, schema=INTERFACE_MONITOR_SCHEMA),
    FieldDef("preempt", "preempt", FieldKind.FLAG),
    FieldDef("preempt_delay", "preempt delay", FieldKind.NUMBER, requires="preempt"),
    FieldDef("preempt_limit", "preempt limit", FieldKind.NUMBER, requires="preempt"),
    FieldDef("preempt_period", "preempt period", FieldKind.NUMBER, requires="preempt"),
])


@dataclass
class ControlPort:
    fpc: int
    port: list[int] = field(default_factory=list)


CONTROL_PORT_SCHEMA = Schema(ControlPort, [
    FieldDef("fpc", kind=FieldKind.NUMBER, identifier=True),
    FieldDef("port", "port", FieldKind.LIST, item_kind=FieldKind.NUMBER),
])


@dataclass
class ChassisCluster:
    redundancy_group: list[RedundancyGroup] = field(default_factory=list)
    reth_count: Optional[int] = None
    config_sync_no_secondary_bootup_auto: Optional[bool] = None
    control_link_recovery: Optional[bool] = None
    control_ports: list[ControlPort] = field(default_factory=list)
    heartbeat_interval: Optional[int] = None
    heartbeat_threshold: Optional[int] = None


CHASSIS_CLUSTER_SCHEMA = Schema(ChassisCluster, [
    FieldDef("redundancy_group", "redundancy-group", FieldKind.BLOCK, schema=REDUNDANCY_GROUP_SCHEMA),
    FieldDef("reth_count", "reth-count", FieldKind.NUMBER),
    FieldDef(
        "config_sync_no_secondary_bootup_auto",
        "configuration-synchronize no-secondary-bootup-auto",
        FieldKind.FLAG,
    ),
    FieldDef("control_link_recovery", "control-link-recovery", FieldKind.FLAG),
    FieldDef("control_ports", "control-ports fpc", FieldKind.BLOCK, schema=CONTROL_PORT_SCHEMA),
    FieldDef("heartbeat_interval", "heartbeat-interval", FieldKind.NUMBER),
    FieldDef("heartbeat_threshold", "heartbeat-threshold", FieldKind.NUMBER),
])

CHASSIS_CLUSTER = Resource(
    type_name="chassis_cluster",
    schema=CHASSIS_CLUSTER_SCHEMA,
    path="chassis cluster",
    keys=(),
)
