"""Entity tables: tree types, schemas and resource definitions."""
from ..config_engine.engine import Resource
from .application_set import APPLICATION_SET, APPLICATION_SET_SCHEMA, ApplicationSet
from .bgp_group import BGP_GROUP, BGP_GROUP_SCHEMA, BgpGroup, Family, PrefixLimit
from .chassis_cluster import (
    CHASSIS_CLUSTER,
    CHASSIS_CLUSTER_SCHEMA,
    ChassisCluster,
    ControlPort,
    InterfaceMonitor,
    RedundancyGroup,
)

__all__ = [
    "APPLICATION_SET",
    "APPLICATION_SET_SCHEMA",
    "ApplicationSet",
    "BGP_GROUP",
    "BGP_GROUP_SCHEMA",
    "BgpGroup",
    "Family",
    "PrefixLimit",
    "CHASSIS_CLUSTER",
    "CHASSIS_CLUSTER_SCHEMA",
    "ChassisCluster",
    "ControlPort",
    "InterfaceMonitor",
    "RedundancyGroup",
    "RESOURCES",
    "get_resource",
]

# Resource registry
RESOURCES: dict[str, Resource] = {
    r.type_name: r for r in (APPLICATION_SET, BGP_GROUP, CHASSIS_CLUSTER)
}


def get_resource(type_name: str) -> Resource:
    """Look up a resource definition by type name."""
    if type_name not in RESOURCES:
        raise ValueError(f"Unknown resource type: {type_name}")
    return RESOURCES[type_name]
