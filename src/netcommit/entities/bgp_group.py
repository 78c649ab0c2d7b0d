"""BGP peer groups: ``[routing-instances <ri>] protocols bgp group <name>``."""
from dataclasses import dataclass, field
from typing import Any, Optional

from ..config_engine.engine import Resource
from ..config_engine.lines import render_value
from ..config_engine.schema import FieldDef, FieldKind, Schema

DEFAULT_ROUTING_INSTANCE = "master"


@dataclass
class BfdLivenessDetection:
    authentication_algorithm: Optional[str] = None
    authentication_key_chain: Optional[str] = None
    authentication_loose_check: Optional[bool] = None
    detection_time_threshold: Optional[int] = None
    holddown_interval: Optional[int] = None
    minimum_interval: Optional[int] = None
    minimum_receive_interval: Optional[int] = None
    multiplier: Optional[int] = None
    session_mode: Optional[str] = None
    transmit_interval_minimum_interval: Optional[int] = None
    transmit_interval_threshold: Optional[int] = None
    version: Optional[str] = None


BFD_SCHEMA = Schema(BfdLivenessDetection, [
    FieldDef("authentication_algorithm", "authentication algorithm"),
    FieldDef("authentication_key_chain", "authentication key-chain"),
    FieldDef("authentication_loose_check", "authentication loose-check", FieldKind.FLAG),
    FieldDef("detection_time_threshold", "detection-time threshold", FieldKind.NUMBER),
    FieldDef("holddown_interval", "holddown-interval", FieldKind.NUMBER),
    FieldDef("minimum_interval", "minimum-interval", FieldKind.NUMBER),
    FieldDef("minimum_receive_interval", "minimum-receive-interval", FieldKind.NUMBER),
    FieldDef("multiplier", "multiplier", FieldKind.NUMBER),
    FieldDef("session_mode", "session-mode"),
    FieldDef("transmit_interval_minimum_interval", "transmit-interval minimum-interval", FieldKind.NUMBER),
    FieldDef("transmit_interval_threshold", "transmit-interval threshold", FieldKind.NUMBER),
    FieldDef("version", "version"),
])


@dataclass
class PrefixLimit:
    maximum: Optional[int] = None
    teardown: Optional[int] = None
    teardown_idle_timeout: Optional[int] = None
    teardown_idle_timeout_forever: Optional[bool] = None


PREFIX_LIMIT_SCHEMA = Schema(PrefixLimit, [
    FieldDef("maximum", "maximum", FieldKind.NUMBER),
    FieldDef("teardown", "teardown", FieldKind.NUMBER),
    FieldDef(
        "teardown_idle_timeout", "teardown idle-timeout", FieldKind.NUMBER,
        conflicts=("teardown_idle_timeout_forever",),
    ),
    FieldDef("teardown_idle_timeout_forever", "teardown idle-timeout forever", FieldKind.FLAG),
])


@dataclass
class Family:
    nlri_type: str
    accepted_prefix_limit: Optional[PrefixLimit] = None
    prefix_limit: Optional[PrefixLimit] = None


FAMILY_SCHEMA = Schema(Family, [
    FieldDef("nlri_type", identifier=True),
    FieldDef("accepted_prefix_limit", "accepted-prefix-limit", FieldKind.CONTAINER, schema=PREFIX_LIMIT_SCHEMA),
    FieldDef("prefix_limit", "prefix-limit", FieldKind.CONTAINER, schema=PREFIX_LIMIT_SCHEMA),
])


@dataclass
class GracefulRestart:
    disable: Optional[bool] = None
    restart_time: Optional[int] = None
    stale_route_time: Optional[int] = None


GRACEFUL_RESTART_SCHEMA = Schema(GracefulRestart, [
    FieldDef("disable", "disable", FieldKind.FLAG),
    FieldDef("restart_time", "restart-time", FieldKind.NUMBER),
    FieldDef("stale_route_time", "stale-routes-time", FieldKind.NUMBER),
])


@dataclass
class BgpGroup:
    name: str
    routing_instance: str = DEFAULT_ROUTING_INSTANCE
    type: Optional[str] = None
    description: Optional[str] = None
    accept_remote_nexthop: Optional[bool] = None
    advertise_external: Optional[bool] = None
    advertise_external_conditional: Optional[bool] = None
    advertise_inactive: Optional[bool] = None
    advertise_peer_as: Optional[bool] = None
    no_advertise_peer_as: Optional[bool] = None
    as_override: Optional[bool] = None
    damping: Optional[bool] = None
    log_updown: Optional[bool] = None
    mtu_discovery: Optional[bool] = None
    multihop: Optional[bool] = None
    multipath: Optional[bool] = None
    passive: Optional[bool] = None
    remove_private: Optional[bool] = None
    hold_time: Optional[int] = None
    local_as: Optional[str] = None
    local_as_private: Optional[bool] = None
    local_as_alias: Optional[bool] = None
    local_as_no_prepend_global_as: Optional[bool] = None
    local_as_loops: Optional[int] = None
    local_preference: Optional[int] = None
    metric_out: Optional[int] = None
    metric_out_igp: Optional[bool] = None
    metric_out_igp_delay_med_update: Optional[bool] = None
    metric_out_igp_offset: Optional[int] = None
    metric_out_minimum_igp: Optional[bool] = None
    metric_out_minimum_igp_offset: Optional[int] = None
    out_delay: Optional[int] = None
    peer_as: Optional[str] = None
    preference: Optional[int] = None
    authentication_algorithm: Optional[str] = None
    authentication_key: Optional[str] = None
    authentication_key_chain: Optional[str] = None
    local_address: Optional[str] = None
    local_interface: Optional[str] = None
    export: list[str] = field(default_factory=list)
    import_: list[str] = field(default_factory=list)
    bfd_liveness_detection: Optional[BfdLivenessDetection] = None
    family_inet: list[Family] = field(default_factory=list)
    family_inet6: list[Family] = field(default_factory=list)
    graceful_restart: Optional[GracefulRestart] = None


BGP_GROUP_SCHEMA = Schema(BgpGroup, [
    FieldDef("type", "type"),
    FieldDef("description", "description", quoted=True),
    FieldDef("accept_remote_nexthop", "accept-remote-nexthop", FieldKind.FLAG),
    FieldDef("advertise_external", "advertise-external", FieldKind.FLAG),
    FieldDef(
        "advertise_external_conditional", "advertise-external conditional", FieldKind.FLAG,
        conflicts=("advertise_external",),
    ),
    FieldDef("advertise_inactive", "advertise-inactive", FieldKind.FLAG),
    FieldDef("advertise_peer_as", "advertise-peer-as", FieldKind.FLAG),
    FieldDef(
        "no_advertise_peer_as", "no-advertise-peer-as", FieldKind.FLAG,
        conflicts=("advertise_peer_as",),
    ),
    FieldDef("as_override", "as-override", FieldKind.FLAG),
    FieldDef("damping", "damping", FieldKind.FLAG),
    FieldDef("log_updown", "log-updown", FieldKind.FLAG),
    FieldDef("mtu_discovery", "mtu-discovery", FieldKind.FLAG),
    FieldDef("multihop", "multihop", FieldKind.FLAG),
    FieldDef("multipath", "multipath", FieldKind.FLAG),
    FieldDef("passive", "passive", FieldKind.FLAG),
    FieldDef("remove_private", "remove-private", FieldKind.FLAG),
    FieldDef("hold_time", "hold-time", FieldKind.NUMBER),
    FieldDef("local_as", "local-as"),
    FieldDef("local_as_private", "local-as private", FieldKind.FLAG, conflicts=("local_as_alias",)),
    FieldDef("local_as_alias", "local-as alias", FieldKind.FLAG),
    FieldDef("local_as_no_prepend_global_as", "local-as no-prepend-global-as", FieldKind.FLAG),
    FieldDef("local_as_loops", "local-as loops", FieldKind.NUMBER),
    FieldDef("local_preference", "local-preference", FieldKind.NUMBER),
    FieldDef(
        "metric_out", "metric-out", FieldKind.NUMBER,
        conflicts=(
            "metric_out_igp",
            "metric_out_igp_offset",
            "metric_out_igp_delay_med_update",
            "metric_out_minimum_igp",
            "metric_out_minimum_igp_offset",
        ),
    ),
    FieldDef(
        "metric_out_igp", "metric-out igp", FieldKind.FLAG,
        conflicts=("metric_out_minimum_igp", "metric_out_minimum_igp_offset"),
    ),
    FieldDef(
        "metric_out_igp_delay_med_update", "metric-out igp delay-med-update", FieldKind.FLAG,
        requires="metric_out_igp",
        conflicts=("metric_out_minimum_igp", "metric_out_minimum_igp_offset"),
    ),
    FieldDef("metric_out_igp_offset", "metric-out igp", FieldKind.NUMBER, requires="metric_out_igp"),
    FieldDef("metric_out_minimum_igp", "metric-out minimum-igp", FieldKind.FLAG),
    FieldDef(
        "metric_out_minimum_igp_offset", "metric-out minimum-igp", FieldKind.NUMBER,
        requires="metric_out_minimum_igp",
    ),
    FieldDef("out_delay", "out-delay", FieldKind.NUMBER),
    FieldDef("peer_as", "peer-as"),
    FieldDef("preference", "preference", FieldKind.NUMBER),
    FieldDef("authentication_algorithm", "authentication-algorithm"),
    FieldDef("authentication_key", "authentication-key", quoted=True),
    FieldDef("authentication_key_chain", "authentication-key-chain", conflicts=("authentication_key",)),
    FieldDef("local_address", "local-address"),
    FieldDef("local_interface", "local-interface"),
    FieldDef("export", "export", FieldKind.LIST),
    FieldDef("import_", "import", FieldKind.LIST),
    FieldDef(
        "bfd_liveness_detection", "bfd-liveness-detection", FieldKind.CONTAINER, schema=BFD_SCHEMA,
    ),
    FieldDef("family_inet", "family inet", FieldKind.BLOCK, schema=FAMILY_SCHEMA),
    FieldDef("family_inet6", "family inet6", FieldKind.BLOCK, schema=FAMILY_SCHEMA),
    FieldDef(
        "graceful_restart", "graceful-restart", FieldKind.CONTAINER, schema=GRACEFUL_RESTART_SCHEMA,
    ),
])


@dataclass(frozen=True)
class BgpGroupResource(Resource):
    """Groups outside the master instance live under their routing instance."""

    def prefix_for(self, **keys: Any) -> tuple[str, ...]:
        name = render_value(str(keys["name"]))
        instance = keys.get("routing_instance") or DEFAULT_ROUTING_INSTANCE
        if instance == DEFAULT_ROUTING_INSTANCE:
            return ("protocols", "bgp", "group", name)
        return ("routing-instances", render_value(instance), "protocols", "bgp", "group", name)


BGP_GROUP = BgpGroupResource(
    type_name="bgp_group",
    schema=BGP_GROUP_SCHEMA,
    path="protocols bgp group {name}",
    keys=("name", "routing_instance"),
)
