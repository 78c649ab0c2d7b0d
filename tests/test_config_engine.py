"""Tests for the Config Engine codec: serializer, parser, validator and diff."""
import pytest

from netcommit.config_engine import (
    ChangeType,
    ConfigParser,
    ConfigSerializer,
    ConfigValidator,
    DiffEngine,
    ParseError,
    render_as_snapshot,
    summarize_diff,
)
from netcommit.entities import (
    APPLICATION_SET,
    APPLICATION_SET_SCHEMA,
    BGP_GROUP,
    BGP_GROUP_SCHEMA,
    CHASSIS_CLUSTER,
    CHASSIS_CLUSTER_SCHEMA,
    ApplicationSet,
    BgpGroup,
    ChassisCluster,
    ControlPort,
    Family,
    InterfaceMonitor,
    PrefixLimit,
    RedundancyGroup,
)
from netcommit.entities.bgp_group import BfdLivenessDetection, GracefulRestart
from netcommit.errors import (
    Diagnostics,
    DependencyConflict,
    DuplicateIdentifier,
    MutualExclusionConflict,
    ParseNumericFailure,
)


def texts(statements):
    return [s.text for s in statements]


def round_trip(resource, tree, **keys):
    """Serialize, wrap as query output, and parse back."""
    prefix = resource.prefix(tree)
    statements = ConfigSerializer().serialize(tree, resource.schema, prefix)
    snapshot = render_as_snapshot(statements, prefix)
    return ConfigParser().parse(snapshot, resource.schema, **keys)


@pytest.fixture
def cluster():
    return ChassisCluster(
        redundancy_group=[
            RedundancyGroup(id=0, node0_priority=200, node1_priority=100),
            RedundancyGroup(
                id=1,
                node0_priority=200,
                node1_priority=100,
                gratuitous_arp_count=4,
                interface_monitor=[
                    InterfaceMonitor(name="ge-0/0/1", weight=255),
                    InterfaceMonitor(name="ge-5/0/1", weight=255),
                ],
                preempt=True,
                preempt_delay=5,
            ),
            RedundancyGroup(id=2),
        ],
        reth_count=2,
        control_link_recovery=True,
        control_ports=[ControlPort(fpc=0, port=[0]), ControlPort(fpc=12, port=[0, 1])],
        heartbeat_interval=1000,
    )


@pytest.fixture
def bgp_group():
    return BgpGroup(
        name="upstream",
        type="external",
        description="to upstream peers",
        log_updown=True,
        multipath=True,
        hold_time=90,
        local_as="65001",
        local_as_private=True,
        metric_out_igp=True,
        metric_out_igp_offset=10,
        peer_as="65000",
        authentication_key="s3cret",
        export=["to-upstream", "reject-all"],
        import_=["from-upstream"],
        bfd_liveness_detection=BfdLivenessDetection(minimum_interval=300, multiplier=3),
        family_inet=[
            Family(nlri_type="unicast", prefix_limit=PrefixLimit(maximum=1000, teardown=80)),
        ],
        family_inet6=[Family(nlri_type="unicast")],
        graceful_restart=GracefulRestart(),
    )


class TestConfigSerializer:
    """Tests for statement generation."""

    def test_application_set(self):
        """Lists keep their order and come before the description."""
        tree = ApplicationSet(name="G1", applications=["A", "B"], description="x")

        statements = ConfigSerializer().serialize(
            tree, APPLICATION_SET_SCHEMA, APPLICATION_SET.prefix(tree)
        )

        assert texts(statements) == [
            "set applications application-set G1 application A",
            "set applications application-set G1 application B",
            'set applications application-set G1 description "x"',
        ]

    def test_empty_tree_emits_nothing(self):
        tree = ApplicationSet(name="G1")

        assert ConfigSerializer().serialize(tree, APPLICATION_SET_SCHEMA, ("x",)) == []

    def test_value_with_space_quoted(self):
        tree = ApplicationSet(name="web apps", applications=["junos-http"])

        statements = ConfigSerializer().serialize(
            tree, APPLICATION_SET_SCHEMA, APPLICATION_SET.prefix(tree)
        )

        assert texts(statements) == [
            'set applications application-set "web apps" application junos-http'
        ]

    def test_blocks_flags_and_bare_sub_blocks(self, cluster):
        """Block entries are contiguous; an empty entry is a bare path."""
        statements = texts(ConfigSerializer().serialize(
            cluster, CHASSIS_CLUSTER_SCHEMA, CHASSIS_CLUSTER.prefix(cluster)
        ))

        assert statements[:2] == [
            "set chassis cluster redundancy-group 0 node 0 priority 200",
            "set chassis cluster redundancy-group 0 node 1 priority 100",
        ]
        assert "set chassis cluster redundancy-group 1 interface-monitor ge-0/0/1 weight 255" in statements
        assert "set chassis cluster redundancy-group 1 preempt" in statements
        assert "set chassis cluster redundancy-group 1 preempt delay 5" in statements
        assert "set chassis cluster redundancy-group 2" in statements
        assert "set chassis cluster control-link-recovery" in statements
        assert "set chassis cluster control-ports fpc 12 port 1" in statements
        assert statements[-1] == "set chassis cluster heartbeat-interval 1000"

    def test_bgp_group_prefix_by_routing_instance(self):
        """Groups outside master live under routing-instances."""
        master = BgpGroup(name="upstream", passive=True)
        vrf = BgpGroup(name="upstream", routing_instance="CUST-A", passive=True)

        assert BGP_GROUP.prefix(master) == ("protocols", "bgp", "group", "upstream")
        assert BGP_GROUP.prefix(vrf) == (
            "routing-instances", "CUST-A", "protocols", "bgp", "group", "upstream"
        )

    def test_dependency_violation_emits_nothing(self):
        """A dependent field without its flag stops serialization."""
        tree = ChassisCluster(redundancy_group=[RedundancyGroup(id=0, preempt_delay=5)])

        statements, path, error = ConfigSerializer().try_serialize(
            tree, CHASSIS_CLUSTER_SCHEMA, ("chassis", "cluster")
        )

        assert statements == []
        assert isinstance(error, DependencyConflict)
        assert str(path) == "redundancy_group[0].preempt_delay"

    def test_explicitly_disabled_flag_conflicts(self):
        """A dependent field under a flag set to False is a conflict."""
        tree = ChassisCluster(
            redundancy_group=[RedundancyGroup(id=0, preempt=False, preempt_delay=5)]
        )

        with pytest.raises(MutualExclusionConflict):
            ConfigSerializer().serialize(tree, CHASSIS_CLUSTER_SCHEMA)

    def test_mutual_exclusion(self):
        tree = BgpGroup(name="g", metric_out=10, metric_out_igp=True)

        with pytest.raises(MutualExclusionConflict) as exc:
            ConfigSerializer().serialize(tree, BGP_GROUP_SCHEMA)

        assert str(exc.value.path) == "metric_out"

    def test_duplicate_identifier(self):
        tree = ChassisCluster(redundancy_group=[RedundancyGroup(id=0), RedundancyGroup(id=0)])

        with pytest.raises(DuplicateIdentifier) as exc:
            ConfigSerializer().serialize(tree, CHASSIS_CLUSTER_SCHEMA)

        assert str(exc.value.path) == "redundancy_group[1].id"

    def test_level_checked_before_sub_blocks(self):
        """A top level conflict is reported before a nested duplicate."""
        tree = BgpGroup(
            name="g",
            metric_out=10,
            metric_out_igp=True,
            family_inet=[Family(nlri_type="unicast"), Family(nlri_type="unicast")],
        )

        with pytest.raises(MutualExclusionConflict):
            ConfigSerializer().serialize(tree, BGP_GROUP_SCHEMA)

    def test_delete_statements(self):
        tree = ApplicationSet(name="G1")

        statements = ConfigSerializer().delete_statements(APPLICATION_SET.prefix(tree))

        assert texts(statements) == ["delete applications application-set G1"]


class TestConfigParser:
    """Tests for parsing query output back into trees."""

    def test_application_set(self):
        """Repeated list lines keep their order."""
        parser = ConfigParser()

        tree = parser.parse_lines(
            ["application A", "application B", 'description "x"'],
            APPLICATION_SET_SCHEMA,
            name="G1",
        )

        assert tree == ApplicationSet(name="G1", applications=["A", "B"], description="x")

    def test_redundancy_group_lines_merge(self):
        """Lines for the same identifier build one entry."""
        tree = ConfigParser().parse_lines(
            ["redundancy-group 0 node 0 priority 1", "redundancy-group 0 node 1 priority 2"],
            CHASSIS_CLUSTER_SCHEMA,
        )

        assert tree.redundancy_group == [RedundancyGroup(id=0, node0_priority=1, node1_priority=2)]

    def test_nested_blocks_merge(self):
        tree = ConfigParser().parse_lines(
            [
                "redundancy-group 1 interface-monitor ge-0/0/1 weight 100",
                "redundancy-group 1 interface-monitor ge-5/0/1 weight 100",
                "redundancy-group 1 preempt",
            ],
            CHASSIS_CLUSTER_SCHEMA,
        )

        group = tree.redundancy_group[0]
        assert [m.name for m in group.interface_monitor] == ["ge-0/0/1", "ge-5/0/1"]
        assert group.preempt is True

    def test_merge_stability_for_permuted_groups(self):
        """Each identifier appears once with all of its fields."""
        lines = [
            "redundancy-group 1 node 0 priority 10",
            "redundancy-group 1 node 1 priority 20",
            "redundancy-group 0 node 0 priority 30",
            "redundancy-group 0 node 1 priority 40",
        ]

        tree = ConfigParser().parse_lines(lines, CHASSIS_CLUSTER_SCHEMA)

        assert tree.redundancy_group == [
            RedundancyGroup(id=1, node0_priority=10, node1_priority=20),
            RedundancyGroup(id=0, node0_priority=30, node1_priority=40),
        ]

    def test_interleaved_lines_still_merge(self):
        lines = [
            "redundancy-group 0 node 0 priority 1",
            "redundancy-group 1 node 0 priority 5",
            "redundancy-group 0 node 1 priority 2",
        ]

        tree = ConfigParser().parse_lines(lines, CHASSIS_CLUSTER_SCHEMA)

        by_id = {g.id: g for g in tree.redundancy_group}
        assert len(tree.redundancy_group) == 2
        assert by_id[0].node0_priority == 1
        assert by_id[0].node1_priority == 2
        assert by_id[1].node0_priority == 5

    def test_prefix_shadowing(self):
        """metric-out does not swallow the more specific metric-out lines."""
        parser = ConfigParser()

        igp = parser.parse_lines(["metric-out igp"], BGP_GROUP_SCHEMA, name="g")
        offset = parser.parse_lines(["metric-out igp 10"], BGP_GROUP_SCHEMA, name="g")
        plain = parser.parse_lines(["metric-out 10"], BGP_GROUP_SCHEMA, name="g")
        minimum = parser.parse_lines(["metric-out minimum-igp 3"], BGP_GROUP_SCHEMA, name="g")

        assert igp.metric_out_igp is True
        assert igp.metric_out is None
        assert offset.metric_out_igp_offset == 10
        assert offset.metric_out_igp is True
        assert offset.metric_out is None
        assert plain.metric_out == 10
        assert plain.metric_out_igp is None
        assert minimum.metric_out_minimum_igp_offset == 3
        assert minimum.metric_out_minimum_igp is True

    def test_dependent_line_sets_flag(self):
        """A dependent field line implies its governing flag."""
        tree = ConfigParser().parse_lines(
            ["redundancy-group 0 preempt delay 5"], CHASSIS_CLUSTER_SCHEMA
        )

        assert tree.redundancy_group[0].preempt is True
        assert tree.redundancy_group[0].preempt_delay == 5

    def test_unrecognized_lines_ignored(self):
        tree = ConfigParser().parse_lines(
            ["fabric-monitoring", "reth-count 2"], CHASSIS_CLUSTER_SCHEMA
        )

        assert tree == ChassisCluster(reth_count=2)

    def test_bad_integer_aborts(self):
        with pytest.raises(ParseNumericFailure) as exc:
            ConfigParser().parse_lines(["reth-count two"], CHASSIS_CLUSTER_SCHEMA)

        assert str(exc.value.path) == "reth_count"

    def test_bad_integer_in_block_has_entry_path(self):
        with pytest.raises(ParseNumericFailure) as exc:
            ConfigParser().parse_lines(
                ["redundancy-group 0 node 0 priority high"], CHASSIS_CLUSTER_SCHEMA
            )

        assert str(exc.value.path) == "redundancy_group[0].node0_priority"

    def test_parse_query_output(self):
        """Markers and the set leader are stripped."""
        snapshot = (
            "<configuration-output>\n"
            "set application junos-http\n"
            "set application-set base\n"
            "</configuration-output>\n"
        )

        tree = ConfigParser().parse(snapshot, APPLICATION_SET_SCHEMA, name="web")

        assert tree.applications == ["junos-http"]
        assert tree.application_sets == ["base"]


class TestRoundTrip:
    """parse(serialize(tree)) reproduces the tree."""

    def test_application_set(self):
        tree = ApplicationSet(
            name="web", applications=["junos-http", "junos-https"], description="web traffic"
        )

        assert round_trip(APPLICATION_SET, tree, name="web") == tree

    def test_chassis_cluster(self, cluster):
        assert round_trip(CHASSIS_CLUSTER, cluster) == cluster

    def test_bgp_group(self, bgp_group):
        assert round_trip(
            BGP_GROUP, bgp_group, name="upstream", routing_instance="master"
        ) == bgp_group

    def test_idempotent_reapply(self, cluster):
        """Serializing a parsed tree and reading it again gives the same tree."""
        first = round_trip(CHASSIS_CLUSTER, cluster)
        second = round_trip(CHASSIS_CLUSTER, first)

        assert second == first


class TestFromDict:
    """Tests for building trees from desired state dicts."""

    def test_nested(self):
        data = {
            "reth_count": "2",
            "redundancy_group": [
                {"id": 0, "node0_priority": 200},
                {"id": "1", "preempt": True, "preempt_delay": 5},
            ],
            "control_ports": [{"fpc": 0, "port": [0]}],
        }

        tree = ConfigParser().from_dict(data, CHASSIS_CLUSTER_SCHEMA)

        assert tree.reth_count == 2
        assert tree.redundancy_group[1] == RedundancyGroup(id=1, preempt=True, preempt_delay=5)
        assert tree.control_ports == [ControlPort(fpc=0, port=[0])]

    def test_keys_outside_schema_reach_factory(self):
        tree = ConfigParser().from_dict(
            {"name": "web", "applications": ["junos-http"]}, APPLICATION_SET_SCHEMA
        )

        assert tree.name == "web"

    def test_unknown_key(self):
        with pytest.raises(ParseError, match="Unknown keys"):
            ConfigParser().from_dict({"name": "web", "apps": []}, APPLICATION_SET_SCHEMA)

    def test_wrong_shape(self):
        with pytest.raises(ParseError):
            ConfigParser().from_dict({"name": "web", "applications": "junos-http"}, APPLICATION_SET_SCHEMA)

    def test_bad_number(self):
        with pytest.raises(ParseError, match="reth_count"):
            ConfigParser().from_dict({"reth_count": "two"}, CHASSIS_CLUSTER_SCHEMA)

    @pytest.mark.parametrize("value", ["false", "yes", 0, 1])
    def test_flag_must_be_bool(self, value):
        data = {"redundancy_group": [{"id": 0, "preempt": value}]}
        with pytest.raises(ParseError, match="preempt"):
            ConfigParser().from_dict(data, CHASSIS_CLUSTER_SCHEMA)

    def test_flag_false_kept(self):
        data = {"redundancy_group": [{"id": 0, "preempt": False}]}
        tree = ConfigParser().from_dict(data, CHASSIS_CLUSTER_SCHEMA)
        assert tree.redundancy_group[0].preempt is False

    @pytest.mark.parametrize("entry", [{"id": None, "node0_priority": 1}, {"node0_priority": 1}])
    def test_block_identifier_required(self, entry):
        with pytest.raises(ParseError, match="Missing identifier id"):
            ConfigParser().from_dict({"redundancy_group": [entry]}, CHASSIS_CLUSTER_SCHEMA)

    def test_number_rejects_bool_and_lenient_text(self):
        with pytest.raises(ParseError, match="reth_count"):
            ConfigParser().from_dict({"reth_count": True}, CHASSIS_CLUSTER_SCHEMA)
        with pytest.raises(ParseError, match="reth_count"):
            ConfigParser().from_dict({"reth_count": "0x10"}, CHASSIS_CLUSTER_SCHEMA)

    def test_value_rejects_mapping(self):
        with pytest.raises(ParseError, match="description"):
            ConfigParser().from_dict({"name": "web", "description": {"a": 1}}, APPLICATION_SET_SCHEMA)


class TestConfigValidator:
    """Tests for pre-flight validation."""

    def test_valid(self, cluster):
        result = ConfigValidator(CHASSIS_CLUSTER_SCHEMA).validate(cluster)

        assert result.valid
        assert result.errors == []

    def test_collects_all_errors(self):
        tree = ChassisCluster(redundancy_group=[
            RedundancyGroup(id=0, preempt_limit=3),
            RedundancyGroup(id=0),
        ])

        result = ConfigValidator(CHASSIS_CLUSTER_SCHEMA).validate(tree)

        assert not result.valid
        assert len(result.errors) == 2
        assert any(e.startswith("redundancy_group[1].id:") for e in result.errors)
        assert any(e.startswith("redundancy_group[0].preempt_limit:") for e in result.errors)

    def test_embedded_quote_warning(self):
        tree = ApplicationSet(name="web", description='the "web" set')

        result = ConfigValidator(APPLICATION_SET_SCHEMA).validate(tree)

        assert result.valid
        assert any("double quote" in w and w.startswith("description") for w in result.warnings)

    def test_empty_tree_warning(self):
        result = ConfigValidator(APPLICATION_SET_SCHEMA).validate(ApplicationSet(name="web"))

        assert any("No fields set" in w for w in result.warnings)


class TestDiffEngine:
    """Tests for tree diffs."""

    def test_no_change(self, cluster):
        diff = DiffEngine().calculate(CHASSIS_CLUSTER_SCHEMA, cluster, cluster)

        assert diff.no_change
        assert "No changes" in summarize_diff(diff)

    def test_false_flag_equals_absent(self):
        current = ChassisCluster(control_link_recovery=None)
        desired = ChassisCluster(control_link_recovery=False)

        assert DiffEngine().calculate(CHASSIS_CLUSTER_SCHEMA, current, desired).no_change

    def test_modify_value(self):
        current = ApplicationSet(name="web", description="old")
        desired = ApplicationSet(name="web", description="new")

        diff = DiffEngine().calculate(APPLICATION_SET_SCHEMA, current, desired)

        assert diff.total_changes == 1
        change = diff.changes[0]
        assert change.path == "description"
        assert change.change_type == ChangeType.MODIFY
        assert (change.before, change.after) == ("old", "new")

    def test_block_entries_matched_by_identifier(self):
        current = ChassisCluster(redundancy_group=[
            RedundancyGroup(id=0, node0_priority=100),
            RedundancyGroup(id=1),
        ])
        desired = ChassisCluster(redundancy_group=[
            RedundancyGroup(id=0, node0_priority=200),
            RedundancyGroup(id=2),
        ])

        diff = DiffEngine().calculate(CHASSIS_CLUSTER_SCHEMA, current, desired)

        assert [(c.path, c.change_type) for c in diff.changes] == [
            ("redundancy_group[0].node0_priority", ChangeType.MODIFY),
            ("redundancy_group[1]", ChangeType.CREATE),
            ("redundancy_group[1]", ChangeType.DELETE),
        ]
        assert diff.changes[1].after.id == 2
        assert diff.changes[2].before.id == 1

    def test_block_entry_paths_follow_list_index(self):
        current = ChassisCluster(redundancy_group=[
            RedundancyGroup(id=1),
            RedundancyGroup(id=0, node0_priority=100),
        ])
        desired = ChassisCluster(redundancy_group=[RedundancyGroup(id=0, node0_priority=200)])

        diff = DiffEngine().calculate(CHASSIS_CLUSTER_SCHEMA, current, desired)

        assert [c.path for c in diff.changes] == [
            "redundancy_group[0].node0_priority",
            "redundancy_group[0]",
        ]
        assert diff.changes[1].change_type == ChangeType.DELETE

    def test_absent_current(self):
        desired = ApplicationSet(name="web", applications=["junos-http"])

        diff = DiffEngine().calculate(APPLICATION_SET_SCHEMA, None, desired)

        assert [c.change_type for c in diff.changes] == [ChangeType.CREATE]
        assert "[+] applications" in summarize_diff(diff)


class TestDiagnostics:
    """Tests for error attribution."""

    def test_field_error_has_path(self):
        diagnostics = Diagnostics()
        tree = ChassisCluster(redundancy_group=[RedundancyGroup(id=0, preempt_delay=5)])
        _, _, error = ConfigSerializer().try_serialize(tree, CHASSIS_CLUSTER_SCHEMA)

        diagnostics.add_exception(error)

        entry = diagnostics.errors[0]
        assert entry.summary == "Missing Configuration Error"
        assert entry.path == "redundancy_group[0].preempt_delay"
        assert diagnostics.has_error()

    def test_operation_error_has_no_path(self):
        from netcommit.errors import LockFailed

        diagnostics = Diagnostics()
        diagnostics.add_exception(LockFailed("locked"))
        diagnostics.add_warnings("Config Commit Warning", ["w1", "w2"])

        assert diagnostics.errors[0].path is None
        assert [w.detail for w in diagnostics.warnings] == ["w1", "w2"]
        assert diagnostics.to_list()[0]["severity"] == "error"
