"""
Tests for the topology builder.
"""

import random

from factories import make_instance, make_lb, scenario_resources
from vpcwatch.classify import classify
from vpcwatch.config import LayoutConfig
from vpcwatch.models import (
    InstanceNode,
    InstanceState,
    LoadBalancerNode,
    Position,
    Tier,
    ZoneGroupNode,
)
from vpcwatch.topology import build, group_height, group_by_zone, zone_grouping


def build_from_raw(instances, load_balancers, layout=None):
    classified_instances, classified_lbs = classify(instances, load_balancers)
    return build(classified_instances, classified_lbs, layout)


class TestScenario:
    """Two instances in one zone with both load balancers present."""

    def test_node_counts(self):
        result = build_from_raw(*scenario_resources())

        assert len([n for n in result.nodes if isinstance(n, LoadBalancerNode)]) == 2
        assert len([n for n in result.nodes if isinstance(n, ZoneGroupNode)]) == 2
        assert len([n for n in result.nodes if isinstance(n, InstanceNode)]) == 2

    def test_node_order(self):
        result = build_from_raw(*scenario_resources())
        assert [n.id for n in result.nodes] == [
            "web-lb", "app-lb", "web-group-az-1", "i-1", "app-group-az-1", "i-2",
        ]

    def test_edges(self):
        result = build_from_raw(*scenario_resources())
        assert result.edge_pairs() == [
            ("web-lb", "web-group-az-1"),
            ("web-group-az-1", "i-1"),
            ("i-1", "app-lb"),
            ("app-lb", "app-group-az-1"),
            ("app-group-az-1", "i-2"),
        ]

    def test_instance_status(self):
        result = build_from_raw(*scenario_resources())

        web = result.node("i-1")
        app = result.node("i-2")
        assert web.status is True
        assert web.public_ip == "3.3.3.3"
        assert app.status is False
        assert app.lifecycle_state is InstanceState.STOPPED
        assert app.tier is Tier.APP

    def test_positions(self):
        result = build_from_raw(*scenario_resources())

        assert result.node("web-lb").position == Position(400, 0)
        assert result.node("web-group-az-1").position == Position(400, 200)
        assert result.node("i-1").position == Position(225, 300)
        # web tier: one row -> 120 + 150 padding, then the 300 gap
        assert result.node("app-lb").position == Position(400, 870)
        assert result.node("app-group-az-1").position == Position(400, 1070)
        assert result.node("i-2").position == Position(225, 1170)

    def test_load_balancer_nodes_carry_dns(self):
        result = build_from_raw(*scenario_resources())
        assert result.node("web-lb").dns_name == "web.elb.amazonaws.com"
        assert result.node("app-lb").dns_name == "app.elb.amazonaws.com"


def test_empty_input_produces_empty_graph():
    result = build_from_raw([make_instance("i-9", "bastion")], [make_lb("arn:lb/x", "other")])
    assert result.nodes == ()
    assert result.edges == ()
    assert result.is_empty


def test_zones_sorted_regardless_of_discovery_order():
    instances = [
        make_instance("i-b", "WEB-Instance-2", "az-b"),
        make_instance("i-a", "WEB-Instance-1", "az-a"),
    ]
    result = build_from_raw(instances, [make_lb("arn:lb/web", "DRS-WEB-ALB")])

    groups = [n for n in result.nodes if isinstance(n, ZoneGroupNode) and n.tier is Tier.WEB]
    assert [g.availability_zone for g in groups] == ["az-a", "az-b"]
    assert list(zone_grouping(result, Tier.WEB)) == ["az-a", "az-b"]
    assert groups[0].position.x == 400
    assert groups[1].position.x == 1100
    assert result.node("web-lb").position.x == 750


def test_instances_wrap_two_per_row():
    instances = [make_instance(f"i-{n}", f"WEB-Instance-{n}", "az-1") for n in range(3)]
    result = build_from_raw(instances, [])

    assert result.node("i-0").position == Position(225, 300)
    assert result.node("i-1").position == Position(575, 300)
    assert result.node("i-2").position == Position(225, 420)
    assert result.node("web-group-az-1").computed_height == 390


def test_app_tier_starts_below_tallest_web_zone():
    instances = [make_instance(f"w-{n}", f"WEB-Instance-{n}", "az-1") for n in range(5)]
    instances.append(make_instance("a-1", "WAS-Instance-1", "az-2"))
    result = build_from_raw(instances, [make_lb("arn:lb/app", "DRS-WAS-ALB")])

    lowest_web = max(n.position.y for n in result.nodes if isinstance(n, InstanceNode) and n.tier is Tier.WEB)
    app_lb = result.node("app-lb")
    assert app_lb.position.y > lowest_web
    # 3 rows of web instances: 300 + (3 * 120 + 150) + 300
    assert app_lb.position.y == 1110


def test_zone_present_in_other_tier_gets_empty_group():
    instances = [
        make_instance("w-1", "WEB-Instance-1", "az-2"),
        make_instance("a-1", "WAS-Instance-1", "az-1"),
    ]
    lbs = [make_lb("arn:lb/web", "DRS-WEB-ALB"), make_lb("arn:lb/app", "DRS-WAS-ALB")]
    result = build_from_raw(instances, lbs)

    assert zone_grouping(result, Tier.WEB) == {"az-1": (), "az-2": ("w-1",)}
    assert zone_grouping(result, Tier.APP) == {"az-1": ("a-1",), "az-2": ()}
    assert ("web-lb", "web-group-az-1") in result.edge_pairs()
    assert ("app-lb", "app-group-az-2") in result.edge_pairs()


def test_missing_load_balancer_omits_node_and_edges():
    instances, _ = scenario_resources()
    result = build_from_raw(instances, [make_lb("arn:lb/web", "DRS-WEB-ALB")])

    assert result.node("app-lb") is None
    assert all("app-lb" not in pair for pair in result.edge_pairs())
    # app tier still renders, un-rooted
    assert result.node("app-group-az-1") is not None
    assert ("app-group-az-1", "i-2") in result.edge_pairs()


def test_no_load_balancers_at_all():
    instances, _ = scenario_resources()
    result = build_from_raw(instances, [])

    assert [n.id for n in result.nodes] == ["web-group-az-1", "i-1", "app-group-az-1", "i-2"]
    assert result.edge_pairs() == [("web-group-az-1", "i-1"), ("app-group-az-1", "i-2")]


def test_every_web_instance_feeds_app_load_balancer():
    instances = [
        make_instance("w-1", "WEB-Instance-1", "az-1"),
        make_instance("w-2", "WEB-Instance-2", "az-2"),
        make_instance("a-1", "WAS-Instance-1", "az-1"),
    ]
    result = build_from_raw(instances, [make_lb("arn:lb/app", "DRS-WAS-ALB")])

    into_app_lb = [source for source, target in result.edge_pairs() if target == "app-lb"]
    assert into_app_lb == ["w-1", "w-2"]


def test_app_instance_not_in_web_grouping():
    instances = [make_instance("i-7", "WAS-Instance-7", "az-1", InstanceState.RUNNING)]
    result = build_from_raw(instances, [])

    assert all("i-7" not in members for members in zone_grouping(result, Tier.WEB).values())
    assert zone_grouping(result, Tier.APP) == {"az-1": ("i-7",)}


def test_build_is_deterministic():
    instances = [
        make_instance(f"i-{n}", f"{'WEB' if n % 2 else 'WAS'}-Instance-{n}", f"az-{n % 3}")
        for n in range(12)
    ]
    lbs = [make_lb("arn:lb/web", "DRS-WEB-ALB"), make_lb("arn:lb/app", "DRS-WAS-ALB")]

    first = build_from_raw(instances, lbs)
    second = build_from_raw(list(instances), list(lbs))
    assert first == second


def test_zone_columns_stable_when_discovery_order_changes():
    instances = [
        make_instance(f"i-{n}", f"WEB-Instance-{n}", f"az-{n}") for n in range(4)
    ]
    shuffled = list(instances)
    random.Random(7).shuffle(shuffled)

    first = build_from_raw(instances, [])
    second = build_from_raw(shuffled, [])
    positions = {n.id: n.position for n in first.nodes}
    assert positions == {n.id: n.position for n in second.nodes}


def test_custom_layout():
    layout = LayoutConfig(base_offset=0, horizontal_spacing=100, instance_spacing=50, group_padding=0)
    instances, lbs = scenario_resources()
    result = build_from_raw(instances, lbs, layout)

    assert result.node("i-1").position == Position(-50, 300)
    assert result.node("app-lb").position.y == 300 + 50 + 300


def test_group_height_helpers():
    classified, _ = classify([make_instance(f"i-{n}", "WEB-Instance", "az-1") for n in range(4)], [])
    by_zone = group_by_zone(classified, Tier.WEB)
    assert group_height(by_zone, LayoutConfig()) == 2 * 120 + 150
    assert group_height({}, LayoutConfig()) == 150


def test_coordinates_are_integers_across_node_types():
    instances = [
        make_instance("i-a", "WEB-Instance-1", "az-a"),
        make_instance("i-b", "WEB-Instance-2", "az-b"),
        make_instance("i-c", "WAS-Instance-1", "az-a"),
    ]
    lbs = [make_lb("arn:lb/web", "DRS-WEB-ALB"), make_lb("arn:lb/app", "DRS-WAS-ALB")]
    result = build_from_raw(instances, lbs)

    for node in result.nodes:
        assert type(node.position.x) is int, node.id
        assert type(node.position.y) is int, node.id
    assert result.node("web-lb").position == Position(750, 0)
    assert result.node("i-b").position == Position(925, 300)
