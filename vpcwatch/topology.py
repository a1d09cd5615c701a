"""
Topology builder: groups classified resources by availability zone and lays
them out as a directed graph.

The layout is recomputed from scratch on every call. Given the same inputs in
the same order the output is identical, so an unchanged VPC never shifts on
screen between polls.
"""

import math
from typing import Dict, Iterable, List, Optional, Tuple

from .config import LayoutConfig
from .models import (
    ClassifiedInstance,
    ClassifiedLoadBalancer,
    InstanceNode,
    LoadBalancerNode,
    PollResult,
    Position,
    Role,
    Tier,
    TopologyEdge,
    TopologyNode,
    ZoneGroupNode,
)

DEFAULT_LAYOUT = LayoutConfig()

TIERS = (Tier.WEB, Tier.APP)
LB_ROLES = {Tier.WEB: Role.WEB_FRONT, Tier.APP: Role.APP_FRONT}


def lb_node_id(tier: Tier) -> str:
    return f"{tier.value}-lb"


def group_node_id(tier: Tier, zone: str) -> str:
    return f"{tier.value}-group-{zone}"


def group_by_zone(instances: Iterable[ClassifiedInstance], tier: Tier) -> Dict[str, List[ClassifiedInstance]]:
    """Map availability zone to the tier's instances, keeping listing order."""
    by_zone: Dict[str, List[ClassifiedInstance]] = {}
    for instance in instances:
        if instance.tier is tier:
            by_zone.setdefault(instance.availability_zone, []).append(instance)
    return by_zone


def group_height(by_zone: Dict[str, List[ClassifiedInstance]], layout: LayoutConfig) -> int:
    """Vertical extent of a tier's instance rows plus padding."""
    max_per_zone = max((len(members) for members in by_zone.values()), default=0)
    rows = math.ceil(max_per_zone / layout.instances_per_row)
    return rows * layout.instance_spacing + layout.group_padding


class _TierRows:
    """Vertical coordinates for one tier."""

    def __init__(self, lb_y: int, layout: LayoutConfig):
        self.lb_y = lb_y
        self.group_y = lb_y + layout.lb_to_group_offset
        self.instance_y = self.group_y + layout.group_to_instance_offset


class TopologyBuilder:
    """Builds a PollResult from classified instances and load balancers."""

    def __init__(self, layout: Optional[LayoutConfig] = None):
        self.layout = layout or DEFAULT_LAYOUT

    def column_x(self, zone_index: int) -> int:
        layout = self.layout
        return layout.base_offset + zone_index * (layout.column_width + layout.az_spacing)

    def center_x(self, zone_count: int) -> int:
        layout = self.layout
        return layout.base_offset + (zone_count - 1) * (layout.column_width + layout.az_spacing) // 2

    def instance_position(self, zone_index: int, index: int, start_y: int) -> Position:
        layout = self.layout
        row = index // layout.instances_per_row
        col = index % layout.instances_per_row
        x = self.column_x(zone_index) + col * layout.horizontal_spacing - layout.horizontal_spacing // 2
        y = start_y + row * layout.instance_spacing
        return Position(x=x, y=y)

    def build(self, instances: Iterable[ClassifiedInstance],
              load_balancers: Iterable[ClassifiedLoadBalancer]) -> PollResult:
        instances = list(instances)
        lb_by_role = {}
        for lb in load_balancers:
            lb_by_role.setdefault(lb.role, lb)
        front = {tier: lb_by_role.get(LB_ROLES[tier]) for tier in TIERS}

        by_zone = {tier: group_by_zone(instances, tier) for tier in TIERS}
        # Sorted so column order is stable regardless of discovery order
        zones = sorted(set(by_zone[Tier.WEB]) | set(by_zone[Tier.APP]))

        heights = {tier: group_height(by_zone[tier], self.layout) for tier in TIERS}
        web_rows = _TierRows(0, self.layout)
        app_rows = _TierRows(web_rows.instance_y + heights[Tier.WEB] + self.layout.group_spacing, self.layout)
        rows = {Tier.WEB: web_rows, Tier.APP: app_rows}

        center_x = self.center_x(len(zones))
        lb_nodes: List[TopologyNode] = []
        tier_nodes: Dict[Tier, List[TopologyNode]] = {tier: [] for tier in TIERS}

        for tier in TIERS:
            lb = front[tier]
            if lb is not None:
                lb_nodes.append(LoadBalancerNode(
                    id=lb_node_id(tier),
                    position=Position(x=center_x, y=rows[tier].lb_y),
                    dns_name=lb.load_balancer.dns_name,
                    role=lb.role,
                    label=f"{tier.value.upper()} ALB",
                ))
            tier_nodes[tier] = self._zone_nodes(tier, zones, by_zone[tier], rows[tier], heights[tier])

        nodes = tuple(lb_nodes + tier_nodes[Tier.WEB] + tier_nodes[Tier.APP])
        edges = tuple(self._edges(instances, zones, by_zone, front))
        return PollResult(nodes=nodes, edges=edges)

    def _zone_nodes(self, tier: Tier, zones: List[str],
                    by_zone: Dict[str, List[ClassifiedInstance]],
                    rows: _TierRows, height: int) -> List[TopologyNode]:
        nodes: List[TopologyNode] = []
        for zone_index, zone in enumerate(zones):
            members = by_zone.get(zone, [])
            nodes.append(ZoneGroupNode(
                id=group_node_id(tier, zone),
                position=Position(x=self.column_x(zone_index), y=rows.group_y),
                availability_zone=zone,
                tier=tier,
                member_instance_ids=tuple(member.instance_id for member in members),
                computed_height=height,
                label=f"{tier.value.upper()} {zone}",
            ))
            for index, member in enumerate(members):
                raw = member.instance
                nodes.append(InstanceNode(
                    id=raw.instance_id,
                    position=self.instance_position(zone_index, index, rows.instance_y),
                    instance_id=raw.instance_id,
                    tier=tier,
                    label=member.name or raw.instance_id,
                    lifecycle_state=raw.state,
                    availability_zone=zone,
                    public_ip=raw.public_ip,
                ))
        return nodes

    def _edges(self, instances: List[ClassifiedInstance], zones: List[str],
               by_zone: Dict[Tier, Dict[str, List[ClassifiedInstance]]],
               front: Dict[Tier, Optional[ClassifiedLoadBalancer]]) -> List[TopologyEdge]:
        edges: List[TopologyEdge] = []

        edges.extend(self._tier_edges(Tier.WEB, zones, by_zone[Tier.WEB], front[Tier.WEB] is not None))

        # The whole web tier feeds the app load balancer, not just its own zone
        if front[Tier.APP] is not None:
            for member in instances:
                if member.tier is Tier.WEB:
                    edges.append(TopologyEdge(source=member.instance_id, target=lb_node_id(Tier.APP)))

        edges.extend(self._tier_edges(Tier.APP, zones, by_zone[Tier.APP], front[Tier.APP] is not None))
        return edges

    def _tier_edges(self, tier: Tier, zones: List[str],
                    by_zone: Dict[str, List[ClassifiedInstance]], has_lb: bool) -> List[TopologyEdge]:
        edges = []
        if has_lb:
            for zone in zones:
                edges.append(TopologyEdge(source=lb_node_id(tier), target=group_node_id(tier, zone)))
        for zone in zones:
            for member in by_zone.get(zone, []):
                edges.append(TopologyEdge(source=group_node_id(tier, zone), target=member.instance_id))
        return edges


def build(instances: Iterable[ClassifiedInstance],
          load_balancers: Iterable[ClassifiedLoadBalancer],
          layout: Optional[LayoutConfig] = None) -> PollResult:
    """Build the topology graph. Total over any classified input."""
    return TopologyBuilder(layout).build(instances, load_balancers)


def zone_grouping(result: PollResult, tier: Tier) -> Dict[str, Tuple[str, ...]]:
    """Return zone -> member instance ids for the tier's group nodes."""
    return {
        node.availability_zone: node.member_instance_ids
        for node in result.nodes
        if isinstance(node, ZoneGroupNode) and node.tier is tier
    }
