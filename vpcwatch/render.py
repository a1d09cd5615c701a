"""
Renderers that turn a PollResult into React Flow style JSON or plain text.

Node payloads are chosen by node type, so each variant owns its own shape.
"""

from functools import singledispatch
from typing import Any, Dict, List

from .models import (
    InstanceNode,
    InstanceState,
    LoadBalancerNode,
    PollResult,
    TopologyEdge,
    ZoneGroupNode,
)

GROUP_COLOR = "#4a90e2"
EDGE_COLOR = "#94a3b8"
STATE_COLORS = {
    InstanceState.RUNNING: "#22c55e",
    InstanceState.STOPPED: "#f97316",
    InstanceState.TERMINATED: "#ef4444",
}
DEFAULT_STATE_COLOR = "#94a3b8"


def state_color(state: InstanceState) -> str:
    """Border colour for an instance lifecycle state."""
    return STATE_COLORS.get(state, DEFAULT_STATE_COLOR)


@singledispatch
def node_payload(node) -> Dict[str, Any]:
    raise TypeError(f"Unsupported node type: {type(node).__name__}")


@node_payload.register
def _(node: LoadBalancerNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": "status",
        "position": {"x": node.position.x, "y": node.position.y},
        "data": {
            "id": node.id,
            "kind": "loadBalancer",
            "label": node.label,
            "role": node.role.value,
            "status": True,
            "state": "active",
            "dnsName": node.dns_name,
        },
    }


@node_payload.register
def _(node: ZoneGroupNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": "group",
        "position": {"x": node.position.x, "y": node.position.y},
        "data": {
            "id": node.id,
            "kind": "zoneGroup",
            "label": node.label,
            "tier": node.tier.value,
            "availabilityZone": node.availability_zone,
            "members": list(node.member_instance_ids),
            "groupHeight": node.computed_height,
            "borderColor": GROUP_COLOR,
        },
    }


@node_payload.register
def _(node: InstanceNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": "status",
        "position": {"x": node.position.x, "y": node.position.y},
        "data": {
            "id": node.id,
            "kind": "instance",
            "label": node.label,
            "tier": node.tier.value,
            "status": node.status,
            "state": node.lifecycle_state.value,
            "instanceId": node.instance_id,
            "availabilityZone": node.availability_zone,
            "publicIp": node.public_ip,
            "borderColor": state_color(node.lifecycle_state),
        },
    }


def edge_payload(edge: TopologyEdge) -> Dict[str, Any]:
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "animated": True,
        "style": {"stroke": EDGE_COLOR},
    }


def render_flow(result: PollResult) -> Dict[str, List[Dict[str, Any]]]:
    """Render a PollResult as ``{"nodes": [...], "edges": [...]}``."""
    return {
        "nodes": [node_payload(node) for node in result.nodes],
        "edges": [edge_payload(edge) for edge in result.edges],
    }


@singledispatch
def node_line(node) -> str:
    raise TypeError(f"Unsupported node type: {type(node).__name__}")


@node_line.register
def _(node: LoadBalancerNode) -> str:
    return f"[{node.label}] {node.dns_name}"


@node_line.register
def _(node: ZoneGroupNode) -> str:
    return f"  {node.label} ({len(node.member_instance_ids)} instances)"


@node_line.register
def _(node: InstanceNode) -> str:
    marker = "UP" if node.status else "DOWN"
    ip = f" {node.public_ip}" if node.public_ip else ""
    return f"    {marker:<4} {node.label} {node.instance_id} {node.lifecycle_state.value}{ip}"


def render_text(result: PollResult) -> str:
    """Render a PollResult as an indented text listing."""
    if result.is_empty:
        return "No matching instances or load balancers found"
    lines = [node_line(node) for node in result.nodes]
    lines.append(f"{len(result.edges)} edges")
    return "\n".join(lines)
