"""
Data models shared by the fetcher, classifier, topology builder and scheduler.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union


class InstanceState(Enum):
    """EC2 instance lifecycle states."""
    PENDING = "pending"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    SHUTTING_DOWN = "shutting-down"
    TERMINATED = "terminated"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "InstanceState":
        """Map an API state name to a member, falling back to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class Tier(Enum):
    """Application tier an instance belongs to."""
    WEB = "web"
    APP = "app"
    EXCLUDED = "excluded"


class Role(Enum):
    """Which tier a load balancer fronts."""
    WEB_FRONT = "web-front"
    APP_FRONT = "app-front"
    EXCLUDED = "excluded"


@dataclass(frozen=True)
class Tag:
    key: str
    value: str


def tags_from_api(raw_tags: Optional[List[dict]]) -> Tuple[Tag, ...]:
    """Convert an AWS ``[{"Key": ..., "Value": ...}]`` list into Tags."""
    tags = []
    for raw in raw_tags or []:
        key = raw.get("Key")
        if key is None:
            continue
        tags.append(Tag(key=key, value=raw.get("Value") or ""))
    return tuple(tags)


def name_tag(tags: Tuple[Tag, ...]) -> str:
    """Return the value of the first ``Name`` tag, or an empty string."""
    for tag in tags:
        if tag.key == "Name":
            return tag.value
    return ""


@dataclass(frozen=True)
class RawInstance:
    """An EC2 instance as returned by the fetcher."""
    instance_id: str
    state: InstanceState
    availability_zone: str
    public_ip: Optional[str] = None
    private_ip: Optional[str] = None
    instance_type: Optional[str] = None
    tags: Tuple[Tag, ...] = ()


@dataclass(frozen=True)
class RawLoadBalancer:
    """An ELBv2 load balancer; tags are joined after a separate lookup."""
    arn: str
    dns_name: str
    vpc_id: str
    state_code: Optional[str] = None
    lb_type: Optional[str] = None
    scheme: Optional[str] = None
    tags: Tuple[Tag, ...] = ()


@dataclass(frozen=True)
class ClassifiedInstance:
    instance: RawInstance
    tier: Tier
    name: str

    @property
    def instance_id(self) -> str:
        return self.instance.instance_id

    @property
    def availability_zone(self) -> str:
        return self.instance.availability_zone


@dataclass(frozen=True)
class ClassifiedLoadBalancer:
    load_balancer: RawLoadBalancer
    role: Role
    name: str


@dataclass(frozen=True)
class Position:
    x: int
    y: int


@dataclass(frozen=True)
class LoadBalancerNode:
    id: str
    position: Position
    dns_name: str
    role: Role
    label: str


@dataclass(frozen=True)
class ZoneGroupNode:
    id: str
    position: Position
    availability_zone: str
    tier: Tier
    member_instance_ids: Tuple[str, ...]
    computed_height: int
    label: str


@dataclass(frozen=True)
class InstanceNode:
    id: str
    position: Position
    instance_id: str
    tier: Tier
    label: str
    lifecycle_state: InstanceState
    availability_zone: str
    public_ip: Optional[str] = None

    @property
    def status(self) -> bool:
        """True when the instance is running."""
        return self.lifecycle_state is InstanceState.RUNNING


TopologyNode = Union[LoadBalancerNode, ZoneGroupNode, InstanceNode]


@dataclass(frozen=True)
class TopologyEdge:
    source: str
    target: str

    @property
    def id(self) -> str:
        return f"e-{self.source}-to-{self.target}"


@dataclass(frozen=True)
class PollResult:
    """The graph handed to the presentation layer after a successful poll."""
    nodes: Tuple[TopologyNode, ...] = field(default_factory=tuple)
    edges: Tuple[TopologyEdge, ...] = field(default_factory=tuple)

    def node(self, node_id: str) -> Optional[TopologyNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edge_pairs(self) -> List[Tuple[str, str]]:
        return [(edge.source, edge.target) for edge in self.edges]

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.edges
