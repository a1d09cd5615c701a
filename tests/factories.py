"""
Builders and a fake fetcher shared by the test modules.
"""

import threading
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from vpcwatch.fetch import ResourceFetcher
from vpcwatch.models import InstanceState, RawInstance, RawLoadBalancer, Tag


def make_instance(instance_id: str, name: Optional[str], zone: str = "az-1",
                  state: InstanceState = InstanceState.RUNNING,
                  public_ip: Optional[str] = None, extra_tags: Sequence[Tag] = ()) -> RawInstance:
    tags = tuple(extra_tags)
    if name is not None:
        tags = tags + (Tag("Name", name),)
    return RawInstance(
        instance_id=instance_id,
        state=state,
        availability_zone=zone,
        public_ip=public_ip,
        private_ip="10.0.0.10",
        instance_type="t3.micro",
        tags=tags,
    )


def make_lb(arn: str, name: Optional[str] = None, vpc_id: str = "vpc-1",
            dns_name: Optional[str] = None) -> RawLoadBalancer:
    tags = (Tag("Name", name),) if name is not None else ()
    return RawLoadBalancer(
        arn=arn,
        dns_name=dns_name or f"{arn.split('/')[-1]}.elb.amazonaws.com",
        vpc_id=vpc_id,
        state_code="active",
        lb_type="application",
        scheme="internet-facing",
        tags=tags,
    )


def scenario_resources() -> Tuple[List[RawInstance], List[RawLoadBalancer]]:
    """Two instances in az-1 (one per tier) and one load balancer per tier."""
    instances = [
        make_instance("i-1", "WEB-Instance-1", "az-1", InstanceState.RUNNING, public_ip="3.3.3.3"),
        make_instance("i-2", "WAS-Instance-1", "az-1", InstanceState.STOPPED),
    ]
    load_balancers = [
        make_lb("arn:lb/web", "DRS-WEB-ALB", dns_name="web.elb.amazonaws.com"),
        make_lb("arn:lb/app", "DRS-WAS-ALB", dns_name="app.elb.amazonaws.com"),
    ]
    return instances, load_balancers


class FakeFetcher(ResourceFetcher):
    """In-memory fetcher; tags are served from the load balancers given."""

    def __init__(self, instances=None, load_balancers=None):
        self.instances = list(instances or [])
        self.load_balancers = list(load_balancers or [])
        self.fail_instances: Optional[Exception] = None
        self.fail_load_balancers: Optional[Exception] = None
        self.fail_tags: Optional[Exception] = None
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def _record(self, call: str) -> None:
        with self._lock:
            self.calls.append(call)

    def fetch_instances(self, vpc_id: str) -> List[RawInstance]:
        self._record(f"instances:{vpc_id}")
        if self.fail_instances is not None:
            raise self.fail_instances
        return list(self.instances)

    def fetch_load_balancers(self, vpc_id: str) -> List[RawLoadBalancer]:
        self._record(f"load_balancers:{vpc_id}")
        if self.fail_load_balancers is not None:
            raise self.fail_load_balancers
        return [replace(lb, tags=()) for lb in self.load_balancers]

    def fetch_load_balancer_tags(self, arns: Sequence[str]) -> Dict[str, Tuple[Tag, ...]]:
        self._record("tags")
        if self.fail_tags is not None:
            raise self.fail_tags
        return {lb.arn: lb.tags for lb in self.load_balancers if lb.arn in arns and lb.tags}
