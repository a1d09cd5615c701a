"""
Resource fetchers for EC2 instances and ELBv2 load balancers.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Sequence, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import FetchError
from .models import InstanceState, RawInstance, RawLoadBalancer, Tag, tags_from_api

logger = logging.getLogger(__name__)

# DescribeTags accepts at most 20 resource ARNs per call.
MAX_TAG_ARNS_PER_CALL = 20


class ResourceFetcher(ABC):
    """Source of raw instance and load balancer listings for a VPC."""

    @abstractmethod
    def fetch_instances(self, vpc_id: str) -> List[RawInstance]:
        """Return all instances in the VPC."""
        pass

    @abstractmethod
    def fetch_load_balancers(self, vpc_id: str) -> List[RawLoadBalancer]:
        """Return all load balancers in the VPC, without tags."""
        pass

    @abstractmethod
    def fetch_load_balancer_tags(self, arns: Sequence[str]) -> Dict[str, Tuple[Tag, ...]]:
        """Return tags keyed by load balancer ARN."""
        pass


def join_tags(load_balancers: List[RawLoadBalancer],
              tag_map: Dict[str, Tuple[Tag, ...]]) -> List[RawLoadBalancer]:
    """
    Attach looked-up tags to their load balancers.

    Load balancers missing from the tag map keep an empty tag list.

    Args:
        load_balancers: Listing from fetch_load_balancers
        tag_map: Result of fetch_load_balancer_tags

    Returns:
        New list with tags populated
    """
    return [replace(lb, tags=tuple(tag_map.get(lb.arn, ()))) for lb in load_balancers]


def instance_from_api(instance: Dict) -> RawInstance:
    """Build a RawInstance from a DescribeInstances record."""
    return RawInstance(
        instance_id=instance.get("InstanceId", ""),
        state=InstanceState.parse((instance.get("State") or {}).get("Name")),
        availability_zone=(instance.get("Placement") or {}).get("AvailabilityZone", ""),
        public_ip=instance.get("PublicIpAddress"),
        private_ip=instance.get("PrivateIpAddress"),
        instance_type=instance.get("InstanceType"),
        tags=tags_from_api(instance.get("Tags")),
    )


def load_balancer_from_api(lb: Dict) -> RawLoadBalancer:
    """Build a RawLoadBalancer from a DescribeLoadBalancers record."""
    return RawLoadBalancer(
        arn=lb.get("LoadBalancerArn", ""),
        dns_name=lb.get("DNSName", ""),
        vpc_id=lb.get("VpcId", ""),
        state_code=(lb.get("State") or {}).get("Code"),
        lb_type=lb.get("Type"),
        scheme=lb.get("Scheme"),
    )


class AwsResourceFetcher(ResourceFetcher):
    """Fetches resources through boto3 EC2 and ELBv2 clients."""

    def __init__(self, region: str, ec2_client=None, elbv2_client=None):
        self.region = region
        self.ec2_client = ec2_client
        self.elbv2_client = elbv2_client

    def _get_ec2_client(self):
        """Lazy initialization of the EC2 client."""
        if self.ec2_client is None:
            self.ec2_client = boto3.client('ec2', region_name=self.region)
        return self.ec2_client

    def _get_elbv2_client(self):
        """Lazy initialization of the ELBv2 client."""
        if self.elbv2_client is None:
            self.elbv2_client = boto3.client('elbv2', region_name=self.region)
        return self.elbv2_client

    def fetch_instances(self, vpc_id: str) -> List[RawInstance]:
        instances = []
        try:
            paginator = self._get_ec2_client().get_paginator('describe_instances')
            for page in paginator.paginate(Filters=[{'Name': 'vpc-id', 'Values': [vpc_id]}]):
                for reservation in page.get('Reservations', []):
                    for instance in reservation.get('Instances', []):
                        instances.append(instance_from_api(instance))
        except (ClientError, BotoCoreError) as e:
            raise FetchError("DescribeInstances", e) from e

        logger.debug(f"Fetched {len(instances)} instances for {vpc_id}")
        return instances

    def fetch_load_balancers(self, vpc_id: str) -> List[RawLoadBalancer]:
        load_balancers = []
        try:
            paginator = self._get_elbv2_client().get_paginator('describe_load_balancers')
            for page in paginator.paginate():
                for lb in page.get('LoadBalancers', []):
                    # No server-side VPC filter exists for this call
                    if lb.get('VpcId') == vpc_id:
                        load_balancers.append(load_balancer_from_api(lb))
        except (ClientError, BotoCoreError) as e:
            raise FetchError("DescribeLoadBalancers", e) from e

        logger.debug(f"Fetched {len(load_balancers)} load balancers for {vpc_id}")
        return load_balancers

    def fetch_load_balancer_tags(self, arns: Sequence[str]) -> Dict[str, Tuple[Tag, ...]]:
        arns = [arn for arn in arns if arn]
        tag_map: Dict[str, Tuple[Tag, ...]] = {}
        if not arns:
            return tag_map

        try:
            client = self._get_elbv2_client()
            for start in range(0, len(arns), MAX_TAG_ARNS_PER_CALL):
                batch = arns[start:start + MAX_TAG_ARNS_PER_CALL]
                response = client.describe_tags(ResourceArns=batch)
                for description in response.get('TagDescriptions', []):
                    tag_map[description['ResourceArn']] = tags_from_api(description.get('Tags'))
        except (ClientError, BotoCoreError) as e:
            raise FetchError("DescribeTags", e) from e

        return tag_map


def fetch_tagged_load_balancers(fetcher: ResourceFetcher, vpc_id: str) -> List[RawLoadBalancer]:
    """Fetch load balancers and join their tags; tag failures propagate."""
    load_balancers = fetcher.fetch_load_balancers(vpc_id)
    tag_map = fetcher.fetch_load_balancer_tags([lb.arn for lb in load_balancers])
    return join_tags(load_balancers, tag_map)
