"""
Configuration for region, classification rules, layout and polling.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from .errors import InvalidNetworkIdError

DEFAULT_REGION = "ap-northeast-2"

# Fixed refresh cadence of the poll scheduler.
POLL_INTERVAL_SECONDS = 10.0


@dataclass(frozen=True)
class ClassificationRules:
    """Name-tag markers used to sort resources into tiers."""
    web_instance_marker: str = "WEB-Instance"
    app_instance_marker: str = "WAS-Instance"
    web_lb_name: str = "DRS-WEB-ALB"
    app_lb_name: str = "DRS-WAS-ALB"


@dataclass(frozen=True)
class LayoutConfig:
    """Graph layout constants, in canvas units."""
    column_width: int = 400
    instance_spacing: int = 120
    group_spacing: int = 300         # web tier bottom -> app load balancer
    instances_per_row: int = 2
    horizontal_spacing: int = 350
    az_spacing: int = 300
    base_offset: int = 400
    group_padding: int = 150
    lb_to_group_offset: int = 200
    group_to_instance_offset: int = 100


@dataclass
class Settings:
    """Runtime settings for the monitor."""
    region: str = DEFAULT_REGION
    poll_interval: float = POLL_INTERVAL_SECONDS
    rules: ClassificationRules = field(default_factory=ClassificationRules)
    layout: LayoutConfig = field(default_factory=LayoutConfig)


def load_settings(region: Optional[str] = None) -> Settings:
    """
    Build settings from the environment.

    Args:
        region: Explicit region, overriding AWS_REGION

    Returns:
        Settings instance
    """
    return Settings(region=region or os.environ.get("AWS_REGION") or DEFAULT_REGION)


def validate_network_id(network_id: Optional[str]) -> str:
    """
    Check that a VPC ID was supplied.

    Args:
        network_id: VPC ID entered by the operator

    Returns:
        The stripped VPC ID

    Raises:
        InvalidNetworkIdError: If the ID is missing or blank
    """
    if network_id is None or not network_id.strip():
        raise InvalidNetworkIdError("VPC ID is required")
    return network_id.strip()
