"""
Tests for settings and VPC ID validation.
"""

import pytest

from vpcwatch.config import DEFAULT_REGION, POLL_INTERVAL_SECONDS, load_settings, validate_network_id
from vpcwatch.errors import InvalidNetworkIdError


def test_region_from_environment(monkeypatch):
    monkeypatch.setenv("AWS_REGION", "us-west-2")
    assert load_settings().region == "us-west-2"


def test_region_default(monkeypatch):
    monkeypatch.delenv("AWS_REGION", raising=False)
    settings = load_settings()
    assert settings.region == DEFAULT_REGION == "ap-northeast-2"
    assert settings.poll_interval == POLL_INTERVAL_SECONDS == 10.0


def test_explicit_region_overrides_environment(monkeypatch):
    monkeypatch.setenv("AWS_REGION", "us-west-2")
    assert load_settings("eu-central-1").region == "eu-central-1"


def test_validate_network_id():
    assert validate_network_id(" vpc-123 ") == "vpc-123"
    for value in (None, "", "   "):
        with pytest.raises(InvalidNetworkIdError, match="VPC ID is required"):
            validate_network_id(value)
