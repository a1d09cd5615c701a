"""
FastAPI service exposing resource listings, monitor control and the live topology.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from .classify import classify_load_balancer
from .config import Settings, load_settings, validate_network_id
from .errors import FetchError, InvalidNetworkIdError
from .fetch import AwsResourceFetcher, ResourceFetcher, fetch_tagged_load_balancers
from .models import RawInstance, Role
from .render import render_flow
from .scheduler import PollScheduler
from .store import TopologyStore

logger = logging.getLogger(__name__)


class MonitorRequest(BaseModel):
    vpcId: str


class MonitorResponse(BaseModel):
    state: str
    vpcId: Optional[str] = None


class TopologyResponse(BaseModel):
    state: str
    vpcId: Optional[str] = None
    publishedAt: Optional[float] = None
    graph: Optional[Dict[str, List[Dict[str, Any]]]] = None


def instance_payload(instance: RawInstance) -> Dict[str, Any]:
    return {
        "instanceId": instance.instance_id,
        "state": instance.state.value,
        "publicIp": instance.public_ip,
        "privateIp": instance.private_ip,
        "instanceType": instance.instance_type,
        "tags": [{"Key": tag.key, "Value": tag.value} for tag in instance.tags],
        "availabilityZone": instance.availability_zone,
    }


def _require_vpc_id(vpc_id: Optional[str]) -> str:
    try:
        return validate_network_id(vpc_id)
    except InvalidNetworkIdError as e:
        raise HTTPException(status_code=400, detail=str(e))


def create_app(fetcher: Optional[ResourceFetcher] = None,
               settings: Optional[Settings] = None,
               scheduler: Optional[PollScheduler] = None,
               store: Optional[TopologyStore] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        fetcher: Resource source; defaults to boto3 clients for the configured region
        settings: Runtime settings; defaults to load_settings()
        scheduler: Poll scheduler; defaults to one publishing into store
        store: Holder of the published topology

    Returns:
        FastAPI application
    """
    settings = settings or load_settings()
    fetcher = fetcher or AwsResourceFetcher(settings.region)
    store = store or TopologyStore()
    scheduler = scheduler or PollScheduler(
        fetcher,
        publish=store.publish,
        interval=settings.poll_interval,
        rules=settings.rules,
        layout=settings.layout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        scheduler.shutdown()

    app = FastAPI(
        title="vpcwatch",
        description="Live topology of web/app tier instances and load balancers in a VPC",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.scheduler = scheduler
    app.state.store = store

    @app.get("/api/instances")
    def list_instances(vpcId: Optional[str] = None):
        """List EC2 instances in a VPC."""
        vpc_id = _require_vpc_id(vpcId)
        try:
            instances = fetcher.fetch_instances(vpc_id)
        except FetchError as e:
            logger.error(f"Error fetching EC2 instances: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch EC2 instances")
        return {"instances": [instance_payload(instance) for instance in instances]}

    @app.get("/api/loadbalancers")
    def list_load_balancers(vpcId: Optional[str] = None):
        """List the web and app tier load balancers in a VPC."""
        vpc_id = _require_vpc_id(vpcId)
        try:
            load_balancers = fetch_tagged_load_balancers(fetcher, vpc_id)
        except FetchError as e:
            logger.error(f"Error fetching ALBs: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch ALBs")

        payload = []
        for lb in load_balancers:
            classified = classify_load_balancer(lb, settings.rules)
            if classified.role is Role.EXCLUDED:
                continue
            payload.append({
                "loadBalancerArn": lb.arn,
                "dnsName": lb.dns_name,
                "name": classified.name,
                "type": lb.lb_type,
                "scheme": lb.scheme,
                "state": lb.state_code,
                "vpcId": lb.vpc_id,
            })
        logger.debug(f"Found ALBs: {payload}")
        return {"loadBalancers": payload}

    @app.get("/api/monitor", response_model=MonitorResponse)
    def monitor_status():
        return MonitorResponse(state=scheduler.state.value, vpcId=scheduler.network_id)

    @app.post("/api/monitor", response_model=MonitorResponse)
    def start_monitor(request: MonitorRequest):
        """Start polling a VPC, replacing any VPC already being watched."""
        vpc_id = _require_vpc_id(request.vpcId)
        # Stop first so no cycle of the previous VPC can publish after the clear
        scheduler.stop()
        store.clear()
        scheduler.start(vpc_id)
        return MonitorResponse(state=scheduler.state.value, vpcId=scheduler.network_id)

    @app.delete("/api/monitor", response_model=MonitorResponse)
    def stop_monitor():
        scheduler.stop()
        store.clear()
        return MonitorResponse(state=scheduler.state.value)

    @app.get("/api/topology", response_model=TopologyResponse)
    def topology():
        """Return the last published topology, or no graph while loading."""
        published = store.latest()
        response = TopologyResponse(state=scheduler.state.value, vpcId=scheduler.network_id)
        if published is not None:
            response.publishedAt = published.published_at
            response.graph = render_flow(published.result)
        return response

    return app
