"""
Tag-based classification of instances and load balancers into tiers.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .config import ClassificationRules
from .models import (
    ClassifiedInstance,
    ClassifiedLoadBalancer,
    RawInstance,
    RawLoadBalancer,
    Role,
    Tier,
    name_tag,
)

logger = logging.getLogger(__name__)

DEFAULT_RULES = ClassificationRules()


def instance_tier(name: str, rules: ClassificationRules = DEFAULT_RULES) -> Tier:
    """
    Resolve the tier for an instance Name tag.

    Args:
        name: Value of the Name tag ("" when absent)
        rules: Marker substrings

    Returns:
        WEB, APP or EXCLUDED
    """
    if rules.web_instance_marker in name:
        return Tier.WEB
    if rules.app_instance_marker in name:
        return Tier.APP
    return Tier.EXCLUDED


def load_balancer_role(name: str, rules: ClassificationRules = DEFAULT_RULES) -> Role:
    """Resolve a load balancer role by exact Name tag match."""
    if name == rules.web_lb_name:
        return Role.WEB_FRONT
    if name == rules.app_lb_name:
        return Role.APP_FRONT
    return Role.EXCLUDED


def classify_instance(instance: RawInstance,
                      rules: ClassificationRules = DEFAULT_RULES) -> ClassifiedInstance:
    name = name_tag(instance.tags)
    return ClassifiedInstance(instance=instance, tier=instance_tier(name, rules), name=name)


def classify_load_balancer(load_balancer: RawLoadBalancer,
                           rules: ClassificationRules = DEFAULT_RULES) -> ClassifiedLoadBalancer:
    name = name_tag(load_balancer.tags)
    return ClassifiedLoadBalancer(
        load_balancer=load_balancer,
        role=load_balancer_role(name, rules),
        name=name,
    )


def classify_instances(instances: Iterable[RawInstance],
                       rules: ClassificationRules = DEFAULT_RULES) -> List[ClassifiedInstance]:
    """Classify instances, dropping those outside the web and app tiers."""
    classified = (classify_instance(instance, rules) for instance in instances)
    return [item for item in classified if item.tier is not Tier.EXCLUDED]


def classify_load_balancers(load_balancers: Iterable[RawLoadBalancer],
                            rules: ClassificationRules = DEFAULT_RULES) -> List[ClassifiedLoadBalancer]:
    """
    Classify load balancers, keeping at most one per role.

    When several load balancers carry the same sentinel name the first one
    in listing order wins and the rest are dropped with a warning.
    """
    chosen: Dict[Role, ClassifiedLoadBalancer] = {}
    for load_balancer in load_balancers:
        item = classify_load_balancer(load_balancer, rules)
        if item.role is Role.EXCLUDED:
            continue
        if item.role in chosen:
            logger.warning(
                f"Ignoring duplicate {item.role.value} load balancer {load_balancer.arn}; "
                f"already using {chosen[item.role].load_balancer.arn}"
            )
            continue
        chosen[item.role] = item
    return list(chosen.values())


def classify(instances: Iterable[RawInstance],
             load_balancers: Iterable[RawLoadBalancer],
             rules: Optional[ClassificationRules] = None
             ) -> Tuple[List[ClassifiedInstance], List[ClassifiedLoadBalancer]]:
    """Classify both listings. Never raises on malformed or missing tags."""
    rules = rules or DEFAULT_RULES
    return classify_instances(instances, rules), classify_load_balancers(load_balancers, rules)
