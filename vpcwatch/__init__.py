"""
vpcwatch - Live topology monitor for VPC compute instances and load balancers.

This package polls EC2 and ELBv2, classifies resources into web/app tiers
and lays them out as a directed graph that is refreshed on a fixed interval.
"""

__version__ = "0.1.0"
