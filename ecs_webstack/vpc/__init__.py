# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Network topology of the stack: a VPC spanning several AZs, with one public and one private (with egress)
subnet per AZ, and NAT Gateways in the public subnets.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.common.config import StackConfig

import ipaddress

from ecs_webstack.common.logging import LOG
from ecs_webstack.common.records import DescriptorRecord
from ecs_webstack.exceptions import ValidationError
from ecs_webstack.vpc.vpc_maths import allocate_layers_cidrs
from ecs_webstack.vpc.vpc_params import (
    DEFAULT_NETWORK_NAME,
    PRIVATE_EGRESS_SUBNET_TYPE,
    PRIVATE_SUBNET_NAME,
    PUBLIC_SUBNET_NAME,
    PUBLIC_SUBNET_TYPE,
    SUBNET_TYPES,
)


class SubnetSpec(DescriptorRecord):
    """
    One layer of subnets. The layer has one subnet per AZ, each with a CIDR block of cidr_mask length.
    """

    fields = ("subnet_type", "name", "cidr_mask", "cidr_blocks")

    def __init__(self, subnet_type: str, name: str, cidr_mask: int, cidr_blocks=()):
        if subnet_type not in SUBNET_TYPES:
            raise ValidationError(
                f"Subnet {name} type {subnet_type} is invalid. Must be one of",
                SUBNET_TYPES,
            )
        self.subnet_type = subnet_type
        self.name = name
        self.cidr_mask = cidr_mask
        self.cidr_blocks = tuple(cidr_blocks)
        self.freeze()


class NetworkTopology(DescriptorRecord):
    """
    Class to represent the VPC and its subnets layers.

    :ivar tuple[SubnetSpec] subnets:
    """

    fields = ("name", "cidr_block", "zone_count", "subnets", "nat_gateway_count")

    def __init__(
        self,
        name: str,
        cidr_block: str,
        zone_count: int,
        subnets,
        nat_gateway_count: int,
    ):
        self.name = name
        self.cidr_block = cidr_block
        self.zone_count = zone_count
        self.subnets = tuple(subnets)
        self.nat_gateway_count = nat_gateway_count
        self.freeze()

    def get_subnets(self, subnet_type: str) -> SubnetSpec:
        for subnet in self.subnets:
            if subnet.subnet_type == subnet_type:
                return subnet
        raise ValidationError(f"{self.name} - No subnet of type {subnet_type}")

    @property
    def public_subnets(self) -> SubnetSpec:
        return self.get_subnets(PUBLIC_SUBNET_TYPE)

    @property
    def private_subnets(self) -> SubnetSpec:
        return self.get_subnets(PRIVATE_EGRESS_SUBNET_TYPE)

    def validate(self) -> None:
        """
        Validates that each zone gets exactly one public and one private subnet, and that there are
        enough (but not more) NAT Gateways than zones.

        :raises ValidationError:
        """
        if self.zone_count < 1:
            raise ValidationError(f"{self.name} - zone_count must be at least 1")
        for subnet_type in SUBNET_TYPES:
            layers = [
                subnet for subnet in self.subnets if subnet.subnet_type == subnet_type
            ]
            if len(layers) != 1:
                raise ValidationError(
                    f"{self.name} - Each zone must have exactly one {subnet_type} subnet. Got {len(layers)} layers"
                )
            if len(layers[0].cidr_blocks) != self.zone_count:
                raise ValidationError(
                    f"{self.name} - {layers[0].name} has {len(layers[0].cidr_blocks)} subnets"
                    f" for {self.zone_count} zones"
                )
        if self.nat_gateway_count > self.zone_count:
            raise ValidationError(
                f"{self.name} - {self.nat_gateway_count} NAT Gateways for {self.zone_count} zones."
                " There cannot be more NAT Gateways than zones"
            )
        if self.nat_gateway_count < 1:
            raise ValidationError(
                f"{self.name} - {PRIVATE_EGRESS_SUBNET_TYPE} subnets require at least one NAT Gateway"
            )
        vpc_net = ipaddress.IPv4Network(self.cidr_block)
        networks = []
        for subnet in self.subnets:
            for cidr in subnet.cidr_blocks:
                network = ipaddress.IPv4Network(cidr)
                if not network.subnet_of(vpc_net):
                    raise ValidationError(
                        f"{self.name} - {subnet.name} CIDR {cidr} is not in {self.cidr_block}"
                    )
                if any(network.overlaps(other) for other in networks):
                    raise ValidationError(
                        f"{self.name} - {subnet.name} CIDR {cidr} overlaps another subnet"
                    )
                networks.append(network)


def define_network_topology(config: StackConfig) -> NetworkTopology:
    """
    Creates the network topology from the configuration. Public subnets are allocated first, then the private ones.

    :param StackConfig config:
    :rtype: NetworkTopology
    """
    masks = [config.subnet_cidr_mask, config.subnet_cidr_mask]
    public_cidrs, private_cidrs = allocate_layers_cidrs(
        config.cidr_block, masks, config.zone_count
    )
    LOG.debug(f"Public subnets {public_cidrs} - Private subnets {private_cidrs}")
    topology = NetworkTopology(
        DEFAULT_NETWORK_NAME,
        config.cidr_block,
        config.zone_count,
        [
            SubnetSpec(
                PUBLIC_SUBNET_TYPE,
                PUBLIC_SUBNET_NAME,
                config.subnet_cidr_mask,
                public_cidrs,
            ),
            SubnetSpec(
                PRIVATE_EGRESS_SUBNET_TYPE,
                PRIVATE_SUBNET_NAME,
                config.subnet_cidr_mask,
                private_cidrs,
            ),
        ],
        config.nat_gateways,
    )
    topology.validate()
    return topology
