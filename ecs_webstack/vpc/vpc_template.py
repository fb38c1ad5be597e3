# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Create the VPC resources from the NetworkTopology

RTB -> Route Table

Public subnets: All subnets use the same RTB, route to 0.0.0.0/0 via InternetGateway
Private subnets: Each subnet has its own RTB, each RTB points to the NAT Gateway of its AZ,
or the first NAT Gateway when there are fewer NAT Gateways than AZs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.vpc import NetworkTopology

from string import ascii_uppercase

from troposphere import GetAtt, GetAZs, Ref, Select, Sub, Tags, Template
from troposphere.ec2 import (
    EIP,
    VPC,
    InternetGateway,
    NatGateway,
    Route,
    RouteTable,
    Subnet,
    SubnetRouteTableAssociation,
    VPCGatewayAttachment,
)

from ecs_webstack.vpc.vpc_params import IGW_ATTACHMENT_T, IGW_T, PUBLIC_RTB_T, VPC_T


class VpcResources:
    """
    Keeps track of the troposphere objects created for the network, for other resources to Ref() them.
    """

    def __init__(self, vpc, igw, public_subnets, private_subnets, nats):
        self.vpc = vpc
        self.igw = igw
        self.public_subnets = public_subnets
        self.private_subnets = private_subnets
        self.nats = nats

    @property
    def public_subnets_refs(self) -> list:
        return [Ref(subnet) for subnet in self.public_subnets]

    @property
    def private_subnets_refs(self) -> list:
        return [Ref(subnet) for subnet in self.private_subnets]


def add_vpc_core(template: Template, topology: NetworkTopology):
    """
    Function to create the core resources of the VPC

    :return: tuple() with the vpc and igw object
    """
    vpc = VPC(
        VPC_T,
        template=template,
        CidrBlock=topology.cidr_block,
        EnableDnsHostnames=True,
        EnableDnsSupport=True,
        Tags=Tags(Name=Sub(f"${{AWS::StackName}}-{topology.name}")),
    )
    igw = InternetGateway(IGW_T, template=template)
    VPCGatewayAttachment(
        IGW_ATTACHMENT_T,
        template=template,
        InternetGatewayId=Ref(igw),
        VpcId=Ref(vpc),
    )
    return vpc, igw


def add_public_subnets(template: Template, vpc, igw, topology: NetworkTopology):
    """
    Function to add the public subnets and the NAT Gateways

    :return: tuple() list of subnets, list of nats
    """
    layer = topology.public_subnets
    rtb = RouteTable(
        PUBLIC_RTB_T,
        template=template,
        VpcId=Ref(vpc),
        Tags=Tags(Name=PUBLIC_RTB_T),
    )
    Route(
        "PublicDefaultRoute",
        template=template,
        GatewayId=Ref(igw),
        RouteTableId=Ref(rtb),
        DestinationCidrBlock="0.0.0.0/0",
        DependsOn=[IGW_ATTACHMENT_T],
    )
    subnets = []
    nats = []
    for count, subnet_cidr in enumerate(layer.cidr_blocks):
        index = ascii_uppercase[count]
        subnet = Subnet(
            f"{layer.name}{index}",
            template=template,
            CidrBlock=subnet_cidr,
            VpcId=Ref(vpc),
            AvailabilityZone=Select(count, GetAZs("")),
            MapPublicIpOnLaunch=True,
            Tags=Tags(Name=Sub(f"${{AWS::StackName}}-{layer.name}-{index}"))
            + Tags({"vpc::usage": "public"}),
        )
        SubnetRouteTableAssociation(
            f"{layer.name}RtbAssoc{index}",
            template=template,
            RouteTableId=Ref(rtb),
            SubnetId=Ref(subnet),
        )
        if len(nats) < topology.nat_gateway_count:
            eip = EIP(f"NatGatewayEip{index}", template=template, Domain="vpc")
            nat = NatGateway(
                f"NatGatewayAz{index}",
                template=template,
                AllocationId=GetAtt(eip, "AllocationId"),
                SubnetId=Ref(subnet),
                Tags=Tags(Name=Sub(f"${{AWS::StackName}}-nat-{index}")),
            )
            nats.append(nat)
        subnets.append(subnet)
    return subnets, nats


def add_private_subnets(template: Template, vpc, nats: list, topology: NetworkTopology):
    """
    Function to add the private subnets, each with its own route table to a NAT Gateway.

    :return: list of subnets
    """
    layer = topology.private_subnets
    subnets = []
    if len(nats) < topology.zone_count:
        nats = nats + [nats[0]] * (topology.zone_count - len(nats))
    for count, (subnet_cidr, nat) in enumerate(zip(layer.cidr_blocks, nats)):
        index = ascii_uppercase[count]
        subnet = Subnet(
            f"{layer.name}{index}",
            template=template,
            CidrBlock=subnet_cidr,
            VpcId=Ref(vpc),
            AvailabilityZone=Select(count, GetAZs("")),
            Tags=Tags(Name=Sub(f"${{AWS::StackName}}-{layer.name}-{index}"))
            + Tags({"vpc::usage": "application"}),
        )
        rtb = RouteTable(
            f"{layer.name}Rtb{index}",
            template=template,
            VpcId=Ref(vpc),
            Tags=Tags(Name=f"{layer.name}Rtb{index}"),
        )
        Route(
            f"{layer.name}Route{index}",
            template=template,
            NatGatewayId=Ref(nat),
            RouteTableId=Ref(rtb),
            DestinationCidrBlock="0.0.0.0/0",
        )
        SubnetRouteTableAssociation(
            f"{layer.name}RtbAssoc{index}",
            template=template,
            RouteTableId=Ref(rtb),
            SubnetId=Ref(subnet),
        )
        subnets.append(subnet)
    return subnets


def render_network(template: Template, topology: NetworkTopology) -> VpcResources:
    """
    Adds all the network resources to the template

    :param troposphere.Template template:
    :param NetworkTopology topology:
    :rtype: VpcResources
    """
    vpc, igw = add_vpc_core(template, topology)
    public_subnets, nats = add_public_subnets(template, vpc, igw, topology)
    private_subnets = add_private_subnets(template, vpc, nats, topology)
    return VpcResources(vpc, igw, public_subnets, private_subnets, nats)
