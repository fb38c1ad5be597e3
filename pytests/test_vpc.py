#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from troposphere import Template

from ecs_webstack.common.config import StackConfig
from ecs_webstack.exceptions import ValidationError
from ecs_webstack.vpc import (
    NetworkTopology,
    SubnetSpec,
    define_network_topology,
)
from ecs_webstack.vpc.vpc_maths import allocate_layers_cidrs
from ecs_webstack.vpc.vpc_params import PRIVATE_EGRESS_SUBNET_TYPE, PUBLIC_SUBNET_TYPE
from ecs_webstack.vpc.vpc_template import render_network


def test_allocate_layers():
    public, private = allocate_layers_cidrs("10.0.0.0/16", [24, 24], 2)
    assert public == ["10.0.0.0/24", "10.0.1.0/24"]
    assert private == ["10.0.2.0/24", "10.0.3.0/24"]


def test_allocate_layers_errors():
    with pytest.raises(ValidationError):
        allocate_layers_cidrs("10.0.0.0/33", [24], 2)
    with pytest.raises(ValidationError):
        allocate_layers_cidrs("10.0.0.0/24", [16], 2)
    with pytest.raises(ValidationError):
        allocate_layers_cidrs("10.0.0.0/24", [25, 25], 2)


def test_default_topology(ocr_config):
    topology = define_network_topology(ocr_config)
    assert topology.zone_count == 2
    assert topology.nat_gateway_count == 2
    assert len(topology.public_subnets.cidr_blocks) == 2
    assert len(topology.private_subnets.cidr_blocks) == 2
    assert topology.nat_gateway_count <= topology.zone_count


def test_too_many_nat_gateways(minimal_content):
    minimal_content["Network"] = {"ZoneCount": 2, "NatGateways": 3}
    with pytest.raises(ValidationError):
        define_network_topology(StackConfig(minimal_content))


def test_no_nat_gateway(minimal_content):
    minimal_content["Network"] = {"NatGateways": 0}
    with pytest.raises(ValidationError):
        define_network_topology(StackConfig(minimal_content))


def test_topology_layers():
    topology = NetworkTopology(
        "test",
        "10.0.0.0/16",
        2,
        [SubnetSpec(PUBLIC_SUBNET_TYPE, "Public", 24, ["10.0.0.0/24", "10.0.1.0/24"])],
        1,
    )
    with pytest.raises(ValidationError):
        topology.validate()
    assert topology.public_subnets.name == "Public"
    with pytest.raises(ValidationError):
        topology.private_subnets
    topology = NetworkTopology(
        "test",
        "10.0.0.0/16",
        2,
        [
            SubnetSpec(PUBLIC_SUBNET_TYPE, "Public", 24, ["10.0.0.0/24", "10.0.1.0/24"]),
            SubnetSpec(
                PRIVATE_EGRESS_SUBNET_TYPE, "Private", 24, ["10.0.1.0/24", "10.0.2.0/24"]
            ),
        ],
        1,
    )
    with pytest.raises(ValidationError):
        topology.validate()
    with pytest.raises(ValidationError):
        SubnetSpec("storage", "Storage", 24)


def test_render_network(ocr_config):
    template = Template()
    resources = render_network(template, define_network_topology(ocr_config))
    assert len(resources.public_subnets) == 2
    assert len(resources.private_subnets) == 2
    assert len(resources.nats) == 2
    types = [resource.resource_type for resource in template.resources.values()]
    assert types.count("AWS::EC2::NatGateway") == 2
    assert types.count("AWS::EC2::EIP") == 2
    assert types.count("AWS::EC2::Subnet") == 4


def test_render_single_nat(minimal_content):
    minimal_content["Network"] = {"NatGateways": 1}
    template = Template()
    render_network(template, define_network_topology(StackConfig(minimal_content)))
    routes = template.to_dict()["Resources"]
    assert routes["PrivateSubnetRouteA"]["Properties"]["NatGatewayId"] == {
        "Ref": "NatGatewayAzA"
    }
    assert routes["PrivateSubnetRouteB"]["Properties"]["NatGatewayId"] == {
        "Ref": "NatGatewayAzA"
    }
