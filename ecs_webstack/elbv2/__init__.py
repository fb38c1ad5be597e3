# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Application Load Balancer records: the load balancer and the ingress rules of its security group.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.common.config import LoadBalancerConfig

import ipaddress

from ecs_webstack.common.records import DescriptorRecord
from ecs_webstack.elbv2.elbv2_params import ANY_IPV4, HTTPS_PORT, TCP_PROTOCOL
from ecs_webstack.exceptions import ValidationError


class IngressRule(DescriptorRecord):
    """
    Allows traffic to the load balancer on port, from cidr
    """

    fields = ("port", "protocol", "cidr", "description")

    def __init__(
        self,
        port: int,
        protocol: str = TCP_PROTOCOL,
        cidr: str = ANY_IPV4,
        description: str = None,
    ):
        self.port = port
        self.protocol = protocol.lower()
        self.cidr = cidr
        self.description = (
            description
            if description
            else f"Allow {protocol.upper()}/{port} from {cidr}"
        )
        self.freeze()

    def validate(self) -> None:
        if not 0 < self.port < 65536:
            raise ValidationError(f"Ingress port {self.port} is not a valid port")
        if self.protocol != TCP_PROTOCOL:
            raise ValidationError(
                f"Ingress {self.port} - protocol {self.protocol} is invalid. Must be {TCP_PROTOCOL}"
            )
        try:
            ipaddress.IPv4Network(self.cidr)
        except ValueError as error:
            raise ValidationError(
                f"Ingress {self.port} - CIDR {self.cidr} is invalid"
            ) from error


class LoadBalancerSpec(DescriptorRecord):
    """
    Class to represent an Application Load Balancer and its HTTP listener.

    :ivar tuple[IngressRule] ingress_rules:
    """

    fields = ("name", "network_ref", "is_public", "listener_port", "ingress_rules")

    def __init__(
        self,
        name: str,
        network_ref: str,
        is_public: bool,
        listener_port: int,
        ingress_rules=(),
    ):
        self.name = name
        self.network_ref = network_ref
        self.is_public = is_public
        self.listener_port = listener_port
        self.ingress_rules = tuple(ingress_rules)
        self.freeze()

    @property
    def scheme(self) -> str:
        return "internet-facing" if self.is_public else "internal"

    def validate(self) -> None:
        if not 0 < self.listener_port < 65536:
            raise ValidationError(
                f"LoadBalancer {self.name} - listener port {self.listener_port} is invalid"
            )
        ports = [rule.port for rule in self.ingress_rules]
        if len(set(ports)) != len(ports):
            raise ValidationError(
                f"LoadBalancer {self.name} - duplicate ingress ports {ports}"
            )
        for rule in self.ingress_rules:
            rule.validate()


def define_ingress_rules(ports: list) -> list:
    """
    Creates the ingress rules from any IPv4 address for the given ports
    """
    rules = []
    for port in ports:
        if port == HTTPS_PORT:
            rules.append(IngressRule(port, description="Allow HTTPS traffic"))
        else:
            rules.append(IngressRule(port))
    return rules


def define_load_balancer(
    lb_config: LoadBalancerConfig, network_ref: str, is_public: bool
) -> LoadBalancerSpec:
    """
    :param LoadBalancerConfig lb_config:
    :param str network_ref: name of the network topology the LB is deployed into
    :param bool is_public: whether the LB is internet-facing
    :rtype: LoadBalancerSpec
    """
    return LoadBalancerSpec(
        lb_config.name,
        network_ref,
        is_public,
        lb_config.listener_port,
        define_ingress_rules(lb_config.ingress_ports),
    )
