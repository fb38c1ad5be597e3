#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Parses the configuration file(s) into the deployment parameters used to build the stack descriptor.
"""

from __future__ import annotations

from copy import deepcopy

import jsonschema
import yaml
from compose_x_common.compose_x_common import keyisset, keypresent

from ecs_webstack.common.logging import LOG
from ecs_webstack.exceptions import ValidationError
from ecs_webstack.specs import load_config_spec


def set_else_default(key: str, definition: dict, default=None):
    """
    Returns the value of key in definition if present, including falsy values such as 0, else default.
    """
    if definition and keypresent(key, definition) and definition[key] is not None:
        return definition[key]
    return default


def merge_definitions(base: dict, override: dict) -> dict:
    """
    Deep merges override into a copy of base. Lists and scalars from override replace the ones in base.

    :param dict base:
    :param dict override:
    :rtype: dict
    """
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_definitions(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def load_config_files(files: list) -> dict:
    """
    Loads the YAML configuration files in order, each one merged on top of the previous ones.

    :param list[str] files: paths to the configuration files
    :rtype: dict
    """
    content = {}
    for file_path in files:
        LOG.debug(f"Loading configuration file {file_path}")
        with open(file_path) as config_fd:
            file_content = yaml.safe_load(config_fd.read())
        if file_content is None:
            LOG.warning(f"Configuration file {file_path} is empty. Skipping")
            continue
        if not isinstance(file_content, dict):
            raise ValidationError(
                f"Configuration file {file_path} must be a mapping. Got",
                type(file_content),
            )
        content = merge_definitions(content, file_content)
    return content


def validate_config_content(content: dict) -> None:
    """
    Validates the configuration content against the JSON schema.

    :raises ValidationError: if the content does not match the schema
    """
    try:
        jsonschema.validate(content, load_config_spec())
    except jsonschema.exceptions.ValidationError as error:
        path = ".".join(str(part) for part in error.absolute_path)
        raise ValidationError(
            f"Invalid configuration at {path or 'root'}: {error.message}"
        ) from error


class ScalingConfig:
    """
    Replica bounds and utilization targets of a service
    """

    default_min_capacity = 1
    default_max_capacity = 3
    default_cpu_target = 80
    default_memory_target = 80
    default_cooldown = 60

    def __init__(self, definition: dict = None):
        definition = definition or {}
        self.min_capacity = set_else_default(
            "MinCapacity", definition, self.default_min_capacity
        )
        self.max_capacity = set_else_default(
            "MaxCapacity", definition, self.default_max_capacity
        )
        self.cpu_target = set_else_default(
            "CpuTarget", definition, self.default_cpu_target
        )
        self.memory_target = set_else_default(
            "MemoryTarget", definition, self.default_memory_target
        )
        self.scale_in_cooldown = set_else_default(
            "ScaleInCooldown", definition, self.default_cooldown
        )
        self.scale_out_cooldown = set_else_default(
            "ScaleOutCooldown", definition, self.default_cooldown
        )


class ServiceConfig:
    """
    Settings of one load-balanced Fargate service
    """

    default_container_port = 80
    default_cpu = 768
    default_memory = 2048
    default_desired_count = 2
    default_health_check_path = "/"
    default_load_balancer = "public"
    default_path_pattern = "/*"

    def __init__(self, name: str, definition: dict):
        self.name = name
        self.image = definition["Image"]
        self.container_port = set_else_default(
            "ContainerPort", definition, self.default_container_port
        )
        self.cpu = set_else_default("Cpu", definition, self.default_cpu)
        self.memory = set_else_default("Memory", definition, self.default_memory)
        self.desired_count = set_else_default(
            "DesiredCount", definition, self.default_desired_count
        )
        self.public = set_else_default("Public", definition, True)
        self.health_check_path = set_else_default(
            "HealthCheckPath", definition, self.default_health_check_path
        )
        self.log_stream_prefix = set_else_default(
            "LogStreamPrefix", definition, f"fargate-task-log-prefix-{name}"
        )
        self.load_balancer = set_else_default(
            "LoadBalancer", definition, self.default_load_balancer
        )
        self.path_pattern = set_else_default(
            "PathPattern", definition, self.default_path_pattern
        )
        self.scaling = ScalingConfig(set_else_default("Scaling", definition, {}))


class LoadBalancerConfig:
    default_listener_port = 80
    default_ingress_ports = [443]

    def __init__(self, name: str, definition: dict = None):
        definition = definition or {}
        self.name = name
        self.listener_port = set_else_default(
            "ListenerPort", definition, self.default_listener_port
        )
        self.ingress_ports = list(
            set_else_default("IngressPorts", definition, self.default_ingress_ports)
        )


class FirewallRuleConfig:
    def __init__(self, definition: dict):
        self.name = definition["Name"]
        self.priority = definition["Priority"]
        self.managed_rule_group = definition["ManagedRuleGroup"]
        self.vendor_name = set_else_default("VendorName", definition, "AWS")
        self.override_action = set_else_default("OverrideAction", definition, "none")


class FirewallConfig:
    """
    WAFv2 WebACL settings. Defaults to the AWS managed common rule set.
    """

    default_name = "load-balancer-waf"
    default_metric_name = "MetricForWebACL"
    default_rules = [
        {
            "Name": "CRSRule",
            "Priority": 0,
            "VendorName": "AWS",
            "ManagedRuleGroup": "AWSManagedRulesCommonRuleSet",
            "OverrideAction": "none",
        }
    ]
    scopes_aliases = {
        "regional": "REGIONAL",
        "global": "CLOUDFRONT",
        "cloudfront": "CLOUDFRONT",
    }

    def __init__(self, definition: dict = None):
        definition = definition or {}
        self.name = set_else_default("Name", definition, self.default_name)
        self.scope = self.scopes_aliases[
            set_else_default("Scope", definition, "regional").lower()
        ]
        self.default_action = set_else_default("DefaultAction", definition, "allow")
        self.metric_name = set_else_default(
            "MetricName", definition, self.default_metric_name
        )
        self.rules = [
            FirewallRuleConfig(rule_def)
            for rule_def in set_else_default("Rules", definition, self.default_rules)
        ]


class StackConfig:
    """
    Class to represent the deployment parameters: target account/region, network settings,
    services, load balancers and firewall.

    :ivar str region:
    :ivar str account_id:
    :ivar dict[str, ServiceConfig] services:
    :ivar dict[str, LoadBalancerConfig] load_balancers:
    """

    default_stack_name = "webstack"
    default_cidr_block = "10.0.0.0/16"
    default_zone_count = 2
    default_nat_gateways = 2
    default_subnet_cidr_mask = 24

    def __init__(self, content: dict, region: str = None, stack_name: str = None):
        validate_config_content(content)
        self.content = deepcopy(content)
        deployment = set_else_default("Deployment", content, {})
        self.region = set_else_default("Region", deployment, region)
        if not self.region:
            raise ValidationError(
                "The region must be set in Deployment.Region or in the AWS session/CLI arguments"
            )
        self.account_id = set_else_default("AccountId", deployment)
        self.stack_name = (
            stack_name
            if stack_name
            else set_else_default("StackName", deployment, self.default_stack_name)
        )

        network = set_else_default("Network", content, {})
        self.cidr_block = set_else_default(
            "CidrBlock", network, self.default_cidr_block
        )
        self.zone_count = set_else_default(
            "ZoneCount", network, self.default_zone_count
        )
        self.nat_gateways = set_else_default(
            "NatGateways", network, self.default_nat_gateways
        )
        self.subnet_cidr_mask = set_else_default(
            "SubnetCidrMask", network, self.default_subnet_cidr_mask
        )

        iam = set_else_default("Iam", content, {})
        self.share_task_and_execution_role = set_else_default(
            "ShareTaskAndExecutionRole", iam, True
        )

        if not keyisset("Services", content):
            raise ValidationError("At least one service must be defined in Services")
        self.services = {
            name: ServiceConfig(name, definition)
            for name, definition in content["Services"].items()
        }
        lbs_definitions = set_else_default("LoadBalancers", content, {})
        self.load_balancers = {
            name: LoadBalancerConfig(name, definition)
            for name, definition in lbs_definitions.items()
        }
        for service in self.services.values():
            if service.load_balancer not in self.load_balancers:
                LOG.debug(
                    f"Services.{service.name} - LoadBalancer {service.load_balancer} not defined. Using defaults"
                )
                self.load_balancers[service.load_balancer] = LoadBalancerConfig(
                    service.load_balancer
                )
        self.firewall = FirewallConfig(set_else_default("Firewall", content, {}))

    @classmethod
    def from_files(cls, files: list, region: str = None, stack_name: str = None):
        return cls(load_config_files(files), region=region, stack_name=stack_name)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.content, default_flow_style=False)
