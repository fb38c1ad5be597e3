# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Renders the Application Load Balancer, its security group, listener and the target groups of the services.

The first service of a load balancer is the default target of the listener, the other ones are
forwarded to with listener rules on their path pattern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.elbv2 import LoadBalancerSpec
    from ecs_webstack.vpc.vpc_template import VpcResources

from troposphere import AWS_STACK_NAME, GetAtt, Ref, Sub, Tags, Template
from troposphere.ec2 import SecurityGroup, SecurityGroupRule
from troposphere.elasticloadbalancingv2 import (
    Action,
    Condition,
    Listener,
    ListenerRule,
    ListenerRuleAction,
    LoadBalancer,
    Matcher,
    PathPatternConfig,
    TargetGroup,
)

from ecs_webstack.common import logical_name
from ecs_webstack.common.logging import LOG
from ecs_webstack.elbv2.elbv2_params import (
    HEALTHCHECK_DEFAULTS,
    HTTP_PROTOCOL,
    LB_SG_SUFFIX,
    LB_TYPE,
    LISTENER_RULES_PRIORITY_OFFSET,
    LISTENER_SUFFIX,
    TARGET_GROUP_PREFIX,
    TCP_PROTOCOL,
)


class Elbv2Resources:
    """
    The troposphere objects of one load balancer

    :ivar dict target_groups: TargetGroup per service name
    :ivar dict listener_rules: ListenerRule per service name, for the services after the default one
    """

    def __init__(
        self,
        spec: LoadBalancerSpec,
        lb,
        lb_sg,
        listener,
        target_groups,
        listener_rules=None,
    ):
        self.spec = spec
        self.lb = lb
        self.lb_sg = lb_sg
        self.listener = listener
        self.target_groups = target_groups
        self.listener_rules = listener_rules if listener_rules else {}

    def service_dependencies(self, service_name: str) -> list:
        """
        Titles of the resources that attach the service target group to the load balancer
        """
        dependencies = [self.listener.title]
        if service_name in self.listener_rules:
            dependencies.append(self.listener_rules[service_name].title)
        return dependencies


def define_lb_security_group(
    spec: LoadBalancerSpec, vpc_resources: VpcResources
) -> SecurityGroup:
    title = logical_name(spec.name)
    ingress = [
        SecurityGroupRule(
            IpProtocol=TCP_PROTOCOL,
            FromPort=spec.listener_port,
            ToPort=spec.listener_port,
            CidrIp="0.0.0.0/0",
            Description=f"Allow {HTTP_PROTOCOL} traffic to listener",
        )
    ]
    for rule in spec.ingress_rules:
        if rule.port == spec.listener_port:
            continue
        ingress.append(
            SecurityGroupRule(
                IpProtocol=rule.protocol,
                FromPort=rule.port,
                ToPort=rule.port,
                CidrIp=rule.cidr,
                Description=rule.description,
            )
        )
    return SecurityGroup(
        f"{title}{LB_SG_SUFFIX}",
        GroupDescription=Sub(f"SG for LB {title} in ${{{AWS_STACK_NAME}}}"),
        VpcId=Ref(vpc_resources.vpc),
        SecurityGroupIngress=ingress,
        Tags=Tags(Name=Sub(f"elbv2-{title}-${{{AWS_STACK_NAME}}}")),
    )


def define_service_target_group(
    spec: LoadBalancerSpec, service, container_port: int, vpc_resources: VpcResources
) -> TargetGroup:
    """
    Function to create the target group of a service, with its health check

    :param LoadBalancerSpec spec:
    :param ecs_webstack.ecs.ecs_service.ServiceSpec service:
    :param int container_port:
    :param VpcResources vpc_resources:
    :rtype: troposphere.elasticloadbalancingv2.TargetGroup
    """
    return TargetGroup(
        f"{TARGET_GROUP_PREFIX}{logical_name(spec.name)}{logical_name(service.name)}{container_port}",
        Port=container_port,
        Protocol=HTTP_PROTOCOL,
        TargetType="ip",
        VpcId=Ref(vpc_resources.vpc),
        HealthCheckPath=service.health_check_path,
        HealthCheckPort=str(container_port),
        Matcher=Matcher(HttpCode="200-399"),
        **HEALTHCHECK_DEFAULTS,
    )


def define_target_conditions(service) -> list:
    return [
        Condition(
            Field="path-pattern",
            PathPatternConfig=PathPatternConfig(Values=[service.path_pattern]),
        )
    ]


def render_load_balancer(
    template: Template,
    spec: LoadBalancerSpec,
    vpc_resources: VpcResources,
    targets: list,
) -> Elbv2Resources:
    """
    Adds the load balancer with its security group, the target group of each service,
    the listener and its rules.

    :param troposphere.Template template:
    :param LoadBalancerSpec spec:
    :param VpcResources vpc_resources:
    :param list targets: tuples of (ServiceSpec, container port), the first one is the default target
    :rtype: Elbv2Resources
    """
    title = logical_name(spec.name)
    lb_sg = template.add_resource(define_lb_security_group(spec, vpc_resources))
    lb = template.add_resource(
        LoadBalancer(
            title,
            IpAddressType="ipv4",
            Type=LB_TYPE,
            Scheme=spec.scheme,
            SecurityGroups=[Ref(lb_sg)],
            Subnets=vpc_resources.public_subnets_refs
            if spec.is_public
            else vpc_resources.private_subnets_refs,
            Tags=Tags(Name=Sub(f"${{{AWS_STACK_NAME}}}-{spec.name}")),
        )
    )
    target_groups = {}
    for service, container_port in targets:
        target_groups[service.name] = template.add_resource(
            define_service_target_group(spec, service, container_port, vpc_resources)
        )
    listener = None
    listener_rules = {}
    if targets:
        default_service = targets[0][0]
        listener = template.add_resource(
            Listener(
                f"{title}{LISTENER_SUFFIX}{spec.listener_port}",
                LoadBalancerArn=Ref(lb),
                Port=spec.listener_port,
                Protocol=HTTP_PROTOCOL,
                DefaultActions=[
                    Action(
                        Type="forward",
                        TargetGroupArn=Ref(target_groups[default_service.name]),
                    )
                ],
            )
        )
        for count, (service, _) in enumerate(targets[1:], start=1):
            listener_rules[service.name] = template.add_resource(
                ListenerRule(
                    f"{title}{LISTENER_SUFFIX}{spec.listener_port}{logical_name(service.name)}Rule",
                    ListenerArn=Ref(listener),
                    Priority=LISTENER_RULES_PRIORITY_OFFSET + count,
                    Actions=[
                        ListenerRuleAction(
                            Type="forward",
                            TargetGroupArn=Ref(target_groups[service.name]),
                        )
                    ],
                    Conditions=define_target_conditions(service),
                )
            )
    else:
        LOG.warning(f"LoadBalancer {spec.name} has no service. No listener created")
    return Elbv2Resources(spec, lb, lb_sg, listener, target_groups, listener_rules)


def lb_dns_name(resources: Elbv2Resources):
    return GetAtt(resources.lb, "DNSName")
