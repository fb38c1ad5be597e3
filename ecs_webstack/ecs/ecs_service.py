#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS Cluster and Fargate Service records, and their rendering.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.ecs.ecs_scaling import ScalingPolicy
    from ecs_webstack.elbv2.elbv2_template import Elbv2Resources
    from ecs_webstack.vpc.vpc_template import VpcResources

from troposphere import AWS_STACK_NAME, GetAtt, Ref, Sub, Tags, Template
from troposphere.ec2 import SecurityGroup, SecurityGroupRule
from troposphere.ecs import (
    AwsvpcConfiguration,
    Cluster,
    ClusterSetting,
    DeploymentCircuitBreaker,
    DeploymentConfiguration,
)
from troposphere.ecs import LoadBalancer as EcsLb
from troposphere.ecs import NetworkConfiguration, Service

from ecs_webstack.common import logical_name
from ecs_webstack.common.records import DescriptorRecord
from ecs_webstack.ecs.ecs_params import CLUSTER_T, FARGATE_LAUNCH_TYPE
from ecs_webstack.exceptions import ValidationError


class ClusterSpec(DescriptorRecord):
    """
    ECS Cluster deployed in network_ref. Tasks running in it assume roles trusting task_principal.
    """

    fields = ("name", "network_ref", "task_principal")

    def __init__(self, name: str, network_ref: str, task_principal: str):
        self.name = name
        self.network_ref = network_ref
        self.task_principal = task_principal
        self.freeze()


class ServiceSpec(DescriptorRecord):
    """
    Class to represent a Fargate service behind a load balancer

    :ivar str task_spec_ref: name of the TaskSpec
    :ivar str cluster_ref: name of the ClusterSpec
    :ivar str load_balancer_ref: name of the LoadBalancerSpec
    :ivar ScalingPolicy scaling:
    """

    fields = (
        "name",
        "task_spec_ref",
        "cluster_ref",
        "load_balancer_ref",
        "desired_count",
        "is_public",
        "health_check_path",
        "path_pattern",
        "scaling",
    )

    def __init__(
        self,
        name: str,
        task_spec_ref: str,
        cluster_ref: str,
        load_balancer_ref: str,
        desired_count: int,
        is_public: bool,
        health_check_path: str,
        path_pattern: str,
        scaling: ScalingPolicy,
    ):
        self.name = name
        self.task_spec_ref = task_spec_ref
        self.cluster_ref = cluster_ref
        self.load_balancer_ref = load_balancer_ref
        self.desired_count = desired_count
        self.is_public = is_public
        self.health_check_path = health_check_path
        self.path_pattern = path_pattern
        self.scaling = scaling
        self.freeze()

    def validate(self) -> None:
        if not self.health_check_path.startswith("/"):
            raise ValidationError(
                f"Service {self.name} - health check path {self.health_check_path} must start with /"
            )
        if not self.path_pattern.startswith("/"):
            raise ValidationError(
                f"Service {self.name} - path pattern {self.path_pattern} must start with /"
            )
        self.scaling.validate(self.desired_count)


def render_cluster(template: Template, cluster: ClusterSpec) -> Cluster:
    if CLUSTER_T in template.resources:
        return template.resources[CLUSTER_T]
    return template.add_resource(
        Cluster(
            CLUSTER_T,
            ClusterName=Sub(f"${{{AWS_STACK_NAME}}}-{cluster.name}"),
            ClusterSettings=[ClusterSetting(Name="containerInsights", Value="enabled")],
        )
    )


def define_service_security_group(
    service: ServiceSpec,
    container_port: int,
    elbv2: Elbv2Resources,
    vpc_resources: VpcResources,
) -> SecurityGroup:
    """
    Security group of the service tasks, only allowing traffic from the load balancer
    """
    title = logical_name(service.name)
    return SecurityGroup(
        f"{title}ServiceSecurityGroup",
        GroupDescription=Sub(f"SG for service {title} in ${{{AWS_STACK_NAME}}}"),
        VpcId=Ref(vpc_resources.vpc),
        SecurityGroupIngress=[
            SecurityGroupRule(
                IpProtocol="tcp",
                FromPort=container_port,
                ToPort=container_port,
                SourceSecurityGroupId=GetAtt(elbv2.lb_sg, "GroupId"),
                Description=f"From {elbv2.lb.title} to {title} on {container_port}",
            )
        ],
        Tags=Tags(Name=Sub(f"ecs-{title}-${{{AWS_STACK_NAME}}}")),
    )


def render_service(
    template: Template,
    service: ServiceSpec,
    task,
    task_definition,
    cluster: Cluster,
    elbv2: Elbv2Resources,
    vpc_resources: VpcResources,
) -> Service:
    """
    Adds the ECS Service, in the private subnets, registered into its load balancer target group

    :param troposphere.Template template:
    :param ServiceSpec service:
    :param ecs_webstack.ecs.ecs_task.TaskSpec task:
    :param troposphere.ecs.TaskDefinition task_definition:
    :param troposphere.ecs.Cluster cluster:
    :param Elbv2Resources elbv2:
    :param VpcResources vpc_resources:
    :rtype: troposphere.ecs.Service
    """
    title = logical_name(service.name)
    service_sg = template.add_resource(
        define_service_security_group(
            service, task.container_port, elbv2, vpc_resources
        )
    )
    return template.add_resource(
        Service(
            f"{title}Service",
            Cluster=Ref(cluster),
            TaskDefinition=Ref(task_definition),
            LaunchType=FARGATE_LAUNCH_TYPE,
            DesiredCount=service.desired_count,
            DeploymentConfiguration=DeploymentConfiguration(
                MinimumHealthyPercent=100,
                MaximumPercent=200,
                DeploymentCircuitBreaker=DeploymentCircuitBreaker(
                    Enable=True, Rollback=True
                ),
            ),
            HealthCheckGracePeriodSeconds=60,
            LoadBalancers=[
                EcsLb(
                    ContainerName=task.container_name,
                    ContainerPort=task.container_port,
                    TargetGroupArn=Ref(elbv2.target_groups[service.name]),
                )
            ],
            NetworkConfiguration=NetworkConfiguration(
                AwsvpcConfiguration=AwsvpcConfiguration(
                    AssignPublicIp="DISABLED",
                    SecurityGroups=[Ref(service_sg)],
                    Subnets=vpc_resources.private_subnets_refs,
                )
            ),
            PropagateTags="SERVICE",
            DependsOn=elbv2.service_dependencies(service.name),
        )
    )
