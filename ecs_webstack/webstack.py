#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Main module to generate the CloudFormation template of the stack from the StackDescriptor
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.common.settings import WebStackSettings

from troposphere import GetAtt, Output, Sub, Template

from ecs_webstack import __version__
from ecs_webstack.common import logical_name
from ecs_webstack.common.cfn_params import define_parameters_metadata
from ecs_webstack.common.files import FileArtifact
from ecs_webstack.common.logging import LOG
from ecs_webstack.descriptor import StackDescriptor, build_stack_descriptor
from ecs_webstack.ecs.ecs_scaling import render_service_scaling
from ecs_webstack.ecs.ecs_service import render_cluster, render_service
from ecs_webstack.ecs.ecs_task import TaskSpec, render_task_definition
from ecs_webstack.elbv2.elbv2_template import lb_dns_name, render_load_balancer
from ecs_webstack.iam.iam_template import render_role
from ecs_webstack.vpc.vpc_template import render_network
from ecs_webstack.wafv2_webacl.wafv2_webacl_params import (
    WEB_ACL_ARN_RETURN_VALUE,
    WEB_ACL_OUTPUT_T,
)
from ecs_webstack.wafv2_webacl.wafv2_webacl_template import render_web_acl


def build_template(description: str) -> Template:
    template = Template(description)
    template.set_version()
    return template


def service_url_path(path_pattern: str) -> str:
    """
    Turns the listener path pattern into the URL path to reach the service, i.e. ``/api/*`` -> ``/api/``
    """
    return path_pattern.split("*")[0] or "/"


def add_outputs(template: Template, descriptor: StackDescriptor, elbv2s: dict, web_acl):
    for lb_name, elbv2 in elbv2s.items():
        template.add_output(
            Output(
                f"{logical_name(lb_name)}DnsName",
                Description=f"DNS name of load balancer {lb_name}",
                Value=lb_dns_name(elbv2),
            )
        )
    for service in descriptor.services:
        elbv2 = elbv2s[service.load_balancer_ref]
        template.add_output(
            Output(
                f"{logical_name(service.name)}Url",
                Description=f"URL of service {service.name}",
                Value=Sub(
                    f"http://${{{elbv2.lb.title}.DNSName}}:{elbv2.spec.listener_port}"
                    f"{service_url_path(service.path_pattern)}"
                ),
            )
        )
    template.add_output(
        Output(
            WEB_ACL_OUTPUT_T,
            Description=f"ARN of WebACL {descriptor.firewall.name}",
            Value=GetAtt(web_acl, WEB_ACL_ARN_RETURN_VALUE),
        )
    )


def render_template(descriptor: StackDescriptor) -> Template:
    """
    Renders the whole stack descriptor into a CloudFormation template.
    Rendering is deterministic: the same descriptor always gives the same template.

    :param StackDescriptor descriptor:
    :rtype: troposphere.Template
    """
    template = build_template(
        f"ECS WebStack {__version__} - {descriptor.name} - load balanced Fargate services"
    )
    vpc_resources = render_network(template, descriptor.network)
    roles = {role.name: render_role(template, role) for role in descriptor.roles}
    cluster = render_cluster(template, descriptor.cluster)
    elbv2s = {}
    for load_balancer in descriptor.load_balancers:
        targets = [
            (service, descriptor.resolve(service.task_spec_ref, TaskSpec).container_port)
            for service in descriptor.services_on(load_balancer.name)
        ]
        elbv2s[load_balancer.name] = render_load_balancer(
            template, load_balancer, vpc_resources, targets
        )
    task_definitions = {}
    for service in descriptor.services:
        task = descriptor.resolve(service.task_spec_ref, TaskSpec)
        if task.name not in task_definitions:
            task_definitions[task.name] = render_task_definition(template, task, roles)
        ecs_service = render_service(
            template,
            service,
            task,
            task_definitions[task.name],
            cluster,
            elbv2s[service.load_balancer_ref],
            vpc_resources,
        )
        render_service_scaling(
            template, service.name, service.scaling, cluster, ecs_service
        )
        LOG.debug(f"Service {service.name} rendered as {ecs_service.title}")
    web_acl = render_web_acl(
        template,
        descriptor.firewall,
        {name: elbv2.lb for name, elbv2 in elbv2s.items()},
    )
    add_outputs(template, descriptor, elbv2s, web_acl)
    define_parameters_metadata(template)
    return template


def generate_full_template(settings: WebStackSettings) -> FileArtifact:
    """
    Builds the descriptor from the settings configuration, renders it and returns the template file.

    :param WebStackSettings settings:
    :rtype: FileArtifact
    """
    descriptor = build_stack_descriptor(settings.config)
    LOG.info(
        f"{descriptor.name} - {len(descriptor.services)} service(s) in {descriptor.region}"
    )
    template = render_template(descriptor)
    return FileArtifact(settings.name, settings, template=template)
