#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module to build the StackDescriptor: the immutable, validated description of all the resources of the stack.

The descriptor is assembled from the leaves up (network, roles, cluster, load balancers, tasks, services, firewall).
Records reference each other by name, and every reference must resolve within the descriptor.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.common.config import StackConfig, ServiceConfig

from ecs_webstack.common import logical_name
from ecs_webstack.common.logging import LOG
from ecs_webstack.common.records import DescriptorRecord
from ecs_webstack.ecs.ecs_params import CLUSTER_NAME
from ecs_webstack.ecs.ecs_scaling import (
    CPU_METRIC,
    MEMORY_METRIC,
    ScalingPolicy,
    ScalingTrigger,
    validate_scaling_bounds,
)
from ecs_webstack.ecs.ecs_service import ClusterSpec, ServiceSpec
from ecs_webstack.ecs.ecs_task import PortMapping, TaskSpec
from ecs_webstack.elbv2 import LoadBalancerSpec, define_load_balancer
from ecs_webstack.exceptions import ValidationError
from ecs_webstack.iam import ECS_TASKS_PRINCIPAL, Role
from ecs_webstack.iam.iam_policies import RUNTIME_CONCERNS, define_task_roles
from ecs_webstack.vpc import NetworkTopology, define_network_topology
from ecs_webstack.wafv2_webacl import FirewallRuleSet, define_firewall


class StackDescriptor(DescriptorRecord):
    """
    Class to represent the whole stack.

    :ivar NetworkTopology network:
    :ivar tuple[Role] roles:
    :ivar tuple[TaskSpec] task_specs:
    :ivar ClusterSpec cluster:
    :ivar tuple[LoadBalancerSpec] load_balancers:
    :ivar tuple[ServiceSpec] services:
    :ivar FirewallRuleSet firewall:
    """

    fields = (
        "name",
        "region",
        "account_id",
        "network",
        "roles",
        "task_specs",
        "cluster",
        "load_balancers",
        "services",
        "firewall",
    )

    def __init__(
        self,
        name: str,
        region: str,
        account_id: str,
        network: NetworkTopology,
        roles,
        task_specs,
        cluster: ClusterSpec,
        load_balancers,
        services,
        firewall: FirewallRuleSet,
    ):
        self.name = name
        self.region = region
        self.account_id = account_id
        self.network = network
        self.roles = tuple(roles)
        self.task_specs = tuple(task_specs)
        self.cluster = cluster
        self.load_balancers = tuple(load_balancers)
        self.services = tuple(services)
        self.firewall = firewall
        self.freeze()

    @property
    def records(self) -> list:
        return (
            [self.network, self.cluster]
            + list(self.roles)
            + list(self.task_specs)
            + list(self.load_balancers)
            + list(self.services)
        )

    def resolve(self, ref: str, record_type: type = None) -> DescriptorRecord:
        """
        Returns the record named ref. When record_type is set, only records of that type are considered.

        :param str ref: name of the record
        :param type record_type: i.e. Role
        :raises ValidationError: if no record matches (dangling reference)
        """
        for record in self.records:
            if record.name != ref:
                continue
            if record_type is None or isinstance(record, record_type):
                return record
        raise ValidationError(
            f"{self.name} - Reference {ref} does not resolve to any "
            f"{record_type.__name__ if record_type else 'record'}"
        )

    def services_on(self, load_balancer_ref: str) -> list:
        return [
            service
            for service in self.services
            if service.load_balancer_ref == load_balancer_ref
        ]

    def add_service(
        self,
        service: ServiceSpec,
        task_spec: TaskSpec,
        load_balancer: LoadBalancerSpec = None,
    ) -> StackDescriptor:
        """
        Returns a new descriptor with the service added. The firewall gets associated to the service load balancer
        only if it was not already. This descriptor is left unchanged.

        :param ServiceSpec service:
        :param TaskSpec task_spec: the task of the service. Reused if the descriptor already has it.
        :param LoadBalancerSpec load_balancer: only required if the service uses a new load balancer.
        :rtype: StackDescriptor
        """
        validate_scaling_bounds(
            service.scaling.min_capacity,
            service.scaling.max_capacity,
            service.desired_count,
        )
        task_specs = list(self.task_specs)
        existing_task = next(
            (task for task in task_specs if task.name == task_spec.name), None
        )
        if existing_task is None:
            task_specs.append(task_spec)
        elif existing_task != task_spec:
            raise ValidationError(
                f"{self.name} - A different task definition named {task_spec.name} already exists"
            )
        load_balancers = list(self.load_balancers)
        if load_balancer is not None and not any(
            lb.name == load_balancer.name for lb in load_balancers
        ):
            load_balancers.append(load_balancer)
        new_descriptor = StackDescriptor(
            self.name,
            self.region,
            self.account_id,
            self.network,
            self.roles,
            task_specs,
            self.cluster,
            load_balancers,
            self.services + (service,),
            self.firewall.with_association(service.load_balancer_ref),
        )
        validate_descriptor(new_descriptor)
        return new_descriptor


def validate_roles(descriptor: StackDescriptor) -> None:
    names = [role.name for role in descriptor.roles]
    if len(set(names)) != len(names):
        raise ValidationError(f"{descriptor.name} - duplicate roles {names}")
    for role in descriptor.roles:
        role.validate()
        if role.trusted_principal != descriptor.cluster.task_principal:
            raise ValidationError(
                f"{descriptor.name} - Role {role.name} trusts {role.trusted_principal}"
                f" but cluster {descriptor.cluster.name} tasks use {descriptor.cluster.task_principal}"
            )


def validate_task_specs(descriptor: StackDescriptor) -> None:
    names = [task.name for task in descriptor.task_specs]
    if len(set(names)) != len(names):
        raise ValidationError(f"{descriptor.name} - duplicate task definitions {names}")
    for task in descriptor.task_specs:
        task.validate()
        execution_role = descriptor.resolve(task.execution_role_ref, Role)
        descriptor.resolve(task.task_role_ref, Role)
        missing = set(RUNTIME_CONCERNS).difference(execution_role.concerns)
        if missing:
            raise ValidationError(
                f"{descriptor.name} - Role {execution_role.name} used to run {task.name}"
                f" is missing statements for {sorted(missing)}"
            )


def validate_load_balancers(descriptor: StackDescriptor) -> None:
    names = [lb.name for lb in descriptor.load_balancers]
    if len(set(names)) != len(names):
        raise ValidationError(f"{descriptor.name} - duplicate load balancers {names}")
    for load_balancer in descriptor.load_balancers:
        load_balancer.validate()
        descriptor.resolve(load_balancer.network_ref, NetworkTopology)
        services = descriptor.services_on(load_balancer.name)
        patterns = [service.path_pattern for service in services]
        if len(set(patterns)) != len(patterns):
            raise ValidationError(
                f"{descriptor.name} - Services on LoadBalancer {load_balancer.name}"
                f" must have distinct path patterns. Got {patterns}"
            )
        for service in services:
            if service.is_public != load_balancer.is_public:
                raise ValidationError(
                    f"{descriptor.name} - Service {service.name} public={service.is_public}"
                    f" does not match LoadBalancer {load_balancer.name} public={load_balancer.is_public}"
                )


def validate_services(descriptor: StackDescriptor) -> None:
    names = [service.name for service in descriptor.services]
    if len(set(names)) != len(names):
        raise ValidationError(f"{descriptor.name} - duplicate services {names}")
    if not descriptor.services:
        raise ValidationError(f"{descriptor.name} - At least one service is required")
    for service in descriptor.services:
        service.validate()
        descriptor.resolve(service.task_spec_ref, TaskSpec)
        descriptor.resolve(service.cluster_ref, ClusterSpec)
        descriptor.resolve(service.load_balancer_ref, LoadBalancerSpec)


def validate_firewall(descriptor: StackDescriptor) -> None:
    descriptor.firewall.validate()
    for lb_ref in descriptor.firewall.associations:
        descriptor.resolve(lb_ref, LoadBalancerSpec)


def validate_logical_names(descriptor: StackDescriptor) -> None:
    """
    Records are rendered under logical IDs derived from their names, which must not collide
    once separators and case are dropped, i.e. ``ocr-api`` and ``ocr_api``
    """
    titles = {}
    for record in descriptor.records + [descriptor.firewall]:
        title = logical_name(record.name)
        if title in titles and titles[title] is not record:
            raise ValidationError(
                f"{descriptor.name} - {titles[title].name} and {record.name} both render as {title}"
            )
        titles[title] = record


def validate_descriptor(descriptor: StackDescriptor) -> None:
    """
    Validates the descriptor as a whole, independently of the order the records were created in.

    :param StackDescriptor descriptor:
    :raises ValidationError: on the first inconsistency found
    """
    descriptor.network.validate()
    validate_logical_names(descriptor)
    descriptor.resolve(descriptor.cluster.network_ref, NetworkTopology)
    validate_roles(descriptor)
    validate_task_specs(descriptor)
    validate_load_balancers(descriptor)
    validate_services(descriptor)
    validate_firewall(descriptor)
    LOG.debug(f"{descriptor.name} - Stack descriptor is valid")


def define_scaling_policy(service_config: ServiceConfig) -> ScalingPolicy:
    scaling = service_config.scaling
    return ScalingPolicy(
        scaling.min_capacity,
        scaling.max_capacity,
        [
            ScalingTrigger(
                CPU_METRIC,
                scaling.cpu_target,
                scaling.scale_in_cooldown,
                scaling.scale_out_cooldown,
            ),
            ScalingTrigger(
                MEMORY_METRIC,
                scaling.memory_target,
                scaling.scale_in_cooldown,
                scaling.scale_out_cooldown,
            ),
        ],
    )


def define_task_spec(
    service_config: ServiceConfig, execution_role: Role, task_role: Role
) -> TaskSpec:
    return TaskSpec(
        f"fargate-task-definition-{service_config.name}",
        f"fargate-task-container-{service_config.name}",
        service_config.image,
        [PortMapping(service_config.container_port)],
        service_config.log_stream_prefix,
        service_config.cpu,
        service_config.memory,
        task_role.name,
        execution_role.name,
    )


def define_service(service_config: ServiceConfig, task_spec: TaskSpec) -> ServiceSpec:
    return ServiceSpec(
        service_config.name,
        task_spec.name,
        CLUSTER_NAME,
        service_config.load_balancer,
        service_config.desired_count,
        service_config.public,
        service_config.health_check_path,
        service_config.path_pattern,
        define_scaling_policy(service_config),
    )


def define_load_balancers(config: StackConfig, network: NetworkTopology) -> list:
    """
    Defines the load balancers used by at least one service. Services sharing a load balancer must agree
    on whether it is public.
    """
    load_balancers = []
    for lb_config in config.load_balancers.values():
        services = [
            service
            for service in config.services.values()
            if service.load_balancer == lb_config.name
        ]
        if not services:
            LOG.warning(
                f"LoadBalancers.{lb_config.name} is not used by any service. Skipping"
            )
            continue
        visibilities = {service.public for service in services}
        if len(visibilities) != 1:
            raise ValidationError(
                f"Services {[service.name for service in services]} share LoadBalancer {lb_config.name}"
                " but do not all have the same Public setting"
            )
        load_balancers.append(
            define_load_balancer(lb_config, network.name, visibilities.pop())
        )
    return load_balancers


def build_stack_descriptor(config: StackConfig) -> StackDescriptor:
    """
    Builds and validates the stack descriptor from the configuration.
    The scaling bounds are checked before anything else is created.

    :param StackConfig config:
    :rtype: StackDescriptor
    :raises ValidationError: if the configuration leads to an invalid descriptor
    """
    for service_config in config.services.values():
        try:
            validate_scaling_bounds(
                service_config.scaling.min_capacity,
                service_config.scaling.max_capacity,
                service_config.desired_count,
            )
        except ValidationError as error:
            raise ValidationError(
                f"Services.{service_config.name}.Scaling - {error.args[0]}"
            ) from error

    network = define_network_topology(config)
    execution_role, task_role = define_task_roles(config)
    roles = [execution_role]
    if task_role.name != execution_role.name:
        roles.append(task_role)
    cluster = ClusterSpec(CLUSTER_NAME, network.name, ECS_TASKS_PRINCIPAL)
    load_balancers = define_load_balancers(config, network)
    task_specs = []
    services = []
    for service_config in config.services.values():
        task_spec = define_task_spec(service_config, execution_role, task_role)
        task_specs.append(task_spec)
        services.append(define_service(service_config, task_spec))
        LOG.debug(
            f"Service {service_config.name} - task {task_spec.name} on {service_config.load_balancer}"
        )
    firewall = define_firewall(
        config.firewall,
        [service.load_balancer_ref for service in services],
    )
    descriptor = StackDescriptor(
        config.stack_name,
        config.region,
        config.account_id,
        network,
        roles,
        task_specs,
        cluster,
        load_balancers,
        services,
        firewall,
    )
    validate_descriptor(descriptor)
    return descriptor
