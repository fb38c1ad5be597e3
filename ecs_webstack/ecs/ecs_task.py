#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Task definition of a service: the container image, its port mapping, logging and compute reservations.
"""

from __future__ import annotations

from troposphere import AWS_REGION, GetAtt, Ref, Template
from troposphere.ecs import (
    ContainerDefinition,
    LogConfiguration,
    PortMapping as CfnPortMapping,
    TaskDefinition,
)
from troposphere.logs import LogGroup

from ecs_webstack.common import logical_name
from ecs_webstack.common.cfn_params import Parameter, add_parameters
from ecs_webstack.common.records import DescriptorRecord
from ecs_webstack.ecs.ecs_params import (
    AWSVPC_NETWORK_MODE,
    FARGATE_LAUNCH_TYPE,
    LOG_GROUP_RETENTION_DAYS,
    TASK_LOG_GROUP_T,
)
from ecs_webstack.ecs.task_compute import find_fargate_configuration
from ecs_webstack.exceptions import ValidationError

TCP = "tcp"
CONTAINER_IMAGES_LABEL = "Container images"


class PortMapping(DescriptorRecord):
    fields = ("container_port", "host_port", "protocol")

    def __init__(self, container_port: int, host_port: int = None, protocol=TCP):
        self.container_port = container_port
        self.host_port = container_port if host_port is None else host_port
        self.protocol = protocol.lower()
        self.freeze()


class TaskSpec(DescriptorRecord):
    """
    Class to represent the Fargate task definition of a service.

    :ivar tuple[PortMapping] port_mappings:
    :ivar str task_role_ref: name of the Role the application assumes
    :ivar str execution_role_ref: name of the Role ECS uses to pull the image and write logs
    """

    fields = (
        "name",
        "container_name",
        "image_reference",
        "port_mappings",
        "log_stream_prefix",
        "cpu_units",
        "memory_mib",
        "task_role_ref",
        "execution_role_ref",
    )

    def __init__(
        self,
        name: str,
        container_name: str,
        image_reference: str,
        port_mappings,
        log_stream_prefix: str,
        cpu_units: int,
        memory_mib: int,
        task_role_ref: str,
        execution_role_ref: str = None,
    ):
        self.name = name
        self.container_name = container_name
        self.image_reference = image_reference
        self.port_mappings = tuple(port_mappings)
        self.log_stream_prefix = log_stream_prefix
        self.cpu_units = cpu_units
        self.memory_mib = memory_mib
        self.task_role_ref = task_role_ref
        self.execution_role_ref = (
            task_role_ref if execution_role_ref is None else execution_role_ref
        )
        self.freeze()

    @property
    def role_refs(self) -> tuple:
        if self.task_role_ref == self.execution_role_ref:
            return (self.task_role_ref,)
        return self.task_role_ref, self.execution_role_ref

    @property
    def container_port(self) -> int:
        return self.port_mappings[0].container_port

    @property
    def fargate_compute(self) -> tuple:
        return find_fargate_configuration(self.cpu_units, self.memory_mib)

    def validate(self) -> None:
        """
        The container must expose exactly one TCP port mapping, with the same host and container port
        as required by awsvpc, and fit in a Fargate task.

        :raises ValidationError:
        """
        if not self.image_reference:
            raise ValidationError(f"Task {self.name} has no image reference")
        if len(self.port_mappings) != 1:
            raise ValidationError(
                f"Task {self.name} must expose exactly one port mapping. Got {len(self.port_mappings)}"
            )
        mapping = self.port_mappings[0]
        if mapping.container_port != mapping.host_port:
            raise ValidationError(
                f"Task {self.name} - host port {mapping.host_port} must be equal to "
                f"container port {mapping.container_port} in {AWSVPC_NETWORK_MODE} mode"
            )
        if mapping.protocol != TCP:
            raise ValidationError(
                f"Task {self.name} - port {mapping.container_port} protocol must be {TCP}. Got {mapping.protocol}"
            )
        if self.cpu_units <= 0 or self.memory_mib <= 0:
            raise ValidationError(f"Task {self.name} - CPU and memory must be positive")
        self.fargate_compute


def add_log_group(template: Template) -> LogGroup:
    if TASK_LOG_GROUP_T in template.resources:
        return template.resources[TASK_LOG_GROUP_T]
    return template.add_resource(
        LogGroup(
            TASK_LOG_GROUP_T,
            RetentionInDays=LOG_GROUP_RETENTION_DAYS,
        )
    )


def render_task_definition(
    template: Template, task: TaskSpec, roles: dict
) -> TaskDefinition:
    """
    Adds the container image parameter, the log group and the Fargate task definition

    :param troposphere.Template template:
    :param TaskSpec task:
    :param dict roles: the troposphere Roles, indexed by role name
    :rtype: troposphere.ecs.TaskDefinition
    """
    title = logical_name(task.name)
    image_parameter = Parameter(
        f"ContainerImage{title}",
        group_label=CONTAINER_IMAGES_LABEL,
        label=f"Image for {task.container_name}",
        Type="String",
        Default=task.image_reference,
    )
    add_parameters(template, [image_parameter])
    log_group = add_log_group(template)
    fargate_cpu, fargate_ram = task.fargate_compute
    container = ContainerDefinition(
        Name=task.container_name,
        Image=Ref(image_parameter),
        Essential=True,
        Cpu=task.cpu_units,
        Memory=task.memory_mib,
        PortMappings=[
            CfnPortMapping(
                ContainerPort=mapping.container_port,
                HostPort=mapping.host_port,
                Protocol=mapping.protocol,
            )
            for mapping in task.port_mappings
        ],
        LogConfiguration=LogConfiguration(
            LogDriver="awslogs",
            Options={
                "awslogs-group": Ref(log_group),
                "awslogs-region": Ref(AWS_REGION),
                "awslogs-stream-prefix": task.log_stream_prefix,
            },
        ),
    )
    return template.add_resource(
        TaskDefinition(
            title,
            Family=task.name,
            Cpu=str(fargate_cpu),
            Memory=str(fargate_ram),
            NetworkMode=AWSVPC_NETWORK_MODE,
            RequiresCompatibilities=[FARGATE_LAUNCH_TYPE],
            ExecutionRoleArn=GetAtt(roles[task.execution_role_ref], "Arn"),
            TaskRoleArn=GetAtt(roles[task.task_role_ref], "Arn"),
            ContainerDefinitions=[container],
        )
    )
