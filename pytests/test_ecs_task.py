#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from troposphere import Template

from ecs_webstack.ecs.ecs_task import PortMapping, TaskSpec, render_task_definition
from ecs_webstack.ecs.task_compute import find_fargate_configuration
from ecs_webstack.exceptions import ValidationError
from ecs_webstack.iam import ECS_TASKS_PRINCIPAL, Role
from ecs_webstack.iam.iam_policies import runtime_statements
from ecs_webstack.iam.iam_template import render_role


@pytest.fixture
def task_spec():
    return TaskSpec(
        "fargate-task-definition-ocr",
        "fargate-task-container-ocr",
        "example/ocr:latest",
        [PortMapping(80)],
        "fargate-task-log-prefix-ocr",
        768,
        2048,
        "fargate-task-role",
    )


def test_fargate_configuration():
    assert find_fargate_configuration(768, 2048) == (1024, 2048)
    assert find_fargate_configuration(256, 512) == (256, 512)
    assert find_fargate_configuration(512, 3000) == (512, 3072)
    assert find_fargate_configuration(4000, 2048) == (4096, 8192)
    with pytest.raises(ValidationError):
        find_fargate_configuration(32768, 2048)
    with pytest.raises(ValidationError):
        find_fargate_configuration(256, 200000)


def test_task_spec(task_spec):
    task_spec.validate()
    assert task_spec.execution_role_ref == task_spec.task_role_ref
    assert task_spec.role_refs == ("fargate-task-role",)
    assert task_spec.container_port == 80
    mapping = task_spec.port_mappings[0]
    assert mapping.host_port == mapping.container_port == 80
    assert mapping.protocol == "tcp"


def test_invalid_port_mappings():
    common = ("task", "container", "image:latest")
    with pytest.raises(ValidationError):
        TaskSpec(*common, [], "prefix", 256, 512, "role").validate()
    with pytest.raises(ValidationError):
        TaskSpec(
            *common, [PortMapping(80), PortMapping(443)], "prefix", 256, 512, "role"
        ).validate()
    with pytest.raises(ValidationError):
        TaskSpec(*common, [PortMapping(80, 8080)], "prefix", 256, 512, "role").validate()
    with pytest.raises(ValidationError):
        TaskSpec(
            *common, [PortMapping(80, protocol="udp")], "prefix", 256, 512, "role"
        ).validate()


def test_render_task_definition(task_spec):
    template = Template()
    role = Role("fargate-task-role", ECS_TASKS_PRINCIPAL, runtime_statements())
    roles = {role.name: render_role(template, role)}
    render_task_definition(template, task_spec, roles)
    content = template.to_dict()
    task_def = content["Resources"]["FargateTaskDefinitionOcr"]["Properties"]
    assert task_def["Cpu"] == "1024"
    assert task_def["Memory"] == "2048"
    assert task_def["NetworkMode"] == "awsvpc"
    assert task_def["RequiresCompatibilities"] == ["FARGATE"]
    assert task_def["TaskRoleArn"] == task_def["ExecutionRoleArn"]
    container = task_def["ContainerDefinitions"][0]
    assert container["Cpu"] == 768
    assert container["Memory"] == 2048
    assert container["PortMappings"][0]["ContainerPort"] == 80
    assert (
        container["LogConfiguration"]["Options"]["awslogs-stream-prefix"]
        == "fargate-task-log-prefix-ocr"
    )
    parameter = content["Parameters"]["ContainerImageFargateTaskDefinitionOcr"]
    assert parameter["Default"] == "example/ocr:latest"
