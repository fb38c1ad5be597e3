# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Permissions the container runtime needs, one statement per concern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.common.config import StackConfig

from ecs_webstack.common.logging import LOG
from ecs_webstack.iam import ECS_TASKS_PRINCIPAL, PolicyStatement, Role

IMAGE_PULL = "image-pull"
LOG_WRITE = "log-write"
NETWORK_INTROSPECTION = "network-introspection"
RUNTIME_CONCERNS = (IMAGE_PULL, LOG_WRITE, NETWORK_INTROSPECTION)

TASK_ROLE_NAME = "fargate-task-role"
EXECUTION_ROLE_NAME = "fargate-execution-role"


def image_pull_statement() -> PolicyStatement:
    return PolicyStatement(
        "EcrImagePull",
        IMAGE_PULL,
        [
            "ecr:GetAuthorizationToken",
            "ecr:BatchCheckLayerAvailability",
            "ecr:GetDownloadUrlForLayer",
            "ecr:BatchGetImage",
        ],
    )


def logging_statement() -> PolicyStatement:
    return PolicyStatement(
        "CloudWatchLogsWrite",
        LOG_WRITE,
        [
            "logs:CreateLogStream",
            "logs:PutLogEvents",
            "logs:CreateLogGroup",
        ],
    )


def network_introspection_statement() -> PolicyStatement:
    return PolicyStatement(
        "Ec2NetworkDescribe",
        NETWORK_INTROSPECTION,
        [
            "ec2:DescribeSecurityGroups",
            "ec2:DescribeSubnets",
            "ec2:DescribeVpcs",
            "ec2:DescribeNetworkInterfaces",
        ],
    )


def runtime_statements() -> list:
    """
    The three statements, in the order they are attached to the role
    """
    return [
        image_pull_statement(),
        logging_statement(),
        network_introspection_statement(),
    ]


def define_task_roles(config: StackConfig) -> tuple:
    """
    Defines the execution role and the task role.
    By default, a single role is used for both, granted the three runtime statements.
    When ShareTaskAndExecutionRole is false, the execution role gets the three statements and the task role
    only gets network introspection.

    :param StackConfig config:
    :return: tuple(execution_role, task_role). Same object when shared.
    """
    if config.share_task_and_execution_role:
        role = Role(TASK_ROLE_NAME, ECS_TASKS_PRINCIPAL, runtime_statements())
        return role, role
    LOG.info("Using distinct roles for task execution and task runtime")
    execution_role = Role(
        EXECUTION_ROLE_NAME, ECS_TASKS_PRINCIPAL, runtime_statements()
    )
    task_role = Role(
        TASK_ROLE_NAME, ECS_TASKS_PRINCIPAL, [network_introspection_statement()]
    )
    return execution_role, task_role
