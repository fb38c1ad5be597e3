#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from troposphere import Template

from ecs_webstack.common.config import StackConfig
from ecs_webstack.exceptions import ValidationError
from ecs_webstack.iam import ECS_TASKS_PRINCIPAL, PolicyStatement, Role
from ecs_webstack.iam.iam_policies import (
    IMAGE_PULL,
    LOG_WRITE,
    NETWORK_INTROSPECTION,
    define_task_roles,
    runtime_statements,
)
from ecs_webstack.iam.iam_template import render_role


def test_runtime_statements_are_disjoint():
    statements = runtime_statements()
    assert [statement.concern for statement in statements] == [
        IMAGE_PULL,
        LOG_WRITE,
        NETWORK_INTROSPECTION,
    ]
    all_actions = [action for statement in statements for action in statement.actions]
    assert len(all_actions) == len(set(all_actions))
    for statement in statements:
        assert statement.actions
        assert statement.resources == frozenset(["*"])


def test_statement_validation():
    with pytest.raises(ValidationError):
        PolicyStatement("Empty", "none", [])
    with pytest.raises(ValidationError):
        PolicyStatement("Invalid", "none", ["not an action"])


def test_overlapping_statements():
    with pytest.raises(ValidationError):
        Role(
            "role",
            ECS_TASKS_PRINCIPAL,
            [
                PolicyStatement("One", "a", ["logs:PutLogEvents"]),
                PolicyStatement("Two", "b", ["logs:PutLogEvents"]),
            ],
        )


def test_shared_role(ocr_config):
    execution_role, task_role = define_task_roles(ocr_config)
    assert execution_role is task_role
    assert execution_role.trusted_principal == ECS_TASKS_PRINCIPAL
    assert set(execution_role.concerns) == {IMAGE_PULL, LOG_WRITE, NETWORK_INTROSPECTION}


def test_distinct_roles(minimal_content):
    minimal_content["Iam"] = {"ShareTaskAndExecutionRole": False}
    execution_role, task_role = define_task_roles(StackConfig(minimal_content))
    assert execution_role.name != task_role.name
    assert len(execution_role.policy_statements) == 3
    assert task_role.concerns == (NETWORK_INTROSPECTION,)


def test_role_is_immutable(ocr_config):
    role, _ = define_task_roles(ocr_config)
    with pytest.raises(AttributeError):
        role.name = "other"


def test_render_role(ocr_config):
    role, _ = define_task_roles(ocr_config)
    template = Template()
    cfn_role = render_role(template, role)
    assert cfn_role is render_role(template, role)
    role_def = template.to_dict()["Resources"]["FargateTaskRole"]
    policies = role_def["Properties"]["Policies"]
    assert [policy["PolicyName"] for policy in policies] == [
        "EcrImagePull",
        "CloudWatchLogsWrite",
        "Ec2NetworkDescribe",
    ]
    trust = role_def["Properties"]["AssumeRolePolicyDocument"]["Statement"][0]
    assert trust["Principal"]["Service"] == [ECS_TASKS_PRINCIPAL]
