# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Renders the IAM roles into the template
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.iam import Role as RoleSpec

from troposphere import Template
from troposphere.iam import Policy, Role

from ecs_webstack.common import logical_name
from ecs_webstack.iam import service_role_trust_policy


def render_role(template: Template, role_spec: RoleSpec) -> Role:
    """
    Adds the IAM Role with one inline policy per statement

    :param troposphere.Template template:
    :param ecs_webstack.iam.Role role_spec:
    :rtype: troposphere.iam.Role
    """
    title = logical_name(role_spec.name)
    if title in template.resources:
        return template.resources[title]
    return template.add_resource(
        Role(
            title,
            AssumeRolePolicyDocument=service_role_trust_policy(
                role_spec.trusted_principal
            ),
            Policies=[
                Policy(
                    PolicyName=statement.sid,
                    PolicyDocument=statement.to_policy_document(),
                )
                for statement in role_spec.policy_statements
            ],
        )
    )
