# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
IAM records of the stack: the policy statements and the role(s) assumed by the ECS tasks.
"""

from __future__ import annotations

import re

from ecs_webstack.common.records import DescriptorRecord
from ecs_webstack.exceptions import ValidationError

ECS_TASKS_PRINCIPAL = "ecs-tasks.amazonaws.com"
ACTION_RE = re.compile(r"^[a-z0-9-]+:[a-zA-Z0-9*]+$")


def service_role_trust_policy(principal: str) -> dict:
    """
    Simple function to format the trust relationship for a Role and an AWS Service
    used from lambda-my-aws/ozone

    :param str principal: the service principal, i.e. ecs-tasks.amazonaws.com
    :return: policy document
    :rtype: dict
    """
    statement = {
        "Effect": "Allow",
        "Principal": {"Service": [principal]},
        "Action": ["sts:AssumeRole"],
    }
    policy_doc = {"Version": "2012-10-17", "Statement": [statement]}
    return policy_doc


class PolicyStatement(DescriptorRecord):
    """
    An Allow statement for one concern (i.e. image pull). Actions and resources are sets.
    """

    fields = ("sid", "concern", "actions", "resources")

    def __init__(self, sid: str, concern: str, actions, resources=("*",)):
        self.sid = sid
        self.concern = concern
        self.actions = frozenset(actions)
        self.resources = frozenset(resources)
        self.freeze()
        self.validate()

    def validate(self) -> None:
        if not self.actions:
            raise ValidationError(f"PolicyStatement {self.sid} has no actions")
        if not self.resources:
            raise ValidationError(f"PolicyStatement {self.sid} has no resources")
        for action in self.actions:
            if not ACTION_RE.match(action):
                raise ValidationError(
                    f"PolicyStatement {self.sid} - action {action} is invalid. Must match",
                    ACTION_RE.pattern,
                )

    def to_policy_document(self) -> dict:
        return {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Sid": self.sid,
                    "Effect": "Allow",
                    "Action": sorted(self.actions),
                    "Resource": sorted(self.resources),
                }
            ],
        }


class Role(DescriptorRecord):
    """
    IAM Role assumed by trusted_principal. Statements are kept in insertion order.

    :ivar tuple[PolicyStatement] policy_statements:
    """

    fields = ("name", "trusted_principal", "policy_statements")

    def __init__(self, name: str, trusted_principal: str, policy_statements=()):
        self.name = name
        self.trusted_principal = trusted_principal
        self.policy_statements = tuple(policy_statements)
        self.freeze()
        self.validate()

    @property
    def concerns(self) -> tuple:
        return tuple(statement.concern for statement in self.policy_statements)

    def validate(self) -> None:
        """
        Statements must have distinct Sid and action sets that do not overlap.

        :raises ValidationError:
        """
        seen_actions = set()
        seen_sids = set()
        for statement in self.policy_statements:
            if statement.sid in seen_sids:
                raise ValidationError(
                    f"Role {self.name} - Duplicate statement Sid {statement.sid}"
                )
            overlap = seen_actions.intersection(statement.actions)
            if overlap:
                raise ValidationError(
                    f"Role {self.name} - Statement {statement.sid} repeats actions {sorted(overlap)}"
                )
            seen_sids.add(statement.sid)
            seen_actions.update(statement.actions)
