# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
WAFv2 WebACL records: a set of managed rule groups, evaluated by priority, and the load balancers
the WebACL is associated with.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.common.config import FirewallConfig

from ecs_webstack.common.records import DescriptorRecord
from ecs_webstack.exceptions import ValidationError
from ecs_webstack.wafv2_webacl.wafv2_webacl_params import (
    CLOUDFRONT_SCOPE,
    DEFAULT_ACTIONS,
    OVERRIDE_ACTIONS,
    SCOPES,
)


class FirewallRule(DescriptorRecord):
    """
    Reference to a managed rule group, i.e. AWS/AWSManagedRulesCommonRuleSet
    """

    fields = ("name", "priority", "vendor_name", "managed_group_name", "action_override")

    def __init__(
        self,
        name: str,
        priority: int,
        vendor_name: str,
        managed_group_name: str,
        action_override: str = "none",
    ):
        self.name = name
        self.priority = priority
        self.vendor_name = vendor_name
        self.managed_group_name = managed_group_name
        self.action_override = action_override
        self.freeze()

    @property
    def managed_group_reference(self) -> tuple:
        return self.vendor_name, self.managed_group_name


class FirewallRuleSet(DescriptorRecord):
    """
    Class to represent the WebACL.

    :ivar tuple[FirewallRule] rules: sorted by priority
    :ivar tuple[str] associations: names of the load balancers the WebACL protects, each once.
    """

    fields = (
        "name",
        "scope",
        "default_action",
        "metric_name",
        "rules",
        "associations",
    )

    def __init__(
        self,
        name: str,
        scope: str,
        default_action: str,
        metric_name: str,
        rules,
        associations=(),
    ):
        self.name = name
        self.scope = scope
        self.default_action = default_action
        self.metric_name = metric_name
        self.rules = tuple(sorted(rules, key=lambda rule: rule.priority))
        self.associations = tuple(dict.fromkeys(associations))
        self.freeze()

    def with_association(self, load_balancer_ref: str) -> FirewallRuleSet:
        """
        Returns the rule set associated to load_balancer_ref. Returns self if already associated.
        """
        if load_balancer_ref in self.associations:
            return self
        return FirewallRuleSet(
            self.name,
            self.scope,
            self.default_action,
            self.metric_name,
            self.rules,
            self.associations + (load_balancer_ref,),
        )

    def validate(self) -> None:
        """
        :raises ValidationError: on invalid scope/actions, negative or duplicate priorities
        """
        if self.scope not in SCOPES:
            raise ValidationError(
                f"WebACL {self.name} - scope {self.scope} is invalid. Must be one of", SCOPES
            )
        if self.default_action not in DEFAULT_ACTIONS:
            raise ValidationError(
                f"WebACL {self.name} - default action {self.default_action} is invalid. Must be one of",
                DEFAULT_ACTIONS,
            )
        if self.scope == CLOUDFRONT_SCOPE and self.associations:
            raise ValidationError(
                f"WebACL {self.name} - {CLOUDFRONT_SCOPE} WebACLs cannot be associated to load balancers"
                f" {self.associations}. Use the regional scope"
            )
        if not self.rules:
            raise ValidationError(f"WebACL {self.name} has no rules")
        priorities = set()
        names = set()
        for rule in self.rules:
            if rule.priority < 0:
                raise ValidationError(
                    f"WebACL {self.name} - rule {rule.name} priority {rule.priority} cannot be negative"
                )
            if rule.priority in priorities:
                raise ValidationError(
                    f"WebACL {self.name} - rule {rule.name} priority {rule.priority} is already used"
                )
            if rule.name in names:
                raise ValidationError(
                    f"WebACL {self.name} - duplicate rule name {rule.name}"
                )
            if rule.action_override not in OVERRIDE_ACTIONS:
                raise ValidationError(
                    f"WebACL {self.name} - rule {rule.name} override {rule.action_override} is invalid."
                    " Must be one of",
                    OVERRIDE_ACTIONS,
                )
            priorities.add(rule.priority)
            names.add(rule.name)
        if len(set(self.associations)) != len(self.associations):
            raise ValidationError(
                f"WebACL {self.name} - duplicate associations {self.associations}"
            )


def define_firewall(firewall_config: FirewallConfig, associations=()) -> FirewallRuleSet:
    return FirewallRuleSet(
        firewall_config.name,
        firewall_config.scope,
        firewall_config.default_action,
        firewall_config.metric_name,
        [
            FirewallRule(
                rule.name,
                rule.priority,
                rule.vendor_name,
                rule.managed_rule_group,
                rule.override_action,
            )
            for rule in firewall_config.rules
        ],
        associations,
    )
