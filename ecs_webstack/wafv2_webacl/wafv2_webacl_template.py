#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Renders the WAFv2 WebACL and its associations to the load balancers
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.wafv2_webacl import FirewallRule, FirewallRuleSet

from troposphere import AWS_STACK_NAME, GetAtt, Ref, Sub, Template
from troposphere.wafv2 import (
    AllowAction,
    BlockAction,
    DefaultAction,
    ManagedRuleGroupStatement,
    OverrideAction,
    Statement,
    VisibilityConfig,
    WebACL,
    WebACLAssociation,
    WebACLRule,
)

from ecs_webstack.common import logical_name
from ecs_webstack.wafv2_webacl.wafv2_webacl_params import (
    ALLOW_ACTION,
    OVERRIDE_NONE,
    WEB_ACL_ARN_RETURN_VALUE,
)


def define_visibility_config(metric_name: str) -> VisibilityConfig:
    return VisibilityConfig(
        CloudWatchMetricsEnabled=True,
        MetricName=metric_name,
        SampledRequestsEnabled=True,
    )


def define_rule(rule: FirewallRule, acl_metric_name: str) -> WebACLRule:
    """
    Creates the WebACL rule using the managed rule group.
    """
    if rule.action_override == OVERRIDE_NONE:
        override = OverrideAction(**{"None": {}})
    else:
        override = OverrideAction(Count={})
    return WebACLRule(
        Name=rule.name,
        Priority=rule.priority,
        OverrideAction=override,
        Statement=Statement(
            ManagedRuleGroupStatement=ManagedRuleGroupStatement(
                VendorName=rule.vendor_name,
                Name=rule.managed_group_name,
            )
        ),
        VisibilityConfig=define_visibility_config(f"{acl_metric_name}-{rule.name}"),
    )


def render_web_acl(
    template: Template, rule_set: FirewallRuleSet, load_balancers: dict
) -> WebACL:
    """
    Adds the WebACL and one WebACLAssociation per associated load balancer

    :param troposphere.Template template:
    :param FirewallRuleSet rule_set:
    :param dict load_balancers: the troposphere LoadBalancer, indexed by load balancer name
    :rtype: troposphere.wafv2.WebACL
    """
    title = logical_name(rule_set.name)
    if rule_set.default_action == ALLOW_ACTION:
        default_action = DefaultAction(Allow=AllowAction())
    else:
        default_action = DefaultAction(Block=BlockAction())
    web_acl = template.add_resource(
        WebACL(
            title,
            Name=Sub(f"${{{AWS_STACK_NAME}}}-{rule_set.name}"),
            Scope=rule_set.scope,
            DefaultAction=default_action,
            VisibilityConfig=define_visibility_config(rule_set.metric_name),
            Rules=[define_rule(rule, rule_set.metric_name) for rule in rule_set.rules],
        )
    )
    for lb_name in rule_set.associations:
        load_balancer = load_balancers[lb_name]
        template.add_resource(
            WebACLAssociation(
                f"{load_balancer.title}{title}Association",
                ResourceArn=Ref(load_balancer),
                WebACLArn=GetAtt(web_acl, WEB_ACL_ARN_RETURN_VALUE),
            )
        )
    return web_acl
