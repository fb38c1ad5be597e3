#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

import pytest
from troposphere import Template
from troposphere.elasticloadbalancingv2 import LoadBalancer

from ecs_webstack.exceptions import ValidationError
from ecs_webstack.wafv2_webacl import FirewallRule, FirewallRuleSet
from ecs_webstack.wafv2_webacl.wafv2_webacl_template import render_web_acl


@pytest.fixture
def common_rule():
    return FirewallRule("CRSRule", 0, "AWS", "AWSManagedRulesCommonRuleSet")


def test_rules_sorted_by_priority(common_rule):
    ip_rule = FirewallRule("IpRule", 5, "AWS", "AWSManagedRulesAmazonIpReputationList")
    rule_set = FirewallRuleSet(
        "waf", "REGIONAL", "allow", "Metric", [ip_rule, common_rule]
    )
    rule_set.validate()
    assert [rule.priority for rule in rule_set.rules] == [0, 5]
    assert common_rule.managed_group_reference == (
        "AWS",
        "AWSManagedRulesCommonRuleSet",
    )


def test_invalid_rule_sets(common_rule):
    duplicate = FirewallRule("Other", 0, "AWS", "AWSManagedRulesLinuxRuleSet")
    with pytest.raises(ValidationError):
        FirewallRuleSet("waf", "REGIONAL", "allow", "M", [common_rule, duplicate]).validate()
    negative = FirewallRule("Negative", -1, "AWS", "AWSManagedRulesLinuxRuleSet")
    with pytest.raises(ValidationError):
        FirewallRuleSet("waf", "REGIONAL", "allow", "M", [negative]).validate()
    with pytest.raises(ValidationError):
        FirewallRuleSet("waf", "GLOBAL", "allow", "M", [common_rule]).validate()
    with pytest.raises(ValidationError):
        FirewallRuleSet("waf", "REGIONAL", "deny", "M", [common_rule]).validate()
    with pytest.raises(ValidationError):
        FirewallRuleSet("waf", "REGIONAL", "allow", "M", []).validate()


def test_cloudfront_scope_without_load_balancer(common_rule):
    FirewallRuleSet("waf", "CLOUDFRONT", "allow", "M", [common_rule]).validate()
    with pytest.raises(ValidationError):
        FirewallRuleSet(
            "waf", "CLOUDFRONT", "allow", "M", [common_rule], ["public"]
        ).validate()


def test_with_association(common_rule):
    rule_set = FirewallRuleSet("waf", "REGIONAL", "allow", "M", [common_rule])
    associated = rule_set.with_association("public")
    assert rule_set.associations == ()
    assert associated.associations == ("public",)
    assert associated.with_association("public") is associated
    assert FirewallRuleSet(
        "waf", "REGIONAL", "allow", "M", [common_rule], ["public", "public"]
    ).associations == ("public",)


def test_render_web_acl(common_rule):
    template = Template()
    lb = template.add_resource(
        LoadBalancer("Public", Type="application", Subnets=["subnet-a", "subnet-b"])
    )
    rule_set = FirewallRuleSet(
        "load-balancer-waf", "REGIONAL", "allow", "MetricForWebACL", [common_rule], ["public"]
    )
    render_web_acl(template, rule_set, {"public": lb})
    resources = template.to_dict()["Resources"]
    web_acl = resources["LoadBalancerWaf"]["Properties"]
    assert web_acl["Scope"] == "REGIONAL"
    assert "Allow" in web_acl["DefaultAction"]
    rule = web_acl["Rules"][0]
    assert rule["Priority"] == 0
    assert rule["OverrideAction"] == {"None": {}}
    assert rule["Statement"]["ManagedRuleGroupStatement"] == {
        "Name": "AWSManagedRulesCommonRuleSet",
        "VendorName": "AWS",
    }
    associations = [
        resource
        for resource in resources.values()
        if resource["Type"] == "AWS::WAFv2::WebACLAssociation"
    ]
    assert len(associations) == 1
    assert associations[0]["Properties"]["ResourceArn"] == {"Ref": "Public"}
