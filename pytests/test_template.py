#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Tests of the CloudFormation template rendered from the stack descriptor
"""

from copy import deepcopy

from ecs_webstack.common.config import StackConfig
from ecs_webstack.descriptor import build_stack_descriptor
from ecs_webstack.webstack import render_template, service_url_path


def resources_of_type(content: dict, resource_type: str) -> dict:
    return {
        name: resource
        for name, resource in content["Resources"].items()
        if resource["Type"] == resource_type
    }


def test_render_ocr_stack(ocr_descriptor):
    content = render_template(ocr_descriptor).to_dict()
    assert len(resources_of_type(content, "AWS::EC2::VPC")) == 1
    assert len(resources_of_type(content, "AWS::EC2::NatGateway")) == 2
    assert len(resources_of_type(content, "AWS::IAM::Role")) == 1
    assert len(resources_of_type(content, "AWS::ECS::Cluster")) == 1
    assert len(resources_of_type(content, "AWS::ECS::TaskDefinition")) == 1
    assert len(resources_of_type(content, "AWS::WAFv2::WebACL")) == 1
    assert len(resources_of_type(content, "AWS::WAFv2::WebACLAssociation")) == 1
    assert (
        len(resources_of_type(content, "AWS::ApplicationAutoScaling::ScalingPolicy"))
        == 2
    )

    lb = resources_of_type(content, "AWS::ElasticLoadBalancingV2::LoadBalancer")
    assert lb["Public"]["Properties"]["Scheme"] == "internet-facing"

    target_groups = resources_of_type(
        content, "AWS::ElasticLoadBalancingV2::TargetGroup"
    )
    assert len(target_groups) == 1
    target_group = list(target_groups.values())[0]["Properties"]
    assert target_group["HealthCheckPath"] == "/"
    assert target_group["TargetType"] == "ip"

    service = content["Resources"]["OcrService"]
    assert service["Properties"]["DesiredCount"] == 2
    assert service["Properties"]["LaunchType"] == "FARGATE"
    assert service["DependsOn"] == ["PublicListener80"]

    scalable_target = resources_of_type(
        content, "AWS::ApplicationAutoScaling::ScalableTarget"
    )["OcrServiceScalingTarget"]["Properties"]
    assert scalable_target["MinCapacity"] == 1
    assert scalable_target["MaxCapacity"] == 3

    lb_sg = content["Resources"]["PublicSecurityGroup"]["Properties"]
    ingress_ports = [rule["FromPort"] for rule in lb_sg["SecurityGroupIngress"]]
    assert 443 in ingress_ports
    https = [rule for rule in lb_sg["SecurityGroupIngress"] if rule["FromPort"] == 443][0]
    assert https["CidrIp"] == "0.0.0.0/0"
    assert https["IpProtocol"] == "tcp"

    assert set(content["Outputs"].keys()) == {"PublicDnsName", "OcrUrl", "WebAclArn"}


def test_render_is_deterministic(ocr_content):
    first = build_stack_descriptor(StackConfig(deepcopy(ocr_content), stack_name="test"))
    second = build_stack_descriptor(StackConfig(deepcopy(ocr_content), stack_name="test"))
    assert render_template(first).to_json() == render_template(second).to_json()


def test_render_two_services(two_services_content):
    descriptor = build_stack_descriptor(
        StackConfig(two_services_content, stack_name="test")
    )
    content = render_template(descriptor).to_dict()
    assert len(resources_of_type(content, "AWS::ECS::Service")) == 2
    assert len(resources_of_type(content, "AWS::ElasticLoadBalancingV2::Listener")) == 1
    rules = resources_of_type(content, "AWS::ElasticLoadBalancingV2::ListenerRule")
    assert len(rules) == 1
    assert content["Resources"]["OcrService"]["DependsOn"] == ["PublicListener80"]
    assert content["Resources"]["ApiService"]["DependsOn"] == [
        "PublicListener80",
        "PublicListener80ApiRule",
    ]
    rule = list(rules.values())[0]["Properties"]
    assert rule["Conditions"][0]["PathPatternConfig"]["Values"] == ["/api/*"]
    assert len(resources_of_type(content, "AWS::WAFv2::WebACLAssociation")) == 1


def test_render_distinct_roles(ocr_content):
    ocr_content["Iam"] = {"ShareTaskAndExecutionRole": False}
    descriptor = build_stack_descriptor(StackConfig(ocr_content, stack_name="test"))
    content = render_template(descriptor).to_dict()
    task_def = content["Resources"]["FargateTaskDefinitionOcr"]["Properties"]
    assert task_def["ExecutionRoleArn"] == {
        "Fn::GetAtt": ["FargateExecutionRole", "Arn"]
    }
    assert task_def["TaskRoleArn"] == {"Fn::GetAtt": ["FargateTaskRole", "Arn"]}


def test_service_url_path():
    assert service_url_path("/*") == "/"
    assert service_url_path("/api/*") == "/api/"
    assert service_url_path("/health") == "/health"
