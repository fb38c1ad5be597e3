#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Tests for the configuration files loading and validation
"""

import pytest
import yaml

from ecs_webstack.common.config import (
    StackConfig,
    load_config_files,
    merge_definitions,
)
from ecs_webstack.exceptions import ValidationError


def test_defaults(minimal_content):
    config = StackConfig(minimal_content)
    assert config.region == "eu-west-1"
    assert config.stack_name == "webstack"
    assert config.account_id is None
    assert config.cidr_block == "10.0.0.0/16"
    assert config.zone_count == 2
    assert config.nat_gateways == 2
    assert config.share_task_and_execution_role is True

    service = config.services["ocr"]
    assert service.container_port == 80
    assert service.cpu == 768
    assert service.memory == 2048
    assert service.desired_count == 2
    assert service.public is True
    assert service.health_check_path == "/"
    assert service.log_stream_prefix == "fargate-task-log-prefix-ocr"
    assert service.scaling.min_capacity == 1
    assert service.scaling.max_capacity == 3
    assert service.scaling.cpu_target == 80
    assert service.scaling.memory_target == 80

    assert list(config.load_balancers.keys()) == ["public"]
    assert config.load_balancers["public"].listener_port == 80
    assert config.load_balancers["public"].ingress_ports == [443]

    assert config.firewall.scope == "REGIONAL"
    assert len(config.firewall.rules) == 1
    rule = config.firewall.rules[0]
    assert rule.priority == 0
    assert rule.managed_rule_group == "AWSManagedRulesCommonRuleSet"
    assert rule.vendor_name == "AWS"


def test_zero_values_are_kept(minimal_content):
    minimal_content["Services"]["ocr"]["Scaling"] = {"MinCapacity": 0}
    config = StackConfig(minimal_content)
    assert config.services["ocr"].scaling.min_capacity == 0


def test_region_from_arguments(minimal_content):
    del minimal_content["Deployment"]
    config = StackConfig(minimal_content, region="us-east-1", stack_name="abcd")
    assert config.region == "us-east-1"
    assert config.stack_name == "abcd"


def test_missing_region(minimal_content):
    del minimal_content["Deployment"]
    with pytest.raises(ValidationError):
        StackConfig(minimal_content)


def test_schema_violations(minimal_content):
    minimal_content["Services"]["ocr"]["Unknown"] = True
    with pytest.raises(ValidationError):
        StackConfig(minimal_content)
    del minimal_content["Services"]["ocr"]["Unknown"]
    minimal_content["Deployment"]["AccountId"] = "1234"
    with pytest.raises(ValidationError):
        StackConfig(minimal_content)
    del minimal_content["Deployment"]["AccountId"]
    del minimal_content["Services"]["ocr"]["Image"]
    with pytest.raises(ValidationError):
        StackConfig(minimal_content)


def test_no_services():
    with pytest.raises(ValidationError):
        StackConfig({"Deployment": {"Region": "eu-west-1"}, "Services": {}})


def test_global_scope(minimal_content):
    minimal_content["Firewall"] = {"Scope": "global"}
    config = StackConfig(minimal_content)
    assert config.firewall.scope == "CLOUDFRONT"


def test_merge_definitions():
    base = {"Services": {"ocr": {"Image": "a", "Cpu": 256}}, "Network": {"ZoneCount": 2}}
    override = {"Services": {"ocr": {"Image": "b"}}, "Network": {"ZoneCount": 3}}
    merged = merge_definitions(base, override)
    assert merged["Services"]["ocr"] == {"Image": "b", "Cpu": 256}
    assert merged["Network"]["ZoneCount"] == 3
    assert base["Services"]["ocr"]["Image"] == "a"


def test_load_config_files(tmp_path, use_cases_path):
    empty_file = tmp_path / "empty.yml"
    empty_file.write_text("")
    content = load_config_files(
        [
            f"{use_cases_path}/webstack.yml",
            str(empty_file),
            f"{use_cases_path}/two-services.yml",
        ]
    )
    assert set(content["Services"].keys()) == {"ocr", "api"}

    list_file = tmp_path / "list.yml"
    list_file.write_text(yaml.safe_dump(["a", "b"]))
    with pytest.raises(ValidationError):
        load_config_files([str(list_file)])


def test_to_yaml(ocr_config):
    rendered = yaml.safe_load(ocr_config.to_yaml())
    assert rendered["Services"]["ocr"]["Image"] == "example/ocr:latest"
