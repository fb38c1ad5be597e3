#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Tests of the CloudFormation, S3 and STS calls, played back with placebo
"""

from copy import deepcopy
from os import path

import boto3
import placebo
import pytest

from ecs_webstack.cli import run
from ecs_webstack.common import FILE_PREFIX
from ecs_webstack.common.aws import deploy, plan
from ecs_webstack.common.settings import WebStackSettings
from ecs_webstack.exceptions import ProvisioningError, ValidationError
from ecs_webstack.webstack import generate_full_template

HERE = path.abspath(path.dirname(__file__))
STACK_ID = "arn:aws:cloudformation:eu-west-1:012345678912:stack/test/0b9d3d10-4f4f-11ed-8d4c-0a1b2c3d4e5f"


def create_settings(content, case_path, command="up", **kwargs):
    session = boto3.session.Session(region_name="eu-west-1")
    pill = placebo.attach(session, data_path=f"{HERE}/placebo/{case_path}")
    pill.playback()
    return WebStackSettings(
        content=deepcopy(content),
        session=session,
        **{
            WebStackSettings.command_arg: command,
            WebStackSettings.name_arg: "test",
            **kwargs,
        },
    )


def test_deploy_new_stack(ocr_content, tmp_path):
    settings = create_settings(
        ocr_content, "cfn_create", **{WebStackSettings.output_dir_arg: str(tmp_path)}
    )
    template_file = generate_full_template(settings)
    assert deploy(settings, template_file) == STACK_ID


def test_deploy_existing_stack(ocr_content, tmp_path):
    settings = create_settings(
        ocr_content, "cfn_update", **{WebStackSettings.output_dir_arg: str(tmp_path)}
    )
    template_file = generate_full_template(settings)
    assert deploy(settings, template_file) == STACK_ID


def test_deploy_failure_is_reported(ocr_content, tmp_path):
    settings = create_settings(
        ocr_content, "cfn_failure", **{WebStackSettings.output_dir_arg: str(tmp_path)}
    )
    template_file = generate_full_template(settings)
    with pytest.raises(ProvisioningError) as error:
        deploy(settings, template_file)
    assert error.value.code == "InsufficientCapabilitiesException"
    assert "CAPABILITY_NAMED_IAM" in error.value.message


def test_deploy_ambiguous_stack_name(ocr_content, tmp_path):
    settings = create_settings(
        ocr_content, "cfn_duplicate", **{WebStackSettings.output_dir_arg: str(tmp_path)}
    )
    template_file = generate_full_template(settings)
    with pytest.raises(ProvisioningError):
        deploy(settings, template_file)


def test_plan_new_stack(ocr_content, tmp_path, monkeypatch):
    answers = iter(["n", "y"])
    monkeypatch.setattr("builtins.input", lambda _prompt: next(answers))
    settings = create_settings(
        ocr_content,
        "cfn_plan",
        command="plan",
        **{WebStackSettings.output_dir_arg: str(tmp_path)},
    )
    template_file = generate_full_template(settings)
    status = plan(settings, template_file)
    assert status["Status"] == "CREATE_COMPLETE"
    assert len(status["Changes"]) == 2


def test_plan_failed_change_set(ocr_content, tmp_path):
    settings = create_settings(
        ocr_content,
        "cfn_plan_failed",
        command="plan",
        **{WebStackSettings.output_dir_arg: str(tmp_path)},
    )
    template_file = generate_full_template(settings)
    with pytest.raises(ProvisioningError) as error:
        plan(settings, template_file)
    assert "Unresolved resource dependencies" in error.value.args[0]


def test_default_bucket_name(ocr_content):
    settings = create_settings(ocr_content, "sts_account", command="create")
    settings.set_bucket_name_from_account_id()
    assert settings.account_id == "012345678912"
    assert settings.bucket_name == "ecs-webstack-012345678912-eu-west-1"


def test_account_id_mismatch(ocr_content):
    ocr_content["Deployment"]["AccountId"] = "111111111111"
    settings = create_settings(ocr_content, "sts_account", command="create")
    with pytest.raises(ValidationError):
        settings.set_account_id()


def test_account_checked_with_bucket_name(ocr_content, tmp_path):
    ocr_content["Deployment"]["AccountId"] = "111111111111"
    settings = create_settings(
        ocr_content,
        "sts_account",
        **{
            WebStackSettings.bucket_arg: "my-bucket",
            WebStackSettings.output_dir_arg: str(tmp_path),
        },
    )
    with pytest.raises(ValidationError):
        run(settings)
    assert settings.account_id == "012345678912"


def test_upload_and_validate(ocr_content, tmp_path):
    settings = create_settings(
        ocr_content,
        "s3_upload",
        command="create",
        **{WebStackSettings.output_dir_arg: str(tmp_path)},
    )
    template_file = generate_full_template(settings)
    template_file.write(settings)
    settings.set_bucket_name_from_account_id()
    template_file.upload(settings)
    assert template_file.url == (
        f"https://s3.amazonaws.com/ecs-webstack-012345678912-eu-west-1/{FILE_PREFIX}/test.json"
    )
    template_file.validate(settings)
