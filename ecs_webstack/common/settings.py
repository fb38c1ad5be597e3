# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Module for the WebStackSettings class
"""

from __future__ import annotations

from copy import deepcopy
from datetime import datetime as dt
from datetime import timezone

import boto3
from botocore.exceptions import ClientError
from compose_x_common.aws import get_account_id, validate_iam_role_arn
from compose_x_common.compose_x_common import keyisset, set_else_none

from ecs_webstack.common.aws import get_cross_role_session
from ecs_webstack.common.config import StackConfig
from ecs_webstack.common.logging import LOG
from ecs_webstack.exceptions import ProvisioningError, ValidationError


class WebStackSettings:
    """
    Class to handle the settings of an execution: command, AWS session, configuration and outputs.

    :ivar boto3.session.Session session:
    :ivar StackConfig config:
    """

    name_arg = "Name"
    region_arg = "RegionName"
    arn_arg = "RoleArn"

    deploy_arg = "up"
    render_arg = "render"
    create_arg = "create"
    plan_arg = "plan"
    config_render_arg = "config"
    version_arg = "version"
    command_arg = "command"

    bucket_arg = "BucketName"
    input_file_arg = "ConfigFiles"
    output_dir_arg = "OutputDirectory"
    format_arg = "TemplateFormat"
    disable_rollback_arg = "DisableRollback"
    default_format = "json"
    allowed_formats = ["json", "yaml"]
    default_output_dir = f"/tmp/{dt.now(tz=timezone.utc).strftime('%s')}"
    change_set_poll_interval = 10

    active_commands = [
        {
            "name": deploy_arg,
            "help": "Generates & Validates the CFN template, Creates/Updates stack in CFN",
        },
        {
            "name": render_arg,
            "help": "Generates & Validates the CFN template locally. No upload to S3",
        },
        {
            "name": create_arg,
            "help": "Generates & Validates the CFN template locally. Uploads it to S3",
        },
        {
            "name": plan_arg,
            "help": "Creates a change-set to show the diff prior to an update",
        },
    ]
    validation_commands = [
        {
            "name": config_render_arg,
            "help": "Merges the configuration files and prints the validated result",
        }
    ]
    neutral_commands = [{"name": version_arg, "help": "ECS WebStack Version"}]
    all_commands = active_commands + validation_commands + neutral_commands

    def __init__(self, content: dict = None, profile_name=None, session=None, **kwargs):
        """
        :param dict content: configuration content. Loaded from the ConfigFiles argument if not set
        :param str profile_name: AWS profile to use
        :param boto3.session.Session session: override session for the API calls
        """
        self.__args = deepcopy(kwargs)
        self.command = kwargs[self.command_arg]
        command_names = [cmd["name"] for cmd in self.all_commands]
        if self.command not in command_names:
            raise ValidationError(
                f"Command {self.command} is invalid. Must be one of", command_names
            )
        self.session = boto3.session.Session()
        self.override_session(session, profile_name, kwargs)
        self.aws_region = (
            kwargs[self.region_arg]
            if keyisset(self.region_arg, kwargs)
            else self.session.region_name
        )
        self.bucket_name = set_else_none(self.bucket_arg, kwargs)
        self.account_id = None
        self.run_id = dt.now(tz=timezone.utc).strftime("%Y%m%d%H%M%S")
        self.deploy = self.command == self.deploy_arg
        self.plan = self.command == self.plan_arg
        self.upload = self.command in [self.deploy_arg, self.plan_arg, self.create_arg]
        self.no_upload = not self.upload
        self.set_output_settings(kwargs)
        self.input_files = set_else_none(self.input_file_arg, kwargs, alt_value=[])
        if content is None:
            self.config = StackConfig.from_files(
                self.input_files,
                region=self.aws_region,
                stack_name=set_else_none(self.name_arg, kwargs),
            )
        else:
            self.config = StackConfig(
                content,
                region=self.aws_region,
                stack_name=set_else_none(self.name_arg, kwargs),
            )
        self.name = self.config.stack_name

    @property
    def disable_rollback(self) -> bool:
        return bool(
            set_else_none(self.disable_rollback_arg, self.__args, alt_value=False)
        )

    def override_session(self, session, profile_name, kwargs):
        """
        Method to set the session based on input params

        :param boto3.session.Session session: The session to override the API calls with
        :param str profile_name: Name of a profile configured in .aws/config
        :param dict kwargs: CLI kwargs
        """
        if profile_name and not session:
            self.session = boto3.session.Session(profile_name=profile_name)
        elif session:
            self.session = session
        if keyisset(self.arn_arg, kwargs):
            validate_iam_role_arn(arn=kwargs[self.arn_arg])
            self.session = get_cross_role_session(
                self.session,
                kwargs[self.arn_arg],
                region_name=set_else_none(self.region_arg, kwargs),
                session_name=f"WebStackSettings@{kwargs[self.command_arg]}",
            )

    def set_output_settings(self, kwargs):
        """
        Method to set the output settings based on kwargs
        """
        self.format = self.default_format
        if (
            keyisset(self.format_arg, kwargs)
            and kwargs[self.format_arg] in self.allowed_formats
        ):
            self.format = kwargs[self.format_arg]
        self.output_dir = (
            kwargs[self.output_dir_arg]
            if keyisset(self.output_dir_arg, kwargs)
            else self.default_output_dir
        )

    def set_account_id(self) -> str:
        """
        Retrieves the account ID of the session and ensures it is the one of the configuration, if set.

        :raises ValidationError: if the session is not for the configured account
        :raises ProvisioningError: if the account ID cannot be retrieved
        """
        if self.account_id is None:
            try:
                self.account_id = get_account_id(session=self.session)
            except ClientError as error:
                raise ProvisioningError(
                    "Failed to retrieve the AWS account ID", error
                ) from error
        if self.config.account_id and self.config.account_id != self.account_id:
            raise ValidationError(
                f"The session account {self.account_id} does not match Deployment.AccountId"
                f" {self.config.account_id}"
            )
        return self.account_id

    def set_bucket_name_from_account_id(self) -> None:
        """
        Defines the default bucket name to use from the AWS Account ID
        """
        if self.bucket_name and isinstance(self.bucket_name, str):
            return
        self.set_account_id()
        self.bucket_name = f"ecs-webstack-{self.account_id}-{self.config.region}"
        LOG.info(f"Using default bucket {self.bucket_name}")
