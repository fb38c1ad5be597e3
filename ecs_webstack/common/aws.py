# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to hand over the rendered template to AWS CloudFormation.

Errors from the AWS APIs are reported as ProvisioningError and never retried.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.common.files import FileArtifact
    from ecs_webstack.common.settings import WebStackSettings

from time import sleep

from botocore.exceptions import ClientError
from compose_x_common.aws import get_assume_role_session
from compose_x_common.compose_x_common import keyisset
from tabulate import tabulate

from ecs_webstack.common.logging import LOG
from ecs_webstack.exceptions import ProvisioningError

CAPABILITIES = ["CAPABILITY_IAM"]
CAN_UPDATE_STATUSES = [
    "CREATE_COMPLETE",
    "ROLLBACK_COMPLETE",
    "UPDATE_COMPLETE",
    "UPDATE_ROLLBACK_COMPLETE",
]


def get_cross_role_session(session, arn, region_name=None, session_name=None):
    """
    Function to get a session assuming the given IAM role

    :param boto3.session.Session session: The original session fetching the credentials for X-Role
    :param str arn:
    :param str region_name: Name of region for session
    :param str session_name: Override name of the session
    :return: boto3 session
    :rtype: boto3.session.Session
    """
    if not session_name:
        session_name = "WebStack@Deploy"
    try:
        return get_assume_role_session(
            session, arn, session_name=session_name, region=region_name
        )
    except ClientError as error:
        raise ProvisioningError(f"Failed to use the Role ARN {arn}", error) from error


def assert_can_create_stack(client, name):
    """
    Checks whether a stack already exists or not

    :return: True if the stack does not exist, the stack if in REVIEW_IN_PROGRESS, False otherwise
    """
    try:
        stack_r = client.describe_stacks(StackName=name)
    except ClientError as error:
        if (
            error.response["Error"]["Code"] == "ValidationError"
            and error.response["Error"]["Message"].find("does not exist") > 0
        ):
            return True
        raise ProvisioningError(f"Failed to describe stack {name}", error) from error
    if not keyisset("Stacks", stack_r):
        return True
    stacks = stack_r["Stacks"]
    if len(stacks) != 1:
        raise ProvisioningError(
            f"Found {len(stacks)} stacks named {name}, expected one"
        )
    stack = stacks[0]
    if stack["StackStatus"] == "REVIEW_IN_PROGRESS":
        return stack
    return False


def assert_can_update_stack(client, name) -> bool:
    """
    Checks whether an existing stack is in a status that allows updates
    """
    try:
        res = client.describe_stacks(StackName=name)
    except ClientError as error:
        raise ProvisioningError(f"Failed to describe stack {name}", error) from error
    if not res["Stacks"]:
        return False
    stack = res["Stacks"][0]
    LOG.info(f"Stack {name} status is {stack['StackStatus']}")
    return stack["StackStatus"] in CAN_UPDATE_STATUSES


def define_template_source(template_file: FileArtifact) -> dict:
    if template_file.url:
        return {"TemplateURL": template_file.url}
    return {"TemplateBody": template_file.body}


def deploy(settings: WebStackSettings, template_file: FileArtifact):
    """
    Function to deploy (create or update) the stack to CFN.

    :param WebStackSettings settings:
    :param FileArtifact template_file:
    :return: the stack ID, None if the stack cannot be created nor updated
    """
    client = settings.session.client("cloudformation")
    source = define_template_source(template_file)
    try:
        if assert_can_create_stack(client, settings.name):
            res = client.create_stack(
                StackName=settings.name,
                Capabilities=CAPABILITIES,
                DisableRollback=settings.disable_rollback,
                **source,
            )
            LOG.info(f"Stack {settings.name} successfully deployed.")
            LOG.info(res["StackId"])
            return res["StackId"]
        elif assert_can_update_stack(client, settings.name):
            LOG.warning(f"Stack {settings.name} already exists. Updating.")
            res = client.update_stack(
                StackName=settings.name,
                Capabilities=CAPABILITIES,
                DisableRollback=settings.disable_rollback,
                **source,
            )
            LOG.info(f"Stack {settings.name} successfully updating.")
            LOG.info(res["StackId"])
            return res["StackId"]
    except ClientError as error:
        raise ProvisioningError(
            f"CloudFormation rejected stack {settings.name}", error
        ) from error
    LOG.error(f"Stack {settings.name} can neither be created nor updated")
    return None


def get_change_set_status(client, change_set_name: str, settings: WebStackSettings):
    """
    Waits for the change set to be computed, then prints the changes.

    :raises ProvisioningError: if the change set failed
    """
    pending_statuses = [
        "CREATE_PENDING",
        "CREATE_IN_PROGRESS",
        "DELETE_PENDING",
        "DELETE_IN_PROGRESS",
        "REVIEW_IN_PROGRESS",
    ]
    success_statuses = ["CREATE_COMPLETE", "DELETE_COMPLETE"]
    failed_statuses = ["DELETE_FAILED", "FAILED"]
    status = None
    while True:
        status = client.describe_change_set(
            ChangeSetName=change_set_name, StackName=settings.name
        )
        if status["Status"] in failed_statuses:
            raise ProvisioningError(
                f"Change set {change_set_name} is unsuccessful: {status['Status']}"
                f" - {status.get('StatusReason')}"
            )
        if status["Status"] in success_statuses:
            break
        if status["Status"] in pending_statuses:
            print(
                "ChangeSet creation in progress. Waiting 10 seconds",
                end="\r",
                flush=True,
            )
            sleep(settings.change_set_poll_interval)

    print(
        tabulate(
            [
                [
                    change["ResourceChange"]["LogicalResourceId"],
                    change["ResourceChange"]["ResourceType"],
                    change["ResourceChange"]["Action"],
                ]
                for change in status["Changes"]
            ],
            ["LogicalResourceId", "ResourceType", "Action"],
            tablefmt="rst",
        )
    )
    return status


def plan(settings: WebStackSettings, template_file: FileArtifact):
    """
    Function to create a change-set, display the changes and optionally apply it

    :param WebStackSettings settings:
    :param FileArtifact template_file:
    """
    client = settings.session.client("cloudformation")
    change_set_name = f"{settings.name}-{settings.run_id}"
    can_create = assert_can_create_stack(client, settings.name)
    if not can_create and not assert_can_update_stack(client, settings.name):
        LOG.error(f"Stack {settings.name} can neither be created nor updated")
        return None
    try:
        client.create_change_set(
            StackName=settings.name,
            Capabilities=CAPABILITIES,
            UsePreviousTemplate=False,
            ChangeSetType="CREATE" if can_create else "UPDATE",
            ChangeSetName=change_set_name,
            **define_template_source(template_file),
        )
        status = get_change_set_status(client, change_set_name, settings)
        apply_q = input("Want to apply? [yN]: ")
        if apply_q in ["y", "Y", "YES", "Yes", "yes"]:
            client.execute_change_set(
                ChangeSetName=change_set_name,
                StackName=settings.name,
                DisableRollback=settings.disable_rollback,
            )
            LOG.info(f"Change set {change_set_name} applied to {settings.name}")
        else:
            delete_q = input("Cleanup ChangeSet ? [yN]: ")
            if delete_q in ["y", "Y", "YES", "Yes", "yes"]:
                client.delete_change_set(
                    ChangeSetName=change_set_name, StackName=settings.name
                )
        return status
    except ClientError as error:
        raise ProvisioningError(
            f"Change set {change_set_name} for {settings.name} failed", error
        ) from error
