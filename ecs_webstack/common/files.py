#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Functions to manage a template and whether it should be stored in S3
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecs_webstack.common.settings import WebStackSettings

import json
from os import makedirs
from os.path import abspath

import yaml
from botocore.exceptions import ClientError
from troposphere import Template

from ecs_webstack.common import FILE_PREFIX
from ecs_webstack.common.logging import LOG
from ecs_webstack.exceptions import ProvisioningError

JSON_MIME = "application/json"
YAML_MIME = "application/x-yaml"
TEMPLATE_BODY_MAX_SIZE = 51200


def upload_file(
    body: str,
    bucket_name: str,
    file_name: str,
    settings: WebStackSettings,
    prefix: str = None,
    mime: str = None,
) -> str:
    """Upload body to a file in s3 with given prefix and bucket_name

    :param str body: Template body, from troposphere template to_json() or to_yaml()
    :param str bucket_name: name of the bucket to upload the file to
    :param str file_name: Name of the file
    :param WebStackSettings settings:
    :param str prefix: override default prefix for the file in S3
    :param str mime: content type of the file
    :returns: the https://s3.amazonaws.com/ URL to the file
    :rtype: str
    """
    if mime is None:
        mime = JSON_MIME
    if prefix is None:
        prefix = FILE_PREFIX

    key = f"{prefix}/{file_name}"
    client = settings.session.client("s3")
    try:
        client.put_object(
            Body=body,
            Key=key,
            Bucket=bucket_name,
            ContentEncoding="utf-8",
            ContentType=mime,
            ServerSideEncryption="AES256",
        )
    except ClientError as error:
        raise ProvisioningError(
            f"Failed to upload {file_name} to s3://{bucket_name}/{key}", error
        ) from error
    return f"https://s3.amazonaws.com/{bucket_name}/{key}"


class FileArtifact:
    """
    Class to handle files artifacts, such as configuration files or templates.
    It will allow to upload the content to S3 or write to local filesystem.
    It also handles CloudFormation templates validation.

    :ivar str url: The URL in S3 where the file was uploaded to.
    :ivar str body: The content of the FileArtifact
    :ivar troposphere.Template template: the CFN template
    :ivar str file_name: the base name of the file
    :ivar str mime: MIME-type of the file
    :ivar str file_path: Output file path for the FileArtifact
    """

    mime = JSON_MIME

    def __init__(
        self,
        file_name: str,
        settings: WebStackSettings,
        file_format: str = None,
        template: Template = None,
        content=None,
    ):
        if template is not None and not isinstance(template, Template):
            raise TypeError("template must be of type", Template, "got", type(template))
        if template is None and not isinstance(content, (dict, list, tuple, str)):
            raise TypeError(
                "content must be of type", (dict, list, tuple, str), "Got", type(content)
            )
        self.template = template
        self.content = content
        self.url = None
        self.body = None
        if file_format is None:
            file_format = settings.format
        self.define_file_specs(file_name, file_format, settings)
        self.file_path = f"{settings.output_dir}/{self.file_name}"
        self.define_body()

    def __repr__(self):
        return self.file_path

    def define_file_specs(
        self, file_name: str, file_format: str, settings: WebStackSettings
    ) -> None:
        """
        Sets the file name and mime type from the format
        """
        if file_format in settings.allowed_formats:
            self.file_name = f"{file_name}.{file_format}"
        else:
            self.file_name = f"{file_name}.{settings.default_format}"
        if self.file_name.endswith(".yml") or self.file_name.endswith(".yaml"):
            self.mime = YAML_MIME
        else:
            self.mime = JSON_MIME

    def define_body(self) -> None:
        if isinstance(self.template, Template):
            if self.mime == YAML_MIME:
                self.body = self.template.to_yaml()
            else:
                self.body = self.template.to_json()
        elif isinstance(self.content, str):
            self.body = self.content
        elif self.mime == YAML_MIME:
            self.body = yaml.safe_dump(self.content, default_flow_style=False)
        else:
            self.body = json.dumps(self.content, indent=4)

    def write(self, settings: WebStackSettings) -> None:
        """
        Writes the file to the output directory
        """
        makedirs(settings.output_dir, exist_ok=True)
        with open(self.file_path, "w") as template_fd:
            template_fd.write(self.body)
        LOG.info(
            f"{self.file_name} written successfully at {abspath(self.file_path)}"
        )

    def upload(self, settings: WebStackSettings) -> None:
        self.url = upload_file(
            body=self.body,
            settings=settings,
            bucket_name=settings.bucket_name,
            file_name=self.file_name,
            mime=self.mime,
        )
        LOG.info(f"{self.file_name} uploaded successfully to {self.url}")

    def validate(self, settings: WebStackSettings) -> None:
        """
        Validates the CloudFormation template, via URL once uploaded to S3 or via TemplateBody

        :raises ProvisioningError: if CloudFormation rejects the template
        """
        client = settings.session.client("cloudformation")
        try:
            if self.url:
                client.validate_template(TemplateURL=self.url)
            elif len(self.body) >= TEMPLATE_BODY_MAX_SIZE:
                LOG.warning(
                    f"Template body for {self.file_name} is too big for validation without upload. Skipping"
                )
                return
            else:
                client.validate_template(TemplateBody=self.body)
        except ClientError as error:
            raise ProvisioningError(
                f"Template {self.file_name} failed CloudFormation validation", error
            ) from error
        LOG.debug(f"Template {self.file_name} was validated successfully by CFN")
