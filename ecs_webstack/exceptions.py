#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Custom exceptions for ecs-webstack
"""


class WebStackBaseException(Exception):
    """
    Top class for WebStack Exceptions
    """

    def __init__(self, msg, *args):
        super().__init__(msg, *args)


class ValidationError(WebStackBaseException):
    """
    Exception when the configuration or the stack descriptor is invalid or inconsistent.
    Always raised before any call to AWS is made.
    """


class ProvisioningError(WebStackBaseException):
    """
    Exception when CloudFormation (or S3/STS) reports a failure.
    Keeps the original botocore error untouched in ``error``
    """

    def __init__(self, msg, error=None, *args):
        super().__init__(msg, *args)
        self.error = error

    @property
    def code(self):
        if self.error is None or not hasattr(self.error, "response"):
            return None
        return self.error.response.get("Error", {}).get("Code")

    @property
    def message(self):
        if self.error is None or not hasattr(self.error, "response"):
            return None
        return self.error.response.get("Error", {}).get("Message")
