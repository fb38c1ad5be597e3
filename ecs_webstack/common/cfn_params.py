# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Common parameters for CFN. Parameters are grouped by label in the CloudFormation console.
"""

from troposphere import Parameter as CfnParameter
from troposphere import Template


class Parameter(CfnParameter):
    """
    Class to extend the default Parameter behaviour
    """

    def __init__(
        self, title, return_value=None, group_label=None, label=None, **kwargs
    ):
        self.return_value = return_value
        self.group_label = group_label if group_label else "Uncategorized parameters"
        self.label = label
        super().__init__(title, **kwargs)


def add_parameters(template: Template, parameters: list) -> None:
    """
    Adds the parameters to the template, skipping the ones already present.

    :param troposphere.Template template:
    :param list[Parameter] parameters:
    """
    for parameter in parameters:
        if parameter.title not in template.parameters:
            template.add_parameter(parameter)


def define_parameters_metadata(template: Template) -> None:
    """
    Sets the AWS::CloudFormation::Interface metadata from the parameters group labels.
    """
    groups = {}
    labels = {}
    for parameter in template.parameters.values():
        group_label = getattr(parameter, "group_label", "Uncategorized parameters")
        groups.setdefault(group_label, []).append(parameter.title)
        if getattr(parameter, "label", None):
            labels[parameter.title] = {"default": parameter.label}
    if not groups:
        return
    template.set_metadata(
        {
            "AWS::CloudFormation::Interface": {
                "ParameterGroups": [
                    {"Label": {"default": label}, "Parameters": parameters}
                    for label, parameters in groups.items()
                ],
                "ParameterLabels": labels,
            }
        }
    )
