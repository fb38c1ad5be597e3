#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from os import path
from tempfile import mkdtemp

from behave import given, then

from ecs_webstack.common.settings import WebStackSettings
from ecs_webstack.webstack import generate_full_template


def here():
    return path.abspath(path.dirname(__file__))


def define_settings(context):
    context.settings = WebStackSettings(
        profile_name=getattr(context, "profile_name", None),
        **{
            WebStackSettings.command_arg: WebStackSettings.render_arg,
            WebStackSettings.name_arg: "test",
            WebStackSettings.input_file_arg: context.config_files,
            WebStackSettings.output_dir_arg: mkdtemp(),
            WebStackSettings.format_arg: "yaml",
        },
    )


@given("I use {file_path} as my configuration file")
def step_impl(context, file_path):
    """
    Function to import the configuration file from use-cases.

    :param context:
    :param str file_path:
    """
    context.config_files = [path.abspath(f"{here()}/../../{file_path}")]
    define_settings(context)


@given("I override the configuration with {file_path}")
def step_impl(context, file_path):
    context.config_files.append(path.abspath(f"{here()}/../../{file_path}"))
    define_settings(context)


@given("I want to use aws profile {profile_name}")
def step_impl(context, profile_name):
    context.profile_name = profile_name


@then("I render all files to verify execution")
def step_impl(context):
    context.template_file = generate_full_template(context.settings)
    context.template_file.write(context.settings)
    assert path.exists(context.template_file.file_path)


@then("the template has {count:d} {resource_type} resources")
def step_impl(context, count, resource_type):
    resources = context.template_file.template.to_dict()["Resources"]
    found = [
        name
        for name, resource in resources.items()
        if resource["Type"] == resource_type
    ]
    assert len(found) == count, (resource_type, found)
