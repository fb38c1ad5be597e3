# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Console script for ecs_webstack.
"""

import argparse
import sys

from ecs_webstack import __version__
from ecs_webstack.common.aws import deploy, plan
from ecs_webstack.common.logging import LOG, set_log_level
from ecs_webstack.common.settings import WebStackSettings
from ecs_webstack.exceptions import ProvisioningError, ValidationError
from ecs_webstack.webstack import generate_full_template


class ArgparseHelper(argparse._HelpAction):
    """
    Used to help print top level '--help' arguments from argparse
    when used with subparsers
    """

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        print()
        subparsers_actions = [
            action
            for action in parser._actions
            if isinstance(action, argparse._SubParsersAction)
        ]
        for subparsers_action in subparsers_actions:
            for choice, subparser in list(subparsers_action.choices.items()):
                if choice in [
                    cmd["name"] for cmd in WebStackSettings.active_commands
                ] or choice in [
                    cmd["name"] for cmd in WebStackSettings.validation_commands
                ]:
                    print(f"Command '{choice}'")
                    print(subparser.format_usage())
        parser.exit()


def main_parser():
    """
    Console script for ecs_webstack.
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "-h",
        "--help",
        action=ArgparseHelper,
        help="show this help message and exit",
    )

    cmd_parsers = parser.add_subparsers(
        dest=WebStackSettings.command_arg, help="Command to execute."
    )
    base_command_parser = argparse.ArgumentParser(add_help=False)
    files_parser = argparse.ArgumentParser(add_help=False)
    files_parser.add_argument(
        "-f",
        "--config-file",
        dest=WebStackSettings.input_file_arg,
        required=True,
        help="Path to the configuration file. Later files override earlier ones.",
        action="append",
    )
    files_parser.add_argument(
        "--region",
        required=False,
        dest=WebStackSettings.region_arg,
        help="Specify the region you want to build for. "
        "Defaults to Deployment.Region, then to the region from AWS config or environment vars",
    )
    files_parser.add_argument(
        "--loglevel", type=str, help="Log level. Defaults to INFO", required=False
    )
    base_command_parser.add_argument(
        "-n",
        "--name",
        help="Name of your stack",
        required=True,
        type=str,
        dest=WebStackSettings.name_arg,
    )
    base_command_parser.add_argument(
        "-d",
        "--output-dir",
        required=False,
        help="Output directory to write the template to.",
        type=str,
        dest=WebStackSettings.output_dir_arg,
        default=WebStackSettings.default_output_dir,
    )
    base_command_parser.add_argument(
        "--format",
        help="Defines the format you want to use.",
        type=str,
        dest=WebStackSettings.format_arg,
        choices=WebStackSettings.allowed_formats,
        default=WebStackSettings.default_format,
    )
    base_command_parser.add_argument(
        "-b",
        "--bucket-name",
        type=str,
        required=False,
        help="Bucket name to upload the template to",
        dest=WebStackSettings.bucket_arg,
    )
    base_command_parser.add_argument(
        "--role-arn",
        dest=WebStackSettings.arn_arg,
        help="Allow you to run API calls using a specific IAM role, within same or for cross-account",
        required=False,
    )
    base_command_parser.add_argument(
        "--disable-rollback",
        dest=WebStackSettings.disable_rollback_arg,
        help="On create/plan, disable stack automatic rollback.",
        required=False,
        action="store_true",
    )
    for command in WebStackSettings.active_commands:
        cmd_parsers.add_parser(
            name=command["name"],
            help=command["help"],
            parents=[base_command_parser, files_parser],
        )
    for command in WebStackSettings.validation_commands:
        cmd_parsers.add_parser(
            name=command["name"], help=command["help"], parents=[files_parser]
        )
    for command in WebStackSettings.neutral_commands:
        cmd_parsers.add_parser(name=command["name"], help=command["help"])
    return parser


def run(settings: WebStackSettings) -> int:
    """
    Runs the command from the settings

    :param WebStackSettings settings:
    :return: status code
    """
    if settings.command == WebStackSettings.config_render_arg:
        print(settings.config.to_yaml())
        return 0
    template_file = generate_full_template(settings)
    template_file.write(settings)
    if settings.upload:
        settings.set_account_id()
        settings.set_bucket_name_from_account_id()
        template_file.upload(settings)
        template_file.validate(settings)
    if settings.deploy:
        deploy(settings, template_file)
    elif settings.plan:
        plan(settings, template_file)
    return 0


def main(args=None):
    """
    Main entry point for CLI
    :return: status code
    """
    parser = main_parser()
    if args is None and len(sys.argv) == 1:
        parser.print_help()
        return 0
    args = parser.parse_args(args)
    command = getattr(args, WebStackSettings.command_arg)
    if command == WebStackSettings.version_arg:
        print("ECS WebStack", __version__)
        return 0
    if getattr(args, "loglevel", None):
        set_log_level(args.loglevel)
    LOG.debug(args)
    try:
        settings = WebStackSettings(**vars(args))
        return run(settings)
    except ValidationError as error:
        LOG.error(f"Invalid configuration: {' '.join(str(arg) for arg in error.args)}")
        return 1
    except ProvisioningError as error:
        if error.code:
            LOG.error(f"{error.args[0]} - {error.code}: {error.message}")
        else:
            LOG.error(error.args[0])
        return 1


if __name__ == "__main__":
    sys.exit(main())  # pragma: no cover
