#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Sizes the Fargate task from the container CPU/RAM reservations.
"""

from ecs_webstack.common.logging import LOG
from ecs_webstack.ecs.ecs_params import FARGATE_MODES
from ecs_webstack.exceptions import ValidationError


def find_fargate_configuration(cpu: int, ram: int) -> tuple:
    """
    Function to get the smallest Fargate CPU / RAM combination that fits the container CPU and RAM.

    :param int cpu: CPU units reserved by the container
    :param int ram: RAM in MiB reserved by the container
    :return: tuple(fargate_cpu, fargate_ram)
    :raises ValidationError: if no Fargate combination can fit the container
    """
    for fargate_cpu in sorted(FARGATE_MODES.keys()):
        if fargate_cpu < cpu:
            continue
        for fargate_ram in FARGATE_MODES[fargate_cpu]:
            if fargate_ram >= ram:
                if (fargate_cpu, fargate_ram) != (cpu, ram):
                    LOG.debug(
                        f"Container {cpu} CPU / {ram} MiB runs in Fargate task {fargate_cpu} CPU / {fargate_ram} MiB"
                    )
                return fargate_cpu, fargate_ram
    raise ValidationError(
        f"No Fargate configuration can fit {cpu} CPU units and {ram} MiB. Valid modes",
        {mode_cpu: (rams[0], rams[-1]) for mode_cpu, rams in FARGATE_MODES.items()},
    )
