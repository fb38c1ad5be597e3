#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Most commonly used functions shared across all modules.
"""

import re
from datetime import datetime as dt
from datetime import timezone

from ecs_webstack.exceptions import ValidationError

FILE_PREFIX = f'{dt.now(tz=timezone.utc).strftime("%Y/%m/%d/%H%M")}'
NONALPHANUM = re.compile(r"([^a-zA-Z\d]+)")


def logical_name(name: str) -> str:
    """
    Formats a name to be usable as a CloudFormation logical ID, i.e. ``ocr-service`` -> ``OcrService``

    :param str name:
    :rtype: str
    :raises ValidationError: if the name has no alphanumerical character
    """
    parts = [
        part for part in NONALPHANUM.split(name) if part and not NONALPHANUM.match(part)
    ]
    if not parts:
        raise ValidationError(f"{name} cannot be turned into an alphanumerical name")
    return "".join(part[0].upper() + part[1:] for part in parts)
