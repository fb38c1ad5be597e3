#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Load the JSON Schema specification of the configuration file
"""

import json

from importlib_resources import files as pkg_files

CONFIG_SPEC_FILE = "webstack.spec.json"


def load_config_spec() -> dict:
    source = pkg_files("ecs_webstack").joinpath(f"specs/{CONFIG_SPEC_FILE}")
    return json.loads(source.read_text())
