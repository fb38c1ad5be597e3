#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

from copy import deepcopy
from os import path

import pytest

from ecs_webstack.common.config import StackConfig, load_config_files
from ecs_webstack.descriptor import build_stack_descriptor

HERE = path.abspath(path.dirname(__file__))
USE_CASES = path.abspath(f"{HERE}/../use-cases")


@pytest.fixture
def use_cases_path():
    return USE_CASES


@pytest.fixture
def ocr_content():
    return load_config_files([f"{USE_CASES}/webstack.yml"])


@pytest.fixture
def two_services_content():
    return load_config_files(
        [f"{USE_CASES}/webstack.yml", f"{USE_CASES}/two-services.yml"]
    )


@pytest.fixture
def minimal_content():
    return {
        "Deployment": {"Region": "eu-west-1"},
        "Services": {"ocr": {"Image": "example/ocr:latest"}},
    }


@pytest.fixture
def ocr_config(ocr_content):
    return StackConfig(deepcopy(ocr_content), stack_name="test")


@pytest.fixture
def ocr_descriptor(ocr_config):
    return build_stack_descriptor(ocr_config)
