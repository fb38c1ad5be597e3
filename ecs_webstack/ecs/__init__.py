#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
ECS records and resources: task definitions, cluster, services and their scaling.
"""
