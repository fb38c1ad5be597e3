# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Names and defaults of the load balancing resources
"""

DEFAULT_LB_NAME = "public"
LB_TYPE = "application"
ANY_IPV4 = "0.0.0.0/0"
HTTP_PROTOCOL = "HTTP"
TCP_PROTOCOL = "tcp"
HTTPS_PORT = 443

LB_SG_SUFFIX = "SecurityGroup"
LISTENER_SUFFIX = "Listener"
TARGET_GROUP_PREFIX = "Tgt"

LISTENER_RULES_PRIORITY_OFFSET = 100
HEALTHCHECK_DEFAULTS = {
    "HealthCheckIntervalSeconds": 30,
    "HealthCheckTimeoutSeconds": 5,
    "HealthyThresholdCount": 2,
    "UnhealthyThresholdCount": 5,
    "HealthCheckProtocol": HTTP_PROTOCOL,
}
