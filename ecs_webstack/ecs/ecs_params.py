#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Names and constants used by the ECS resources
"""

CLUSTER_T = "Cluster"
CLUSTER_NAME = "fargate-task-cluster"
SERVICE_SCALING_TARGET = "ServiceScalingTarget"
TASK_LOG_GROUP_T = "TaskLogGroup"
LOG_GROUP_RETENTION_DAYS = 14

FARGATE_LAUNCH_TYPE = "FARGATE"
AWSVPC_NETWORK_MODE = "awsvpc"

FARGATE_MODES = {
    256: [2**i for i in [9, 10, 11]],
    512: [(2**10) * i for i in range(1, 5)],
    1024: [(2**10) * i for i in range(2, 9)],
    2048: [(2**10) * i for i in range(4, 17)],
    4096: [(2**10) * i for i in range(8, 33)],
    8192: [(2**10) * i for i in range(16, 61, 4)],
    16384: [(2**10) * i for i in range(32, 121, 8)],
}
