# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Names and settings related to the VPC. Used by ecs_webstack.vpc and others
"""

VPC_T = "Vpc"
IGW_T = "InternetGatewayV4"
IGW_ATTACHMENT_T = "VPCGatewayAttachement"
PUBLIC_RTB_T = "PublicRtb"

PUBLIC_SUBNET_TYPE = "public"
PRIVATE_EGRESS_SUBNET_TYPE = "private_egress"
SUBNET_TYPES = (PUBLIC_SUBNET_TYPE, PRIVATE_EGRESS_SUBNET_TYPE)

PUBLIC_SUBNET_NAME = "PublicSubnet"
PRIVATE_SUBNET_NAME = "PrivateSubnet"

DEFAULT_NETWORK_NAME = "fargate-task-vpc"
