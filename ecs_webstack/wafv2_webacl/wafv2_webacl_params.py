# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

REGIONAL_SCOPE = "REGIONAL"
CLOUDFRONT_SCOPE = "CLOUDFRONT"
SCOPES = (REGIONAL_SCOPE, CLOUDFRONT_SCOPE)

ALLOW_ACTION = "allow"
BLOCK_ACTION = "block"
DEFAULT_ACTIONS = (ALLOW_ACTION, BLOCK_ACTION)

OVERRIDE_NONE = "none"
OVERRIDE_COUNT = "count"
OVERRIDE_ACTIONS = (OVERRIDE_NONE, OVERRIDE_COUNT)

WEB_ACL_ARN_RETURN_VALUE = "Arn"
WEB_ACL_OUTPUT_T = "WebAclArn"
