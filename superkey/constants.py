"""Shared constants for the superkey worker."""

from __future__ import annotations

# Step names understood by the step-sequenced provider. The names double as
# the keys of ``StepsCompleted`` so they must stay stable on the wire.
STEP_S3 = "s3"
STEP_POLICY = "policy"
STEP_ROLE = "role"
STEP_BIND_ROLE = "bind_role"
STEP_COST_REPORT = "cost_report"

AMAZON_STEPS = (STEP_S3, STEP_POLICY, STEP_ROLE, STEP_BIND_ROLE, STEP_COST_REPORT)

# Compensation order: bindings before either side, bucket last.
AMAZON_TEARDOWN_ORDER = (
    STEP_BIND_ROLE,
    STEP_POLICY,
    STEP_ROLE,
    STEP_COST_REPORT,
    STEP_S3,
)

STEP_AZ_LIGHTHOUSE = "az-lighthouse"

# Substitution kinds.
SUB_ACCOUNT = "get_account"
SUB_S3 = "s3"
SUB_EXTERNAL_ID = "generate_external_id"

# Payload marker asking for the cost report bucket policy.
CREATE_COST_POLICY = '"create_cost_policy"'

PROVIDER_AMAZON = "amazon"
PROVIDER_AZURE = "azure"

# Inbound message headers and event types.
HEADER_EVENT_TYPE = "event_type"
HEADER_IDENTITY = "x-rh-identity"
HEADER_ORG_ID = "x-rh-sources-org-id"

EVENT_CREATE = "create_application"
EVENT_DESTROY = "destroy_application"

DEFAULT_TOPIC = "platform.sources.superkey-requests"

# Outbound headers for the inventory service.
PSK_HEADER = "x-rh-sources-psk"
ACCOUNT_NUMBER_HEADER = "x-rh-sources-account-number"
ORG_ID_HEADER = "x-rh-org-id"

AVAILABILITY_UNAVAILABLE = "unavailable"
