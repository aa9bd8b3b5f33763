"""Naming and payload substitution helpers shared by providers."""

from __future__ import annotations

import logging
import posixpath
import secrets
from typing import Mapping

from ..constants import STEP_S3, SUB_ACCOUNT, SUB_EXTERNAL_ID, SUB_S3
from ..contracts import ForgedApplication

logger = logging.getLogger(__name__)


def generate_guid() -> str:
    """Short random id embedded in every resource name of one request."""
    return secrets.token_hex(8)


def short_name(application_type: str) -> str:
    return f"redhat-{posixpath.basename(application_type.rstrip('/'))}"


def resource_name(application_type: str, kind: str, guid: str) -> str:
    return f"{short_name(application_type)}-{kind}-{guid}"


def substitute_in_payload(
    payload: str, forged: ForgedApplication, substitutions: Mapping[str, str]
) -> str:
    """Replace each placeholder in ``payload`` according to its kind.

    A placeholder that refers to a step which has not completed yet is left
    as is. Unknown kinds are ignored.
    """
    for placeholder, kind in substitutions.items():
        if kind == SUB_ACCOUNT:
            account = forged.request.extra.get("account", "")
            if not account:
                logger.warning(f'No account number to substitute for "{placeholder}"')
            payload = payload.replace(placeholder, account)
        elif kind == SUB_S3:
            bucket = forged.steps_completed.get(STEP_S3)
            if bucket is None:
                # TODO: decide with the inventory team whether this should fail the step.
                logger.warning(
                    f'Placeholder "{placeholder}" refers to the s3 step which has not run yet'
                )
                continue
            payload = payload.replace(placeholder, bucket.get("output", ""))
        elif kind == SUB_EXTERNAL_ID:
            external_id = forged.request.extra.get("external_id")
            if external_id is not None:
                payload = payload.replace(placeholder, external_id)
    return payload
