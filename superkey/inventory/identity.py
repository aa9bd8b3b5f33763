from __future__ import annotations

import base64
import json


def encode_identity(account_number: str = "", org_id: str = "") -> str:
    """Build a base64 identity header for calls made without a forwarded one."""
    identity = {
        "identity": {
            "account_number": account_number,
            "org_id": org_id,
            "user": {"is_org_admin": True},
        }
    }
    return base64.b64encode(json.dumps(identity).encode()).decode()


def decode_account_number(header: str) -> str:
    """Return the account number embedded in an identity header, if any."""
    if not header:
        return ""
    try:
        document = json.loads(base64.b64decode(header))
    except (ValueError, TypeError):
        return ""
    if not isinstance(document, dict):
        return ""
    return str(document.get("identity", {}).get("account_number", "") or "")
