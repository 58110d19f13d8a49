"""Display identifiers assigned to a customer at registration."""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Optional


def generate_customer_number(now: Optional[datetime] = None) -> str:
    """``CUST-YYYYMMDD-NNNNN`` with a zero-padded random suffix."""
    day = (now or datetime.now(timezone.utc)).strftime("%Y%m%d")
    return f"CUST-{day}-{secrets.randbelow(100000):05d}"


def generate_watermark_id() -> str:
    """``WM-XXXXXXXX``: 4 random bytes as upper-case hex."""
    return f"WM-{secrets.token_hex(4).upper()}"
