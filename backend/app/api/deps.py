"""
Shared request dependencies.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Header


def get_now() -> datetime:
    """Request clock. Overridden in tests to pin deadlines."""
    return datetime.now(timezone.utc)


async def get_acting_user_id(x_user_id: Optional[int] = Header(None)) -> Optional[int]:
    """Id of the user performing a booking, recorded on orders and audit rows."""
    return x_user_id
