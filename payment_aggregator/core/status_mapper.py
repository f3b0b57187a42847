"""
Keyword classification of free-form processor status strings.

The keyword groups are checked in order, so a status that would match both
the success and the decline group resolves to success.
"""
from typing import Any, Optional, Tuple

from .models import Outcome

SUCCESS_KEYWORDS: Tuple[str, ...] = ("success", "approved", "completed", "paid")
SUCCESS_EXACT_TOKENS: Tuple[str, ...] = ("authorised",)
DECLINE_KEYWORDS: Tuple[str, ...] = ("declined", "failed", "rejected", "cancelled", "error")


def map_status(raw_status: Optional[Any]) -> Outcome:
    """
    Map a processor status to a canonical outcome.

    Args:
        raw_status: Status as reported by the processor (may be None)

    Returns:
        Outcome: success, declined, or processing for anything unrecognised
    """
    if raw_status is None:
        return Outcome.PROCESSING

    status = str(raw_status).strip().lower()
    if not status:
        return Outcome.PROCESSING

    if status in SUCCESS_EXACT_TOKENS or any(word in status for word in SUCCESS_KEYWORDS):
        return Outcome.SUCCESS

    if any(word in status for word in DECLINE_KEYWORDS):
        return Outcome.DECLINED

    return Outcome.PROCESSING
