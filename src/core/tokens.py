"""Quick-touch token ledger.

A quick touch is the cheap contact action, so it is rate limited: one token
is granted for every two full (REGULAR or DEEP) contact cycles. The grant
sets the balance to exactly one; tokens do not stack.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

CYCLES_PER_TOKEN = 2
TOKENS_PER_GRANT = 1


@dataclass(frozen=True)
class TokenUpdate:
    tokens: int
    cycles: int
    change: int        # +1 earned, 0 unchanged


def consume_quick_touch(tokens_available: int) -> int | None:
    """Spend one token. Returns the new balance, or None if there is none."""
    if tokens_available <= 0:
        return None
    return tokens_available - 1


def record_full_cycle(tokens_available: int, cycles: int) -> TokenUpdate:
    """Count one REGULAR/DEEP contact towards the next token."""
    new_cycles = cycles + 1
    new_tokens = tokens_available
    if new_cycles >= CYCLES_PER_TOKEN:
        new_tokens = TOKENS_PER_GRANT
        new_cycles = 0
        logger.debug("Quick-touch token granted (balance was %d)", tokens_available)
    return TokenUpdate(
        tokens=new_tokens,
        cycles=new_cycles,
        change=new_tokens - tokens_available,
    )
