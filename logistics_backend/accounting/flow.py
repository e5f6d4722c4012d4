# accounting/flow.py

"""
FLOW DIRECTION

Which way money moves through a bank account when a payment leg is applied.

INCOMING  customer (or agent being billed) pays us: bank balance goes up
OUTGOING  we pay an agent for an invoice they raised: bank balance goes down

The sign lives here, on an explicit enum, so no caller has to infer it from
an invoice direction string.
"""

from __future__ import annotations

import enum
from decimal import Decimal


class FlowDirection(enum.Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"

    @property
    def sign(self) -> int:
        return 1 if self is FlowDirection.INCOMING else -1

    def signed(self, amount: Decimal) -> Decimal:
        return amount if self is FlowDirection.INCOMING else -amount
