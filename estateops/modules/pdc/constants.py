"""Post-dated cheque status groups used by the replacement chain."""

from __future__ import annotations

from estateops.models.enums import PdcStatus

# A cheque may only be replaced after it bounced
REPLACEABLE_STATUSES: set[PdcStatus] = {
    PdcStatus.BOUNCED,
}

# Leaf statuses that close a replacement chain
CHAIN_CLOSING_STATUSES: set[PdcStatus] = {
    PdcStatus.CLEARED,
    PdcStatus.WITHDRAWN,
    PdcStatus.CANCELLED,
}

# Status given to a freshly recorded replacement cheque
REPLACEMENT_INITIAL_STATUS = PdcStatus.RECEIVED
