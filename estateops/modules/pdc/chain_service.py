"""ReplacementChainService — links bounced cheques to their replacements."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from estateops.exceptions import (
    BusinessRuleException,
    ChainIntegrityException,
    ConflictException,
    NotFoundException,
)
from estateops.models.enums import PdcStatus
from estateops.models.post_dated_cheque import PostDatedCheque
from estateops.modules.pdc.constants import (
    CHAIN_CLOSING_STATUSES,
    REPLACEABLE_STATUSES,
    REPLACEMENT_INITIAL_STATUS,
)
from estateops.modules.pdc.schemas import PdcChainLink, PdcReplacementDraft

logger = logging.getLogger(__name__)


class ReplacementChainService:
    """Maintains the singly linked replacement chain of post-dated cheques.

    A chain runs from the first cheque received through each replacement to
    a single leaf, the instrument currently in force. Links are only ever
    appended; nothing here unlinks or reorders them.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _get_cheque(
        self, pdc_id: uuid.UUID, for_update: bool = False
    ) -> PostDatedCheque:
        stmt = select(PostDatedCheque).where(PostDatedCheque.id == pdc_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        cheque = result.scalar_one_or_none()
        if cheque is None:
            raise NotFoundException(f"Post-dated cheque {pdc_id} not found")
        return cheque

    async def record_replacement(
        self, original_id: uuid.UUID, draft: PdcReplacementDraft
    ) -> uuid.UUID:
        """Create a replacement for a bounced cheque and link the two.

        Both writes are flushed in the caller's transaction. Returns the new
        cheque's id.
        """
        original = await self._get_cheque(original_id, for_update=True)

        if original.replacement_pdc_id is not None:
            raise ConflictException(
                f"Cheque {original.cheque_number} was already replaced by "
                f"{original.replacement_pdc_id}"
            )
        if original.status not in REPLACEABLE_STATUSES:
            raise BusinessRuleException(
                f"Only bounced cheques can be replaced; cheque "
                f"{original.cheque_number} is {original.status.value}"
            )

        duplicate = await self.db.execute(
            select(PostDatedCheque.id).where(
                PostDatedCheque.tenant_id == original.tenant_id,
                PostDatedCheque.cheque_number == draft.cheque_number,
            )
        )
        if duplicate.first() is not None:
            raise ConflictException(
                f"Cheque number {draft.cheque_number} already exists for this tenant"
            )

        replacement = PostDatedCheque(
            cheque_number=draft.cheque_number,
            bank_name=draft.bank_name,
            amount=draft.amount,
            cheque_date=draft.cheque_date,
            notes=draft.notes,
            created_by=draft.created_by,
            tenant_id=original.tenant_id,
            invoice_id=original.invoice_id,
            lease_id=original.lease_id,
            status=REPLACEMENT_INITIAL_STATUS,
            original_pdc_id=original.id,
        )
        self.db.add(replacement)
        await self.db.flush()

        # Guarded write: a concurrent replacement of the same cheque loses here
        result = await self.db.execute(
            update(PostDatedCheque)
            .where(
                PostDatedCheque.id == original.id,
                PostDatedCheque.replacement_pdc_id.is_(None),
                PostDatedCheque.status == PdcStatus.BOUNCED,
            )
            .values(replacement_pdc_id=replacement.id, status=PdcStatus.REPLACED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictException(
                f"Cheque {original.cheque_number} changed while recording its replacement"
            )
        await self.db.flush()
        await self.db.refresh(original)

        logger.info(
            "Recorded replacement %s (%s) for bounced cheque %s",
            replacement.id,
            replacement.cheque_number,
            original.id,
        )
        return replacement.id

    async def trace_chain(self, pdc_id: uuid.UUID) -> list[PostDatedCheque]:
        """Return the whole chain containing ``pdc_id``, root first.

        Raises:
            NotFoundException: the cheque does not exist.
            ChainIntegrityException: a link is dangling, one-sided, or loops.
        """
        start = await self._get_cheque(pdc_id)
        visited: set[uuid.UUID] = {start.id}

        backward: list[PostDatedCheque] = []
        node = start
        while node.original_pdc_id is not None:
            parent = await self._get_linked(node.original_pdc_id, node.id, visited)
            if parent.replacement_pdc_id != node.id:
                raise ChainIntegrityException(
                    f"Cheque {parent.id} does not point forward to its replacement {node.id}"
                )
            backward.append(parent)
            node = parent

        forward: list[PostDatedCheque] = []
        node = start
        while node.replacement_pdc_id is not None:
            child = await self._get_linked(node.replacement_pdc_id, node.id, visited)
            if child.original_pdc_id != node.id:
                raise ChainIntegrityException(
                    f"Replacement {child.id} does not point back to cheque {node.id}"
                )
            forward.append(child)
            node = child

        return [*reversed(backward), start, *forward]

    async def _get_linked(
        self, linked_id: uuid.UUID, from_id: uuid.UUID, visited: set[uuid.UUID]
    ) -> PostDatedCheque:
        if linked_id in visited:
            raise ChainIntegrityException(
                f"Replacement chain loops back to cheque {linked_id}"
            )
        visited.add(linked_id)
        try:
            return await self._get_cheque(linked_id)
        except NotFoundException as exc:
            raise ChainIntegrityException(
                f"Cheque {from_id} links to missing cheque {linked_id}"
            ) from exc

    async def describe_chain(self, pdc_id: uuid.UUID) -> list[PdcChainLink]:
        return [PdcChainLink.model_validate(c) for c in await self.trace_chain(pdc_id)]

    async def get_active_instrument(self, pdc_id: uuid.UUID) -> PostDatedCheque:
        """The leaf of the chain: the cheque currently standing for the payment."""
        chain = await self.trace_chain(pdc_id)
        return chain[-1]

    async def is_chain_closed(self, pdc_id: uuid.UUID) -> bool:
        leaf = await self.get_active_instrument(pdc_id)
        return leaf.status in CHAIN_CLOSING_STATUSES
