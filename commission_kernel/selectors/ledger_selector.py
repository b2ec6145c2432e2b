"""
Module: commission_kernel.selectors.ledger_selector
Responsibility: Read access to a sale's commission ledger and the audit
    replay that recomputes it from the snapshots stored on its rows.
Architecture position: Kernel > Selectors.  Uses the pure formula from
    domain/ for replay; never writes.

Replay:
    Every ledger row carries the full CommissionSnapshot its run was
    computed from.  replay_sale() rebuilds the CommissionInput from each
    distinct snapshot, reruns the formula, and compares the stored rows with
    the recomputed drafts field by field.  An empty mismatch list means the
    stored ledger is exactly what the formula produces for its recorded
    inputs.  A changed sale does not cause mismatches; replay checks the
    ledger against its own inputs, not against the sale's current state.

    A non-regenerating sync only adds rows for keys not yet stored, so one
    ledger can hold rows of several runs.  A recomputed row is reported
    missing only when no run stored its (role, payee) key.
"""

import json
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from commission_kernel.domain.commission_formula import generate_ledger_entries
from commission_kernel.domain.dtos import (
    CommissionSnapshot,
    LedgerEntryDraft,
    LedgerEntryRecord,
    LedgerRole,
    ReplayMismatch,
    ReplayResult,
    payee_key_for,
)
from commission_kernel.models.commission_ledger import CommissionLedgerEntry
from commission_kernel.selectors.base import BaseSelector

_ROLE_ORDER = {role: position for position, role in enumerate(LedgerRole)}

_AMOUNT_FIELDS = ("gross_amount", "withholding_rate", "withholding_amount", "net_amount")


def _to_record(row: CommissionLedgerEntry) -> LedgerEntryRecord:
    return LedgerEntryRecord(
        id=row.id,
        sale_id=row.sale_id,
        profile_id=row.profile_id,
        role=LedgerRole(row.role),
        gross_amount=row.gross_amount,
        withholding_rate=row.withholding_rate,
        withholding_amount=row.withholding_amount,
        net_amount=row.net_amount,
        currency=row.currency,
        metadata=row.entry_metadata,
        created_at=row.created_at,
    )


class LedgerSelector(BaseSelector[CommissionLedgerEntry]):
    """Sale-level ledger queries."""

    def entries_for_sale(self, sale_id: UUID) -> list[LedgerEntryRecord]:
        """Entries of one sale, in formula order (agent, manager, override, HQ)."""
        rows = self.session.execute(
            select(CommissionLedgerEntry).where(CommissionLedgerEntry.sale_id == sale_id)
        ).scalars().all()
        records = [_to_record(row) for row in rows]
        records.sort(key=lambda r: (_ROLE_ORDER[r.role], str(r.profile_id)))
        return records

    def replay_sale(self, sale_id: UUID) -> ReplayResult:
        records = self.entries_for_sale(sale_id)
        mismatches: list[ReplayMismatch] = []

        # Keys stored anywhere in the ledger, whichever run wrote them
        stored_keys = {(r.role, payee_key_for(r.profile_id)) for r in records}

        # Rows of one run share a snapshot; group so each run replays once
        groups: dict[str, list[LedgerEntryRecord]] = {}
        for record in records:
            key = json.dumps(record.metadata, sort_keys=True)
            groups.setdefault(key, []).append(record)

        for group in groups.values():
            snapshot = CommissionSnapshot.from_dict(group[0].metadata)
            recomputed = {
                (draft.role, draft.payee_key): draft
                for draft in generate_ledger_entries(snapshot.inputs).ledger_entries
            }
            for record in group:
                key = (record.role, payee_key_for(record.profile_id))
                draft = recomputed.get(key)
                if draft is None:
                    mismatches.append(
                        ReplayMismatch(
                            role=record.role,
                            payee_key=key[1],
                            field_name="entry",
                            stored="present",
                            recomputed=None,
                        )
                    )
                    continue
                mismatches.extend(_compare(record, draft, key[1]))

            for key, draft in recomputed.items():
                if key not in stored_keys:
                    mismatches.append(
                        ReplayMismatch(
                            role=draft.role,
                            payee_key=key[1],
                            field_name="entry",
                            stored=None,
                            recomputed="present",
                        )
                    )

        return ReplayResult(
            sale_id=sale_id,
            entries_checked=len(records),
            mismatches=tuple(mismatches),
        )


def _compare(
    record: LedgerEntryRecord,
    draft: LedgerEntryDraft,
    payee_key: str,
) -> list[ReplayMismatch]:
    found: list[ReplayMismatch] = []
    for name in _AMOUNT_FIELDS:
        stored = Decimal(getattr(record, name))
        recomputed = Decimal(getattr(draft, name))
        if stored != recomputed:
            found.append(
                ReplayMismatch(
                    role=record.role,
                    payee_key=payee_key,
                    field_name=name,
                    stored=str(stored),
                    recomputed=str(recomputed),
                )
            )
    if record.currency != draft.currency:
        found.append(
            ReplayMismatch(
                role=record.role,
                payee_key=payee_key,
                field_name="currency",
                stored=record.currency,
                recomputed=draft.currency,
            )
        )
    return found
