"""
Balance Effects

An entry's effect on account balances, and the net change between two
versions of an entry.

DESIGN DECISION: Revert-then-reapply is computed, never executed.
balance_deltas(old, new) folds "undo old" and "apply new" into a single
net delta per account. The engine applies that delta once, so there is no
intermediate state where the old effect is reverted and the new one is not
yet applied.

    add     = balance_deltas(None, entry)
    update  = balance_deltas(original, updated)
    delete  = balance_deltas(original, None)
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional

from finance_tracker.errors import ValidationError
from finance_tracker.models.finance import EntryType, SpendingEntry


def entry_effect(entry: SpendingEntry) -> dict[str, Decimal]:
    """Signed balance change applying this entry causes, per account."""
    if entry.type == EntryType.EXPENSE:
        return {entry.account_id: -entry.amount}
    elif entry.type == EntryType.TRANSFER:
        return {
            entry.account_id: -entry.amount,
            entry.transfer_to_account_id: entry.amount,
        }
    else:
        raise ValidationError(f"Unsupported entry type: {entry.type!r}")


def balance_deltas(
    old: Optional[SpendingEntry],
    new: Optional[SpendingEntry],
    known_accounts: Optional[Iterable[str]] = None,
) -> dict[str, Decimal]:
    """
    Net balance change per account for replacing old with new.

    Args:
        old: Entry whose effect is reverted (None for a new entry)
        new: Entry whose effect is applied (None for a deletion)
        known_accounts: If given, the revert of old is limited to these
            accounts. An account that has since been deleted has nothing
            left to credit or debit.

    Returns:
        Account id -> delta, omitting accounts with no net change
    """
    deltas: dict[str, Decimal] = defaultdict(Decimal)
    known = set(known_accounts) if known_accounts is not None else None

    if old is not None:
        for account_id, delta in entry_effect(old).items():
            if known is None or account_id in known:
                deltas[account_id] -= delta

    if new is not None:
        for account_id, delta in entry_effect(new).items():
            deltas[account_id] += delta

    return {account_id: delta for account_id, delta in deltas.items() if delta != 0}


def skipped_reverts(
    old: Optional[SpendingEntry],
    known_accounts: Iterable[str],
) -> list[str]:
    """Accounts named by old that no longer exist."""
    if old is None:
        return []
    known = set(known_accounts)
    return [account_id for account_id in entry_effect(old) if account_id not in known]
