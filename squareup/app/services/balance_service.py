"""
services/balance_service.py — Netting engine: net balances and pairwise debts.

This file is the SINGLE SOURCE OF TRUTH for how balances are computed.
Every response that carries net_amounts or debts gets them from
compute_balances() / build_balance_summary(); do not re-derive them elsewhere.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives group_id (int) and session (SQLAlchemy Session) as arguments.
  - Returns plain Python dicts and lists.
  - The pure helpers (tally_raw_debts, compute_net_amounts, net_pairwise,
    simplify_debts) take plain data and are unit-tested without a database.

Money:
  - Every amount is a Decimal with 2 places. Nothing here touches float,
    so sum(net_amounts) is exactly Decimal("0.00") for consistent data.

Freshness:
  - Balances are never cached. They are recomputed from the stored
    contributions on every read and right after every contribution write,
    inside the same transaction, so a client that posts a contribution reads
    its effect immediately.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from squareup.app.errors import AppError, ErrorCode
from squareup.app.models.contribution import Contribution
from squareup.app.models.membership import Membership
from squareup.app.models.receiver_share import ReceiverShare

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

# (debtor_id, creditor_id) -> amount
RawDebts = dict[tuple[int, int], Decimal]


# ── Data access helpers ────────────────────────────────────────────────────

def get_share_rows(group_id: int, session: Session) -> list:
    """
    Returns one row per receiver share in the group:
      row.sender_id, row.receiver_id, row.amount

    A single SELECT over committed rows, so the netting below always sees a
    complete contribution list (never half of a contribution's shares).
    """
    stmt = (
        select(
            Contribution.sender_id,
            ReceiverShare.user_id.label("receiver_id"),
            ReceiverShare.amount,
        )
        .join(ReceiverShare, ReceiverShare.contribution_id == Contribution.id)
        .where(Contribution.group_id == group_id)
        .order_by(Contribution.id, ReceiverShare.id)
    )
    return list(session.execute(stmt).all())


def get_member_ids(group_id: int, session: Session) -> list[int]:
    """Returns the user_ids of the group's members in creation order."""
    stmt = (
        select(Membership.user_id)
        .where(Membership.group_id == group_id)
        .order_by(Membership.position)
    )
    return list(session.execute(stmt).scalars().all())


# ── Core algorithms ────────────────────────────────────────────────────────

def tally_raw_debts(rows: Iterable) -> RawDebts:
    """
    Accumulates raw obligations: raw[(receiver, sender)] += share amount.

    `rows` is any iterable of objects with sender_id, receiver_id and amount
    attributes (get_share_rows() output, or test doubles).
    """
    raw: RawDebts = defaultdict(Decimal)
    for row in rows:
        if row.sender_id == row.receiver_id:
            # Cannot be written through the API; ignore rather than
            # invent a self-debt.
            continue
        raw[(row.receiver_id, row.sender_id)] += row.amount
    return dict(raw)


def compute_net_amounts(raw: RawDebts, member_ids: Iterable[int]) -> dict[int, Decimal]:
    """
    net[U] = sum(amounts U is owed as sender) - sum(amounts U owes as receiver)

    Every member appears, zero included. Positive means the group owes U.
    """
    net: dict[int, Decimal] = {uid: ZERO for uid in member_ids}
    for (debtor_id, creditor_id), amount in raw.items():
        net[creditor_id] = net.get(creditor_id, ZERO) + amount
        net[debtor_id] = net.get(debtor_id, ZERO) - amount
    return {uid: amount.quantize(CENT) for uid, amount in net.items()}


def net_pairwise(raw: RawDebts) -> dict[int, dict[int, Decimal]]:
    """
    Nets opposing obligations for every unordered pair {A, B}.

    d = raw[A->B] - raw[B->A]
      d > 0  →  A owes B d
      d < 0  →  B owes A -d
      d == 0 →  no entry

    Returns {debtor_id: {creditor_id: amount}} with strictly positive amounts
    and at most one direction per pair.
    """
    debts: dict[int, dict[int, Decimal]] = {}
    seen: set[frozenset[int]] = set()

    for (a, b) in raw:
        pair = frozenset((a, b))
        if pair in seen:
            continue
        seen.add(pair)

        difference = raw.get((a, b), ZERO) - raw.get((b, a), ZERO)
        if difference > 0:
            debts.setdefault(a, {})[b] = difference.quantize(CENT)
        elif difference < 0:
            debts.setdefault(b, {})[a] = (-difference).quantize(CENT)

    return debts


def compute_balances(
        group_id: int,
        session: Session,
) -> tuple[dict[int, Decimal], dict[int, dict[int, Decimal]]]:
    """
    Canonical balance computation for a group.

    Returns (net_amounts, debts):
      net_amounts  {user_id: signed net balance}, every member present
      debts        {debtor_id: {creditor_id: amount}}, pairwise netted

    Idempotent: the same stored contributions always produce the same output.
    """
    raw = tally_raw_debts(get_share_rows(group_id, session))
    net_amounts = compute_net_amounts(raw, get_member_ids(group_id, session))
    return net_amounts, net_pairwise(raw)


def simplify_debts(balances: dict[int, Decimal]) -> list[dict]:
    """
    Greedy minimum cash flow settlement plan.

    Repeatedly matches the largest debtor with the largest creditor until
    all balances reach zero. For N members, produces at most N-1 transfers.
    Ties are broken by user id so the plan is stable between calls.

    Args:
        balances: {user_id: net_balance} from compute_balances().
                  MUST sum to zero.

    Returns:
        List of {"from_user_id": int, "to_user_id": int, "amount": Decimal}
    """
    creditors = sorted(
        [(uid, amt) for uid, amt in balances.items() if amt > 0],
        key=lambda x: (-x[1], x[0]),
    )
    debtors = sorted(
        [(uid, -amt) for uid, amt in balances.items() if amt < 0],
        key=lambda x: (-x[1], x[0]),
    )

    transfers: list[dict] = []
    i = j = 0

    while i < len(creditors) and j < len(debtors):
        cid, credit = creditors[i]
        did, debt = debtors[j]

        amount = min(credit, debt)
        transfers.append({
            "from_user_id": did,
            "to_user_id": cid,
            "amount": amount,
        })

        creditors[i] = (cid, credit - amount)
        debtors[j] = (did, debt - amount)

        if creditors[i][1] == ZERO:
            i += 1
        if debtors[j][1] == ZERO:
            j += 1

    return transfers


def build_balance_summary(group_id: int, session: Session) -> dict:
    """
    Wire-ready balances of one group:

        {
          "net_amounts":      {"<user_id>": "12.50", ...},
          "debts":            {"<debtor_id>": {"<creditor_id>": "5.00"}},
          "simplified_debts": [{"from_user_id", "to_user_id", "amount"}, ...],
        }

    Raises:
        AppError(INTERNAL_ERROR, 500) if the net amounts do not sum to zero.
        That can only happen with corrupt stored data.
    """
    net_amounts, debts = compute_balances(group_id, session)

    balance_sum = sum(net_amounts.values(), ZERO)
    if balance_sum != ZERO:
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Balance integrity check failed: sum was {balance_sum} (expected 0.00). "
            f"Group {group_id} has inconsistent financial data.",
            500,
        )

    return {
        "net_amounts": {str(uid): str(amount) for uid, amount in net_amounts.items()},
        "debts": {
            str(debtor): {str(creditor): str(amount) for creditor, amount in owed.items()}
            for debtor, owed in debts.items()
        },
        "simplified_debts": [
            {
                "from_user_id": t["from_user_id"],
                "to_user_id": t["to_user_id"],
                "amount": str(t["amount"]),
            }
            for t in simplify_debts(net_amounts)
        ],
    }
