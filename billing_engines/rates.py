"""
Hourly rate ranking (``billing_engines.rates``).

Responsibility
--------------
Pure selection of a single hourly rate from the candidates one level of the
rate fallback chain returned:

* price-list entries, ranked by category specificity, login match, actor
  match and price-change date
* person override rates, ranked by how many narrowing criteria they set

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO database,
ZERO clock reads.  The "as of" date for price-list effectiveness is passed
in by the caller.

Invariants enforced
-------------------
* An entry narrowed to another login, another actor or a future date is
  never selected.
* Selection is deterministic: ties left after ranking are broken by
  ``price_list_id`` so store row order never matters.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from billing_kernel.domain.values import PersonRate, PriceListEntry


def _same_login(a: str | None, b: str | None) -> bool:
    # Login ids in the case-management system are not case sensitive
    return a is not None and b is not None and a.lower() == b.lower()


# ---------------------------------------------------------------------------
# Price lists
# ---------------------------------------------------------------------------


def is_price_list_entry_eligible(
    entry: PriceListEntry,
    login_id: str,
    actor_id: int | None,
    as_of: date,
) -> bool:
    """Whether ``entry`` may price work by ``login_id`` for ``actor_id`` on ``as_of``."""
    if entry.login_id is not None and not _same_login(entry.login_id, login_id):
        return False
    if entry.actor_id is not None and entry.actor_id != actor_id:
        return False
    if entry.price_change_date is not None and entry.price_change_date > as_of:
        return False
    return True


def price_list_rank_key(
    entry: PriceListEntry,
    login_id: str,
    actor_id: int | None,
) -> tuple:
    """Sort key putting the preferred entry first.

    Order: most specific category, exact login before wildcard, exact actor
    before default, most recent price-change date.
    """
    changed = entry.price_change_date or date.min
    return (
        -entry.category_specificity,
        0 if _same_login(entry.login_id, login_id) else 1,
        0 if actor_id is not None and entry.actor_id == actor_id else 1,
        -changed.toordinal(),
        entry.price_list_id,
    )


def select_price_list_entry(
    entries: Sequence[PriceListEntry],
    login_id: str,
    actor_id: int | None,
    as_of: date,
) -> PriceListEntry | None:
    """Pick the price-list entry that prices the work, or None.

    Args:
        entries: Candidate entries of one price list for the work code.
        login_id: Login of the person who did the work.
        actor_id: The case's primary actor, if any.
        as_of: Entries with a later price-change date are not yet effective.
    """
    eligible = [
        entry
        for entry in entries
        if is_price_list_entry_eligible(entry, login_id, actor_id, as_of)
    ]
    if not eligible:
        return None
    return min(eligible, key=lambda e: price_list_rank_key(e, login_id, actor_id))


# ---------------------------------------------------------------------------
# Person override rates
# ---------------------------------------------------------------------------


def _person_rate_specificity(rate: PersonRate) -> int:
    # Work code narrows more than role type
    return (2 if rate.work_code_id is not None else 0) + (
        1 if rate.role_type_id is not None else 0
    )


def select_person_rate(
    rates: Sequence[PersonRate],
    work_code_id: str,
    role_type_id: int,
) -> PersonRate | None:
    """Pick the most specific person rate matching work code and role type.

    A rate qualifies when each criterion it sets equals the requested value.
    Among qualifying rates, one narrowed by both work code and role type
    wins, then work code only, then role type only, then neither.
    """
    eligible = [
        rate
        for rate in rates
        if (rate.work_code_id is None or rate.work_code_id == work_code_id)
        and (rate.role_type_id is None or rate.role_type_id == role_type_id)
    ]
    if not eligible:
        return None
    return max(eligible, key=_person_rate_specificity)
