"""
Boolean multi-criteria search over the lender directory.
Each present filter dimension contributes one predicate; a lender is kept only if it satisfies
all of them. Ranges use overlap semantics (a lender's range must be able to reach the bound);
the LTV ceiling is compared directly because each lender carries a single maximum LTV.
"""
from __future__ import annotations

from typing import Callable, Iterable

from schemas.filters import FilterOptions
from schemas.lender import Lender

Predicate = Callable[[Lender], bool]


def build_predicates(options: FilterOptions) -> list[Predicate]:
    predicates: list[Predicate] = []

    if options.search_term:
        term = options.search_term.casefold()
        predicates.append(
            lambda l: term in l.name.casefold() or term in (l.additional_info or "").casefold()
        )

    if options.min_loan is not None:
        min_loan = options.min_loan
        predicates.append(lambda l: l.loan_amount.max >= min_loan)
    if options.max_loan is not None:
        max_loan = options.max_loan
        predicates.append(lambda l: l.loan_amount.min <= max_loan)

    if options.min_rate is not None:
        min_rate = options.min_rate
        predicates.append(lambda l: l.rate.max >= min_rate)
    if options.max_rate is not None:
        max_rate = options.max_rate
        predicates.append(lambda l: l.rate.min <= max_rate)

    if options.min_term is not None:
        min_term = options.min_term
        predicates.append(lambda l: l.term.max >= min_term)
    if options.max_term is not None:
        max_term = options.max_term
        predicates.append(lambda l: l.term.min <= max_term)

    if options.max_ltv is not None:
        max_ltv = options.max_ltv
        predicates.append(lambda l: l.max_loan_to_value <= max_ltv)

    if options.loan_types:
        wanted = frozenset(options.loan_types)
        predicates.append(lambda l: not wanted.isdisjoint(l.loan_types))

    if options.location:
        location = options.location
        predicates.append(lambda l: location in l.covered_location)

    return predicates


def has_active_filters(options: FilterOptions) -> bool:
    return bool(build_predicates(options))


def sort_by_name(lenders: Iterable[Lender], *, descending: bool = False) -> list[Lender]:
    # sorted() is stable, also with reverse=True
    return sorted(lenders, key=lambda l: l.name.casefold(), reverse=descending)


def filter_lenders(
    lenders: Iterable[Lender],
    options: FilterOptions | None = None,
    *,
    descending: bool = False,
) -> list[Lender]:
    """
    Return the lenders matching every filter in options, sorted by name (case-insensitive).
    Does not mutate its inputs; the same inputs always give the same list in the same order.
    """
    predicates = build_predicates(options or FilterOptions())
    matched = [l for l in lenders if all(p(l) for p in predicates)]
    return sort_by_name(matched, descending=descending)
