from typing import Iterable

from schemas.lender import ALL_LOAN_TYPES, DirectorySummary, Lender, LoanTypeCount


def summarize(lenders: Iterable[Lender], *, top: int = 5, recent: int = 5) -> DirectorySummary:
    """Headline figures for the directory dashboard."""
    lenders = list(lenders)
    counts = [
        LoanTypeCount(loan_type=t, count=sum(1 for l in lenders if t in l.loan_types))
        for t in ALL_LOAN_TYPES
    ]
    # stable: equal counts keep enumeration order
    counts.sort(key=lambda c: c.count, reverse=True)
    newest = sorted(lenders, key=lambda l: l.created_at, reverse=True)[:recent]
    return DirectorySummary(
        total_lenders=len(lenders),
        top_loan_types=counts[:top],
        recently_added=newest,
    )
