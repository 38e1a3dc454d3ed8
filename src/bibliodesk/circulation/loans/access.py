"""Access policy for loan searches."""

from ..auth import CurrentUser
from .schemas import LoanFilter, LoanQuery


def scope_filter(current_user: CurrentUser, loan_filter: LoanFilter) -> LoanFilter:
    """Narrow a filter to what the user may see.

    Members who are not librarians only see their own loans, whatever
    member value they asked for.
    """
    if current_user.is_member_only:
        return loan_filter.model_copy(update={"member": current_user.id})
    return loan_filter


def scope_query(current_user: CurrentUser, query: LoanQuery) -> LoanQuery:
    """Return a copy of the query with its filter narrowed by scope_filter."""
    return query.model_copy(update={"filter": scope_filter(current_user, query.filter)})
