from .calculator import SEARCH_HORIZON_DAYS, compute_next, find_next_recurring_date

__all__ = ["SEARCH_HORIZON_DAYS", "compute_next", "find_next_recurring_date"]
