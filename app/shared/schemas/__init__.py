"""
Request schemas shared by several modules.
"""

from .pagination import PaginationQuery, paginated

__all__ = ["PaginationQuery", "paginated"]
