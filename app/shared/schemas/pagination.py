"""
Pagination query parameters and the paginated list envelope.
"""

import math
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

SortField = Literal["createdAt", "-createdAt", "updatedAt", "-updatedAt", "name", "-name"]


class PaginationQuery(BaseModel):
    """Query string of list endpoints."""

    model_config = ConfigDict(extra="ignore")

    page: int = Field(default=1, ge=1, description="Page number, starting at 1")
    limit: int = Field(default=20, ge=1, le=100, description="Items per page")
    sort: SortField = Field(default="-createdAt", description="Sort field, '-' prefix for descending")

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def paginated(items: List[Dict[str, Any]], total: int, query: PaginationQuery) -> Dict[str, Any]:
    return {
        "success": True,
        "data": items,
        "pagination": {
            "page": query.page,
            "limit": query.limit,
            "total": total,
            "pages": math.ceil(total / query.limit) if total else 0,
        },
    }
