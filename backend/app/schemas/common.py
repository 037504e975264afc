"""
Shared schema pieces: money serialization and the pagination envelope.
"""

import math
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, PlainSerializer

# Decimals stay exact inside the service and render as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int, returned: int) -> "Pagination":
        skip = (page - 1) * limit
        return cls(
            current_page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
            total_items=total,
            has_next=skip + returned < total,
            has_prev=page > 1,
        )


class MessageResponse(BaseModel):
    message: str
