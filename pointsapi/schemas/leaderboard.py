from decimal import Decimal
from typing import List

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    rank: int
    address: str
    total_points: Decimal


class LeaderboardPage(BaseModel):
    page: int
    limit: int
    total: int
    entries: List[LeaderboardEntry]
