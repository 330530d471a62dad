# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .account_repository import AccountRepository
from .points_repository import PointsRepository
from .deposit_repository import DepositRepository
from .strategy_repository import StrategyRepository
from .position_repository import PositionRepository
from .activity_repository import ActivityRepository
from .leaderboard_repository import LeaderboardRepository

__all__ = [
    "BaseRepository",
    "AccountRepository",
    "PointsRepository",
    "DepositRepository",
    "StrategyRepository",
    "PositionRepository",
    "ActivityRepository",
    "LeaderboardRepository",
]
