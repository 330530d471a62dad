from pointsapi.models.base import Base
from pointsapi.models.account import Account
from pointsapi.models.points import PointsBalance, PointsHistory
from pointsapi.models.deposit import Deposit
from pointsapi.models.strategy import Strategy
from pointsapi.models.position import Position
from pointsapi.models.activity import ActivityLog

__all__ = [
    "Base",
    "Account",
    "PointsBalance",
    "PointsHistory",
    "Deposit",
    "Strategy",
    "Position",
    "ActivityLog",
]
