from .auth import Token, TokenData, WalletAuthRequest
from .points import PointsHistoryEntry, UserPointsResponse
from .deposit import DepositEvent, IngestResult, BackfillResult
from .position import PositionResponse, SettlementReceipt, AccrualRunResult
from .leaderboard import LeaderboardEntry, LeaderboardPage
