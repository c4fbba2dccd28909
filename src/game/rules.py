"""规则集 - 历史版本间有分歧的规则在这里固定下来"""

from dataclasses import dataclass
from enum import Enum

from src.engine.card import Rank


class WinMode(str, Enum):
    """出完手牌后的胜负判定方式"""
    IMMEDIATE = "immediate"         # 出完即胜
    PROVISIONAL = "provisional"     # 待定胜利，需下家确认


@dataclass(frozen=True)
class GameRules:
    """一局游戏采用的规则"""
    dangerous_rank: Rank = Rank.ACE          # 集齐4张即判负的点数
    allow_dangerous_claims: bool = False     # 是否允许声明危险点数
    win_mode: WinMode = WinMode.PROVISIONAL
    max_deal_retries: int = 10               # 发到4张危险牌时最多重发次数
    min_players: int = 2
    max_players: int = 8
    quad_size: int = 4

    def can_claim(self, rank: Rank) -> bool:
        return self.allow_dangerous_claims or rank != self.dangerous_rank
