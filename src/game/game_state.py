"""游戏状态 - 一局吹牛游戏的完整数据与派生事件"""

from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional, Any, Dict

from src.engine.card import Card, Rank
from src.game.player import Player


class GamePhase(str, Enum):
    """游戏阶段"""
    WAITING = "waiting"         # 等待开始（大厅）
    PLAYING = "playing"         # 出牌中
    FINISHED = "finished"       # 已结束


class EventType(str, Enum):
    """引擎产生的派生事件"""
    GAME_STARTED = "gameStarted"
    CARDS_PLAYED = "cardsPlayed"
    PENDING_WINNER = "pendingWinner"
    BLUFF_CALLED = "bluffCalled"
    QUADS_REMOVED = "quadsRemoved"
    PLAYER_LOST_ACES = "playerLostAces"
    GAME_WON = "gameWon"
    PLAYER_LEFT = "playerLeft"


@dataclass
class GameEvent:
    """一条事件记录（供传输层逐条广播）"""
    type: EventType
    player_id: Optional[str] = None
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value, "player_id": self.player_id, "message": self.message}
        out.update(self.data)
        return out


@dataclass
class Claim:
    """本轮的声明：点数固定，数量累加"""
    rank: Rank
    count: int                       # 本轮累计声明张数
    player_id: str                   # 最近一次出牌的玩家
    last_cards: List[Card] = field(default_factory=list)  # 最近一次实际放下的牌（质疑只检查这些）


@dataclass
class PlayOutcome:
    """出牌结果"""
    player_id: str
    rank: Rank
    played_count: int
    claim_count: int
    events: List[GameEvent] = field(default_factory=list)
    applied: bool = True             # 待定胜利被确认时，本次出牌不再生效


@dataclass
class ChallengeOutcome:
    """质疑结果"""
    caller_id: str
    accused_id: str
    truthful: bool
    actual_count: int                # 最近一次出牌中与声明点数相符的张数
    checked_count: int               # 最近一次出牌的张数（真话的门槛）
    claimed_count: int               # 本轮累计声明张数
    receiver_id: str                # 吃进牌池的玩家
    pile_size: int
    events: List[GameEvent] = field(default_factory=list)


@dataclass
class StartOutcome:
    """开局结果"""
    deal_attempts: int
    events: List[GameEvent] = field(default_factory=list)


@dataclass
class GameState:
    """一局游戏的完整状态"""
    game_id: str
    players: List[Player] = field(default_factory=list)
    phase: GamePhase = GamePhase.WAITING

    # 出牌相关
    current_index: int = 0
    claim: Optional[Claim] = None
    can_call_bluff: bool = False
    pile: List[Card] = field(default_factory=list)
    discarded: List[Card] = field(default_factory=list)   # 被移出游戏的四张/离场玩家的牌

    # 结算相关
    pending_winner_id: Optional[str] = None
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None

    # 事件日志
    last_action: Optional[GameEvent] = None
    events: List[GameEvent] = field(default_factory=list)

    @property
    def current_player(self) -> Optional[Player]:
        if 0 <= self.current_index < len(self.players):
            return self.players[self.current_index]
        return None

    def find_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def cards_in_play(self) -> int:
        """手牌 + 牌池 + 已移出的牌，游戏中恒为整副牌数"""
        return sum(p.hand_size for p in self.players) + len(self.pile) + len(self.discarded)
