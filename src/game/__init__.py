# 游戏流程控制模块
from .player import Player
from .rules import GameRules, WinMode
from .game_state import (
    GameState, GamePhase, GameEvent, EventType, Claim,
    PlayOutcome, ChallengeOutcome, StartOutcome,
)
from .session import GameSession
