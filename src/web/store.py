"""会话仓库 - 传输层持有的所有牌局，每局一把锁保证指令串行执行"""

import asyncio
import random
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from src.errors import GameNotFoundError
from src.game.rules import GameRules
from src.game.session import GameSession


@dataclass
class SessionEntry:
    """仓库中的一局：引擎 + 房主信息 + 串行锁"""
    session: GameSession
    host_id: str
    host_name: str
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def game_id(self) -> str:
        return self.session.game_id


class SessionStore:
    """显式的牌局仓库，由服务端创建并注入到各个指令处理函数"""

    def __init__(self, rules: Optional[GameRules] = None):
        self.rules = rules or GameRules()
        self._entries: Dict[str, SessionEntry] = {}

    def create(self, host_id: str, host_name: str) -> SessionEntry:
        game_id = f"game_{uuid.uuid4().hex[:8]}"
        session = GameSession(game_id, rules=self.rules, rng=random.Random())
        entry = SessionEntry(session=session, host_id=host_id, host_name=host_name)
        self._entries[game_id] = entry
        return entry

    def get(self, game_id: Optional[str]) -> SessionEntry:
        entry = self._entries.get(game_id) if game_id else None
        if entry is None:
            raise GameNotFoundError()
        return entry

    def find(self, game_id: Optional[str]) -> Optional[SessionEntry]:
        return self._entries.get(game_id) if game_id else None

    def delete(self, game_id: str) -> None:
        self._entries.pop(game_id, None)

    def games_of(self, player_id: str) -> List[SessionEntry]:
        """玩家所在的所有牌局"""
        return [
            e for e in self._entries.values()
            if e.session.state.find_player(player_id) is not None
        ]

    def games_list(self) -> List[dict]:
        """大厅列表"""
        return [
            {
                "id": e.game_id,
                "host": e.host_name,
                "player_count": len(e.session.players),
                "state": e.session.phase.value,
            }
            for e in self._entries.values()
        ]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
