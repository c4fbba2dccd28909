"""WebSocket 后端服务 - 大厅、指令分发，把引擎状态实时推送到各个客户端"""

import json
import logging
import uuid
import random
from typing import Awaitable, Callable, Dict, List, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from src.config import get_settings
from src.errors import BadRequestError, BluffError
from src.game.game_state import GameEvent, GamePhase
from src.web.store import SessionEntry, SessionStore

logger = logging.getLogger(__name__)

MAX_NAME_LEN = 32


# ============================================================
#  连接管理
# ============================================================

class ConnectionManager:
    """在线连接：玩家 ID → WebSocket / 显示名 / 所在牌局"""

    def __init__(self):
        self.sockets: Dict[str, WebSocket] = {}
        self.names: Dict[str, str] = {}
        self.game_of: Dict[str, Optional[str]] = {}

    def connect(self, player_id: str, ws: WebSocket, name: str) -> None:
        self.sockets[player_id] = ws
        self.names[player_id] = name
        self.game_of[player_id] = None

    def disconnect(self, player_id: str) -> None:
        self.sockets.pop(player_id, None)
        self.names.pop(player_id, None)
        self.game_of.pop(player_id, None)

    async def send(self, player_id: str, msg: dict) -> None:
        """只发给一个客户端"""
        ws = self.sockets.get(player_id)
        if ws is None:
            return
        try:
            await ws.send_text(json.dumps(msg, ensure_ascii=False))
        except Exception:
            logger.debug("send to %s failed, dropping connection", player_id)
            self.sockets.pop(player_id, None)

    async def broadcast(self, msg: dict, player_ids: Optional[List[str]] = None) -> None:
        """向指定玩家（默认所有在线连接）广播消息"""
        targets = list(self.sockets) if player_ids is None else player_ids
        for pid in targets:
            await self.send(pid, msg)


# ============================================================
#  FastAPI 应用
# ============================================================

settings = get_settings()

app = FastAPI(title="Bluff over LAN")

store = SessionStore(settings.rules())
manager = ConnectionManager()


@app.get("/api/health")
async def health():
    return {"status": "ok", "games": len(store), "connections": len(manager.sockets)}


@app.get("/api/games")
async def list_games():
    return store.games_list()


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    """WebSocket 端点：每个连接对应一个玩家"""
    await ws.accept()
    player_id = uuid.uuid4().hex
    name = f"Player{random.randint(0, 999)}"
    manager.connect(player_id, ws, name)
    logger.info("player connected: %s (%s)", player_id, name)
    await manager.send(player_id, {"type": "welcome", "player_id": player_id, "name": name})
    try:
        while True:
            data = await ws.receive_text()
            await handle_message(player_id, data)
    except (WebSocketDisconnect, RuntimeError):
        pass
    finally:
        await handle_disconnect(player_id)


async def handle_message(player_id: str, data: str) -> None:
    """解析并分发一条客户端指令；错误只回给发送者"""
    try:
        try:
            msg = json.loads(data)
        except json.JSONDecodeError:
            raise BadRequestError("消息不是合法的 JSON") from None
        if not isinstance(msg, dict):
            raise BadRequestError("消息必须是 JSON 对象")

        action = msg.get("action")
        handler = HANDLERS.get(action)
        if handler is None:
            raise BadRequestError(f"未知指令: {action!r}")
        await handler(player_id, msg)
    except BluffError as exc:
        logger.info("rejected command from %s: %s (%s)", player_id, exc.code, exc.message)
        await manager.send(player_id, {"type": "error", "code": exc.code, "message": exc.message})


async def handle_disconnect(player_id: str) -> None:
    """断线 = 离开所有牌局"""
    for entry in store.games_of(player_id):
        async with entry.lock:
            await _leave(entry, player_id)
    manager.disconnect(player_id)
    logger.info("player disconnected: %s", player_id)
    await broadcast_games_list()


# ============================================================
#  推送工具
# ============================================================

def _player_ids(entry: SessionEntry) -> List[str]:
    return [p.id for p in entry.session.players]


async def broadcast_games_list() -> None:
    await manager.broadcast({"type": "games_list", "games": store.games_list()})


async def broadcast_lobby(entry: SessionEntry) -> None:
    session = entry.session
    await manager.broadcast({
        "type": "lobby_update",
        "game_id": entry.game_id,
        "players": [{"id": p.id, "name": p.name, "ready": p.ready} for p in session.players],
        "all_ready": session.all_ready(),
    }, _player_ids(entry))


async def server_message(entry: SessionEntry, kind: str, text: str) -> None:
    await manager.broadcast({"type": "server_message", "kind": kind, "text": text}, _player_ids(entry))


async def publish(entry: SessionEntry, events: List[GameEvent]) -> None:
    """逐条广播派生事件，再推送公开状态和每个人的个人视图"""
    ids = _player_ids(entry)
    for event in events:
        await manager.broadcast({"type": "event", "event": event.to_dict()}, ids)
    await manager.broadcast({"type": "game_update", **entry.session.public_state()}, ids)
    for pid in ids:
        await manager.send(pid, {"type": "player_state", **entry.session.player_state(pid)})


def _current_entry(player_id: str) -> SessionEntry:
    return store.get(manager.game_of.get(player_id))


# ============================================================
#  指令处理
# ============================================================

async def on_change_name(player_id: str, msg: dict) -> None:
    name = str(msg.get("name") or "").strip()[:MAX_NAME_LEN]
    if not name:
        raise BadRequestError("名字不能为空")
    manager.names[player_id] = name
    entry = store.find(manager.game_of.get(player_id))
    if entry is not None:
        async with entry.lock:
            entry.session.rename_player(player_id, name)
            await broadcast_lobby(entry)
    await manager.send(player_id, {"type": "name_changed", "name": name})


async def on_list_games(player_id: str, msg: dict) -> None:
    await manager.send(player_id, {"type": "games_list", "games": store.games_list()})


async def on_create_game(player_id: str, msg: dict) -> None:
    await _leave_current(player_id)
    name = manager.names[player_id]
    entry = store.create(player_id, name)
    async with entry.lock:
        entry.session.add_player(player_id, name)
        manager.game_of[player_id] = entry.game_id
        logger.info("game created: %s by %s", entry.game_id, name)
        await manager.send(player_id, {"type": "game_created", "game_id": entry.game_id})
        await broadcast_lobby(entry)
    await broadcast_games_list()


async def on_join_game(player_id: str, msg: dict) -> None:
    entry = store.get(msg.get("game_id"))
    previous = manager.game_of.get(player_id)
    name = manager.names[player_id]
    # 先加入新牌局，成功后才离开原牌局；加入被拒绝时原牌局不受影响
    async with entry.lock:
        entry.session.add_player(player_id, name)
        manager.game_of[player_id] = entry.game_id
        await server_message(entry, "info", f"{name} 加入了牌局")
        await broadcast_lobby(entry)
    if previous is not None and previous != entry.game_id:
        await _leave_current(player_id, previous)
    await broadcast_games_list()


async def on_leave_game(player_id: str, msg: dict) -> None:
    entry = _current_entry(player_id)
    async with entry.lock:
        await _leave(entry, player_id)
    await broadcast_games_list()


async def on_toggle_ready(player_id: str, msg: dict) -> None:
    entry = _current_entry(player_id)
    async with entry.lock:
        session = entry.session
        session.toggle_ready(player_id)
        await broadcast_lobby(entry)
        if session.all_ready() and session.phase != GamePhase.PLAYING:
            await server_message(entry, "success", "所有玩家已准备，游戏开始")
            await _start(entry)


async def on_start_new_game(player_id: str, msg: dict) -> None:
    entry = _current_entry(player_id)
    async with entry.lock:
        for p in entry.session.players:
            p.ready = True
        await _start(entry)


async def on_play_cards(player_id: str, msg: dict) -> None:
    entry = _current_entry(player_id)
    card_ids = msg.get("card_ids")
    if card_ids is not None and not isinstance(card_ids, list):
        raise BadRequestError("card_ids 必须是列表")
    async with entry.lock:
        outcome = entry.session.play_cards(player_id, card_ids, msg.get("rank"))
        await publish(entry, outcome.events)
    await _after_move(entry)


async def on_call_bluff(player_id: str, msg: dict) -> None:
    entry = _current_entry(player_id)
    async with entry.lock:
        outcome = entry.session.call_bluff(player_id)
        await publish(entry, outcome.events)
    await _after_move(entry)


HANDLERS: Dict[str, Callable[[str, dict], Awaitable[None]]] = {
    "change_name": on_change_name,
    "list_games": on_list_games,
    "create_game": on_create_game,
    "join_game": on_join_game,
    "leave_game": on_leave_game,
    "toggle_ready": on_toggle_ready,
    "start_new_game": on_start_new_game,
    "play_cards": on_play_cards,
    "call_bluff": on_call_bluff,
}


# ============================================================
#  内部流程
# ============================================================

async def _start(entry: SessionEntry) -> None:
    outcome = entry.session.start_game()
    logger.info("game started: %s (deal attempts %d)", entry.game_id, outcome.deal_attempts)
    await publish(entry, outcome.events)


async def _leave(entry: SessionEntry, player_id: str) -> None:
    """调用方需持有 entry.lock"""
    name = manager.names.get(player_id, player_id)
    seen = len(entry.session.state.events)
    if not entry.session.remove_player(player_id):
        return
    if manager.game_of.get(player_id) == entry.game_id:
        manager.game_of[player_id] = None
    if not entry.session.players:
        store.delete(entry.game_id)
        logger.info("game removed: %s", entry.game_id)
        return
    await server_message(entry, "info", f"{name} 离开了牌局")
    await broadcast_lobby(entry)
    # 对局中离开会产生 playerLeft（只剩一人时还有 gameWon）
    await publish(entry, entry.session.state.events[seen:])


async def _leave_current(player_id: str, game_id: Optional[str] = None) -> None:
    """离开 game_id（默认为当前所在）牌局"""
    entry = store.find(game_id or manager.game_of.get(player_id))
    if entry is None:
        return
    async with entry.lock:
        await _leave(entry, player_id)


async def _after_move(entry: SessionEntry) -> None:
    if entry.session.phase == GamePhase.FINISHED:
        await broadcast_games_list()
