"""序列化工具 - 把引擎状态投影成可直接 JSON 广播的 dict"""

from typing import Optional

from src.engine.card import Card, sort_cards
from src.game.player import Player
from src.game.game_state import GamePhase, GameState


def card_to_dict(c: Card) -> dict:
    """将 Card 序列化为前端可用的 dict（id 由点数和花色唯一决定）"""
    return {
        "id": c.id,
        "rank": c.rank.label,
        "suit": c.suit.value,
        "numeric_rank": int(c.rank),
    }


def player_to_dict(p: Player) -> dict:
    """公开信息：只有手牌张数，没有手牌本身"""
    return {
        "id": p.id,
        "name": p.name,
        "card_count": p.hand_size,
        "seat_index": p.seat,
        "ready": p.ready,
    }


def _name_of(state: GameState, player_id: Optional[str]) -> Optional[str]:
    if player_id is None:
        return None
    player = state.find_player(player_id)
    return player.name if player else None


def public_state(state: GameState) -> dict:
    """所有人可见的状态快照，不会泄露任何人的手牌"""
    current = state.current_player
    claim = state.claim
    return {
        "game_id": state.game_id,
        "state": state.phase.value,
        "players": [player_to_dict(p) for p in state.players],
        "current_player_index": state.current_index,
        "current_player_name": current.name if current else None,
        "center_pile_count": len(state.pile),
        "last_claim": {
            "rank": claim.rank.label,
            "count": claim.count,
            "player_name": _name_of(state, claim.player_id),
        } if claim else None,
        "last_action": state.last_action.to_dict() if state.last_action else None,
        "winner": _name_of(state, state.winner_id),
        "loser": _name_of(state, state.loser_id),
        "pending_winner": _name_of(state, state.pending_winner_id),
        "can_call_bluff": state.can_call_bluff,
    }


def player_state(state: GameState, player: Player) -> dict:
    """某个玩家的个人视图：公开状态 + 自己的手牌"""
    out = public_state(state)
    current = state.current_player
    is_current = (
        state.phase == GamePhase.PLAYING
        and current is not None
        and current.id == player.id
    )
    out["hand"] = [card_to_dict(c) for c in sort_cards(player.hand)]
    out["is_current_player"] = is_current
    out["can_call_bluff"] = bool(state.can_call_bluff and state.claim is not None and is_current)
    return out
