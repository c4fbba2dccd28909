"""游戏会话 - 一局吹牛游戏的状态机（声明、质疑、轮转、四张规则、胜负判定）

引擎本身不做任何 I/O：传输层调用方法，拿到结构化结果，再把状态投影广播出去。
所有校验都在修改状态之前完成，被拒绝的指令不会留下任何痕迹。
"""

import logging
import random
from typing import Callable, Iterable, List, Optional, Union

from src.engine.card import Deck, Rank
from src.errors import (
    AlreadyStartedError,
    CardsNotOwnedError,
    GameFullError,
    GameNotPlayingError,
    InsufficientPlayersError,
    InvalidClaimError,
    NoActiveClaimError,
    NoCardsSelectedError,
    NotYourTurnError,
    PlayerNotFoundError,
    RankMismatchError,
)
from src.game.player import Player
from src.game.rules import GameRules, WinMode
from src.game.game_state import (
    ChallengeOutcome,
    Claim,
    EventType,
    GameEvent,
    GamePhase,
    GameState,
    PlayOutcome,
    StartOutcome,
)
from src.game import serializers

logger = logging.getLogger(__name__)

DeckFactory = Callable[[random.Random], Deck]


def _default_deck(rng: random.Random) -> Deck:
    return Deck(rng=rng)


class GameSession:
    """一局吹牛游戏：waiting → playing → finished"""

    def __init__(
        self,
        game_id: str,
        rules: Optional[GameRules] = None,
        rng: Optional[random.Random] = None,
        deck_factory: Optional[DeckFactory] = None,
    ):
        self.rules = rules or GameRules()
        self._rng = rng or random.Random()       # 每个会话独立的随机源
        self._deck_factory = deck_factory or _default_deck
        self.state = GameState(game_id=game_id)
        self._callbacks: List[Callable[[GameEvent], None]] = []

    @property
    def game_id(self) -> str:
        return self.state.game_id

    @property
    def phase(self) -> GamePhase:
        return self.state.phase

    @property
    def players(self) -> List[Player]:
        return self.state.players

    def on_event(self, callback: Callable[[GameEvent], None]) -> None:
        """注册事件回调"""
        self._callbacks.append(callback)

    def _emit(self, events: List[GameEvent], event: GameEvent) -> GameEvent:
        """记录事件并通知回调"""
        self.state.events.append(event)
        self.state.last_action = event
        events.append(event)
        for cb in self._callbacks:
            cb(event)
        return event

    # ============================================================
    #  大厅阶段
    # ============================================================

    def add_player(self, player_id: str, name: str) -> Player:
        """加入牌桌；已存在的 ID 只更新名字"""
        s = self.state
        existing = s.find_player(player_id)
        if existing is not None:
            if name:
                existing.name = name
            return existing

        if s.phase != GamePhase.WAITING:
            raise AlreadyStartedError()
        if len(s.players) >= self.rules.max_players:
            raise GameFullError(f"牌桌最多 {self.rules.max_players} 人")

        player = Player(id=player_id, name=name, seat=len(s.players))
        s.players.append(player)
        logger.info("game %s: %s joined (seat %d)", s.game_id, name, player.seat)
        return player

    def rename_player(self, player_id: str, name: str) -> Player:
        player = self._require_player(player_id)
        player.name = name
        return player

    def set_ready(self, player_id: str, ready: bool) -> Player:
        player = self._require_player(player_id)
        player.ready = ready
        return player

    def toggle_ready(self, player_id: str) -> bool:
        player = self._require_player(player_id)
        player.ready = not player.ready
        return player.ready

    def all_ready(self) -> bool:
        """人数足够且全部准备"""
        players = self.state.players
        return len(players) >= self.rules.min_players and all(p.ready for p in players)

    def remove_player(self, player_id: str) -> bool:
        """离开牌桌（任何阶段），座位号重新连续编号"""
        s = self.state
        player = s.find_player(player_id)
        if player is None:
            return False

        idx = s.players.index(player)
        s.players.pop(idx)
        for seat, p in enumerate(s.players):
            p.seat = seat
        logger.info("game %s: %s left", s.game_id, player.name)

        if not s.players:
            self.reset()
            return True

        if s.phase != GamePhase.PLAYING:
            if idx < s.current_index:
                s.current_index -= 1
            return True

        events: List[GameEvent] = []
        s.discarded.extend(player.hand)
        player.hand = []
        if s.claim is not None and s.claim.player_id == player_id:
            s.claim = None
            s.can_call_bluff = False
        if s.pending_winner_id == player_id:
            s.pending_winner_id = None
        self._emit(events, GameEvent(
            EventType.PLAYER_LEFT, player_id, f"{player.name} 离开了牌局",
            {"player": player.name},
        ))

        if len(s.players) == 1:
            self._finish(events, winner=s.players[0])
            return True

        if idx < s.current_index:
            s.current_index -= 1
        s.current_index = self._next_index_with_cards(s.current_index % len(s.players), inclusive=True)
        return True

    def reset(self) -> None:
        """原地重置回 waiting，清空所有派生状态"""
        players = self.state.players
        for seat, p in enumerate(players):
            p.reset_for_new_game()
            p.seat = seat
        self.state = GameState(game_id=self.state.game_id, players=players)

    # ============================================================
    #  发牌阶段
    # ============================================================

    def start_game(self) -> StartOutcome:
        """洗牌发牌，进入 playing"""
        s = self.state
        if len(s.players) < self.rules.min_players:
            raise InsufficientPlayersError()
        if s.phase == GamePhase.PLAYING:
            raise AlreadyStartedError()

        # 发到4张危险牌就重发，重发次数用完仍然开局
        attempts = 0
        for attempts in range(1, self.rules.max_deal_retries + 2):
            self._deal()
            if not self._anyone_holds_dangerous_quad():
                break
            logger.debug("game %s: dangerous quad dealt, attempt %d", s.game_id, attempts)
        else:
            logger.warning("game %s: deal retries exhausted, starting anyway", s.game_id)

        s.phase = GamePhase.PLAYING
        s.pile = []
        s.discarded = []
        s.claim = None
        s.can_call_bluff = False
        s.pending_winner_id = None
        s.winner_id = None
        s.loser_id = None
        s.current_index = 0

        events: List[GameEvent] = []
        first = s.players[0]
        self._emit(events, GameEvent(
            EventType.GAME_STARTED, first.id, f"游戏开始！{first.name} 先出",
            {"player": first.name, "deal_attempts": attempts},
        ))

        for p in list(s.players):
            self._reconcile(p, events)
            if s.phase != GamePhase.PLAYING:
                break

        if s.phase == GamePhase.PLAYING:
            s.current_index = self._next_index_with_cards(0, inclusive=True)
        logger.info("game %s started with %d players", s.game_id, len(s.players))
        return StartOutcome(deal_attempts=attempts, events=events)

    def _deal(self) -> None:
        """从座位 0 开始轮流一张一张发，直到牌堆发完"""
        players = self.state.players
        for p in players:
            p.hand = []
        deck = self._deck_factory(self._rng)
        deck.shuffle()
        i = 0
        while not deck.is_empty():
            players[i % len(players)].receive([deck.draw()])
            i += 1

    def _anyone_holds_dangerous_quad(self) -> bool:
        rank = self.rules.dangerous_rank
        return any(
            p.rank_counts().get(rank, 0) >= self.rules.quad_size
            for p in self.state.players
        )

    # ============================================================
    #  出牌阶段
    # ============================================================

    def play_cards(
        self,
        player_id: str,
        card_ids: Optional[Iterable[str]],
        claimed_rank: Union[Rank, int, str],
    ) -> PlayOutcome:
        """当前玩家把牌扣在中间并声明点数（可以说谎）"""
        s = self.state
        self._require_playing()
        player = self._require_player(player_id)
        self._require_turn(player)

        ids = [str(cid) for cid in (card_ids or [])]
        if not ids:
            raise NoCardsSelectedError()

        rank = Rank.parse(claimed_rank)
        if not self.rules.can_claim(rank):
            raise InvalidClaimError(f"不能声明 {rank.label}")
        if s.claim is not None and rank != s.claim.rank:
            raise RankMismatchError(f"本轮必须声明 {s.claim.rank.label}")
        if not player.has_card_ids(ids):
            raise CardsNotOwnedError()

        events: List[GameEvent] = []

        # 下家不质疑直接出牌：待定的胜利就此确认，这次出牌不再生效
        if s.pending_winner_id is not None and s.pending_winner_id != player_id:
            winner = s.find_player(s.pending_winner_id)
            self._finish(events, winner=winner)
            return PlayOutcome(
                player_id=player_id, rank=rank, played_count=0,
                claim_count=s.claim.count if s.claim else 0,
                events=events, applied=False,
            )

        cards = player.take_cards(ids)
        s.pile.extend(cards)
        if s.claim is None:
            s.claim = Claim(rank=rank, count=len(cards), player_id=player_id, last_cards=list(cards))
        else:
            s.claim.count += len(cards)
            s.claim.player_id = player_id
            s.claim.last_cards = list(cards)
        s.can_call_bluff = True

        self._emit(events, GameEvent(
            EventType.CARDS_PLAYED, player_id,
            f"{player.name} 声称已出 {s.claim.count} 张 {rank.label}",
            {"player": player.name, "played_count": len(cards),
             "claimed_count": s.claim.count, "claimed_rank": rank.label},
        ))
        logger.debug("game %s: %s played %d claiming %s", s.game_id, player.name, len(cards), rank.label)

        if not player.has_cards:
            self._on_hand_emptied(player, events)

        if s.phase == GamePhase.PLAYING:
            s.current_index = self._next_index_with_cards(s.current_index)

        return PlayOutcome(
            player_id=player_id, rank=rank, played_count=len(cards),
            claim_count=s.claim.count if s.claim else 0, events=events,
        )

    def _on_hand_emptied(self, player: Player, events: List[GameEvent]) -> None:
        s = self.state
        others_have_cards = any(p.has_cards for p in s.players if p is not player)
        if self.rules.win_mode == WinMode.IMMEDIATE or not others_have_cards:
            self._finish(events, winner=player)
            return

        s.pending_winner_id = player.id
        self._emit(events, GameEvent(
            EventType.PENDING_WINNER, player.id,
            f"{player.name} 出完了所有牌！若下家质疑失败或直接出牌，{player.name} 获胜",
            {"player": player.name},
        ))

    # ============================================================
    #  质疑阶段
    # ============================================================

    def call_bluff(self, caller_id: str) -> ChallengeOutcome:
        """只有当前玩家（刚出牌者的下家）可以质疑"""
        s = self.state
        self._require_playing()
        caller = self._require_player(caller_id)
        if not s.can_call_bluff or s.claim is None:
            raise NoActiveClaimError()
        self._require_turn(caller)

        claim = s.claim
        accused = s.find_player(claim.player_id)

        # 只检查最近一次出牌
        actual = sum(1 for c in claim.last_cards if c.rank == claim.rank)
        checked = len(claim.last_cards)
        truthful = actual >= checked

        receiver = caller if truthful else accused
        next_player = accused if truthful else caller

        pile = s.pile
        s.pile = []
        receiver.receive(pile)
        s.claim = None
        s.can_call_bluff = False

        events: List[GameEvent] = []
        if truthful:
            text = f"{accused.name} 说的是真话！{caller.name} 收下 {len(pile)} 张牌"
        else:
            text = f"{accused.name} 在吹牛！最近 {checked} 张里只有 {actual} 张是 {claim.rank.label}"
        self._emit(events, GameEvent(
            EventType.BLUFF_CALLED, caller_id, text,
            {"caller": caller.name, "accused": accused.name, "truthful": truthful,
             "actual_count": actual, "claimed_count": claim.count,
             "claimed_rank": claim.rank.label, "pile_size": len(pile),
             "receiver": receiver.name},
        ))
        logger.info("game %s: %s called bluff on %s -> %s",
                    s.game_id, caller.name, accused.name, "truth" if truthful else "bluff")

        pending_was_accused = s.pending_winner_id == accused.id
        if pending_was_accused and not truthful:
            s.pending_winner_id = None

        s.current_index = s.players.index(next_player)
        self._reconcile(receiver, events)

        if s.phase == GamePhase.PLAYING and truthful and pending_was_accused:
            self._finish(events, winner=accused)

        if s.phase == GamePhase.PLAYING:
            s.current_index = self._next_index_with_cards(s.current_index, inclusive=True)

        return ChallengeOutcome(
            caller_id=caller_id, accused_id=accused.id, truthful=truthful,
            actual_count=actual, checked_count=checked, claimed_count=claim.count,
            receiver_id=receiver.id, pile_size=len(pile), events=events,
        )

    # ============================================================
    #  四张规则与结算
    # ============================================================

    def _reconcile(self, player: Player, events: List[GameEvent]) -> None:
        """收牌后的整理：反复处理四张，直到手牌中没有可处理的四张"""
        s = self.state
        while s.phase == GamePhase.PLAYING and self._check_quads(player, events):
            pass
        # 弃掉四张后手牌为空且没有待定胜者：直接获胜；已有待定胜者时由其确认优先
        if (s.phase == GamePhase.PLAYING and not player.hand
                and s.pending_winner_id is None):
            self._finish(events, winner=player)

    def _check_quads(self, player: Player, events: List[GameEvent]) -> bool:
        """检查一次四张（危险点数优先，其余从小到大），处理了返回 True"""
        counts = player.rank_counts()
        dangerous = self.rules.dangerous_rank
        quad = self.rules.quad_size

        if counts.get(dangerous, 0) >= quad:
            self._emit(events, GameEvent(
                EventType.PLAYER_LOST_ACES, player.id,
                f"{player.name} 集齐 4 张 {dangerous.label}，输掉了游戏！",
                {"player": player.name, "rank": dangerous.label},
            ))
            self._finish(events, loser=player)
            return True

        for rank in sorted(counts):
            if rank != dangerous and counts[rank] >= quad:
                removed = player.remove_rank(rank, quad)
                self.state.discarded.extend(removed)
                self._emit(events, GameEvent(
                    EventType.QUADS_REMOVED, player.id,
                    f"{player.name} 凑齐 4 张 {rank.label}，已移出游戏",
                    {"player": player.name, "rank": rank.label, "count": len(removed)},
                ))
                logger.debug("game %s: removed quad %s from %s", self.state.game_id, rank.label, player.name)
                return True
        return False

    def _finish(
        self,
        events: List[GameEvent],
        winner: Optional[Player] = None,
        loser: Optional[Player] = None,
    ) -> None:
        """游戏结束：winner / loser 恰好设置一个"""
        s = self.state
        s.phase = GamePhase.FINISHED
        s.winner_id = winner.id if winner else None
        s.loser_id = None if winner else (loser.id if loser else None)
        s.pending_winner_id = None
        s.claim = None
        s.can_call_bluff = False
        if winner is not None:
            self._emit(events, GameEvent(
                EventType.GAME_WON, winner.id, f"{winner.name} 获胜！",
                {"player": winner.name},
            ))
            logger.info("game %s finished, winner %s", s.game_id, winner.name)
        else:
            logger.info("game %s finished, loser %s", s.game_id, loser.name if loser else "-")

    # ============================================================
    #  状态投影
    # ============================================================

    def public_state(self) -> dict:
        return serializers.public_state(self.state)

    def player_state(self, player_id: str) -> dict:
        player = self._require_player(player_id)
        return serializers.player_state(self.state, player)

    # ============================================================
    #  校验与轮转
    # ============================================================

    def _require_playing(self) -> None:
        if self.state.phase != GamePhase.PLAYING:
            raise GameNotPlayingError()

    def _require_player(self, player_id: str) -> Player:
        player = self.state.find_player(player_id)
        if player is None:
            raise PlayerNotFoundError()
        return player

    def _require_turn(self, player: Player) -> None:
        current = self.state.current_player
        if current is None or current.id != player.id:
            raise NotYourTurnError()

    def _next_index_with_cards(self, start: int, inclusive: bool = False) -> int:
        """从 start 起找下一个还有手牌的座位；都没有牌时停在下一个座位"""
        players = self.state.players
        n = len(players)
        if n == 0:
            return 0
        first = 0 if inclusive else 1
        for step in range(first, first + n):
            i = (start + step) % n
            if players[i].has_cards:
                return i
        return (start + first) % n
