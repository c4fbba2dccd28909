"""玩家模型 - 吹牛游戏中一个座位的数据结构"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from src.engine.card import Card, Rank


@dataclass
class Player:
    """一个玩家（手牌只由引擎代为修改）"""
    id: str                          # 连接级稳定 ID
    name: str                        # 显示名，可修改
    hand: List[Card] = field(default_factory=list)
    seat: int = 0                    # 座位号，从 0 开始，即出牌顺序
    ready: bool = False              # 大厅阶段的准备状态

    @property
    def hand_size(self) -> int:
        return len(self.hand)

    @property
    def has_cards(self) -> bool:
        return bool(self.hand)

    def has_card_ids(self, card_ids: Iterable[str]) -> bool:
        """检查手牌中是否包含全部指定 ID（重复 ID 视为不包含）"""
        ids = list(card_ids)
        if len(set(ids)) != len(ids):
            return False
        owned = {c.id for c in self.hand}
        return all(cid in owned for cid in ids)

    def take_cards(self, card_ids: Iterable[str]) -> List[Card]:
        """按给定顺序从手牌中取出这些牌，调用前需先用 has_card_ids 校验"""
        by_id = {c.id: c for c in self.hand}
        taken = [by_id[cid] for cid in card_ids]
        taken_set = set(taken)
        self.hand = [c for c in self.hand if c not in taken_set]
        return taken

    def receive(self, cards: Iterable[Card]) -> None:
        """收牌（发牌 / 吃进整个牌池）"""
        self.hand.extend(cards)

    def remove_rank(self, rank: Rank, count: int) -> List[Card]:
        """移除指定点数的 count 张牌，返回被移除的牌"""
        removed: List[Card] = []
        kept: List[Card] = []
        for card in self.hand:
            if card.rank == rank and len(removed) < count:
                removed.append(card)
            else:
                kept.append(card)
        self.hand = kept
        return removed

    def rank_counts(self) -> Dict[Rank, int]:
        return dict(Counter(c.rank for c in self.hand))

    def reset_for_new_game(self) -> None:
        """新一局重置"""
        self.hand.clear()
        self.ready = False
