"""牌的定义 - 吹牛游戏所用52张标准扑克牌的数据模型"""

from enum import IntEnum, Enum
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union
import random

from src.errors import ConfigurationError, EmptyDeckError, InvalidClaimError


class Rank(IntEnum):
    """点数枚举（A 记为 14，最大）"""
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14

    @property
    def label(self) -> str:
        return RANK_DISPLAY[self]

    @classmethod
    def parse(cls, value: Union["Rank", int, str, None]) -> "Rank":
        """把客户端传来的点数（Rank / 数值 / 文字）解析成 Rank"""
        if isinstance(value, Rank):
            return value
        if isinstance(value, bool) or value is None:
            raise InvalidClaimError(f"无效的点数: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidClaimError(f"无效的点数: {value!r}") from None
        text = str(value).strip().upper()
        if text in LABEL_TO_RANK:
            return LABEL_TO_RANK[text]
        if text.isdigit():
            return cls.parse(int(text))
        raise InvalidClaimError(f"无效的点数: {value!r}")


class Suit(str, Enum):
    """花色枚举"""
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    SPADES = "spades"
    CLUBS = "clubs"

    @property
    def symbol(self) -> str:
        return SUIT_SYMBOL[self]


# 点数显示映射
RANK_DISPLAY = {
    Rank.TWO: "2", Rank.THREE: "3", Rank.FOUR: "4",
    Rank.FIVE: "5", Rank.SIX: "6", Rank.SEVEN: "7",
    Rank.EIGHT: "8", Rank.NINE: "9", Rank.TEN: "10",
    Rank.JACK: "J", Rank.QUEEN: "Q", Rank.KING: "K",
    Rank.ACE: "A",
}

LABEL_TO_RANK = {label: rank for rank, label in RANK_DISPLAY.items()}

SUIT_SYMBOL = {
    Suit.HEARTS: "♥", Suit.DIAMONDS: "♦",
    Suit.SPADES: "♠", Suit.CLUBS: "♣",
}


@dataclass(frozen=True)
class Card:
    """一张扑克牌"""
    rank: Rank
    suit: Suit

    @property
    def id(self) -> str:
        """稳定的牌 ID，同一张牌在任何快照中都一样，如 14_spades"""
        return f"{int(self.rank)}_{self.suit.value}"

    @property
    def display(self) -> str:
        return f"{self.suit.symbol}{self.rank.label}"

    def __repr__(self) -> str:
        return self.display

    def __lt__(self, other: "Card") -> bool:
        return self.rank < other.rank


class Deck:
    """一副牌：创建、洗牌、逐张抽牌（从末尾弹出）"""

    def __init__(
        self,
        ranks: Iterable[Rank] = tuple(Rank),
        suits: Iterable[Suit] = tuple(Suit),
        rng: Optional[random.Random] = None,
    ):
        self.ranks = list(ranks)
        self.suits = list(suits)
        self._rng = rng or random.Random()
        self.cards: List[Card] = []
        self.create()

    def create(self) -> None:
        """每种 (点数 × 花色) 恰好生成一张"""
        if not self.ranks or not self.suits:
            raise ConfigurationError("点数或花色集合为空")
        if len(set(self.ranks)) != len(self.ranks) or len(set(self.suits)) != len(self.suits):
            raise ConfigurationError("点数或花色集合存在重复")

        self.cards = [Card(rank=r, suit=s) for s in self.suits for r in self.ranks]

        if len(set(self.cards)) != len(self.ranks) * len(self.suits):
            raise ConfigurationError(f"牌数错误: {len(self.cards)}")

    def shuffle(self) -> None:
        """Fisher-Yates 原地洗牌：从最后一张向前到下标 1"""
        cards = self.cards
        for i in range(len(cards) - 1, 0, -1):
            j = self._rng.randrange(i + 1)
            cards[i], cards[j] = cards[j], cards[i]

    def draw(self) -> Card:
        """从牌顶（末尾）抽一张"""
        if not self.cards:
            raise EmptyDeckError()
        return self.cards.pop()

    def size(self) -> int:
        return len(self.cards)

    def is_empty(self) -> bool:
        return not self.cards

    def __len__(self) -> int:
        return len(self.cards)


def sort_cards(cards: List[Card]) -> List[Card]:
    """按点数排序（从小到大），同点数按花色"""
    suit_order = list(Suit)
    return sorted(cards, key=lambda c: (c.rank, suit_order.index(c.suit)))
