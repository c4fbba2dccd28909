# 牌与牌堆模块
from .card import Card, Rank, Suit, Deck, RANK_DISPLAY, sort_cards
