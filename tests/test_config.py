"""配置测试 - 环境变量 → Settings → GameRules"""

import pytest
from src.config import Settings
from src.errors import ConfigurationError
from src.engine.card import Rank
from src.game.rules import GameRules, WinMode


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("BLUFF_HOST", "BLUFF_PORT", "LOG_LEVEL", "BLUFF_MAX_PLAYERS",
                     "BLUFF_DEAL_RETRIES", "BLUFF_WIN_MODE", "BLUFF_ALLOW_ACE_CLAIMS"):
            monkeypatch.delenv(name, raising=False)
        s = Settings.from_env()
        assert s.port == 3001
        assert s.win_mode == WinMode.PROVISIONAL
        rules = s.rules()
        assert rules == GameRules()
        assert rules.dangerous_rank == Rank.ACE
        assert not rules.can_claim(Rank.ACE)
        assert rules.can_claim(Rank.KING)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("BLUFF_PORT", "8080")
        monkeypatch.setenv("BLUFF_WIN_MODE", "IMMEDIATE")
        monkeypatch.setenv("BLUFF_ALLOW_ACE_CLAIMS", "yes")
        monkeypatch.setenv("BLUFF_MAX_PLAYERS", "4")
        monkeypatch.setenv("BLUFF_DEAL_RETRIES", "0")
        s = Settings.from_env()
        rules = s.rules()
        assert s.port == 8080
        assert rules.win_mode == WinMode.IMMEDIATE
        assert rules.allow_dangerous_claims
        assert rules.max_players == 4
        assert rules.max_deal_retries == 0

    @pytest.mark.parametrize("name,value", [
        ("BLUFF_PORT", "abc"),
        ("BLUFF_WIN_MODE", "sometimes"),
    ])
    def test_invalid_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError):
            Settings.from_env()

    def test_too_few_max_players(self):
        with pytest.raises(ConfigurationError):
            Settings(max_players=1).rules()
