"""运行配置 - 从环境变量读取部署相关的设置，与游戏规则本身分开"""

import os
from dataclasses import dataclass

from src.errors import ConfigurationError
from src.game.rules import GameRules, WinMode


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """服务端设置"""

    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"
    max_players: int = 8
    deal_retries: int = 10
    win_mode: WinMode = WinMode.PROVISIONAL
    allow_ace_claims: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """从环境变量构建设置"""
        try:
            return cls(
                host=os.getenv("BLUFF_HOST", "0.0.0.0"),
                port=int(os.getenv("BLUFF_PORT", "3001")),
                log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
                max_players=int(os.getenv("BLUFF_MAX_PLAYERS", "8")),
                deal_retries=int(os.getenv("BLUFF_DEAL_RETRIES", "10")),
                win_mode=WinMode(os.getenv("BLUFF_WIN_MODE", WinMode.PROVISIONAL.value).lower()),
                allow_ace_claims=_env_bool("BLUFF_ALLOW_ACE_CLAIMS", False),
            )
        except ValueError as exc:
            raise ConfigurationError(f"环境变量配置错误: {exc}") from exc

    def rules(self) -> GameRules:
        """按设置生成规则集"""
        if self.max_players < 2:
            raise ConfigurationError("BLUFF_MAX_PLAYERS 至少为 2")
        return GameRules(
            allow_dangerous_claims=self.allow_ace_claims,
            win_mode=self.win_mode,
            max_deal_retries=max(self.deal_retries, 0),
            max_players=self.max_players,
        )


def get_settings() -> Settings:
    """便捷入口"""
    return Settings.from_env()
