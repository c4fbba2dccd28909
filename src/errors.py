"""错误类型 - 引擎拒绝指令时抛出的异常（均可恢复，归因于调用方）"""


class BluffError(Exception):
    """所有被拒绝指令的基类"""
    code = "bluff_error"
    default_message = "指令被拒绝"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)
        self.message = str(self)


class InsufficientPlayersError(BluffError):
    code = "insufficient_players"
    default_message = "至少需要 2 名玩家"


class AlreadyStartedError(BluffError):
    code = "already_started"
    default_message = "游戏已经开始"


class GameFullError(BluffError):
    code = "game_full"
    default_message = "牌桌已满"


class PlayerNotFoundError(BluffError):
    code = "player_not_found"
    default_message = "玩家不在本局中"


class GameNotPlayingError(BluffError):
    code = "game_not_playing"
    default_message = "游戏未在进行中"


class NotYourTurnError(BluffError):
    code = "not_your_turn"
    default_message = "还没轮到你"


class NoCardsSelectedError(BluffError):
    code = "no_cards_selected"
    default_message = "没有选择任何牌"


class CardsNotOwnedError(BluffError):
    code = "cards_not_owned"
    default_message = "所选的牌不在你的手牌中"


class RankMismatchError(BluffError):
    code = "rank_mismatch"
    default_message = "必须声明与本轮相同的点数"


class InvalidClaimError(BluffError):
    code = "invalid_claim"
    default_message = "无效的点数声明"


class NoActiveClaimError(BluffError):
    code = "no_active_claim"
    default_message = "当前没有可以质疑的声明"


class EmptyDeckError(BluffError):
    code = "empty_deck"
    default_message = "牌堆已空"


class ConfigurationError(BluffError):
    code = "configuration_error"
    default_message = "点数/花色配置不一致"


class GameNotFoundError(BluffError):
    code = "game_not_found"
    default_message = "找不到该牌局"


class BadRequestError(BluffError):
    code = "bad_request"
    default_message = "无法解析的请求"
