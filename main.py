"""吹牛（Bluff）局域网对战 - 服务端主入口"""

import argparse

import uvicorn

from src.config import get_settings
from src.logging_utils import setup_logging, get_logger


def main():
    """命令行入口"""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Bluff 局域网卡牌游戏服务端")
    parser.add_argument("--host", default=settings.host, help=f"监听地址 (默认{settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"端口 (默认{settings.port})")
    parser.add_argument("--log-level", default=settings.log_level, help="日志级别 (默认INFO)")
    parser.add_argument("--reload", action="store_true", help="开发模式：代码变动自动重载")
    args = parser.parse_args()

    setup_logging(args.log_level)
    log = get_logger("main")
    log.info("Bluff server listening on http://%s:%d (ws endpoint /ws)", args.host, args.port)

    try:
        uvicorn.run(
            "src.web.server:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level.lower(),
        )
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
