# src/bios_trap_bridge/__main__.py
"""
BIOSトラップ・ブリッジのエントリポイント。
設定を読み込み、バックエンドを構築してHTTPサーバを起動します。
"""
import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from bios_trap_bridge.common.errors import BridgeError, ConfigurationError
from bios_trap_bridge.config.builder import BridgeBuilder
from bios_trap_bridge.config.loader import ConfigLoader
from bios_trap_bridge.server.http import BridgeHTTPServer

LOG = logging.getLogger("bios_trap_bridge")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="BIOS trap bridge for an 8080 test harness")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--host", help="Listen address (overrides config)")
    parser.add_argument("--port", type=int, help="Listen port (overrides config)")
    parser.add_argument("--log-level", help="Logging level (overrides config)")
    return parser


# @intent:responsibility 設定エラーは起動失敗として終了コード2を返します。
def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    try:
        config = ConfigLoader().load(args.config)
    except ConfigurationError as e:
        print(f"configuration error: {e.message}", file=sys.stderr)
        return 2

    server_config = config.server
    if args.host:
        server_config = replace(server_config, host=args.host)
    if args.port is not None:
        server_config = replace(server_config, port=args.port)
    config = replace(config, server=server_config)

    _configure_logging(args.log_level or config.log_level)

    try:
        context = BridgeBuilder().build_context(config)
    except BridgeError as e:
        LOG.error("Startup failed: %s", e.message)
        return 2

    server = BridgeHTTPServer((config.server.host, config.server.port), context)
    LOG.info("Listening on %s:%d", *server.server_address[:2])
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        LOG.info("Interrupted")
    finally:
        server.server_close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
