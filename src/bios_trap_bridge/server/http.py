# bios_trap_bridge/server/http.py
"""
HTTPインターフェース

実行エンジンからのIN/OUTトラップ、セッション初期化、ROMのロードを受け付け、
ディスパッチャとイニシャライザに委譲します。
各リクエストは独立した同期的な処理として扱われます。
"""
import json
import logging
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlsplit

from bios_trap_bridge.arch.i8080.state import Cpu
from bios_trap_bridge.common.errors import (
    BackendError,
    BiosError,
    BridgeError,
    MalformedInputError,
    PayloadTooLargeError,
    ProgramTerminated,
)
from bios_trap_bridge.config.builder import BridgeContext
from bios_trap_bridge.server.multipart import read_form_file

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


# @intent:responsibility エラー種別をHTTPステータスに対応付けます。
def status_for_error(error: BridgeError) -> HTTPStatus:
    if isinstance(error, PayloadTooLargeError):
        return HTTPStatus.REQUEST_ENTITY_TOO_LARGE
    if isinstance(error, MalformedInputError):
        return HTTPStatus.BAD_REQUEST
    if isinstance(error, ProgramTerminated):
        return HTTPStatus.GONE
    if isinstance(error, BiosError):
        return HTTPStatus.UNPROCESSABLE_ENTITY
    if isinstance(error, BackendError):
        return HTTPStatus.BAD_GATEWAY
    return HTTPStatus.INTERNAL_SERVER_ERROR


def parse_port(query: Dict[str, Any]) -> Optional[int]:
    values = query.get("operand1")
    if not values:
        return None
    try:
        port = int(values[0])
    except ValueError:
        raise MalformedInputError(f"operand1 must be an integer, got {values[0]!r}.") from None
    if not 0 <= port <= 0xFF:
        raise MalformedInputError(f"operand1 {port} is not an 8-bit port.")
    return port


class _BridgeRequestHandler(BaseHTTPRequestHandler):
    server: "BridgeHTTPServer"
    protocol_version = "HTTP/1.1"

    def do_GET(self) -> None:
        path = urlsplit(self.path).path
        if path in ("/status", API_PREFIX + "/status"):
            self._send_text(HTTPStatus.OK, "Healthy")
        else:
            self._send_error_json(HTTPStatus.NOT_FOUND, "not_found", f"No route for GET {path}")

    def do_POST(self) -> None:
        url = urlsplit(self.path)
        query = parse_qs(url.query)
        routes: Dict[str, Callable[[Dict[str, Any], bytes], None]] = {
            API_PREFIX + "/initialise": self._handle_initialise,
            API_PREFIX + "/interruptCheck": self._handle_interrupt_check,
            API_PREFIX + "/in": self._handle_in,
            API_PREFIX + "/out": self._handle_out,
            API_PREFIX + "/load": self._handle_load,
        }
        handler = routes.get(url.path)

        # エラー応答の前にも本文を読み切り、keep-alive接続を壊さないようにする
        try:
            body = self._read_body()
        except MalformedInputError as e:
            self.close_connection = True
            self._send_error_json(HTTPStatus.BAD_REQUEST, e.kind.value, e.message)
            return

        if handler is None:
            self._send_error_json(HTTPStatus.NOT_FOUND, "not_found", f"No route for POST {url.path}")
            return

        try:
            handler(query, body)
        except BridgeError as e:
            self._send_error_json(status_for_error(e), e.kind.value, e.message)
            if isinstance(e, ProgramTerminated) and self.server.context.config.server.exit_on_terminate:
                self.server.request_shutdown()

    # --- routes ---

    def _handle_initialise(self, query: Dict[str, Any], body: bytes) -> None:
        cpu = self._parse_cpu(body)
        self._send_cpu(self.server.context.dispatcher.initialise(cpu))

    def _handle_interrupt_check(self, query: Dict[str, Any], body: bytes) -> None:
        cpu = self._parse_cpu(body)
        self._send_cpu(self.server.context.dispatcher.interrupt_check(cpu))

    def _handle_in(self, query: Dict[str, Any], body: bytes) -> None:
        port = parse_port(query)
        cpu = self._parse_cpu(body)
        self._send_cpu(self.server.context.dispatcher.in_port(cpu, port))

    def _handle_out(self, query: Dict[str, Any], body: bytes) -> None:
        port = parse_port(query)
        cpu = self._parse_cpu(body)
        result = self.server.context.dispatcher.out_port(cpu, port)
        self._send_cpu(result.cpu)

    def _handle_load(self, query: Dict[str, Any], body: bytes) -> None:
        rom = read_form_file(self.headers.get("Content-Type", ""), body, "rom")
        limit = self.server.context.config.server.max_rom_size
        if len(rom) > limit:
            raise PayloadTooLargeError(len(rom), limit)
        computer_id = self.server.context.initializer.load(rom)
        self._send_text(HTTPStatus.OK, computer_id)

    # --- helpers ---

    def _read_body(self) -> bytes:
        try:
            length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            raise MalformedInputError("Invalid Content-Length header.") from None
        return self.rfile.read(length) if length > 0 else b""

    def _parse_cpu(self, body: bytes) -> Cpu:
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedInputError(f"CPU payload is not valid JSON: {e}") from e
        return Cpu.from_dict(payload)

    def _send_cpu(self, cpu: Cpu) -> None:
        data = json.dumps(cpu.to_dict(), separators=(",", ":")).encode("utf-8")
        self._send(HTTPStatus.OK, data, "application/json")

    def _send_text(self, status: HTTPStatus, text: str) -> None:
        self._send(status, text.encode("utf-8"), "text/plain; charset=utf-8")

    def _send_error_json(self, status: HTTPStatus, kind: str, message: str) -> None:
        data = json.dumps({"error": kind, "message": message}).encode("utf-8")
        self._send(status, data, "application/json")

    def _send(self, status: HTTPStatus, data: bytes, content_type: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


# @intent:responsibility 構築済みのBridgeContextを保持し、全てのハンドラに渡すHTTPサーバ。
class BridgeHTTPServer(ThreadingHTTPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, server_address: Tuple[str, int], context: BridgeContext):
        super().__init__(server_address, _BridgeRequestHandler)
        self.context = context

    # @intent:responsibility 応答送信後にサーバを停止します。shutdownはserve_foreverの終了を待つので別スレッドで呼ぶ。
    def request_shutdown(self) -> None:
        logger.info("Shutting down after program termination")
        threading.Thread(target=self.shutdown, daemon=True).start()
