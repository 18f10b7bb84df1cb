# bios_trap_bridge/transport/remote.py
"""
リモート・メモリサービス・バックエンド

兄弟サービス（メモリサービスと実行サービス）のHTTPエンドポイントを呼び出して
ゲストメモリを読み書きします。バイト列はbase64で転送されます。
"""
import base64
import binascii
import logging
from typing import Optional

import requests

from bios_trap_bridge.common.errors import BackendError
from bios_trap_bridge.common.types import ADDRESS_SPACE_SIZE, ComputerId
from bios_trap_bridge.transport.backend import MemoryBackend, check_address, check_image

logger = logging.getLogger(__name__)


# @intent:responsibility 兄弟サービスへのHTTP呼び出しでメモリを扱うバックエンド。
class RemoteMemoryBackend(MemoryBackend):
    """
    読み出しは残りの範囲全体を取得し、終端文字の走査は呼び出し側で行います（クライアント側切り詰め）。
    原子性は兄弟サービスに委譲します。
    """
    def __init__(
        self,
        read_range_url: str,
        initialise_url: str,
        start_url: str,
        session: Optional[requests.Session] = None,
    ):
        self._read_range_url = read_range_url
        self._initialise_url = initialise_url
        self._start_url = start_url
        self._session = session or requests.Session()

    def initialise(self, computer_id: ComputerId, image: bytes) -> None:
        check_image(image)
        payload = {"id": computer_id, "memory": base64.b64encode(image).decode("ascii")}
        self._send("post", self._initialise_url, json=payload)

    # @intent:responsibility 実行サービスに開始を通知します。
    # @intent:rationale 応答（2xx）を待つだけで、プログラムの実行完了は待ちません。
    def start(self, computer_id: ComputerId) -> None:
        self._send("post", self._start_url, params={"id": computer_id})
        logger.info("Start signal acknowledged for %s", computer_id)

    def read_from(self, computer_id: ComputerId, start_address: int) -> bytes:
        check_address(start_address)
        params = {
            "id": computer_id,
            "address": start_address,
            "length": ADDRESS_SPACE_SIZE - start_address,
        }
        response = self._send("get", self._read_range_url, params=params)
        encoded = response.text.strip()
        # JSON文字列として返すサービスもある。'+' が \u002B とエスケープされ得るのでJSONとして復号する
        if encoded.startswith('"'):
            try:
                encoded = response.json()
            except ValueError as e:
                raise BackendError(f"Memory service returned invalid JSON for {computer_id}: {e}") from e
            if not isinstance(encoded, str):
                raise BackendError(f"Memory service returned a non-string body for {computer_id}.")
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise BackendError(f"Memory service returned invalid base64 for {computer_id}: {e}") from e

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self._session.request(method, url, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method.upper(), url, e)
            raise BackendError(f"Call to memory service {url} did not succeed: {e}") from e
        return response
