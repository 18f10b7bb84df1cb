# bios_trap_bridge/transport/backend.py
"""
Transport Layer (メモリバックエンド)

このモジュールは、1台の「コンピュータ」のゲストメモリを抽象化し、
アドレス空間全体の一括書き込みと、指定アドレスからの範囲読み出しを
具体的な保存先（リレーショナルDB、リモートのメモリサービスなど）に委譲する責務を負います。
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict

from bios_trap_bridge.common.errors import BackendError
from bios_trap_bridge.common.types import ADDRESS_SPACE_SIZE, ComputerId

logger = logging.getLogger(__name__)


# @intent:utility_function バックエンド共通の引数検証。
def check_image(image: bytes) -> None:
    if len(image) != ADDRESS_SPACE_SIZE:
        raise ValueError(
            f"Address space image must be exactly {ADDRESS_SPACE_SIZE} bytes, got {len(image)}."
        )


def check_address(address: int) -> None:
    if not 0 <= address < ADDRESS_SPACE_SIZE:
        raise ValueError(f"Address {address:#x} is outside the address space.")


# @intent:responsibility メモリバックエンドの抽象インターフェースを定義します。
class MemoryBackend(ABC):
    """
    ゲストメモリの抽象基底クラス。
    全てのバックエンドは initialise と read_from を実装する必要があります。
    """
    # @intent:responsibility 64KBのイメージを1台のコンピュータのアドレス空間として書き込みます。
    # @intent:pre-condition imageは正確に65536バイトである必要があります。
    # @intent:post-condition 書き込み途中の状態は同じコンピュータIDの読み手から観測されません。
    @abstractmethod
    def initialise(self, computer_id: ComputerId, image: bytes) -> None:
        """
        アドレス空間全体を一括で書き込みます。失敗した場合はBackendErrorを送出します。
        """
        pass

    # @intent:responsibility 開始アドレスから0xFFFFまでのバイト列を昇順で読み出します。
    # @intent:rationale 実装は最初の終端文字で切り詰めて返してもよい（サーバ側切り詰め）。
    @abstractmethod
    def read_from(self, computer_id: ComputerId, start_address: int) -> bytes:
        """
        指定されたアドレスからアドレス空間の末尾までを読み出します。
        """
        pass

    # @intent:responsibility 初期化完了後にプログラムの実行開始を通知します。
    def start(self, computer_id: ComputerId) -> None:
        """
        デフォルトは何もしない。実行サービスを別に持つバックエンドはオーバーライドします。
        """
        return None


# @intent:responsibility プロセス内のbytearrayにアドレス空間を保持するバックエンド。
class InMemoryBackend(MemoryBackend):
    """
    テストおよび単一プロセスでのローカル実行のためのバックエンド。
    読み出しは切り詰めを行わず、残りの範囲全体を返します（クライアント側切り詰め）。
    """
    def __init__(self):
        self._spaces: Dict[ComputerId, bytearray] = {}

    def initialise(self, computer_id: ComputerId, image: bytes) -> None:
        check_image(image)
        # 完成したバッファを一度に差し替えるので、途中状態は見えない
        self._spaces[computer_id] = bytearray(image)
        logger.debug("Initialised in-memory address space for %s", computer_id)

    def read_from(self, computer_id: ComputerId, start_address: int) -> bytes:
        check_address(start_address)
        space = self._spaces.get(computer_id)
        if space is None:
            raise BackendError(f"Computer {computer_id} has no address space.")
        return bytes(space[start_address:])

    # @intent:responsibility 指定アドレスの1バイトを返します（テストやインスペクタ用）。
    def peek(self, computer_id: ComputerId, address: int) -> int:
        check_address(address)
        space = self._spaces.get(computer_id)
        if space is None:
            raise BackendError(f"Computer {computer_id} has no address space.")
        return space[address]

    def __contains__(self, computer_id: ComputerId) -> bool:
        return computer_id in self._spaces
