# bios_trap_bridge/loader/initializer.py
"""
アドレス空間イニシャライザ。

アップロードされたプログラムイメージにBIOSスタブを付加して64KBのアドレス空間を構築し、
新しいコンピュータとしてメモリバックエンドに書き込みます。
"""
import logging
import uuid
from typing import Callable

from bios_trap_bridge.arch.i8080 import opcodes
from bios_trap_bridge.common.types import (
    BIOS_SIZE,
    PROGRAM_SIZE,
    ComputerId,
)
from bios_trap_bridge.transport.backend import MemoryBackend, check_image

logger = logging.getLogger(__name__)

# CP/MのBDOSエントリポイント。プログラムは CALL 0x0005 でBIOS機能を呼び出す
BDOS_ENTRY = 0x05


# @intent:responsibility プログラムをBIOS領域より上の領域サイズちょうどに切り詰め、またはゼロ埋めします。
def pad_program(program: bytes) -> bytes:
    return bytes(program[:PROGRAM_SIZE]).ljust(PROGRAM_SIZE, b"\x00")


# @intent:responsibility 0x100バイトの固定BIOSスタブを生成します。
# @intent:rationale HLTで埋め、BDOSエントリに OUT 0x00 ; RET を置く。
#                  OUT 0x00 がテストハーネスへのトラップとなり、RETで呼び出し元に戻る。
def build_bios_stub() -> bytes:
    bios = bytearray([opcodes.HLT] * BIOS_SIZE)
    bios[BDOS_ENTRY] = opcodes.OUT
    bios[BDOS_ENTRY + 1] = 0x00  # port
    bios[BDOS_ENTRY + 2] = 0x00
    bios[BDOS_ENTRY + 3] = opcodes.RET
    return bytes(bios)


def build_address_space_image(program: bytes) -> bytes:
    image = build_bios_stub() + pad_program(program)
    check_image(image)
    return image


# @intent:responsibility プログラム1本のロードごとに1回実行され、新しいコンピュータIDを返します。
class AddressSpaceInitializer:
    """
    アドレス空間を構築してバックエンドに永続化し、実行開始を通知します。
    """
    def __init__(self, backend: MemoryBackend, id_factory: Callable[[], uuid.UUID] = uuid.uuid4):
        self._backend = backend
        self._id_factory = id_factory

    def load(self, program: bytes) -> ComputerId:
        """
        プログラムをロードし、ハイフン区切りのコンピュータIDを返します。
        バックエンドの失敗はBackendErrorとしてそのまま伝播します。
        """
        if len(program) > PROGRAM_SIZE:
            logger.warning(
                "Program is %d bytes, truncating to %d bytes", len(program), PROGRAM_SIZE
            )
        image = build_address_space_image(program)
        computer_id = str(self._id_factory())

        self._backend.initialise(computer_id, image)
        self._backend.start(computer_id)

        logger.info("Loaded %d byte program as computer %s", len(program), computer_id)
        return computer_id
