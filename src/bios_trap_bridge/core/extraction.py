# bios_trap_bridge/core/extraction.py
"""
文字列抽出

メモリバックエンドから開始アドレス以降のバイト列を読み出し、
CP/Mの終端文字 '$' (0x24) の直前までを取り出します。
"""
from bios_trap_bridge.common.types import ADDRESS_SPACE_SIZE, SENTINEL, ComputerId
from bios_trap_bridge.transport.backend import MemoryBackend


# @intent:responsibility 終端文字の手前までのバイト列を返します。終端文字がなければ残り全てを返します。
# @intent:rationale バックエンドがサーバ側で切り詰めていても、ここで再度走査するので結果は同一になります。
def extract_string(backend: MemoryBackend, computer_id: ComputerId, start_address: int) -> bytes:
    if not 0 <= start_address < ADDRESS_SPACE_SIZE:
        raise ValueError(f"Start address {start_address:#x} is outside the address space.")

    data = backend.read_from(computer_id, start_address)
    end = data.find(SENTINEL)
    if end == -1:
        return bytes(data)
    return bytes(data[:end])
