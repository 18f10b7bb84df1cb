# bios_trap_bridge/bios/console.py
"""
BIOSのコンソール出力先。
"""
import sys
import threading
from typing import BinaryIO, Optional


# @intent:responsibility C_WRITE / C_WRITESTR の出力をバイナリストリームに書き込みます。
class ConsoleSink:
    """
    出力ごとにflushします。line_buffered=Trueの場合は出力ごとに改行を付加します。
    streamを省略した場合は書き込み時点の標準出力を使用します。
    """
    def __init__(self, stream: Optional[BinaryIO] = None, line_buffered: bool = False):
        self._stream = stream
        self._line_buffered = line_buffered
        # 複数のリクエストスレッドから書き込まれるため、出力単位で排他する
        self._lock = threading.Lock()

    def write(self, data: bytes) -> None:
        if self._line_buffered:
            data += b"\n"
        stream = self._stream if self._stream is not None else sys.stdout.buffer
        with self._lock:
            stream.write(data)
            stream.flush()
