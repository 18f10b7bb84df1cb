# bios_trap_bridge/bios/dispatcher.py
"""
BIOSトラップ・ディスパッチャ。

実行エンジンから渡されたCPUスナップショットとIN/OUTのポート番号を受け取り、
対応するBIOS機能を実行して、変更後のCPUスナップショットを返す責務を負います。
呼び出しをまたいで保持する状態はありません。
"""
import logging
from enum import IntEnum
from typing import Optional

from bios_trap_bridge.arch.i8080.state import Cpu
from bios_trap_bridge.bios.console import ConsoleSink
from bios_trap_bridge.common.errors import ProgramTerminated, UnknownBiosFunctionError
from bios_trap_bridge.common.types import PROGRAM_ORIGIN
from bios_trap_bridge.core.extraction import extract_string
from bios_trap_bridge.core.snapshot import TrapResult
from bios_trap_bridge.transport.backend import MemoryBackend

logger = logging.getLogger(__name__)

# BIOS呼び出しとして扱うOUTポート
BIOS_PORT = 0x00


# @intent:responsibility レジスタCで選択されるBIOS機能番号を定義します。
class BiosFunction(IntEnum):
    P_TERMCPM = 0x00   # プログラム終了
    C_READ = 0x01      # コンソール入力（未実装、常に0）
    C_WRITE = 0x02     # 1文字出力
    C_WRITESTR = 0x09  # '$'終端文字列の出力


# @intent:responsibility OUT/INトラップを解決し、CPUスナップショットを返します。
class BiosDispatcher:
    """
    1回の呼び出しにつき1回の状態遷移だけを行うディスパッチャ。
    """
    def __init__(self, backend: MemoryBackend, console: Optional[ConsoleSink] = None):
        self._backend = backend
        self._console = console if console is not None else ConsoleSink()

    # @intent:responsibility セッション開始時にPCをプログラムの先頭(0x100)に設定します。
    def initialise(self, cpu: Cpu) -> Cpu:
        return cpu.with_state(program_counter=PROGRAM_ORIGIN)

    # @intent:responsibility 割り込みチェックのポーリング。何も変更しません。
    def interrupt_check(self, cpu: Cpu) -> Cpu:
        return cpu

    # @intent:responsibility 入力デバイスが接続されていないことを表すため、ポートに関わらずA=0を返します。
    def in_port(self, cpu: Cpu, port: Optional[int] = None) -> Cpu:
        return cpu.with_state(a=0x00)

    # @intent:responsibility OUTトラップを解決します。ポート0のみBIOS呼び出しとして扱います。
    # @intent:post-condition P_TERMCPMはProgramTerminated、未知の機能はUnknownBiosFunctionErrorを送出します。
    def out_port(self, cpu: Cpu, port: Optional[int]) -> TrapResult:
        """
        ポートがNoneまたは0以外の場合は何もしません。
        ポート0の場合はレジスタCの値でBIOS機能を選択します。
        """
        logger.debug("OUT called with port %s and c = %d", port, cpu.state.c)
        if port is None or port != BIOS_PORT:
            return TrapResult(cpu=cpu, port=port)

        function = cpu.state.c
        if function == BiosFunction.P_TERMCPM:
            logger.info("Computer %s exited via P_TERMCPM", cpu.id)
            raise ProgramTerminated(cpu.id)

        if function == BiosFunction.C_READ:
            return TrapResult(cpu=cpu.with_state(a=0x00), port=port, function=function)

        if function == BiosFunction.C_WRITE:
            output = bytes([cpu.state.e])
            self._console.write(output)
            return TrapResult(cpu=cpu, port=port, function=function, output=output)

        if function == BiosFunction.C_WRITESTR:
            address = cpu.state.de
            logger.debug("C_WRITESTR %#06x for computer %s", address, cpu.id)
            output = extract_string(self._backend, cpu.id, address)
            self._console.write(output)
            return TrapResult(cpu=cpu, port=port, function=function, output=output)

        logger.error("Unknown BIOS function %#04x called by computer %s", function, cpu.id)
        raise UnknownBiosFunctionError(function)
