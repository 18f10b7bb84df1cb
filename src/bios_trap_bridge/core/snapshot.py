# bios_trap_bridge/core/snapshot.py
"""
トラップ処理結果の不変スナップショット

このモジュールは、1回のIN/OUTトラップを解決した後のCPU状態と、
その際にコンソールへ出力されたバイト列を記録する不変のデータ構造を定義します。
"""
from dataclasses import dataclass
from typing import Optional

from bios_trap_bridge.arch.i8080.state import Cpu


# @intent:responsibility ある一回のトラップ解決の結果を不変に記録します。
@dataclass(frozen=True) # 不変データ構造
class TrapResult:
    """
    トラップ解決後のCPUスナップショットと、その副作用（出力）を記録したデータ構造。
    """
    cpu: Cpu
    port: Optional[int] = None
    function: Optional[int] = None # BIOS機能番号（レジスタC）。BIOS呼び出しでない場合はNone
    output: bytes = b""

    # @intent:rationale outputはbytesなので不変。cpuは新しいインスタンスとして生成され、入力とは共有されない。
