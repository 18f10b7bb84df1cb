# bios_trap_bridge/core/state.py
"""
Core Layer (CPU状態)

このモジュールは、CPUの基本的な状態（PCとSP）を保持するデータ構造を定義します。
"""
from dataclasses import dataclass

# @intent:responsibility CPUのレジスタ状態を保持します。アーキテクチャ固有のレジスタはこれを拡張します。
@dataclass
class CpuState:
    """
    CPUのレジスタ状態を保持するデータクラス。
    これは抽象的な基底状態であり、i8080など特定のアーキテクチャに応じて拡張されます。
    """
    program_counter: int = 0x0000
    stack_pointer: int = 0x0000
    # @intent:rationale フィールド名はJSON境界の programCounter / stackPointer に対応させる。
