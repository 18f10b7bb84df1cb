# bios_trap_bridge/arch/i8080/state.py
"""
Intel 8080 CPU固有の状態定義。

このモジュールは、外部の実行エンジンとJSONでやり取りされるCPUスナップショット
（レジスタ、フラグ、割り込み状態）を保持するデータ構造と、その変換処理を定義します。
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping

from bios_trap_bridge.common.errors import MalformedInputError
from bios_trap_bridge.core.state import CpuState

REGISTER_NAMES = ("a", "b", "c", "d", "e", "h", "l")


# @intent:utility_function JSONの値を範囲チェック付きの整数として取り出します。
def _require_int(data: Mapping[str, Any], key: str, bits: int) -> int:
    if key not in data:
        raise MalformedInputError(f"Missing field '{key}'.")
    value = data[key]
    # boolはintのサブクラスなので明示的に除外する
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedInputError(f"Field '{key}' must be an integer, got {value!r}.")
    if not 0 <= value < (1 << bits):
        raise MalformedInputError(f"Field '{key}' value {value} is not a {bits}-bit value.")
    return value


def _require_bool(data: Mapping[str, Any], key: str) -> bool:
    if key not in data:
        raise MalformedInputError(f"Missing field '{key}'.")
    value = data[key]
    if not isinstance(value, bool):
        raise MalformedInputError(f"Field '{key}' must be a boolean, got {value!r}.")
    return value


def _require_mapping(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key) if isinstance(data, Mapping) else None
    if not isinstance(value, Mapping):
        raise MalformedInputError(f"Field '{key}' must be an object.")
    return value


# @intent:responsibility 8080のステータスフラグを保持します。各フラグは互いに独立しています。
@dataclass
class CpuFlags:
    sign: bool = False
    zero: bool = False
    aux_carry: bool = False
    parity: bool = False
    carry: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CpuFlags":
        return cls(
            sign=_require_bool(data, "sign"),
            zero=_require_bool(data, "zero"),
            aux_carry=_require_bool(data, "auxCarry"),
            parity=_require_bool(data, "parity"),
            carry=_require_bool(data, "carry"),
        )

    def to_dict(self) -> Dict[str, bool]:
        return {
            "sign": self.sign,
            "zero": self.zero,
            "auxCarry": self.aux_carry,
            "parity": self.parity,
            "carry": self.carry,
        }


# @intent:responsibility 8080 CPUの全てのレジスタとフラグの状態を保持します。
@dataclass
class I8080CpuState(CpuState):
    """
    8080 CPUのレジスタ状態を保持するデータクラス。
    CpuStateを拡張し、8bitレジスタ、サイクルカウンタ、フラグを含みます。
    """
    a: int = 0x00
    b: int = 0x00
    c: int = 0x00
    d: int = 0x00
    e: int = 0x00
    h: int = 0x00
    l: int = 0x00
    cycles: int = 0
    flags: CpuFlags = field(default_factory=CpuFlags)
    interrupts_enabled: bool = False

    # @intent:accessor DEレジスタペアを16bit値として返します。C_WRITESTRのアドレス計算に使用します。
    @property
    def de(self) -> int:
        return (self.d << 8) | self.e

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "I8080CpuState":
        registers = {name: _require_int(data, name, 8) for name in REGISTER_NAMES}
        return cls(
            program_counter=_require_int(data, "programCounter", 16),
            stack_pointer=_require_int(data, "stackPointer", 16),
            cycles=_require_int(data, "cycles", 64),
            flags=CpuFlags.from_dict(_require_mapping(data, "flags")),
            interrupts_enabled=_require_bool(data, "interruptsEnabled"),
            **registers,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {name: getattr(self, name) for name in REGISTER_NAMES}
        data.update({
            "stackPointer": self.stack_pointer,
            "programCounter": self.program_counter,
            "cycles": self.cycles,
            "flags": self.flags.to_dict(),
            "interruptsEnabled": self.interrupts_enabled,
        })
        return data


# @intent:responsibility 実行エンジンとの境界を往復するCPUスナップショット全体を表します。
@dataclass
class Cpu:
    """
    {state, id, opcode} の組。
    ディスパッチャが明示的に変更するフィールド以外は、変換を往復しても変化しません。
    """
    state: I8080CpuState
    id: str
    opcode: int = 0x00

    @classmethod
    def from_dict(cls, data: Any) -> "Cpu":
        if not isinstance(data, Mapping):
            raise MalformedInputError("CPU payload must be a JSON object.")
        computer_id = data.get("id")
        if not isinstance(computer_id, str):
            raise MalformedInputError("Field 'id' must be a string.")
        return cls(
            state=I8080CpuState.from_dict(_require_mapping(data, "state")),
            id=computer_id,
            opcode=_require_int(data, "opcode", 8),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state.to_dict(), "id": self.id, "opcode": self.opcode}

    # @intent:responsibility 状態の一部を変更した新しいCpuを返します（入力スナップショットは変更しない）。
    def with_state(self, **changes) -> "Cpu":
        return replace(self, state=replace(self.state, **changes))
