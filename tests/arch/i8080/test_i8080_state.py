# tests/arch/i8080/test_i8080_state.py
"""
bios_trap_bridge.arch.i8080.stateモジュールの単体テスト。
"""
import copy

import pytest

from bios_trap_bridge.arch.i8080.state import Cpu, CpuFlags, I8080CpuState
from bios_trap_bridge.common.errors import MalformedInputError

# @intent:test_suite JSON境界を往復するCPUスナップショットの変換と検証。

class TestCpuCodec:
    # @intent:test_case_roundtrip 変換を往復してもJSONが変化しないことを検証します。
    def test_cpu_round_trip_unchanged(self, cpu_json):
        cpu = Cpu.from_dict(cpu_json)
        assert cpu.to_dict() == cpu_json

    # @intent:test_case_field_names ワイヤ上のキャメルケース名がフィールドに対応することを検証します。
    def test_cpu_fields_mapped(self, cpu_json):
        cpu = Cpu.from_dict(cpu_json)
        assert cpu.state.program_counter == 0x0005
        assert cpu.state.stack_pointer == 0xFF00
        assert cpu.state.flags.aux_carry is True
        assert cpu.state.interrupts_enabled is True
        assert cpu.state.de == 0x0109
        assert cpu.opcode == 0xD3

    def test_cpu_missing_register(self, cpu_json):
        del cpu_json["state"]["c"]
        with pytest.raises(MalformedInputError, match="Missing field 'c'"):
            Cpu.from_dict(cpu_json)

    # @intent:test_case_range 8bitを超えるレジスタ値が拒否されることを検証します。
    def test_cpu_register_out_of_range(self, cpu_json):
        cpu_json["state"]["a"] = 0x100
        with pytest.raises(MalformedInputError, match="not a 8-bit value"):
            Cpu.from_dict(cpu_json)

    def test_cpu_flag_wrong_type(self, cpu_json):
        cpu_json["state"]["flags"]["carry"] = 1
        with pytest.raises(MalformedInputError):
            Cpu.from_dict(cpu_json)

    def test_cpu_register_bool_rejected(self, cpu_json):
        cpu_json["state"]["b"] = True
        with pytest.raises(MalformedInputError):
            Cpu.from_dict(cpu_json)

    def test_cpu_not_an_object(self):
        with pytest.raises(MalformedInputError, match="JSON object"):
            Cpu.from_dict([1, 2, 3])

    def test_cpu_id_must_be_string(self, cpu_json):
        cpu_json["id"] = 42
        with pytest.raises(MalformedInputError, match="'id'"):
            Cpu.from_dict(cpu_json)


class TestWithState:
    # @intent:test_case_immutability with_stateが元のスナップショットを変更しないことを検証します。
    def test_with_state_returns_new_cpu(self, cpu_json):
        original = Cpu.from_dict(copy.deepcopy(cpu_json))
        updated = original.with_state(a=0)
        assert updated.state.a == 0
        assert original.state.a == 0x12
        assert updated.state.flags == original.state.flags
        assert updated.id == original.id

    def test_default_state(self):
        state = I8080CpuState()
        assert state.program_counter == 0
        assert state.flags == CpuFlags()
