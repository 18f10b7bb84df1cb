# tests/bios/test_dispatcher.py
"""
bios_trap_bridge.bios.dispatcherモジュールの単体テスト。
"""
import io

import pytest

from bios_trap_bridge.bios.console import ConsoleSink
from bios_trap_bridge.bios.dispatcher import BiosDispatcher, BiosFunction
from bios_trap_bridge.common.errors import (
    ErrorKind,
    ProgramTerminated,
    UnknownBiosFunctionError,
)
from bios_trap_bridge.loader.initializer import AddressSpaceInitializer
from bios_trap_bridge.transport.backend import InMemoryBackend

# @intent:test_suite OUT/INトラップの状態遷移を検証します。


@pytest.fixture
def stream():
    return io.BytesIO()


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def dispatcher(backend, stream):
    return BiosDispatcher(backend, ConsoleSink(stream))


class TestSessionEndpoints:
    # @intent:test_case_initialise 入力のPCに関わらず0x100が設定されることを検証します。
    @pytest.mark.parametrize("pc", [0x0000, 0x0005, 0x1234, 0xFFFF])
    def test_initialise_sets_pc(self, dispatcher, cpu_factory, pc):
        cpu = cpu_factory(program_counter=pc, a=0x55)
        result = dispatcher.initialise(cpu)
        assert result.state.program_counter == 0x100
        assert result.state.a == 0x55

    def test_interrupt_check_passthrough(self, dispatcher, cpu_factory):
        cpu = cpu_factory(a=1, b=2, program_counter=0x200)
        assert dispatcher.interrupt_check(cpu) == cpu

    @pytest.mark.parametrize("port", [None, 0, 1, 0xFF])
    def test_in_clears_a(self, dispatcher, cpu_factory, port):
        cpu = cpu_factory(a=0x99, b=0x11)
        result = dispatcher.in_port(cpu, port)
        assert result.state.a == 0
        assert result.state.b == 0x11


class TestOutPort:
    # @intent:test_case_noop ポート0以外、またはポート未指定では状態が変化しないことを検証します。
    @pytest.mark.parametrize("port", [None, 1, 0x10, 0xFF])
    def test_non_bios_port_is_noop(self, dispatcher, cpu_factory, stream, port):
        cpu = cpu_factory(a=0x12, c=0x00, e=0x41)
        result = dispatcher.out_port(cpu, port)
        assert result.cpu == cpu
        assert result.output == b""
        assert result.function is None
        assert stream.getvalue() == b""

    def test_c_read_sets_a_zero(self, dispatcher, cpu_factory):
        cpu = cpu_factory(a=0x7F, c=BiosFunction.C_READ)
        result = dispatcher.out_port(cpu, 0)
        assert result.cpu.state.a == 0
        assert result.function == BiosFunction.C_READ

    # @intent:test_case_c_write C_WRITEがレジスタEの1文字だけを出力することを検証します。
    def test_c_write_emits_register_e(self, dispatcher, cpu_factory, stream):
        cpu = cpu_factory(c=BiosFunction.C_WRITE, e=ord("X"))
        result = dispatcher.out_port(cpu, 0)
        assert result.output == b"X"
        assert stream.getvalue() == b"X"
        assert result.cpu == cpu

    # @intent:test_case_c_writestr C_WRITESTRがDEの指すアドレスから'$'の手前までを出力することを検証します。
    def test_c_writestr_prints_string(self, dispatcher, backend, cpu_factory, stream):
        program = b"\x00" * 0x10 + b"Hello, 8080!$junk"
        computer_id = AddressSpaceInitializer(backend).load(program)
        cpu = cpu_factory(computer_id, c=BiosFunction.C_WRITESTR, d=0x01, e=0x10)
        result = dispatcher.out_port(cpu, 0)
        assert result.output == b"Hello, 8080!"
        assert stream.getvalue() == b"Hello, 8080!"

    def test_terminate_raises(self, dispatcher, cpu_factory):
        cpu = cpu_factory(c=BiosFunction.P_TERMCPM)
        with pytest.raises(ProgramTerminated) as excinfo:
            dispatcher.out_port(cpu, 0)
        assert excinfo.value.kind == ErrorKind.BIOS
        assert excinfo.value.graceful is True
        assert excinfo.value.computer_id == cpu.id

    @pytest.mark.parametrize("function", [0x03, 0x08, 0x0A, 0xFF])
    def test_unknown_function_raises(self, dispatcher, cpu_factory, function):
        cpu = cpu_factory(c=function)
        with pytest.raises(UnknownBiosFunctionError) as excinfo:
            dispatcher.out_port(cpu, 0)
        assert excinfo.value.function == function
        assert excinfo.value.graceful is False


class TestConsoleSink:
    def test_line_buffered_appends_newline(self):
        stream = io.BytesIO()
        sink = ConsoleSink(stream, line_buffered=True)
        sink.write(b"A")
        sink.write(b"BC")
        assert stream.getvalue() == b"A\nBC\n"
