# src/bios_trap_bridge/arch/i8080/__init__.py
"""
Intel 8080 Architecture Package
"""
from .state import Cpu, CpuFlags, I8080CpuState
