"""
BIOS trap bridge for an external 8080 emulator test harness.
"""
__version__ = "0.1.0"
