# bios_trap_bridge/arch/i8080/opcodes.py
"""
BIOSスタブの生成に必要な8080命令のオペコード。
"""

# @intent:constant スタブとテストで使用するオペコードのみを定義します。
MVI_A = 0x3E
HLT = 0x76
RET = 0xC9
OUT = 0xD3
