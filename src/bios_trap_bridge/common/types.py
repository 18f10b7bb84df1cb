"""
共通の型定義と定数を提供するモジュール。
プロジェクト全体で使用されるアドレス空間のレイアウトなどを定義します。
"""

# @intent:data_structure コンピュータ識別子（ハイフン区切りのUUID文字列）の型エイリアス。
ComputerId = str

# @intent:constant ゲストのアドレス空間レイアウト。
ADDRESS_SPACE_SIZE = 0x10000
BIOS_SIZE = 0x100
PROGRAM_ORIGIN = 0x100
PROGRAM_SIZE = ADDRESS_SPACE_SIZE - BIOS_SIZE

# CP/Mの文字列終端 '$'
SENTINEL = 0x24
