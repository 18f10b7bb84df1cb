# bios_trap_bridge/common/errors.py
"""
ブリッジ全体で共有される例外階層。

プロセスを中断させるのではなく、呼び出し元（HTTP層やセッション所有者）が
エラーの種類を判別して処理を決められるよう、4種類のエラー種別を定義します。
"""
from enum import Enum
from typing import Optional


# @intent:responsibility エラーの分類を定義します。
class ErrorKind(Enum):
    CONFIGURATION = "configuration"
    BIOS = "bios"
    BACKEND = "backend"
    MALFORMED_INPUT = "malformed_input"


# @intent:responsibility 全てのブリッジ例外の基底クラス。
class BridgeError(Exception):
    """
    ブリッジ内で発生する全てのエラーの基底クラス。
    `kind` によって呼び出し元がエラーの種類を判別できます。
    """
    kind: ErrorKind = ErrorKind.BACKEND

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(BridgeError):
    """必須の接続文字列やサービスURLが欠けている場合に送出されます。"""
    kind = ErrorKind.CONFIGURATION


# @intent:responsibility BIOS呼び出しに起因するエラーの基底。
class BiosError(BridgeError):
    kind = ErrorKind.BIOS

    def __init__(self, message: str, function: Optional[int] = None):
        super().__init__(message)
        self.function = function


# @intent:responsibility プログラムがP_TERMCPMで正常終了したことを通知します。
# @intent:rationale 終了はバグではないため graceful=True とし、セッション所有者が区別できるようにします。
class ProgramTerminated(BiosError):
    graceful = True

    def __init__(self, computer_id: str):
        super().__init__(f"Program for computer {computer_id} exited via BIOS call with C = 0", function=0)
        self.computer_id = computer_id


class UnknownBiosFunctionError(BiosError):
    graceful = False

    def __init__(self, function: int):
        super().__init__(f"Unknown BIOS function called: C = {function:#04x}", function=function)


class BackendError(BridgeError):
    """データベースまたは兄弟サービスの呼び出しが失敗した場合に送出されます。"""
    kind = ErrorKind.BACKEND


class MalformedInputError(BridgeError):
    kind = ErrorKind.MALFORMED_INPUT


class PayloadTooLargeError(MalformedInputError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"Uploaded ROM is {size} bytes, limit is {limit} bytes.")
        self.size = size
        self.limit = limit
