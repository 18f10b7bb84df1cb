# bios_trap_bridge/transport/relational.py
"""
リレーショナルストア・バックエンド

コンピュータIDとアドレスをキーとする address_space テーブルに、
1アドレス1行でゲストメモリを保存します。
"""
import logging
import sqlite3
from contextlib import closing
from typing import Iterator, Tuple

from bios_trap_bridge.common.errors import BackendError
from bios_trap_bridge.common.types import ADDRESS_SPACE_SIZE, SENTINEL, ComputerId
from bios_trap_bridge.transport.backend import MemoryBackend, check_address, check_image

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS computer (
    id TEXT PRIMARY KEY,
    state TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS address_space (
    computer_id TEXT NOT NULL REFERENCES computer(id),
    address INTEGER NOT NULL CHECK (address >= 0 AND address <= 65535),
    value INTEGER NOT NULL CHECK (value >= 0 AND value <= 255),
    PRIMARY KEY (computer_id, address)
);
"""

# @intent:rationale 終端行が存在しない場合はCOALESCEでアドレス空間の末尾まで読むようにする。
READ_UNTIL_SENTINEL = """
SELECT value FROM address_space
WHERE computer_id = :id
  AND address >= :start
  AND address < COALESCE(
      (SELECT MIN(address) FROM address_space
       WHERE computer_id = :id AND value = :sentinel AND address >= :start),
      :end)
ORDER BY address
"""

COMPUTER_EXISTS = "SELECT EXISTS (SELECT 1 FROM computer WHERE id = ?)"


# @intent:responsibility SQLでアドレス空間テーブルを読み書きするバックエンド。
class SqlAddressSpaceBackend(MemoryBackend):
    """
    sqlite3 データベースを使用するバックエンド。
    書き込みは単一トランザクション、読み出しは終端文字の位置でサーバ側に切り詰めます。
    呼び出しごとに新しい接続を開きます。
    """
    def __init__(self, connection_string: str):
        if not connection_string:
            raise ValueError("connection_string must not be empty.")
        self._connection_string = connection_string

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._connection_string)

    # @intent:responsibility テーブルが存在しなければ作成します。
    def ensure_schema(self) -> None:
        try:
            with closing(self._connect()) as conn:
                conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise BackendError(f"Could not create address space schema: {e}") from e

    def initialise(self, computer_id: ComputerId, image: bytes) -> None:
        check_image(image)

        def rows() -> Iterator[Tuple[str, int, int]]:
            for address, value in enumerate(image):
                yield computer_id, address, value

        try:
            with closing(self._connect()) as conn:
                # with conn: で成功時にcommit、例外時にrollbackされる
                with conn:
                    conn.execute(
                        "INSERT INTO computer (id, state) VALUES (?, '{}')",
                        (computer_id,),
                    )
                    conn.executemany(
                        "INSERT INTO address_space (computer_id, address, value) VALUES (?, ?, ?)",
                        rows(),
                    )
        except sqlite3.Error as e:
            logger.error("Failed to initialise address space for %s: %s", computer_id, e)
            raise BackendError(f"Could not initialise address space for {computer_id}: {e}") from e

    def read_from(self, computer_id: ComputerId, start_address: int) -> bytes:
        check_address(start_address)
        params = {
            "id": computer_id,
            "start": start_address,
            "sentinel": SENTINEL,
            "end": ADDRESS_SPACE_SIZE,
        }
        try:
            with closing(self._connect()) as conn:
                known = conn.execute(COMPUTER_EXISTS, (computer_id,)).fetchone()[0]
                rows = conn.execute(READ_UNTIL_SENTINEL, params).fetchall() if known else None
        except sqlite3.Error as e:
            logger.error("Failed to read address space for %s: %s", computer_id, e)
            raise BackendError(f"Could not read address space for {computer_id}: {e}") from e
        if rows is None:
            raise BackendError(f"Computer {computer_id} has no address space.")
        return bytes(value for (value,) in rows)

    # @intent:responsibility 指定コンピュータの行数を返します。初期化済みなら65536になります。
    def count_entries(self, computer_id: ComputerId) -> int:
        try:
            with closing(self._connect()) as conn:
                (count,) = conn.execute(
                    "SELECT COUNT(*) FROM address_space WHERE computer_id = ?",
                    (computer_id,),
                ).fetchone()
        except sqlite3.Error as e:
            raise BackendError(f"Could not count address space for {computer_id}: {e}") from e
        return count
