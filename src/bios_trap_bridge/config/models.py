from dataclasses import dataclass, field
from typing import Optional

from bios_trap_bridge.common.types import PROGRAM_SIZE

BACKEND_RELATIONAL = "relational"
BACKEND_REMOTE = "remote"
BACKEND_MEMORY = "memory"
BACKENDS = (BACKEND_RELATIONAL, BACKEND_REMOTE, BACKEND_MEMORY)

@dataclass(frozen=True)
class DatabaseConfig:
    connection_string: Optional[str] = None

@dataclass(frozen=True)
class RemoteMemoryConfig:
    read_range_url: Optional[str] = None
    initialise_url: Optional[str] = None
    start_url: Optional[str] = None

    @property
    def complete(self) -> bool:
        return all((self.read_range_url, self.initialise_url, self.start_url))

@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000
    max_rom_size: int = PROGRAM_SIZE  # BIOS領域より上に収まる最大長
    exit_on_terminate: bool = False
    echo_newline: bool = True  # 出力ごとに改行を付加する

@dataclass(frozen=True)
class BridgeConfig:
    backend: str
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    remote: RemoteMemoryConfig = field(default_factory=RemoteMemoryConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"
