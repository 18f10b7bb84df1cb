import logging
from dataclasses import dataclass

from bios_trap_bridge.bios.console import ConsoleSink
from bios_trap_bridge.bios.dispatcher import BiosDispatcher
from bios_trap_bridge.loader.initializer import AddressSpaceInitializer
from bios_trap_bridge.transport.backend import InMemoryBackend, MemoryBackend
from bios_trap_bridge.transport.relational import SqlAddressSpaceBackend
from bios_trap_bridge.transport.remote import RemoteMemoryBackend
from .models import BACKEND_MEMORY, BACKEND_RELATIONAL, BACKEND_REMOTE, BridgeConfig

logger = logging.getLogger(__name__)

# @intent:responsibility 全てのリクエストハンドラに渡される、起動時に構築された依存関係の集合。
@dataclass(frozen=True)
class BridgeContext:
    config: BridgeConfig
    backend: MemoryBackend
    dispatcher: BiosDispatcher
    initializer: AddressSpaceInitializer

# @intent:responsibility 設定（Config）に基づいて、バックエンド、ディスパッチャ、イニシャライザを生成・接続します。
class BridgeBuilder:
    def build_backend(self, config: BridgeConfig) -> MemoryBackend:
        if config.backend == BACKEND_RELATIONAL:
            backend = SqlAddressSpaceBackend(config.database.connection_string)
            backend.ensure_schema()
        elif config.backend == BACKEND_REMOTE:
            backend = RemoteMemoryBackend(
                read_range_url=config.remote.read_range_url,
                initialise_url=config.remote.initialise_url,
                start_url=config.remote.start_url,
            )
        elif config.backend == BACKEND_MEMORY:
            backend = InMemoryBackend()
        else:
            raise ValueError(f"Unsupported backend: {config.backend}")
        logger.info("Using %s memory backend", config.backend)
        return backend

    def build_context(self, config: BridgeConfig, console: ConsoleSink = None) -> BridgeContext:
        backend = self.build_backend(config)
        if console is None:
            console = ConsoleSink(line_buffered=config.server.echo_newline)
        return BridgeContext(
            config=config,
            backend=backend,
            dispatcher=BiosDispatcher(backend, console),
            initializer=AddressSpaceInitializer(backend),
        )
