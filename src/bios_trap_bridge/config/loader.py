import os
from typing import Any, Dict, Mapping, Optional

import yaml

from bios_trap_bridge.common.errors import ConfigurationError
from .models import (
    BACKEND_RELATIONAL,
    BACKEND_REMOTE,
    BACKENDS,
    BridgeConfig,
    DatabaseConfig,
    RemoteMemoryConfig,
    ServerConfig,
)

ENV_CONFIG_FILE = "Bridge__ConfigFile"
ENV_BACKEND = "Bridge__Backend"
ENV_HOST = "Bridge__Host"
ENV_PORT = "Bridge__Port"
ENV_LOG_LEVEL = "Bridge__LogLevel"
ENV_CONNECTION_STRING = "Database__ConnectionString"
ENV_READ_RANGE_URL = "RemoteMemory__ReadRangeUrl"
ENV_INITIALISE_URL = "RemoteMemory__InitialiseUrl"
ENV_START_URL = "RemoteMemory__StartUrl"

REMOTE_ENV_VARS = (ENV_READ_RANGE_URL, ENV_INITIALISE_URL, ENV_START_URL)

# @intent:responsibility YAMLファイルと環境変数から、起動時に一度だけ不変の設定値を構築します。
class ConfigLoader:
    def load(self, path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> BridgeConfig:
        env = os.environ if environ is None else environ
        path = path or env.get(ENV_CONFIG_FILE)

        data: Dict[str, Any] = {}
        if path:
            data = self._read_file(path)
        return self._parse_config(data, env)

    def _read_file(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"Could not read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Config file {path} is not valid YAML: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping at the top level.")
        return data

    def _parse_config(self, data: Dict[str, Any], env: Mapping[str, str]) -> BridgeConfig:
        database_data = data.get("database") or {}
        remote_data = data.get("remote") or {}
        server_data = data.get("server") or {}

        # 環境変数はファイルの値を上書きする
        database = DatabaseConfig(
            connection_string=env.get(ENV_CONNECTION_STRING, database_data.get("connection_string")),
        )
        remote = RemoteMemoryConfig(
            read_range_url=env.get(ENV_READ_RANGE_URL, remote_data.get("read_range_url")),
            initialise_url=env.get(ENV_INITIALISE_URL, remote_data.get("initialise_url")),
            start_url=env.get(ENV_START_URL, remote_data.get("start_url")),
        )
        defaults = ServerConfig()
        server = ServerConfig(
            host=env.get(ENV_HOST, server_data.get("host", defaults.host)),
            port=self._parse_int(env.get(ENV_PORT, server_data.get("port", defaults.port)), "port"),
            max_rom_size=self._parse_int(server_data.get("max_rom_size", defaults.max_rom_size), "max_rom_size"),
            exit_on_terminate=bool(server_data.get("exit_on_terminate", defaults.exit_on_terminate)),
            echo_newline=bool(server_data.get("echo_newline", defaults.echo_newline)),
        )

        backend = env.get(ENV_BACKEND, data.get("backend"))
        backend = self._select_backend(backend, database, remote)

        return BridgeConfig(
            backend=backend,
            database=database,
            remote=remote,
            server=server,
            log_level=str(env.get(ENV_LOG_LEVEL, data.get("log_level", "INFO"))).upper(),
        )

    # @intent:responsibility 使用するバックエンドを決定し、必須項目が揃っていることを検証します。
    # @intent:rationale 明示指定がなければ、接続文字列があればリレーショナル、URLが揃っていればリモートを選ぶ。
    def _select_backend(self, backend: Optional[str], database: DatabaseConfig, remote: RemoteMemoryConfig) -> str:
        if backend is None:
            if database.connection_string:
                return BACKEND_RELATIONAL
            if remote.complete:
                return BACKEND_REMOTE
            raise ConfigurationError(
                f"No memory backend configured: set {ENV_CONNECTION_STRING}, "
                f"or all of {', '.join(REMOTE_ENV_VARS)}."
            )

        backend = str(backend).lower()
        if backend not in BACKENDS:
            raise ConfigurationError(f"Unknown backend '{backend}', expected one of {', '.join(BACKENDS)}.")

        if backend == BACKEND_RELATIONAL and not database.connection_string:
            raise ConfigurationError(f"Couldn't read {ENV_CONNECTION_STRING} for the relational backend.")
        if backend == BACKEND_REMOTE:
            missing = [
                name for name, value in zip(
                    REMOTE_ENV_VARS,
                    (remote.read_range_url, remote.initialise_url, remote.start_url),
                )
                if not value
            ]
            if missing:
                raise ConfigurationError(f"Couldn't read {', '.join(missing)} for the remote backend.")
        return backend

    def _parse_int(self, value: Any, name: str) -> int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                # 0x / 0X などの基数接頭辞も受け付ける
                return int(value, 0)
            except ValueError:
                pass
        raise ConfigurationError(f"Invalid integer format for {name}: {value}")
