"""Configuration loading for Chronos."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class AppConfig:
    name: str = "chronos"


@dataclass
class StorageConfig:
    """Configuration for the local cache."""

    db_path: str = "~/.chronos/cache.db"
    export_dir: str = "~/.chronos/exports"


@dataclass
class CloudConfig:
    """Configuration for the Firestore document store.

    Sync is only attempted when enabled, a project is set and a user id
    is known. Anything less runs Chronos in offline mode.
    """

    enabled: bool = False
    project_id: str = ""
    api_key: str | None = None
    id_token: str | None = None
    user_id: str | None = None
    base_url: str = "https://firestore.googleapis.com/v1"
    database: str = "(default)"
    timeout_seconds: float = 10.0

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.project_id)


@dataclass
class SaveConfig:
    debounce_seconds: float = 0.8
    saved_display_seconds: float = 1.5


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class Config:
    app: AppConfig = field(default_factory=AppConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    cloud: CloudConfig = field(default_factory=CloudConfig)
    save: SaveConfig = field(default_factory=SaveConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with CHRONOS_ prefix."""
    return os.environ.get(f"CHRONOS_{key}", default)


def _is_truthy(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    if name := _get_env("APP_NAME"):
        config.app.name = name

    # Storage overrides
    if db_path := _get_env("DB_PATH"):
        config.storage.db_path = db_path
    if export_dir := _get_env("EXPORT_DIR"):
        config.storage.export_dir = export_dir

    # Cloud overrides
    if cloud_enabled := _get_env("CLOUD_ENABLED"):
        config.cloud.enabled = _is_truthy(cloud_enabled)
    if project_id := _get_env("CLOUD_PROJECT_ID"):
        config.cloud.project_id = project_id
    if api_key := _get_env("CLOUD_API_KEY"):
        config.cloud.api_key = api_key
    if id_token := _get_env("CLOUD_ID_TOKEN"):
        config.cloud.id_token = id_token
    if user_id := _get_env("CLOUD_USER_ID"):
        config.cloud.user_id = user_id
    if base_url := _get_env("CLOUD_BASE_URL"):
        config.cloud.base_url = base_url
    if database := _get_env("CLOUD_DATABASE"):
        config.cloud.database = database
    if timeout := _get_env("CLOUD_TIMEOUT"):
        config.cloud.timeout_seconds = float(timeout)

    # Save overrides
    if debounce := _get_env("SAVE_DEBOUNCE"):
        config.save.debounce_seconds = float(debounce)
    if display := _get_env("SAVE_DISPLAY"):
        config.save.saved_display_seconds = float(display)

    # Server overrides
    if host := _get_env("SERVER_HOST"):
        config.server.host = host
    if port := _get_env("SERVER_PORT"):
        config.server.port = int(port)

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses default config.

    Returns:
        Loaded Config object.
    """
    config = Config()

    if config_path:
        path = Path(config_path).expanduser()
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

            if "app" in data:
                config.app = AppConfig(
                    name=data["app"].get("name", config.app.name)
                )

            # Parse storage config
            if "storage" in data:
                storage_data = data["storage"]
                config.storage = StorageConfig(
                    db_path=storage_data.get("db_path", config.storage.db_path),
                    export_dir=storage_data.get(
                        "export_dir", config.storage.export_dir
                    ),
                )

            # Parse cloud config
            if "cloud" in data:
                cloud_data = data["cloud"]
                config.cloud = CloudConfig(
                    enabled=cloud_data.get("enabled", config.cloud.enabled),
                    project_id=cloud_data.get("project_id", config.cloud.project_id),
                    api_key=cloud_data.get("api_key"),
                    id_token=cloud_data.get("id_token"),
                    user_id=cloud_data.get("user_id"),
                    base_url=cloud_data.get("base_url", config.cloud.base_url),
                    database=cloud_data.get("database", config.cloud.database),
                    timeout_seconds=cloud_data.get(
                        "timeout_seconds", config.cloud.timeout_seconds
                    ),
                )

            # Parse save config
            if "save" in data:
                save_data = data["save"]
                config.save = SaveConfig(
                    debounce_seconds=save_data.get(
                        "debounce_seconds", config.save.debounce_seconds
                    ),
                    saved_display_seconds=save_data.get(
                        "saved_display_seconds", config.save.saved_display_seconds
                    ),
                )

            # Parse server config
            if "server" in data:
                server_data = data["server"]
                config.server = ServerConfig(
                    host=server_data.get("host", config.server.host),
                    port=server_data.get("port", config.server.port),
                )

    return _apply_env_overrides(config)
