from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from procexport.export.common.catalog import Catalog
from procexport.export.common.constants import DEFAULT_BATCH_SIZE, FileFormat, OperationMode
from procexport.export.common.exceptions import ConfigurationError

CONFIG_ENV_VAR = "PROCEXPORT_CONFIG"
CONFIG_FILE_NAME = "project.yml"


@dataclass
class DatabaseConfig:
    server: str = ""
    database: str = ""
    username: str = ""
    password: str = ""
    use_windows_auth: bool = True
    connection_timeout: int = 30
    trust_server_certificate: bool = True
    driver: str = "ODBC Driver 18 for SQL Server"

    def __post_init__(self):
        if self.connection_timeout <= 0:
            raise ConfigurationError(
                f"connection_timeout must be positive, got {self.connection_timeout}"
            )
        if not self.use_windows_auth and self.server and not self.username:
            raise ConfigurationError("username is required when use_windows_auth is false")

    @property
    def connection_string(self) -> str:
        """ODBC connection string for pyodbc."""
        parts = [
            f"DRIVER={{{self.driver}}}",
            f"SERVER={self.server}",
            f"DATABASE={self.database}",
        ]
        if self.use_windows_auth:
            parts.append("Trusted_Connection=yes")
        else:
            parts.append(f"UID={self.username}")
            parts.append(f"PWD={self.password}")
        if self.trust_server_certificate:
            parts.append("TrustServerCertificate=yes")
        return ";".join(parts) + ";"

    @property
    def is_configured(self) -> bool:
        return bool(self.server and self.database)


@dataclass
class PathsConfig:
    exports: str = "./exports/"
    imports: str = "./imports/"
    logs: str = "./logs/"


@dataclass
class ExportSettings:
    batch_size: int = DEFAULT_BATCH_SIZE
    default_format: str = FileFormat.XLSX.value

    def __post_init__(self):
        valid_formats = {f.value for f in FileFormat}
        if self.default_format not in valid_formats:
            raise ConfigurationError(
                f"Unsupported default_format: '{self.default_format}'. "
                f"Valid options: {', '.join(sorted(valid_formats))}"
            )
        if self.batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {self.batch_size}")


@dataclass
class ProjectConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    export: ExportSettings = field(default_factory=ExportSettings)
    catalogs: Dict[OperationMode, Catalog] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Create ProjectConfig from dictionary loaded from YAML."""
        database_data = data.get('database', {}) or {}
        paths_data = data.get('paths', {}) or {}
        export_data = data.get('export', {}) or {}
        catalogs_data = data.get('catalogs', {}) or {}

        database = DatabaseConfig(
            server=database_data.get('server', ''),
            database=database_data.get('database', ''),
            username=database_data.get('username', ''),
            password=database_data.get('password', ''),
            use_windows_auth=bool(database_data.get('use_windows_auth', True)),
            connection_timeout=int(database_data.get('connection_timeout', 30)),
            trust_server_certificate=bool(database_data.get('trust_server_certificate', True)),
            driver=database_data.get('driver', 'ODBC Driver 18 for SQL Server'),
        )

        paths = PathsConfig(
            exports=paths_data.get('exports', './exports/'),
            imports=paths_data.get('imports', './imports/'),
            logs=paths_data.get('logs', './logs/'),
        )

        export = ExportSettings(
            batch_size=int(export_data.get('batch_size', DEFAULT_BATCH_SIZE)),
            default_format=str(export_data.get('default_format', FileFormat.XLSX.value)).lower(),
        )

        catalogs = {
            mode: Catalog.from_dict(catalogs_data.get(mode.value))
            for mode in OperationMode
        }

        return cls(database=database, paths=paths, export=export, catalogs=catalogs)

    def catalog(self, mode: OperationMode) -> Catalog:
        return self.catalogs.get(OperationMode(mode)) or Catalog()


def load_project_config(config_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Load project configuration from YAML.

    The search order is:
    1. The ``config_dir`` parameter if provided.
    2. The path specified in the ``PROCEXPORT_CONFIG`` environment variable.
    3. ``project.yml`` in the current working directory.
    Returns an empty dictionary if no configuration file is found.
    """
    search_paths = []
    if config_dir:
        search_paths.append(Path(config_dir))
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        search_paths.append(Path(env_path))
    search_paths.append(Path.cwd())

    for path in search_paths:
        config_file = path
        if config_file.is_dir():
            config_file = config_file / CONFIG_FILE_NAME
        if config_file.is_file():
            with config_file.open("r", encoding="utf-8") as f:
                try:
                    return yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
    return {}


def load_project_config_object(config_dir: Optional[Path] = None) -> ProjectConfig:
    """Load project configuration as a typed Python object."""
    config_dict = load_project_config(config_dir)
    return ProjectConfig.from_dict(config_dict)
