"""Resolves the directory an export run writes into."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from procexport.export.common.constants import OperationMode

if TYPE_CHECKING:
    from procexport.project_config import PathsConfig

logger = logging.getLogger(__name__)


class OutputPathResolver:
    """Custom location if given, else ``{paths.exports}/{mode}``."""

    def __init__(self, paths: PathsConfig, base_dir: Optional[Path] = None):
        self.paths = paths
        self.base_dir = Path(base_dir) if base_dir else None

    def default_export_path(self) -> Path:
        configured = Path(self.paths.exports)
        if not configured.is_absolute():
            configured = (self.base_dir or Path.cwd()) / configured
        return Path(os.path.normpath(configured))

    def resolve(self, mode: OperationMode, custom_location: Optional[str] = None) -> Path:
        if custom_location:
            output_path = Path(custom_location)
        else:
            output_path = self.default_export_path() / OperationMode(mode).value

        output_path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Resolved output path: {output_path}")
        return output_path
