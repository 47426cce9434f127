"""Settings and configuration loading for the exchange tool."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    file: str | None = None
    format: str = DEFAULT_LOG_FORMAT


@dataclass
class ExportSettings:
    """Export defaults."""

    workspace: str = "live"
    ignore_hidden: bool = True
    exclude_child_documents: bool = False


@dataclass
class ImportSettings:
    """Import defaults."""

    workspace: str = "live"


@dataclass
class Settings:
    """Main settings container for the exchange tool."""

    language_dimension: str = "language"
    document_node_type: str = "Document"
    repository_file: Path = field(default_factory=lambda: Path("./repository.yaml"))
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    imports: ImportSettings = field(default_factory=ImportSettings)

    @classmethod
    def load(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file.

        Args:
            path: Path to the settings YAML file.

        Returns:
            Settings instance populated from the file.

        Raises:
            FileNotFoundError: If the settings file doesn't exist.
            yaml.YAMLError: If the file contains invalid YAML.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "Settings":
        """Create Settings from a dictionary."""
        logging_data = data.get("logging") or {}
        logging_settings = LoggingSettings(
            level=logging_data.get("level", "INFO"),
            file=logging_data.get("file"),
            format=logging_data.get("format", DEFAULT_LOG_FORMAT),
        )

        export_data = data.get("export") or {}
        export_settings = ExportSettings(
            workspace=export_data.get("workspace", "live"),
            ignore_hidden=export_data.get("ignore_hidden", True),
            exclude_child_documents=export_data.get("exclude_child_documents", False),
        )

        import_data = data.get("import") or {}
        import_settings = ImportSettings(
            workspace=import_data.get("workspace", "live"),
        )

        return cls(
            language_dimension=data.get("language_dimension", "language"),
            document_node_type=data.get("document_node_type", "Document"),
            repository_file=Path(data.get("repository_file", "./repository.yaml")),
            logging=logging_settings,
            export=export_settings,
            imports=import_settings,
        )

    @classmethod
    def default(cls) -> "Settings":
        """Create Settings with default values."""
        return cls()
