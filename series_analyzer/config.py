"""
Dynaconf settings for the Series Analyzer.
Single source of truth for the data folder, loader pool size and report options.
"""

from pathlib import Path

from dynaconf import Dynaconf

# Project root holds config/ and data/
PROJECT_ROOT = Path(__file__).resolve().parent.parent

settings = Dynaconf(
	root_path=PROJECT_ROOT,
	settings_files=["config/settings.toml"],
	envvar_prefix="SERIES",
)


def data_dir() -> Path:
	"""Folder scanned for series JSON files; relative paths resolve from the project root."""
	path = Path(settings.get("data_dir", "data"))
	return path if path.is_absolute() else PROJECT_ROOT / path
