from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class LibrarySettings(BaseModel):
    roots: List[Path] = Field(default_factory=list)
    include_extensions: List[str] = Field(default_factory=lambda: [".flac", ".mp3"])
    exclude_patterns: List[str] = Field(default_factory=list)

    @field_validator("roots", mode="before")
    @classmethod
    def _expand_roots(cls, values: List[str]) -> List[Path]:
        return [Path(v).expanduser().resolve() for v in values]

    @field_validator("include_extensions")
    @classmethod
    def _normalise_extensions(cls, values: List[str]) -> List[str]:
        return [v.lower() if v.startswith(".") else f".{v.lower()}" for v in values]


class WorkerSettings(BaseModel):
    concurrency: int = Field(default=4, ge=1)


class OutputSettings(BaseModel):
    json_lines: bool = Field(default=False, alias="json")
    include_binary: bool = False

    model_config = {"populate_by_name": True}


class Settings(BaseModel):
    library: LibrarySettings = LibrarySettings()
    workers: WorkerSettings = WorkerSettings()
    output: OutputSettings = OutputSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})

    def with_roots(self, roots: List[Path]) -> "Settings":
        if not roots:
            return self
        library = self.library.model_copy(
            update={"roots": [Path(r).expanduser().resolve() for r in roots]}
        )
        return self.model_copy(update={"library": library})


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        if not explicit_path.exists():
            raise FileNotFoundError(f"Config file {explicit_path} does not exist.")
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    return None


def load_settings(explicit_path: Optional[Path]) -> Settings:
    config_path = find_config(explicit_path)
    if config_path is None:
        return Settings()
    return Settings.load(config_path)
