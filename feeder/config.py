# feeder/config.py
import re
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from feeder.environment.base import Coordinates
from feeder.errors import ConfigurationError


CONFIG_FILENAME = "feeder.yaml"


class PairingOffset(BaseModel):
    """Position of a fluid output relative to its item output."""
    x: int = 0
    y: int = 0
    z: int = 0

    def as_coordinates(self) -> Coordinates:
        return Coordinates(self.x, self.y, self.z)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FEEDER_",
        case_sensitive=False,
        extra="forbid",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "DEBUG"
    log_file: Optional[Path] = None
    log_json: bool = False

    # A renamed circuit_config_item labelled "C:{number}" reprograms the
    # output it is routed to and goes back to circuit_return_block.
    set_circuit_config: bool = True
    circuit_config_item: str = "minecraft:paper"
    circuit_return_block: Optional[str] = "ae2:interface"
    residual_item: str = "gtceu:programmed_circuit"

    # Where items/fluids are extracted from
    input_block_items: Optional[str] = "expatternprovider:ingredient_buffer"
    input_block_fluids: Optional[str] = "expatternprovider:ingredient_buffer"

    # Where items/fluids are inserted; regular expressions on the block id
    output_block_items: Optional[str] = r"^gtceu:.*input_bus.*$"
    output_block_fluids: Optional[str] = r"^gtceu:.*input_hatch.*$"

    output_pairing: bool = True
    output_fluids_pairing_offset: PairingOffset = Field(default_factory=PairingOffset)

    do_round_robin: bool = True

    retry_attempts: int = Field(default=60, ge=1)
    retry_backoff: bool = False
    retry_max_delay: float = Field(default=1.0, gt=0)

    bridge_url: str = "http://127.0.0.1:8020"
    bridge_timeout: float = Field(default=5.0, gt=0)

    metrics_enabled: bool = False
    metrics_port: int = 9108

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @field_validator("output_block_items", "output_block_fluids")
    @classmethod
    def _compiles(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"invalid output pattern {value!r}: {e}") from e
        return value

    @model_validator(mode="after")
    def _check_roles(self) -> "Settings":
        if self.input_block_items is None and self.input_block_fluids is None:
            raise ValueError(
                "At least one of input_block_fluids or input_block_items must be set"
            )
        if self.output_block_items is None and self.output_block_fluids is None:
            raise ValueError(
                "At least one of output_block_fluids or output_block_items must be set"
            )
        if self.set_circuit_config and not self.circuit_return_block:
            raise ValueError(
                "If set_circuit_config is true, circuit_return_block must be set"
            )

        singular = {
            "input_block_items": self.input_block_items,
            "input_block_fluids": self.input_block_fluids,
        }
        if self.set_circuit_config:
            singular["circuit_return_block"] = self.circuit_return_block
            if self.circuit_return_block in (self.input_block_items, self.input_block_fluids):
                raise ValueError(
                    f"circuit_return_block {self.circuit_return_block!r} is also an input block"
                )
        for key, identity in singular.items():
            if identity is None:
                continue
            for pattern in self.output_patterns():
                if re.search(pattern, identity):
                    raise ValueError(
                        f"{key} {identity!r} also matches output pattern {pattern!r}"
                    )
        return self

    def output_patterns(self):
        return [p for p in (self.output_block_items, self.output_block_fluids) if p is not None]

    @property
    def pairing_offset(self) -> Coordinates:
        return self.output_fluids_pairing_offset.as_coordinates()


def find_config_file(root: Path, name: str = CONFIG_FILENAME) -> Optional[Path]:
    """Search ``root`` and its subdirectories for the controller config file."""
    direct = root / name
    if direct.is_file():
        return direct
    for candidate in sorted(root.rglob(name)):
        if candidate.is_file():
            return candidate
    return None


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from a YAML file layered over environment defaults."""
    raw = {}
    if path is not None:
        try:
            with Path(path).open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Could not load {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigurationError(f"{path} must contain a mapping")

    try:
        return Settings(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


@lru_cache()
def get_settings() -> Settings:
    return load_settings(find_config_file(Path.cwd()))
