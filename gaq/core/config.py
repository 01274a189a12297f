"""
Configuration parameters for GAQ.

Defines per-chain lock-up defaults, factory defaults, payload limits and
operational paths. Values come from the dataclass defaults, an optional JSON
file, and GAQ_* environment variables (a .env file is honoured), in that
order of precedence from lowest to highest.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

# Local development chain id (hardhat / anvil)
DEV_CHAIN_ID = 31337

# Lock-up periods in seconds, keyed by chain id
DEFAULT_LOCKUP_PERIODS: Dict[int, int] = {
    1: 7 * 24 * 60 * 60,       # mainnet: one week
    4: 10 * 60,                # rinkeby
    100: 3 * 24 * 60 * 60,     # xdai
    DEV_CHAIN_ID: 60,
}

FALLBACK_LOCKUP_PERIOD = 24 * 60 * 60

ENV_PREFIX = "GAQ_"


@dataclass
class GAQConfig:
    """Queue-wide configuration parameters"""

    # Chain
    chain_id: int = DEV_CHAIN_ID
    lockup_periods: Dict[int, int] = field(default_factory=lambda: dict(DEFAULT_LOCKUP_PERIODS))

    # Factory defaults
    default_min_shares: int = 1  # Shares required to accept a bid

    # Limits
    max_details_size: int = 1024  # Maximum opaque bid payload in bytes

    # Paths
    data_dir: Path = Path("~/.gaq")
    log_dir: Optional[Path] = None  # None = <data_dir>/logs
    db_name: str = "gaq.db"

    log_level: str = "WARNING"

    @property
    def lockup_period(self) -> int:
        """Lock-up period for the configured chain"""
        return self.lockup_for_chain(self.chain_id)

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def log_path(self) -> Path:
        return self.log_dir if self.log_dir is not None else self.data_dir / "logs"

    def lockup_for_chain(self, chain_id: int) -> int:
        return self.lockup_periods.get(chain_id, FALLBACK_LOCKUP_PERIOD)

    def ensure_dirs(self) -> None:
        """Create data and log directories"""
        self.data_dir.mkdir(exist_ok=True, parents=True)
        self.log_path.mkdir(exist_ok=True, parents=True)


class ConfigFile(BaseModel):
    """Schema of a JSON config file (and of GAQ_* overrides)"""

    model_config = ConfigDict(extra="forbid")

    chain_id: Optional[int] = Field(default=None, ge=0)
    lockup_periods: Optional[Dict[int, int]] = None
    default_min_shares: Optional[int] = Field(default=None, ge=0)
    max_details_size: Optional[int] = Field(default=None, ge=1)
    data_dir: Optional[Path] = None
    log_dir: Optional[Path] = None
    db_name: Optional[str] = None
    log_level: Optional[str] = Field(default=None, pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")


def _env_overrides() -> dict:
    """Collect GAQ_* variables as raw config values."""
    overrides = {}
    for name in ConfigFile.model_fields:
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is None:
            continue
        overrides[name] = json.loads(raw) if name == "lockup_periods" else raw
    return overrides


def load_config(config_path: Optional[str] = None, env_file: Optional[str] = None) -> GAQConfig:
    """
    Load configuration from file and environment, falling back to defaults.

    Args:
        config_path: Optional path to a JSON config file
        env_file: Optional .env file; the default lookup is used when None

    Returns:
        GAQConfig instance

    Raises:
        ValueError: if the file or an override fails validation
    """
    load_dotenv(dotenv_path=env_file, override=False)

    values = {}
    if config_path:
        values.update(json.loads(Path(config_path).read_text()))
    values.update(_env_overrides())

    try:
        parsed = ConfigFile.model_validate(values)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    config = GAQConfig()
    for name, value in parsed.model_dump(exclude_none=True).items():
        if name == "lockup_periods":
            config.lockup_periods.update(value)
        else:
            setattr(config, name, value)
    return config
