"""
Tests for configuration loading.
"""

import json
import os
from pathlib import Path

import pytest

from gaq.core.config import (
    DEFAULT_LOCKUP_PERIODS,
    DEV_CHAIN_ID,
    FALLBACK_LOCKUP_PERIOD,
    GAQConfig,
    load_config,
)


@pytest.fixture
def clean_env(tmp_path):
    """Strip GAQ_* variables and restore them afterwards."""
    saved = {k: v for k, v in os.environ.items() if k.startswith("GAQ_")}
    for key in saved:
        del os.environ[key]
    # Empty .env so no file elsewhere is picked up
    env_file = tmp_path / "empty.env"
    env_file.write_text("")
    yield env_file
    for key in [k for k in os.environ if k.startswith("GAQ_")]:
        del os.environ[key]
    os.environ.update(saved)


class TestDefaults:
    """Tests for built-in defaults."""

    def test_dev_chain_lockup(self):
        config = GAQConfig()
        assert config.chain_id == DEV_CHAIN_ID
        assert config.lockup_period == DEFAULT_LOCKUP_PERIODS[DEV_CHAIN_ID]

    def test_known_chains(self):
        config = GAQConfig()
        assert config.lockup_for_chain(1) == 7 * 24 * 60 * 60
        assert config.lockup_for_chain(4) == 600

    def test_unknown_chain_falls_back(self):
        assert GAQConfig(chain_id=999).lockup_period == FALLBACK_LOCKUP_PERIOD

    def test_instances_do_not_share_tables(self):
        a, b = GAQConfig(), GAQConfig()
        a.lockup_periods[1] = 1
        assert b.lockup_periods[1] == DEFAULT_LOCKUP_PERIODS[1]

    def test_ensure_dirs(self, tmp_path):
        config = GAQConfig(data_dir=tmp_path / "data", log_dir=tmp_path / "logs")
        config.ensure_dirs()
        assert config.data_dir.is_dir()
        assert config.log_dir.is_dir()
        assert config.db_path == tmp_path / "data" / "gaq.db"

    def test_logs_default_under_data_dir(self, tmp_path):
        config = GAQConfig(data_dir=tmp_path)
        config.ensure_dirs()
        assert config.log_path == tmp_path / "logs"
        assert config.log_path.is_dir()


class TestLoadConfig:
    """Tests for file and environment sources."""

    def test_no_sources_gives_defaults(self, clean_env):
        config = load_config(env_file=str(clean_env))
        assert config == GAQConfig()

    def test_json_file(self, clean_env, tmp_path):
        path = tmp_path / "gaq.json"
        path.write_text(json.dumps({
            "chain_id": 100,
            "lockup_periods": {"100": 120, "5": 30},
            "default_min_shares": 3,
            "data_dir": str(tmp_path / "d"),
        }))

        config = load_config(str(path), env_file=str(clean_env))

        assert config.chain_id == 100
        assert config.lockup_period == 120
        assert config.lockup_for_chain(5) == 30
        assert config.lockup_for_chain(1) == DEFAULT_LOCKUP_PERIODS[1]
        assert config.default_min_shares == 3
        assert config.data_dir == Path(tmp_path / "d")

    def test_env_overrides_file(self, clean_env, tmp_path):
        path = tmp_path / "gaq.json"
        path.write_text(json.dumps({"chain_id": 100, "log_level": "INFO"}))
        os.environ["GAQ_CHAIN_ID"] = "4"
        os.environ["GAQ_LOCKUP_PERIODS"] = '{"4": 5}'

        config = load_config(str(path), env_file=str(clean_env))

        assert config.chain_id == 4
        assert config.lockup_period == 5

    def test_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("GAQ_LOG_LEVEL=DEBUG\nGAQ_MAX_DETAILS_SIZE=64\n")

        config = load_config(env_file=str(env_file))

        assert config.log_level == "DEBUG"
        assert config.max_details_size == 64

    def test_process_env_beats_dotenv(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("GAQ_DB_NAME=from-file.db\n")
        os.environ["GAQ_DB_NAME"] = "from-env.db"

        assert load_config(env_file=str(env_file)).db_name == "from-env.db"

    def test_unknown_key_rejected(self, clean_env, tmp_path):
        path = tmp_path / "gaq.json"
        path.write_text(json.dumps({"lockup": 5}))
        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(str(path), env_file=str(clean_env))

    def test_bad_log_level_rejected(self, clean_env):
        os.environ["GAQ_LOG_LEVEL"] = "LOUD"
        with pytest.raises(ValueError):
            load_config(env_file=str(clean_env))

    def test_negative_min_shares_rejected(self, clean_env, tmp_path):
        path = tmp_path / "gaq.json"
        path.write_text(json.dumps({"default_min_shares": -1}))
        with pytest.raises(ValueError):
            load_config(str(path), env_file=str(clean_env))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
