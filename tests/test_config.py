import pytest

from dsefeed.core.config import Config
from dsefeed.core.errors import ConfigError


@pytest.fixture
def fresh_config():
    Config.reset()
    yield Config
    Config.reset()


def test_file_overrides_merge_over_defaults(fresh_config, tmp_path, monkeypatch):
    settings = tmp_path / "settings.yaml"
    settings.write_text("cache:\n  snapshot_ttl_seconds: 30\nfetcher:\n  timeout_seconds: 5\n")
    monkeypatch.setenv("DSEFEED_CONFIG", str(settings))

    assert fresh_config.get("cache", "snapshot_ttl_seconds") == 30
    assert fresh_config.get("cache", "directory_ttl_seconds") == 600
    assert fresh_config.get("fetcher", "timeout_seconds") == 5
    assert fresh_config.get("dse", "market_page") == "/latest_share_price_scroll_by_ltp.php"


def test_missing_keys_return_default(fresh_config, tmp_path, monkeypatch):
    monkeypatch.setenv("DSEFEED_CONFIG", str(tmp_path / "absent.yaml"))
    assert fresh_config.get("market", "timezone") == "Asia/Dhaka"
    assert fresh_config.get("market", "nope", default=7) == 7
    assert fresh_config.get("market", "timezone", "deeper", default="x") == "x"


def test_non_mapping_file_rejected(fresh_config, tmp_path, monkeypatch):
    settings = tmp_path / "settings.yaml"
    settings.write_text("- just\n- a list\n")
    monkeypatch.setenv("DSEFEED_CONFIG", str(settings))
    with pytest.raises(ConfigError):
        fresh_config.load()
