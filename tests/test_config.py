from pathlib import Path

import pytest

from event_ledger.config import TOKEN_ENV_VAR, load_app_config


def test_defaults_when_default_file_is_absent(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)

    config = load_app_config()

    assert config.ledger.local_currency == "ARS"
    assert config.backend.collection_path == "/api/contabilidad"
    assert config.backend.token is None
    assert config.backend.per_page == 500
    assert config.exchange_rate.timeout == 10.0
    assert config.display.mode == "table"
    assert config.display.output_dir == (tmp_path / "data/output").resolve()
    assert config.log_level == "INFO"


def test_explicit_missing_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "nope.toml"))


def test_full_config_is_parsed(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv(TOKEN_ENV_VAR, "from-env")
    cfg = tmp_path / "conf" / "ledger.toml"
    cfg.parent.mkdir()
    cfg.write_text(
        """
[ledger]
local_currency = "ars"
foreign_currency = "usd"

[backend]
base_url = "https://dash.example"
token = "from-file"
per_page = 200
timeout = 5

[exchange_rate]
url = "https://rates.example/blue"

[display]
mode = "BOTH"
output_dir = "exports"

[logging]
level = "debug"
""",
        encoding="utf-8",
    )

    config = load_app_config(str(cfg))

    assert config.ledger.local_currency == "ARS"
    assert config.backend.base_url == "https://dash.example"
    assert config.backend.token == "from-file"
    assert config.backend.per_page == 200
    assert config.backend.timeout == 5.0
    assert config.exchange_rate.url == "https://rates.example/blue"
    assert config.display.mode == "both"
    assert config.display.output_dir == Path(cfg.parent / "exports").resolve()
    assert config.log_level == "DEBUG"


def test_token_falls_back_to_environment(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv(TOKEN_ENV_VAR, "from-env")
    cfg = tmp_path / "ledger.toml"
    cfg.write_text('[backend]\ntoken = ""\n', encoding="utf-8")

    assert load_app_config(str(cfg)).backend.token == "from-env"


@pytest.mark.parametrize(
    "content",
    [
        "[display]\nmode = 'pdf'\n",
        "[backend]\nper_page = 0\n",
        "[backend]\ntimeout = 'soon'\n",
        "[logging]\nlevel = 'LOUD'\n",
        "backend = 3\n",
        "[ledger\n",
    ],
)
def test_invalid_values_raise_value_error(tmp_path, content) -> None:
    cfg = tmp_path / "ledger.toml"
    cfg.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError):
        load_app_config(str(cfg))
