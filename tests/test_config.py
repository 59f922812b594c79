from pathlib import Path

import pytest

from smb_ledger.config import default_app_config, load_app_config


def _write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "smb_ledger_config.toml"
    path.write_text(content, encoding="utf-8")
    return path


def test_load_app_config_full_file(tmp_path):
    path = _write_config(
        tmp_path,
        """
[business]
name = "Acme Consulting"
currency = "eur"
default_tax_rate = 20

[database]
engine = "sqlite"
path = "db/ledger.sqlite"

[invoices]
number_prefix = "F-"
strict_statuses = true

[dashboard]
recent_invoices = 10
recent_expenses = 4
activity_limit = 12

[display]
amount_decimals = 0

[logging]
level = "debug"
""",
    )

    cfg = load_app_config(str(path))

    assert cfg.business.name == "Acme Consulting"
    assert cfg.business.currency == "EUR"
    assert cfg.business.default_tax_rate == 20.0
    # Paths are resolved relative to the TOML file.
    assert cfg.database.path == (tmp_path / "db" / "ledger.sqlite").resolve()
    assert cfg.invoices.number_prefix == "F-"
    assert cfg.invoices.strict_statuses is True
    assert cfg.dashboard.recent_invoices == 10
    assert cfg.dashboard.recent_expenses == 4
    assert cfg.dashboard.activity_limit == 12
    assert cfg.amount_decimals == 0
    assert cfg.log_level == "DEBUG"


def test_load_app_config_defaults_for_missing_sections(tmp_path):
    cfg = load_app_config(str(_write_config(tmp_path, "")))

    assert cfg.business.currency == "USD"
    assert cfg.business.default_tax_rate == 0.0
    assert cfg.database.path == (tmp_path / "data/db/smb_ledger.sqlite").resolve()
    assert cfg.invoices.number_prefix == "INV-"
    assert cfg.invoices.strict_statuses is False
    assert (
        cfg.dashboard.recent_invoices,
        cfg.dashboard.recent_expenses,
        cfg.dashboard.activity_limit,
    ) == (5, 3, 8)
    assert cfg.log_level == "WARNING"


def test_default_app_config_matches_empty_file(tmp_path):
    from_file = load_app_config(str(_write_config(tmp_path, "")))
    default = default_app_config(from_file.database.path)
    assert default == from_file


@pytest.mark.parametrize(
    "content",
    [
        "[business]\ndefault_tax_rate = 150\n",
        "[business]\ndefault_tax_rate = \"lots\"\n",
        "[dashboard]\nactivity_limit = -1\n",
        "[logging]\nlevel = \"LOUD\"\n",
        "[database]\nengine = \"postgres\"\n",
        "[invoices]\nstrict_statuses = \"false\"\n",
        "[display]\namount_decimals = \"two\"\n",
        "[display]\namount_decimals = -1\n",
        "this is not = = toml",
    ],
)
def test_load_app_config_rejects_invalid_values(tmp_path, content):
    with pytest.raises(ValueError):
        load_app_config(str(_write_config(tmp_path, content)))


def test_load_app_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "nope.toml"))
