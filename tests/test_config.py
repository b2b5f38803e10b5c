from __future__ import annotations

import pytest

from pyequip.config import EquipConfig, normalize_script_url
from pyequip.exceptions import EquipConfigError


def test_from_env_reads_equip_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EQUIP_SCRIPT_URL", "https://script.example/macros/s/ABC/exec")
    monkeypatch.setenv("EQUIP_API_KEY", "secret")
    monkeypatch.setenv("EQUIP_POLL_INTERVAL", "15")
    monkeypatch.setenv("EQUIP_PENDING_TTL", "0")
    monkeypatch.setenv("EQUIP_API_TRACE_ENABLED", "yes")

    config = EquipConfig.from_env()

    assert config.api_key == "secret"
    assert config.poll_interval == 15.0
    assert config.pending_ttl == 0.0
    assert config.api_trace_enabled is True
    assert config.close_comment == "Devuelto Ok"
    assert config.removed_condition == "Devuelto"
    assert config.id_prefix == "GEN-"


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EQUIP_SCRIPT_URL", "https://script.example/macros/s/ABC/exec")
    monkeypatch.setenv("EQUIP_API_KEY", "secret")
    monkeypatch.setenv("EQUIP_REQUEST_TIMEOUT", "5")

    config = EquipConfig.from_env(api_key="other", request_timeout=9.0)

    assert config.api_key == "other"
    assert config.request_timeout == 9.0


def test_from_env_requires_url_and_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EQUIP_SCRIPT_URL", raising=False)
    monkeypatch.delenv("EQUIP_API_KEY", raising=False)

    with pytest.raises(EquipConfigError, match="script_url, api_key"):
        EquipConfig.from_env()


def test_from_env_rejects_non_numeric_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EQUIP_POLL_INTERVAL", "often")

    with pytest.raises(EquipConfigError):
        EquipConfig.from_env(script_url="https://x", api_key="k")


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(EquipConfigError):
        EquipConfig(script_url="https://x", api_key="k", poll_interval=0)
    with pytest.raises(EquipConfigError):
        EquipConfig(script_url="https://x", api_key="k", pending_ttl=-1)
    with pytest.raises(EquipConfigError):
        EquipConfig(script_url=" ", api_key="k")


def test_domain_scoped_script_urls_are_normalized() -> None:
    url = "https://script.google.com/a/macros/example.org/s/ABC/exec"

    assert normalize_script_url(url) == "https://script.google.com/macros/s/ABC/exec"
    assert EquipConfig(script_url=url, api_key="k").resolved_script_url == "https://script.google.com/macros/s/ABC/exec"
