from __future__ import annotations

import json
from pathlib import Path

import pytest

from fbc_audit.config import AuditConfig, ConfigError, audit_config_from_dict, load_audit_config, load_config

ROOT = Path(__file__).resolve().parents[1]


def test_load_config_yaml_and_json(tmp_path: Path) -> None:
    y = tmp_path / "a.yaml"
    y.write_text("tolerance:\n  absolute_tolerance: 1.0e-3\n", encoding="utf-8")
    assert load_config(y) == {"tolerance": {"absolute_tolerance": 1e-3}}

    j = tmp_path / "a.json"
    j.write_text(json.dumps({"biomass": {"atpm_reactions": ["NGAM"]}}), encoding="utf-8")
    assert load_config(j) == {"biomass": {"atpm_reactions": ["NGAM"]}}

    empty = tmp_path / "empty.yml"
    empty.write_text("", encoding="utf-8")
    assert load_config(empty) == {}


def test_load_config_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")
    bad_ext = tmp_path / "a.toml"
    bad_ext.write_text("", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(bad_ext)
    not_mapping = tmp_path / "list.yaml"
    not_mapping.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(not_mapping)


def test_defaults() -> None:
    cfg = load_audit_config()
    assert cfg == AuditConfig()
    assert cfg.tolerance.absolute_tolerance == 1e-6
    assert cfg.tolerance.relative_tolerance == 1e-4
    assert "ATP" in cfg.consistency.energy_dissipating_reactions
    assert cfg.consistency.energy_dissipating_reactions["ATP"] == {
        "atp_c": -1.0,
        "h2o_c": -1.0,
        "adp_c": 1.0,
        "pi_c": 1.0,
        "h_c": 1.0,
    }


def test_partial_overlay_keeps_other_defaults() -> None:
    cfg = audit_config_from_dict(
        {
            "consistency": {"ignored_energy_reactions": ["ATPM"], "egc_threshold": "1e-4"},
            "biomass": {"atpm_reactions": ["NGAM"]},
        }
    )
    assert cfg.consistency.ignored_energy_reactions == ("ATPM",)
    assert cfg.consistency.egc_threshold == 1e-4
    assert cfg.biomass.atpm_reactions == ("NGAM",)
    assert cfg.biomass.sbo_term == "SBO:0000629"
    assert cfg.tolerance == AuditConfig().tolerance


@pytest.mark.parametrize(
    "data",
    [
        {"nope": {}},
        {"tolerance": {"nope": 1}},
        {"tolerance": [1, 2]},
        {"tolerance": {"absolute_tolerance": "tiny"}},
        {"biomass": {"atpm_reactions": "ATPM"}},
    ],
)
def test_invalid_configs(data) -> None:
    with pytest.raises(ConfigError):
        audit_config_from_dict(data)


def test_shipped_default_config_matches_code_defaults() -> None:
    cfg = load_audit_config(ROOT / "configs" / "audit_default.yaml")
    assert cfg.tolerance == AuditConfig().tolerance
    assert cfg.consistency.egc_threshold == AuditConfig().consistency.egc_threshold
    assert cfg.biomass.growth_reactants == AuditConfig().biomass.growth_reactants
