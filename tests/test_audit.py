from __future__ import annotations

from pathlib import Path

import pandas as pd

from conftest import build_toy_model, replace_reaction, toy_reactions
from fbc_audit.audit import AUDIT_COLUMNS, audit_table, run_audit, write_audit_csv
from fbc_audit.model import MetabolicModel, Reaction
from fbc_audit.optimizer import Optimizer


def _by_check(rows):
    return {r.check: r for r in rows}


def test_run_audit_on_toy_model(toy_model: MetabolicModel, optimizer: Optimizer) -> None:
    rows = _by_check(run_audit(toy_model, optimizer))
    assert rows["stoichiometrically_consistent"].passed
    assert rows["no_energy_generating_cycles"].passed
    assert rows["reactions_mass_unbalanced"].passed
    assert rows["reactions_charge_unbalanced"].passed
    assert rows["model_has_atpm_reaction"].passed
    assert rows["solves_in_default_medium"].passed
    assert rows["blocked_biomass_precursors"].passed

    assert not rows["biomass_is_consistent"].passed
    assert rows["biomass_is_consistent"].items.startswith("BIOMASS:")
    assert not rows["reactions_transport_no_gpr"].passed
    assert rows["reactions_transport_no_gpr"].items == "H2Ot;H2t"
    assert rows["metabolite_annotation_conformity"].items == "kegg.compound:pyr_c"


def test_run_audit_reports_offenders(optimizer: Optimizer) -> None:
    model = build_toy_model(
        reactions=replace_reaction(toy_reactions(), Reaction("Ht", {"h_e": -1, "h_c": 1}, -1000.0, 1000.0, "g_ht"))
    )
    rows = _by_check(run_audit(model, optimizer))
    egc = rows["no_energy_generating_cycles"]
    assert not egc.passed
    assert egc.items == "ATP"
    assert egc.n_items == 1


def test_write_audit_csv(toy_model: MetabolicModel, optimizer: Optimizer, tmp_path: Path) -> None:
    rows = run_audit(toy_model, optimizer)
    table = audit_table(rows)
    assert list(table.columns) == list(AUDIT_COLUMNS)
    assert len(table) == len(rows)

    p = write_audit_csv(rows, tmp_path / "audit.csv")
    back = pd.read_csv(p)
    assert list(back["check"]) == [r.check for r in rows]
