from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from fbc_audit import annotation, basic, biomass, consistency, metabolites
from fbc_audit.config import AuditConfig
from fbc_audit.io import save_table
from fbc_audit.model import ModelView
from fbc_audit.optimizer import Optimizer
from fbc_audit.screening import ScreeningPool

logger = logging.getLogger(__name__)

AUDIT_COLUMNS: tuple[str, ...] = ("category", "check", "passed", "n_items", "items")


@dataclass(frozen=True)
class AuditRow:
    category: str
    check: str
    passed: bool
    n_items: int
    items: str  # ";"-joined offending ids, empty if none


def _flatten(result: Any) -> list[str]:
    if isinstance(result, dict):
        out: list[str] = []
        for key, value in result.items():
            if isinstance(value, bool):
                if not value:
                    out.append(str(key))
            else:
                out.extend(f"{key}:{v}" for v in _flatten(value))
        return out
    if isinstance(result, (list, tuple, set, frozenset)):
        out = []
        for v in result:
            out.extend(sorted(v) if isinstance(v, (set, frozenset)) else [str(v)])
        return out
    return [str(result)]


def _row(category: str, check: str, passed: bool, items: Iterable[str] = ()) -> AuditRow:
    items = list(items)
    return AuditRow(category=category, check=check, passed=bool(passed), n_items=len(items), items=";".join(items))


def _listing(category: str, check: str, result: Any) -> AuditRow:
    items = _flatten(result)
    return _row(category, check, not items, items)


def run_audit(
    model: ModelView,
    optimizer: Optimizer,
    config: AuditConfig | None = None,
    pool: ScreeningPool | None = None,
) -> list[AuditRow]:
    """Run every model check and collect one row per check."""
    config = config or AuditConfig()
    rows: list[AuditRow] = []
    logger.info("Auditing model %s", model.id)

    rows.append(_listing("basic", "metabolites_without_compartment", basic.metabolites_without_compartment(model)))
    rows.append(_listing("basic", "reactions_with_invalid_bounds", basic.reactions_with_invalid_bounds(model)))
    rows.append(_listing("gpr", "reactions_without_gpr", basic.reactions_without_gpr(model)))
    rows.append(_listing("gpr", "reactions_transport_no_gpr", basic.reactions_transport_no_gpr(model)))

    rows.append(_row("consistency", "stoichiometrically_consistent", consistency.is_consistent(model, optimizer, config)))
    if not rows[-1].passed:
        unconserved = consistency.unconserved_metabolites(model, optimizer, config)
        rows[-1] = _row("consistency", "stoichiometrically_consistent", False, unconserved)
    cycles = consistency.find_energy_generating_cycles(model, optimizer, config=config)
    threshold = config.consistency.egc_threshold
    rows.append(
        _row(
            "consistency",
            "no_energy_generating_cycles",
            all(v is None or v <= threshold for v in cycles.values()),
            [name for name, v in cycles.items() if v is not None and v > threshold],
        )
    )
    rows.append(_listing("consistency", "reactions_mass_unbalanced", consistency.reactions_mass_unbalanced(model, config)))
    rows.append(
        _listing("consistency", "reactions_charge_unbalanced", consistency.reactions_charge_unbalanced(model, config))
    )

    rows.append(_listing("metabolite", "metabolites_no_formula", metabolites.metabolites_no_formula(model, config)))
    rows.append(_listing("metabolite", "metabolites_no_charge", metabolites.metabolites_no_charge(model)))
    rows.append(
        _listing("metabolite", "metabolites_duplicated_in_compartment", metabolites.metabolites_duplicated_in_compartment(model))
    )

    rows.append(_listing("annotation", "all_unannotated_metabolites", annotation.all_unannotated_metabolites(model)))
    rows.append(_listing("annotation", "all_unannotated_reactions", annotation.all_unannotated_reactions(model)))
    rows.append(_listing("annotation", "all_unannotated_genes", annotation.all_unannotated_genes(model)))
    rows.append(
        _listing("annotation", "metabolite_annotation_conformity", annotation.metabolite_annotation_conformity(model, config))
    )
    rows.append(
        _listing("annotation", "reaction_annotation_conformity", annotation.reaction_annotation_conformity(model, config))
    )
    rows.append(_listing("annotation", "gene_annotation_conformity", annotation.gene_annotation_conformity(model, config)))

    rows.append(_row("biomass", "model_has_biomass_reaction", bool(biomass.model_biomass_reactions(model, config))))
    rows.append(_row("biomass", "model_has_atpm_reaction", biomass.model_has_atpm_reaction(model, config)))
    rows.append(_listing("biomass", "atp_present_in_biomass", biomass.atp_present_in_biomass(model, config)))
    masses = biomass.model_biomass_molar_mass(model, config)
    rows.append(
        _row(
            "biomass",
            "biomass_is_consistent",
            biomass.model_biomass_is_consistent(model, config),
            [f"{rid}:{m:.6g}" for rid, m in masses.items()],
        )
    )
    rows.append(_row("biomass", "solves_in_default_medium", biomass.model_solves_in_default_medium(model, optimizer, config)))
    rows.append(
        _listing(
            "biomass",
            "blocked_biomass_precursors",
            biomass.find_blocked_biomass_precursors(model, optimizer, config, pool),
        )
    )
    rows.append(
        _listing(
            "biomass",
            "missing_essential_precursors",
            biomass.biomass_missing_essential_precursors(model, config),
        )
    )

    failed = [r.check for r in rows if not r.passed]
    logger.info("Audit done: %d checks, %d failed", len(rows), len(failed))
    return rows


def audit_table(rows: Iterable[AuditRow]) -> pd.DataFrame:
    return pd.DataFrame([asdict(r) for r in rows], columns=list(AUDIT_COLUMNS))


def write_audit_csv(rows: Iterable[AuditRow], out_path: str | Path) -> Path:
    return save_table(audit_table(rows), out_path, fmt="csv")
