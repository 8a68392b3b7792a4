"""
Structural and thermodynamic consistency of a metabolic model.

- `is_consistent`: stoichiometric (mass) consistency, i.e. whether a strictly
  positive conserved quantity can be assigned to every metabolite so that every
  internal reaction conserves it.
- `has_no_erroneous_energy_cycles`: whether the model, with all exchanges closed,
  can still drive energy-dissipating reactions (ATP hydrolysis etc.).
- `reactions_mass_unbalanced` / `reactions_charge_unbalanced`: formula and
  charge bookkeeping over internal reactions.
"""
from __future__ import annotations

import logging
from typing import Iterable

from optlang.symbolics import Zero

from fbc_audit.biomass import is_biomass_reaction
from fbc_audit.config import AuditConfig
from fbc_audit.formula import parse_formula
from fbc_audit.model import ModelVariant, ModelView, Objective, Reaction
from fbc_audit.optimizer import OptimizationError, Optimizer

logger = logging.getLogger(__name__)


def _internal_reactions(model: ModelView, config: AuditConfig) -> list[Reaction]:
    """Reactions expected to conserve mass: not boundary, not biomass, not listed as unbalanced."""
    skip = set(config.consistency.mass_unbalanced_reactions)
    return [
        r
        for r in model.reactions.values()
        if not r.boundary and r.id not in skip and not is_biomass_reaction(r, config)
    ]


def _add_mass_balances(problem, iface, masses: dict, reactions: list[Reaction]) -> None:
    constraints = []
    coefficients = []
    for r in reactions:
        coefs = {masses[m]: float(c) for m, c in r.metabolites.items() if c}
        if not coefs:
            continue
        constraints.append(iface.Constraint(Zero, lb=0, ub=0, name=r.id))
        coefficients.append(coefs)
    problem.add(constraints)
    problem.update()
    for con, coefs in zip(constraints, coefficients):
        con.set_linear_coefficients(coefs)


def is_consistent(model: ModelView, optimizer: Optimizer, config: AuditConfig | None = None) -> bool:
    """
    Check stoichiometric consistency.

    Solves min sum(m) subject to m >= 1 and S_internal^T m = 0. The model is
    consistent iff this LP is feasible.
    """
    config = config or AuditConfig()
    reactions = _internal_reactions(model, config)
    metabolite_ids = list(dict.fromkeys(m for r in reactions for m in r.metabolites))

    iface = optimizer.interface
    problem = optimizer.new_problem()
    masses = {mid: iface.Variable(f"m_{i}", lb=1) for i, mid in enumerate(metabolite_ids)}
    problem.add(list(masses.values()))
    _add_mass_balances(problem, iface, masses, reactions)
    problem.objective = iface.Objective(Zero, direction="min", sloppy=True)
    problem.objective.set_linear_coefficients({v: 1.0 for v in masses.values()})

    logger.info(
        "Checking stoichiometric consistency: n_reactions=%d, n_metabolites=%d",
        len(reactions),
        len(metabolite_ids),
    )
    consistent = optimizer.solve_problem(problem) is not None
    if not consistent:
        logger.info("Model %s is stoichiometrically inconsistent", model.id)
    return consistent


def unconserved_metabolites(
    model: ModelView, optimizer: Optimizer, config: AuditConfig | None = None
) -> list[str]:
    """
    Metabolites that cannot carry a positive conserved quantity.

    Maximises sum(z) with 0 <= z <= 1, m >= z, m >= 0 and S_internal^T m = 0;
    metabolites left with z = 0 are reported.
    """
    config = config or AuditConfig()
    reactions = _internal_reactions(model, config)
    metabolite_ids = list(dict.fromkeys(m for r in reactions for m in r.metabolites))

    iface = optimizer.interface
    problem = optimizer.new_problem()
    masses = {mid: iface.Variable(f"m_{i}", lb=0) for i, mid in enumerate(metabolite_ids)}
    indicators = {mid: iface.Variable(f"z_{i}", lb=0, ub=1) for i, mid in enumerate(metabolite_ids)}
    problem.add(list(masses.values()) + list(indicators.values()))

    links = [iface.Constraint(masses[mid] - indicators[mid], lb=0) for mid in metabolite_ids]
    problem.add(links)
    _add_mass_balances(problem, iface, masses, reactions)
    problem.objective = iface.Objective(Zero, direction="max", sloppy=True)
    problem.objective.set_linear_coefficients({v: 1.0 for v in indicators.values()})

    if optimizer.solve_problem(problem) is None:
        raise OptimizationError("Conserved-quantity LP has no optimal solution")
    return [mid for mid in metabolite_ids if indicators[mid].primal < 0.5]


def closed_system(model: ModelView, ignored_reactions: Iterable[str] = ()) -> ModelVariant:
    """
    Variant with every boundary reaction outside `ignored_reactions` closed and
    every forced flux (positive lower or negative upper bound) of the remaining
    reactions relaxed to include zero.
    """
    ignored = set(ignored_reactions)
    overrides: dict[str, tuple[float, float]] = {}
    for rid, rxn in model.reactions.items():
        if rid in ignored:
            continue
        lb, ub = model.bounds(rid)
        if rxn.boundary:
            overrides[rid] = (0.0, 0.0)
        elif lb > 0 or ub < 0:
            overrides[rid] = (min(lb, 0.0), max(ub, 0.0))
    return model.with_bounds_map(overrides)


def find_energy_generating_cycles(
    model: ModelView,
    optimizer: Optimizer,
    ignored_reactions: Iterable[str] | None = None,
    config: AuditConfig | None = None,
) -> dict[str, float | None]:
    """
    Maximise each applicable energy-dissipation reaction in the closed system.

    Returns dissipation name -> optimal flux (None if the closed LP is infeasible).
    Dissipation reactions whose metabolites are not all in the model are skipped.
    """
    config = config or AuditConfig()
    if ignored_reactions is None:
        ignored_reactions = config.consistency.ignored_energy_reactions
    closed = closed_system(model, ignored_reactions)

    out: dict[str, float | None] = {}
    for name, stoichiometry in config.consistency.energy_dissipating_reactions.items():
        missing = [m for m in stoichiometry if m not in model.metabolites]
        if missing:
            logger.debug("Skipping %s dissipation, metabolites not in model: %s", name, missing)
            continue
        rid = f"EGC_{name}"
        dissipation = Reaction(id=rid, metabolites=dict(stoichiometry), lower_bound=0.0, upper_bound=1000.0)
        variant = closed.with_reactions(dissipation).with_objective(Objective({rid: 1.0}, "max"))
        value = optimizer.objective_value(variant)
        out[name] = value
        if value is not None and value > config.consistency.egc_threshold:
            logger.info("Energy-generating cycle for %s: max flux=%.6g", name, value)
    if not out:
        logger.warning("No energy-dissipation reaction applicable to model %s", model.id)
    return out


def has_no_erroneous_energy_cycles(
    model: ModelView,
    optimizer: Optimizer,
    ignored_reactions: Iterable[str] | None = None,
    config: AuditConfig | None = None,
) -> bool:
    config = config or AuditConfig()
    results = find_energy_generating_cycles(model, optimizer, ignored_reactions, config)
    threshold = config.consistency.egc_threshold
    return all(v is None or v <= threshold for v in results.values())


def reactions_mass_unbalanced(model: ModelView, config: AuditConfig | None = None) -> list[str]:
    """Internal reactions whose element counts do not cancel, or with unparseable formulas."""
    config = config or AuditConfig()
    known = config.metabolite.known_elements
    out = []
    for r in _internal_reactions(model, config):
        total: dict[str, float] = {}
        balanced = True
        for mid, coef in r.metabolites.items():
            counts = parse_formula(model.metabolites[mid].formula, known)
            if counts is None:
                balanced = False
                break
            for element, n in counts.items():
                total[element] = total.get(element, 0.0) + coef * n
        if not balanced or any(abs(v) > 1e-9 for v in total.values()):
            out.append(r.id)
    return out


def reactions_charge_unbalanced(model: ModelView, config: AuditConfig | None = None) -> list[str]:
    """Internal reactions whose charges do not cancel, or with a participant lacking a charge."""
    config = config or AuditConfig()
    out = []
    for r in _internal_reactions(model, config):
        charges = [model.metabolites[mid].charge for mid in r.metabolites]
        if any(c is None for c in charges):
            out.append(r.id)
            continue
        if abs(sum(coef * c for coef, c in zip(r.metabolites.values(), charges))) > 1e-9:
            out.append(r.id)
    return out
