from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from fbc_audit.config import AuditConfig
from fbc_audit.formula import molar_mass
from fbc_audit.model import ModelVariant, ModelView, Objective, Reaction
from fbc_audit.optimizer import Optimizer
from fbc_audit.screening import ScreeningPool, screen

logger = logging.getLogger(__name__)


def is_biomass_reaction(reaction: Reaction, config: AuditConfig | None = None) -> bool:
    """Biomass reactions are recognised by id pattern or by their SBO term."""
    config = config or AuditConfig()
    if re.search(config.biomass.id_pattern, reaction.id):
        return True
    return config.biomass.sbo_term in reaction.annotation.get("sbo", ())


def model_biomass_reactions(model: ModelView, config: AuditConfig | None = None) -> list[str]:
    return [rid for rid, r in model.reactions.items() if is_biomass_reaction(r, config)]


def model_has_atpm_reaction(model: ModelView, config: AuditConfig | None = None) -> bool:
    """
    True if a known ATP maintenance reaction id exists, or any internal reaction
    has exactly the ATP hydrolysis reactants and products.
    """
    config = config or AuditConfig()
    if any(rid in model.reactions for rid in config.biomass.atpm_reactions):
        return True
    reactants = set(config.biomass.growth_reactants)
    products = set(config.biomass.growth_products)
    return any(
        set(r.reactants) == reactants and set(r.products) == products
        for r in model.reactions.values()
        if not is_biomass_reaction(r, config)
    )


def atp_present_in_biomass(model: ModelView, config: AuditConfig | None = None) -> dict[str, bool]:
    """Per biomass reaction: does it carry the growth-associated maintenance (ATP hydrolysis) terms?"""
    config = config or AuditConfig()
    out = {}
    for rid in model_biomass_reactions(model, config):
        r = model.reactions[rid]
        out[rid] = set(config.biomass.growth_reactants) <= set(r.reactants) and set(
            config.biomass.growth_products
        ) <= set(r.products)
    return out


def model_biomass_molar_mass(model: ModelView, config: AuditConfig | None = None) -> dict[str, float]:
    """
    Molar mass of one unit of each biomass reaction in g/mmol. Metabolites
    without a usable formula do not contribute.
    """
    out = {}
    for rid in model_biomass_reactions(model, config):
        total = 0.0
        for mid, coef in model.reactions[rid].metabolites.items():
            mw = molar_mass(model.metabolites[mid].formula)
            if mw is None:
                logger.warning("Biomass %s: metabolite %s has no usable formula", rid, mid)
                continue
            total -= coef * mw
        out[rid] = total / 1000.0
    return out


def model_biomass_is_consistent(model: ModelView, config: AuditConfig | None = None) -> bool:
    """Every biomass reaction must produce 1 g/mmol of biomass, within tolerance."""
    config = config or AuditConfig()
    masses = model_biomass_molar_mass(model, config)
    tol = config.biomass.molar_mass_tolerance
    return bool(masses) and all(abs(m - 1.0) <= tol for m in masses.values())


def model_solves_in_default_medium(
    model: ModelView, optimizer: Optimizer, config: AuditConfig | None = None
) -> bool:
    """Each biomass reaction (or the model objective if there is none) can carry positive flux."""
    config = config or AuditConfig()
    threshold = config.biomass.growth_threshold
    biomass = model_biomass_reactions(model, config)
    views = [model.with_objective(Objective({rid: 1.0}, "max")) for rid in biomass] or [model]
    for view in views:
        value = optimizer.objective_value(view)
        if value is None or value <= threshold:
            return False
    return True


@dataclass(frozen=True)
class DemandReaction:
    """Perturbation adding a demand for one metabolite and maximising it."""

    metabolite_id: str

    def apply(self, model: ModelView) -> ModelVariant:
        rid = f"DM_{self.metabolite_id}"
        demand = Reaction(id=rid, metabolites={self.metabolite_id: -1.0}, lower_bound=0.0, upper_bound=1000.0)
        return model.with_reactions(demand).with_objective(Objective({rid: 1.0}, "max"))


def biomass_precursors(model: ModelView, reaction_id: str, config: AuditConfig | None = None) -> list[str]:
    """Reactants of a biomass reaction other than the growth-associated ATP hydrolysis terms."""
    config = config or AuditConfig()
    skip = set(config.biomass.growth_reactants)
    return [m for m in model.reaction(reaction_id).reactants if m not in skip]


def find_blocked_biomass_precursors(
    model: ModelView,
    optimizer: Optimizer,
    config: AuditConfig | None = None,
    pool: ScreeningPool | None = None,
) -> dict[str, list[str]]:
    """
    Per biomass reaction, the precursors that cannot be produced under the
    model's current bounds (demand reaction infeasible or without flux).
    """
    config = config or AuditConfig()
    threshold = config.biomass.growth_threshold
    out = {}
    for rid in model_biomass_reactions(model, config):
        precursors = biomass_precursors(model, rid, config)
        values = screen(model, optimizer, [DemandReaction(m) for m in precursors], pool)
        out[rid] = [m for m, v in zip(precursors, values) if v is None or v <= threshold]
        if out[rid]:
            logger.info("Biomass %s: blocked precursors %s", rid, out[rid])
    return out


def biomass_missing_essential_precursors(
    model: ModelView, config: AuditConfig | None = None
) -> dict[str, list[str]]:
    config = config or AuditConfig()
    out = {}
    for rid in model_biomass_reactions(model, config):
        reactants = set(model.reactions[rid].reactants)
        out[rid] = [m for m in config.biomass.essential_precursors if m not in reactants]
    return out
