from __future__ import annotations

import logging

from fbc_audit.config import AuditConfig
from fbc_audit.formula import parse_formula
from fbc_audit.model import Metabolite, ModelView

logger = logging.getLogger(__name__)


def metabolites_medium_components(
    model: ModelView,
    only_imported: bool | None = None,
    config: AuditConfig | None = None,
) -> list[str]:
    """
    Metabolites the medium provides: those of boundary reactions that allow
    uptake (negative lower bound). With `only_imported`, boundary reactions that
    can also secrete (positive upper bound) are left out.
    """
    config = config or AuditConfig()
    if only_imported is None:
        only_imported = config.metabolite.medium_only_imported
    out = []
    for rid, r in model.reactions.items():
        if not r.boundary:
            continue
        lb, ub = model.bounds(rid)
        (mid, coef), = [(m, c) for m, c in r.metabolites.items() if c != 0]
        # uptake direction is the one that produces the metabolite
        uptake_possible = lb < 0 if coef < 0 else ub > 0
        secretion_possible = ub > 0 if coef < 0 else lb < 0
        if uptake_possible and not (only_imported and secretion_possible):
            out.append(mid)
    return list(dict.fromkeys(out))


def metabolites_no_formula(model: ModelView, config: AuditConfig | None = None) -> list[str]:
    """Metabolites with a missing, empty or unparseable formula."""
    config = config or AuditConfig()
    known = config.metabolite.known_elements
    return [mid for mid, m in model.metabolites.items() if parse_formula(m.formula, known) is None]


def metabolites_no_charge(model: ModelView) -> list[str]:
    return [mid for mid, m in model.metabolites.items() if m.charge is None]


def _strip_compartment(m: Metabolite) -> str:
    if m.compartment and m.id.endswith(f"_{m.compartment}"):
        return m.id[: -len(m.compartment) - 1]
    return m.id


def _unique_key(m: Metabolite) -> str:
    keys = m.annotation.get("inchi_key", ())
    return keys[0] if keys else _strip_compartment(m)


def metabolites_unique(model: ModelView) -> set[str]:
    """
    Compartment-independent metabolite identities: the first InChI key where
    annotated, otherwise the id without its compartment suffix.
    """
    return {_unique_key(m) for m in model.metabolites.values()}


def metabolites_duplicated_in_compartment(model: ModelView) -> list[set[str]]:
    """Groups of metabolites in the same compartment that share an InChI key."""
    groups: dict[tuple[str | None, str], set[str]] = {}
    for mid, m in model.metabolites.items():
        for key in m.annotation.get("inchi_key", ())[:1]:
            groups.setdefault((m.compartment, key), set()).add(mid)
    duplicates = [ids for ids in groups.values() if len(ids) > 1]
    for ids in duplicates:
        logger.debug("Duplicated metabolites: %s", sorted(ids))
    return duplicates
