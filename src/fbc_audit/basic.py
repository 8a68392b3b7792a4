from __future__ import annotations

from fbc_audit.model import ModelView, gene_ids_in_rule


def model_compartments(model: ModelView) -> list[str]:
    return sorted({m.compartment for m in model.metabolites.values() if m.compartment})


def metabolites_without_compartment(model: ModelView) -> list[str]:
    return [mid for mid, m in model.metabolites.items() if not m.compartment]


def reactions_with_invalid_bounds(model: ModelView) -> list[str]:
    out = []
    for rid in model.reaction_ids:
        lb, ub = model.bounds(rid)
        if lb > ub:
            out.append(rid)
    return out


def reactions_without_gpr(model: ModelView) -> list[str]:
    """Internal reactions without a gene-reaction rule."""
    return [
        rid for rid, r in model.reactions.items() if not r.boundary and not r.gene_reaction_rule.strip()
    ]


def reactions_with_complexes(model: ModelView) -> list[str]:
    """Reactions whose rule requires several gene products at once (an 'and' clause)."""
    out = []
    for rid, r in model.reactions.items():
        rule = r.gene_reaction_rule
        if len(gene_ids_in_rule(rule)) > 1 and " and " in f" {rule.lower()} ":
            out.append(rid)
    return out


def is_transport_reaction(model: ModelView, reaction_id: str) -> bool:
    r = model.reaction(reaction_id)
    return not r.boundary and len(model.reaction_compartments(reaction_id)) > 1


def reactions_transport_no_gpr(model: ModelView) -> list[str]:
    return [
        rid
        for rid, r in model.reactions.items()
        if is_transport_reaction(model, rid) and not r.gene_reaction_rule.strip()
    ]
