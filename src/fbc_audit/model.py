"""
In-memory metabolic model and copy-free model variants.

`MetabolicModel` owns the reactions, metabolites, genes and named objectives.
Nothing in the package mutates it: every perturbation (objective switch, gene
knockout, bound change, added reaction, added constraint) produces a
`ModelVariant` that forwards reads to the base model and only stores the
overridden fields.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import Iterable, Mapping

from cobra.core import GPR

logger = logging.getLogger(__name__)


class ModelError(KeyError):
    """Raised when a model or variant is asked about an unknown identifier."""


@dataclass(frozen=True)
class Metabolite:
    id: str
    formula: str | None = None
    charge: int | None = None
    compartment: str | None = None
    name: str = ""
    annotation: Mapping[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class Reaction:
    id: str
    metabolites: Mapping[str, float]
    lower_bound: float = 0.0
    upper_bound: float = 1000.0
    gene_reaction_rule: str = ""
    name: str = ""
    annotation: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def boundary(self) -> bool:
        """Exchange, demand and sink reactions touch exactly one metabolite."""
        return sum(1 for c in self.metabolites.values() if c != 0) == 1

    @property
    def reactants(self) -> list[str]:
        return [m for m, c in self.metabolites.items() if c < 0]

    @property
    def products(self) -> list[str]:
        return [m for m, c in self.metabolites.items() if c > 0]


@dataclass(frozen=True)
class Gene:
    id: str
    name: str = ""
    annotation: Mapping[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class Objective:
    coefficients: Mapping[str, float]
    direction: str = "max"

    def __post_init__(self) -> None:
        if self.direction not in ("max", "min"):
            raise ValueError(f"Objective direction must be 'max' or 'min', got: {self.direction}")


@dataclass(frozen=True)
class LinearConstraint:
    """lower_bound <= sum(coefficient * flux) <= upper_bound; None means unbounded."""

    coefficients: Mapping[str, float]
    lower_bound: float | None = None
    upper_bound: float | None = None


def gene_ids_in_rule(rule: str) -> frozenset[str]:
    if not rule or not rule.strip():
        return frozenset()
    return frozenset(GPR.from_string(rule).genes)


def rule_is_functional(rule: str, knocked_out: Iterable[str]) -> bool:
    """Evaluate a gene-reaction rule with the given genes inactive."""
    if not rule or not rule.strip():
        return True
    return bool(GPR.from_string(rule).eval(set(knocked_out)))


class ModelView:
    """Read interface shared by the base model and its variants."""

    id: str

    @property
    def reactions(self) -> dict[str, Reaction]:
        raise NotImplementedError

    @property
    def metabolites(self) -> dict[str, Metabolite]:
        raise NotImplementedError

    @property
    def genes(self) -> dict[str, Gene]:
        raise NotImplementedError

    @property
    def objectives(self) -> dict[str, Objective]:
        raise NotImplementedError

    @property
    def objective(self) -> Objective:
        raise NotImplementedError

    @property
    def constraints(self) -> tuple[LinearConstraint, ...]:
        return ()

    def bounds(self, reaction_id: str) -> tuple[float, float]:
        raise NotImplementedError

    @property
    def reaction_ids(self) -> list[str]:
        return list(self.reactions)

    @property
    def gene_ids(self) -> list[str]:
        return list(self.genes)

    def reaction(self, reaction_id: str) -> Reaction:
        try:
            return self.reactions[reaction_id]
        except KeyError as e:
            raise ModelError(f"Reaction not found in model: {reaction_id}") from e

    def metabolite(self, metabolite_id: str) -> Metabolite:
        try:
            return self.metabolites[metabolite_id]
        except KeyError as e:
            raise ModelError(f"Metabolite not found in model: {metabolite_id}") from e

    def reaction_compartments(self, reaction_id: str) -> set[str | None]:
        mets = self.metabolites
        return {
            mets[m].compartment if m in mets else None
            for m in self.reaction(reaction_id).metabolites
        }

    # -- variant constructors -------------------------------------------------

    def _variant(self) -> ModelVariant:
        return ModelVariant(self)

    def with_objective(self, objective: Objective | str) -> ModelVariant:
        """Variant whose only active objective is `objective` (an Objective or a named one)."""
        if isinstance(objective, str):
            try:
                objective = self.objectives[objective]
            except KeyError as e:
                raise ModelError(f"Objective not found in model: {objective}") from e
        v = self._variant()
        v._objective = objective
        return v

    def with_bounds(self, reaction_id: str, lower_bound: float, upper_bound: float) -> ModelVariant:
        return self.with_bounds_map({reaction_id: (lower_bound, upper_bound)})

    def with_bounds_map(self, bounds: Mapping[str, tuple[float, float]]) -> ModelVariant:
        for rid in bounds:
            self.reaction(rid)
        v = self._variant()
        v._bounds = {**v._bounds, **{rid: (float(lb), float(ub)) for rid, (lb, ub) in bounds.items()}}
        return v

    def knockout_gene(self, gene_id: str) -> ModelVariant:
        if gene_id not in self.genes:
            raise ModelError(f"Gene not found in model: {gene_id}")
        v = self._variant()
        v._inactive_genes = v._inactive_genes | {gene_id}
        return v

    def with_reactions(self, *reactions: Reaction) -> ModelVariant:
        v = self._variant()
        v._extra_reactions = {**v._extra_reactions, **{r.id: r for r in reactions}}
        return v

    def with_constraint(self, constraint: LinearConstraint) -> ModelVariant:
        v = self._variant()
        v._constraints = v._constraints + (constraint,)
        return v


class MetabolicModel(ModelView):
    """
    Base model. The dictionaries passed in are owned by the model and must not
    be modified afterwards; variants share them.
    """

    def __init__(
        self,
        id: str,
        reactions: Iterable[Reaction] = (),
        metabolites: Iterable[Metabolite] = (),
        genes: Iterable[Gene] = (),
        objectives: Mapping[str, Objective] | None = None,
        default_objective: str | None = None,
        name: str = "",
    ) -> None:
        self.id = id
        self.name = name
        self._reactions = {r.id: r for r in reactions}
        self._metabolites = {m.id: m for m in metabolites}
        self._genes = {g.id: g for g in genes}
        self._objectives = dict(objectives or {})
        if default_objective is None and self._objectives:
            default_objective = next(iter(self._objectives))
        if default_objective is not None and default_objective not in self._objectives:
            raise ModelError(f"Objective not found in model: {default_objective}")
        self.default_objective = default_objective

        for r in self._reactions.values():
            missing = [m for m in r.metabolites if m not in self._metabolites]
            if missing:
                raise ModelError(f"Reaction {r.id} references unknown metabolites: {missing}")

    def __repr__(self) -> str:
        return (
            f"<MetabolicModel {self.id}: {len(self._reactions)} reactions, "
            f"{len(self._metabolites)} metabolites, {len(self._genes)} genes>"
        )

    @property
    def reactions(self) -> dict[str, Reaction]:
        return self._reactions

    @property
    def metabolites(self) -> dict[str, Metabolite]:
        return self._metabolites

    @property
    def genes(self) -> dict[str, Gene]:
        return self._genes

    @property
    def objectives(self) -> dict[str, Objective]:
        return self._objectives

    @property
    def objective(self) -> Objective:
        if self.default_objective is None:
            return Objective({})
        return self._objectives[self.default_objective]

    def bounds(self, reaction_id: str) -> tuple[float, float]:
        r = self.reaction(reaction_id)
        return float(r.lower_bound), float(r.upper_bound)

    @cached_property
    def gene_reactions(self) -> dict[str, list[str]]:
        """Gene id -> ids of reactions whose rule mentions it."""
        index: dict[str, list[str]] = {g: [] for g in self._genes}
        for r in self._reactions.values():
            for g in gene_ids_in_rule(r.gene_reaction_rule):
                index.setdefault(g, []).append(r.id)
        return index


class ModelVariant(ModelView):
    """
    Overlay on a MetabolicModel. Variants of variants are flattened, so every
    variant points directly at the base model and holds the merged overrides.
    """

    def __init__(self, parent: ModelView) -> None:
        if isinstance(parent, ModelVariant):
            self.base: MetabolicModel = parent.base
            self._objective = parent._objective
            self._bounds = parent._bounds
            self._inactive_genes = parent._inactive_genes
            self._extra_reactions = parent._extra_reactions
            self._constraints = parent._constraints
        elif isinstance(parent, MetabolicModel):
            self.base = parent
            self._objective: Objective | None = None
            self._bounds: dict[str, tuple[float, float]] = {}
            self._inactive_genes: frozenset[str] = frozenset()
            self._extra_reactions: dict[str, Reaction] = {}
            self._constraints: tuple[LinearConstraint, ...] = ()
        else:
            raise TypeError(f"Cannot derive a variant from {type(parent).__name__}")
        self.id = self.base.id

    def __repr__(self) -> str:
        return (
            f"<ModelVariant of {self.base.id}: bounds={len(self._bounds)}, "
            f"knockouts={sorted(self._inactive_genes)}, extra={list(self._extra_reactions)}>"
        )

    @property
    def reactions(self) -> dict[str, Reaction]:
        if not self._extra_reactions:
            return self.base.reactions
        return {**self.base.reactions, **self._extra_reactions}

    @property
    def metabolites(self) -> dict[str, Metabolite]:
        return self.base.metabolites

    @property
    def genes(self) -> dict[str, Gene]:
        return self.base.genes

    @property
    def objectives(self) -> dict[str, Objective]:
        return self.base.objectives

    @property
    def objective(self) -> Objective:
        return self._objective if self._objective is not None else self.base.objective

    @property
    def constraints(self) -> tuple[LinearConstraint, ...]:
        return self._constraints

    @property
    def inactive_genes(self) -> frozenset[str]:
        return self._inactive_genes

    def disabled_reactions(self) -> list[str]:
        """Reactions forced to zero flux by the knocked-out genes."""
        affected: list[str] = []
        for g in sorted(self._inactive_genes):
            for rid in self.base.gene_reactions.get(g, []):
                if rid in affected:
                    continue
                rule = self.base.reactions[rid].gene_reaction_rule
                if not rule_is_functional(rule, self._inactive_genes & gene_ids_in_rule(rule)):
                    affected.append(rid)
        return affected

    @cached_property
    def _knocked_out(self) -> frozenset[str]:
        return frozenset(self.disabled_reactions())

    def bounds(self, reaction_id: str) -> tuple[float, float]:
        if reaction_id in self._bounds:
            return self._bounds[reaction_id]
        if reaction_id in self._extra_reactions:
            r = self._extra_reactions[reaction_id]
            return float(r.lower_bound), float(r.upper_bound)
        if self._inactive_genes and reaction_id in self._knocked_out:
            return 0.0, 0.0
        return self.base.bounds(reaction_id)
