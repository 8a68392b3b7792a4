"""
Screening engine: one independent LP per perturbation, distributed with joblib.

A perturbation derives its own variant from the shared base model and the task
returns a single objective value (or None when the variant has no optimal
solution). joblib returns results in submission order, so the output list lines
up with the input perturbations regardless of the number of workers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence, TypeVar, Union

from joblib import Parallel, delayed, effective_n_jobs

from fbc_audit.model import LinearConstraint, ModelVariant, ModelView, Objective
from fbc_audit.optimizer import Optimizer

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ScreeningPool:
    """
    Worker pool settings passed explicitly to every screen.

    n_jobs:
        joblib worker count; 1 runs sequentially in the calling process.
    backend:
        joblib backend ("loky", "threading" or "multiprocessing").
    """

    n_jobs: int = 1
    backend: str = "loky"

    def map(self, func: Callable[[T], R], items: Sequence[T]) -> list[R]:
        if self.n_jobs == 1 or len(items) <= 1:
            return [func(item) for item in items]
        return list(Parallel(n_jobs=self.n_jobs, backend=self.backend)(delayed(func)(item) for item in items))

    def batches(self, items: Sequence[T]) -> list[Sequence[T]]:
        """Split `items` into contiguous slices, one per worker."""
        if not items:
            return []
        n = max(1, min(effective_n_jobs(self.n_jobs), len(items)))
        size = -(-len(items) // n)
        return [items[i : i + size] for i in range(0, len(items), size)]


SEQUENTIAL = ScreeningPool(n_jobs=1)


@dataclass(frozen=True)
class GeneKnockout:
    gene_id: str

    def apply(self, model: ModelView) -> ModelVariant:
        return model.knockout_gene(self.gene_id)


@dataclass(frozen=True)
class ReactionKnockout:
    """Fix a reaction's bounds; the default (0, 0) removes the reaction."""

    reaction_id: str
    lower_bound: float = 0.0
    upper_bound: float = 0.0

    def apply(self, model: ModelView) -> ModelVariant:
        return model.with_bounds(self.reaction_id, self.lower_bound, self.upper_bound)


def objective_bounds(optimum: float, fraction: float, direction: str) -> tuple[float | None, float | None]:
    """Bounds on the objective that keep at least `fraction` of `optimum`."""
    if direction == "max":
        return (optimum * fraction if optimum >= 0 else optimum / fraction), None
    return None, (optimum / fraction if optimum >= 0 else optimum * fraction)


@dataclass(frozen=True)
class FluxVariability:
    """Minimise or maximise one reaction while the active objective keeps `fraction` of `optimum`."""

    reaction_id: str
    direction: str
    optimum: float
    fraction: float = 1.0

    def apply(self, model: ModelView) -> ModelVariant:
        objective = model.objective
        lb, ub = objective_bounds(self.optimum, self.fraction, objective.direction)
        return model.with_constraint(
            LinearConstraint(objective.coefficients, lower_bound=lb, upper_bound=ub)
        ).with_objective(Objective({self.reaction_id: 1.0}, self.direction))


Perturbation = Union[GeneKnockout, ReactionKnockout, FluxVariability]


@dataclass(frozen=True)
class _Task:
    model: ModelView
    optimizer: Optimizer

    def __call__(self, batch: Sequence[Perturbation]) -> list[float | None]:
        return [self.optimizer.objective_value(p.apply(self.model)) for p in batch]


def screen(
    model: ModelView,
    optimizer: Optimizer,
    perturbations: Iterable[Perturbation],
    pool: ScreeningPool | None = None,
) -> list[float | None]:
    """
    Solve one LP per perturbation.

    Returns one entry per perturbation, in input order: the optimal objective
    value, or None when that perturbation's LP is infeasible. Backend failures
    propagate as OptimizationError.
    """
    pool = pool or SEQUENTIAL
    items = list(perturbations)
    logger.debug("Screening %d perturbations (n_jobs=%d)", len(items), pool.n_jobs)
    if pool.n_jobs != 1:
        # build the gene index once here; workers receive it with the pickled model
        (model.base if isinstance(model, ModelVariant) else model).gene_reactions
    batches = pool.map(_Task(model, optimizer), pool.batches(items))
    return [value for batch in batches for value in batch]


def gene_knockouts(
    model: ModelView,
    optimizer: Optimizer,
    gene_ids: Iterable[str] | None = None,
    pool: ScreeningPool | None = None,
) -> list[float | None]:
    gene_ids = model.gene_ids if gene_ids is None else list(gene_ids)
    return screen(model, optimizer, [GeneKnockout(g) for g in gene_ids], pool)


def reaction_knockouts(
    model: ModelView,
    optimizer: Optimizer,
    reaction_ids: Iterable[str] | None = None,
    pool: ScreeningPool | None = None,
) -> list[float | None]:
    reaction_ids = model.reaction_ids if reaction_ids is None else list(reaction_ids)
    return screen(model, optimizer, [ReactionKnockout(r) for r in reaction_ids], pool)


def flux_variability(
    model: ModelView,
    optimizer: Optimizer,
    optimum: float,
    reaction_ids: Iterable[str] | None = None,
    fraction: float = 1.0,
    pool: ScreeningPool | None = None,
) -> list[tuple[float | None, float | None]]:
    """
    Flux variability of each reaction with the active objective held at
    `fraction` of `optimum`. Returns (minimum, maximum) per reaction in order.
    """
    if not (0.0 < float(fraction) <= 1.0):
        raise ValueError("fraction must be in (0, 1].")
    reaction_ids = model.reaction_ids if reaction_ids is None else list(reaction_ids)
    perturbations: list[Perturbation] = []
    for rid in reaction_ids:
        perturbations.append(FluxVariability(rid, "min", optimum, fraction))
        perturbations.append(FluxVariability(rid, "max", optimum, fraction))
    values = screen(model, optimizer, perturbations, pool)
    return list(zip(values[0::2], values[1::2]))
