"""
Optimizer adapter: builds an optlang LP from a model view and solves it.

Every call builds a fresh problem, so one `Optimizer` can be shared by many
workers solving different variants of the same base model at the same time.
Non-optimal outcomes (infeasible, unbounded, time limit) are reported as None;
exceptions raised by the backend are wrapped in OptimizationError.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

import optlang
from optlang.interface import OPTIMAL
from optlang.symbolics import Zero

from fbc_audit.model import ModelView

logger = logging.getLogger(__name__)


class OptimizationError(RuntimeError):
    """Raised when the LP backend fails (as opposed to reporting infeasibility)."""


@dataclass(frozen=True)
class FluxSolution:
    objective_value: float
    fluxes: dict[str, float]


def available_solvers() -> list[str]:
    from cobra.util.solver import solvers

    return sorted(solvers)


class Optimizer:
    """
    Parameters
    ----------
    solver:
        optlang interface name as known to cobra (e.g. "glpk", "cplex", "gurobi").
    timeout:
        Optional per-LP time limit in seconds.
    """

    def __init__(self, solver: str = "glpk", timeout: float | None = None) -> None:
        self.solver = solver
        self.timeout = timeout
        # fail early on unknown solvers; only the name is stored so the adapter stays picklable
        self.interface

    def __repr__(self) -> str:
        return f"Optimizer(solver={self.solver!r}, timeout={self.timeout!r})"

    @property
    def interface(self) -> Any:
        from cobra.util.solver import solvers

        try:
            return solvers[self.solver]
        except KeyError as e:
            raise OptimizationError(
                f"Solver not available: {self.solver} (available: {', '.join(sorted(solvers))})"
            ) from e

    @property
    def description(self) -> str:
        return f"optlang {optlang.__version__} ({self.solver})"

    def new_problem(self) -> Any:
        problem = self.interface.Model()
        if self.timeout is not None:
            # backends such as GLPK take whole seconds
            problem.configuration.timeout = max(1, math.ceil(self.timeout))
        return problem

    def solve_problem(self, problem: Any) -> float | None:
        """Solve a prepared problem and return its objective value, or None if not optimal."""
        try:
            status = problem.optimize()
        except Exception as e:  # noqa: BLE001
            raise OptimizationError(f"Solver failure ({self.solver}): {e}") from e
        if status != OPTIMAL:
            logger.debug("LP not optimal: status=%s", status)
            return None
        return float(problem.objective.value)

    def build_problem(self, model: ModelView) -> tuple[Any, dict[str, Any]]:
        """
        Steady-state LP of a model view: one variable per reaction bounded by the
        view's bounds, S v = 0, the view's extra constraints and its objective.
        """
        iface = self.interface
        problem = self.new_problem()

        variables = {}
        for rid in model.reaction_ids:
            lb, ub = model.bounds(rid)
            variables[rid] = iface.Variable(rid, lb=lb, ub=ub)
        problem.add(list(variables.values()))

        rows: dict[str, dict[Any, float]] = {}
        for rid, rxn in model.reactions.items():
            for mid, coef in rxn.metabolites.items():
                if coef:
                    rows.setdefault(mid, {})[variables[rid]] = float(coef)
        balances = {mid: iface.Constraint(Zero, lb=0, ub=0, name=mid) for mid in rows}

        extra = []
        for c in model.constraints:
            if c.lower_bound is None and c.upper_bound is None:
                continue
            extra.append((iface.Constraint(Zero, lb=c.lower_bound, ub=c.upper_bound), c))

        problem.add(list(balances.values()) + [con for con, _ in extra])
        problem.update()
        for mid, coefs in rows.items():
            balances[mid].set_linear_coefficients(coefs)
        for con, c in extra:
            con.set_linear_coefficients({variables[r]: float(v) for r, v in c.coefficients.items()})

        objective = model.objective
        problem.objective = iface.Objective(Zero, direction=objective.direction, sloppy=True)
        problem.objective.set_linear_coefficients(
            {variables[r]: float(v) for r, v in objective.coefficients.items() if r in variables}
        )
        return problem, variables

    def objective_value(self, model: ModelView) -> float | None:
        problem, _ = self.build_problem(model)
        return self.solve_problem(problem)

    def optimize(self, model: ModelView) -> FluxSolution | None:
        problem, variables = self.build_problem(model)
        value = self.solve_problem(problem)
        if value is None:
            return None
        return FluxSolution(
            objective_value=value,
            fluxes={rid: float(var.primal) for rid, var in variables.items()},
        )
