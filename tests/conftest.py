from __future__ import annotations

import pytest

from fbc_audit.model import Gene, MetabolicModel, Metabolite, Objective, Reaction
from fbc_audit.optimizer import Optimizer


def toy_metabolites() -> list[Metabolite]:
    return [
        Metabolite(
            "glc__D_e",
            "C6H12O6",
            0,
            "e",
            annotation={"kegg.compound": ("C00031",), "inchi_key": ("WQZGKKKJIJFFOK-GASJEMHNSA-N",)},
        ),
        Metabolite(
            "glc__D_c",
            "C6H12O6",
            0,
            "c",
            annotation={"kegg.compound": ("C00031",), "inchi_key": ("WQZGKKKJIJFFOK-GASJEMHNSA-N",)},
        ),
        Metabolite("pyr_c", "C3H3O3", -1, "c", annotation={"kegg.compound": ("pyruvate",)}),
        Metabolite("atp_c", "C10H12N5O13P3", -4, "c"),
        Metabolite("adp_c", "C10H12N5O10P2", -3, "c"),
        Metabolite("pi_c", "HO4P", -2, "c"),
        Metabolite("h2o_c", "H2O", 0, "c"),
        Metabolite("h2o_e", "H2O", 0, "e"),
        Metabolite("h_c", "H", 1, "c"),
        Metabolite("h_e", "H", 1, "e"),
        Metabolite("h2_c", "H2", 0, "c"),
        Metabolite("h2_e", "H2", 0, "e"),
    ]


def toy_reactions() -> list[Reaction]:
    return [
        Reaction("EX_glc__D_e", {"glc__D_e": -1}, -10.0, 1000.0),
        Reaction("GLCt", {"glc__D_e": -1, "glc__D_c": 1}, 0.0, 1000.0, "g_glct"),
        Reaction(
            "GLY",
            {"glc__D_c": -1, "adp_c": -2, "pi_c": -2, "pyr_c": 2, "atp_c": 2, "h2o_c": 2, "h2_c": 2},
            0.0,
            1000.0,
            "g_gly1 or g_gly2",
        ),
        Reaction("ATPM", {"atp_c": -1, "h2o_c": -1, "adp_c": 1, "pi_c": 1, "h_c": 1}, 1.0, 1000.0),
        Reaction(
            "ATPS4r",
            {"adp_c": -1, "pi_c": -1, "h_e": -4, "atp_c": 1, "h2o_c": 1, "h_c": 3},
            0.0,
            1000.0,
            "g_atpA and g_atpB",
        ),
        Reaction("Ht", {"h_e": -1, "h_c": 1}, 0.0, 1000.0, "g_ht"),
        Reaction("EX_h_e", {"h_e": -1}, -1000.0, 1000.0),
        Reaction("EX_h_c", {"h_c": -1}, 0.0, 1000.0),
        Reaction("H2Ot", {"h2o_c": -1, "h2o_e": 1}, -1000.0, 1000.0),
        Reaction("EX_h2o_e", {"h2o_e": -1}, -1000.0, 1000.0),
        Reaction("H2t", {"h2_c": -1, "h2_e": 1}, 0.0, 1000.0),
        Reaction("EX_h2_e", {"h2_e": -1}, 0.0, 1000.0),
        Reaction(
            "BIOMASS",
            {"pyr_c": -0.5, "atp_c": -1, "h2o_c": -1, "adp_c": 1, "pi_c": 1, "h_c": 1},
            0.0,
            1000.0,
        ),
    ]


TOY_GENES = ("g_glct", "g_gly1", "g_gly2", "g_atpA", "g_atpB", "g_ht")


def build_toy_model(
    reactions: list[Reaction] | None = None,
    metabolites: list[Metabolite] | None = None,
) -> MetabolicModel:
    """
    Glucose -> pyruvate toy network. Biomass is limited by pyruvate supply
    (glucose uptake 10, optimum 40) and needs ATP synthase for its ATP.
    """
    return MetabolicModel(
        id="toy",
        reactions=reactions if reactions is not None else toy_reactions(),
        metabolites=metabolites if metabolites is not None else toy_metabolites(),
        genes=[Gene(g) for g in TOY_GENES],
        objectives={
            "obj": Objective({"BIOMASS": 1.0}, "max"),
            "min_glc": Objective({"EX_glc__D_e": 1.0}, "min"),
        },
    )


def replace_reaction(reactions: list[Reaction], new: Reaction) -> list[Reaction]:
    return [new if r.id == new.id else r for r in reactions]


def replace_metabolite(metabolites: list[Metabolite], new: Metabolite) -> list[Metabolite]:
    return [new if m.id == new.id else m for m in metabolites]


@pytest.fixture()
def toy_model() -> MetabolicModel:
    return build_toy_model()


@pytest.fixture(scope="session")
def optimizer() -> Optimizer:
    return Optimizer("glpk")
