from __future__ import annotations

import pickle

import pytest

from conftest import build_toy_model, toy_reactions
from fbc_audit.model import (
    LinearConstraint,
    MetabolicModel,
    Metabolite,
    ModelError,
    ModelVariant,
    Objective,
    Reaction,
    gene_ids_in_rule,
    rule_is_functional,
)


def test_boundary_reactions_touch_one_metabolite(toy_model: MetabolicModel) -> None:
    boundary = sorted(rid for rid, r in toy_model.reactions.items() if r.boundary)
    assert boundary == ["EX_glc__D_e", "EX_h2_e", "EX_h2o_e", "EX_h_c", "EX_h_e"]


def test_unknown_metabolite_is_rejected() -> None:
    with pytest.raises(ModelError):
        MetabolicModel("bad", reactions=[Reaction("R", {"x_c": -1})], metabolites=[Metabolite("y_c")])


def test_objective_direction_is_validated() -> None:
    with pytest.raises(ValueError):
        Objective({"R": 1.0}, "maximize")


def test_gpr_helpers() -> None:
    assert gene_ids_in_rule("g_atpA and g_atpB") == {"g_atpA", "g_atpB"}
    assert gene_ids_in_rule("") == frozenset()
    assert rule_is_functional("g_gly1 or g_gly2", {"g_gly1"})
    assert not rule_is_functional("g_atpA and g_atpB", {"g_atpA"})
    assert rule_is_functional("", {"anything"})


def test_variants_do_not_mutate_the_base(toy_model: MetabolicModel) -> None:
    v = toy_model.with_bounds("EX_glc__D_e", -5, 0).knockout_gene("g_atpA").with_objective("min_glc")
    assert isinstance(v, ModelVariant)
    assert v.base is toy_model
    assert v.bounds("EX_glc__D_e") == (-5.0, 0.0)
    assert v.bounds("ATPS4r") == (0.0, 0.0)
    assert v.objective == toy_model.objectives["min_glc"]

    assert toy_model.bounds("EX_glc__D_e") == (-10.0, 1000.0)
    assert toy_model.bounds("ATPS4r") == (0.0, 1000.0)
    assert toy_model.objective == toy_model.objectives["obj"]


def test_variants_are_flattened(toy_model: MetabolicModel) -> None:
    v = toy_model.knockout_gene("g_gly1").knockout_gene("g_gly2")
    assert v.base is toy_model
    assert v.inactive_genes == {"g_gly1", "g_gly2"}
    assert v.disabled_reactions() == ["GLY"]


def test_isoenzyme_knockout_keeps_reaction(toy_model: MetabolicModel) -> None:
    v = toy_model.knockout_gene("g_gly1")
    assert v.disabled_reactions() == []
    assert v.bounds("GLY") == (0.0, 1000.0)


def test_extra_reactions_and_constraints(toy_model: MetabolicModel) -> None:
    demand = Reaction("DM_pyr_c", {"pyr_c": -1})
    c = LinearConstraint({"BIOMASS": 1.0}, lower_bound=1.0)
    v = toy_model.with_reactions(demand).with_constraint(c)
    assert "DM_pyr_c" in v.reactions
    assert "DM_pyr_c" not in toy_model.reactions
    assert v.bounds("DM_pyr_c") == (0.0, 1000.0)
    assert v.constraints == (c,)
    assert toy_model.constraints == ()


def test_unknown_ids_raise_model_error(toy_model: MetabolicModel) -> None:
    with pytest.raises(ModelError):
        toy_model.knockout_gene("nope")
    with pytest.raises(ModelError):
        toy_model.with_bounds("nope", 0, 0)
    with pytest.raises(ModelError):
        toy_model.with_objective("nope")
    with pytest.raises(ModelError):
        toy_model.reaction("nope")


def test_reaction_compartments(toy_model: MetabolicModel) -> None:
    assert toy_model.reaction_compartments("GLCt") == {"c", "e"}
    assert toy_model.reaction_compartments("GLY") == {"c"}


def test_default_objective_falls_back_to_first() -> None:
    model = build_toy_model()
    assert model.default_objective == "obj"
    empty = MetabolicModel("empty", reactions=[], metabolites=[])
    assert empty.objective.coefficients == {}


def test_variant_pickles(toy_model: MetabolicModel) -> None:
    v = toy_model.knockout_gene("g_atpA")
    v.bounds("ATPS4r")
    clone = pickle.loads(pickle.dumps(v))
    assert clone.bounds("ATPS4r") == (0.0, 0.0)
    assert len(clone.reactions) == len(toy_reactions())
