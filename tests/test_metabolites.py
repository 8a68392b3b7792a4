from __future__ import annotations

from conftest import build_toy_model, replace_metabolite, replace_reaction, toy_metabolites, toy_reactions
from fbc_audit.formula import molar_mass, parse_formula
from fbc_audit.metabolites import (
    metabolites_duplicated_in_compartment,
    metabolites_medium_components,
    metabolites_no_charge,
    metabolites_no_formula,
    metabolites_unique,
)
from fbc_audit.model import MetabolicModel, Metabolite, Reaction

PYR_INCHI_KEY = "LCTONWCANYUPML-UHFFFAOYSA-M"


def test_parse_formula() -> None:
    assert parse_formula("C6H12O6") == {"C": 6, "H": 12, "O": 6}
    assert parse_formula("HO4P") == {"H": 1, "O": 4, "P": 1}
    assert parse_formula("C2H3X") is None
    assert parse_formula("C6H11O6R") is None
    assert parse_formula("") is None
    assert parse_formula(None) is None
    assert parse_formula("C6 H12") is None
    assert parse_formula("C2X", known_elements={"C", "X"}) == {"C": 2, "X": 1}


def test_molar_mass() -> None:
    assert abs(molar_mass("H2O") - 18.01528) < 1e-4
    assert molar_mass("R") is None


def test_formula_and_charge_queries(toy_model: MetabolicModel) -> None:
    assert metabolites_no_formula(toy_model) == []
    assert metabolites_no_charge(toy_model) == []

    metabolites = replace_metabolite(toy_metabolites(), Metabolite("pyr_c", "", None, "c"))
    model = build_toy_model(metabolites=metabolites)
    assert metabolites_no_formula(model) == ["pyr_c"]
    assert metabolites_no_charge(model) == ["pyr_c"]


def test_medium_components(toy_model: MetabolicModel) -> None:
    # every open exchange in the toy model can also secrete
    assert metabolites_medium_components(toy_model) == []
    assert metabolites_medium_components(toy_model, only_imported=False) == ["glc__D_e", "h_e", "h2o_e"]

    uptake_only = build_toy_model(
        reactions=replace_reaction(toy_reactions(), Reaction("EX_glc__D_e", {"glc__D_e": -1}, -10.0, 0.0))
    )
    assert metabolites_medium_components(uptake_only) == ["glc__D_e"]


def test_medium_components_follow_variant_bounds(toy_model: MetabolicModel) -> None:
    v = toy_model.with_bounds("EX_glc__D_e", 0.0, 1000.0)
    assert "glc__D_e" not in metabolites_medium_components(v, only_imported=False)


def test_unique_metabolites(toy_model: MetabolicModel) -> None:
    unique = metabolites_unique(toy_model)
    # glucose shares an InChI key across compartments, the others share their base id
    assert "WQZGKKKJIJFFOK-GASJEMHNSA-N" in unique
    assert {"h2o", "h", "h2", "pyr", "atp", "adp", "pi"} <= unique
    assert len(unique) == len(toy_model.metabolites) - 4


def test_duplicated_metabolites_in_compartment() -> None:
    metabolites = replace_metabolite(
        toy_metabolites(),
        Metabolite("pyr_c", "C3H3O3", -1, "c", annotation={"inchi_key": (PYR_INCHI_KEY,)}),
    ) + [Metabolite("pyruvate_c", "C3H3O3", -1, "c", annotation={"inchi_key": (PYR_INCHI_KEY,)})]
    model = build_toy_model(metabolites=metabolites)

    assert metabolites_duplicated_in_compartment(model) == [{"pyr_c", "pyruvate_c"}]
    # the duplicate adds a metabolite but no new identity
    assert len(metabolites_unique(model)) == len(model.metabolites) - 5


def test_no_duplicates_across_compartments(toy_model: MetabolicModel) -> None:
    # glc__D_e and glc__D_c share an InChI key but live in different compartments
    assert metabolites_duplicated_in_compartment(toy_model) == []
