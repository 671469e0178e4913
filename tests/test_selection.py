import numpy as np
import pytest

from reviewmix.evaluation.selection import interaction_vs_null, rank_models, select_best
from reviewmix.evaluation.trends import genre_trends, slopes_distinguishable
from reviewmix.evaluation.variance import intraclass_correlation, r_squared, random_intercept_test
from reviewmix.models.mixed import information_criteria
from reviewmix.models.specs import MODEL_SPECS, ModelSpec


def test_model_family_is_fixed_and_ordered():
    assert [s.model_id for s in MODEL_SPECS] == [
        "interaction",
        "additive",
        "genre_only",
        "year_only",
        "null",
        "fixed_effects_only",
    ]
    assert ModelSpec.INTERACTION.formula == "score ~ genre * year_z"
    assert ModelSpec.NULL.formula == "score ~ 1"
    assert not ModelSpec.FIXED_EFFECTS_ONLY.random_intercept
    assert all(s.random_intercept for s in MODEL_SPECS[:5])
    assert ModelSpec.from_id("additive") is ModelSpec.ADDITIVE
    with pytest.raises(ValueError):
        ModelSpec.from_id("quadratic")


def test_spec_term_flags():
    assert ModelSpec.GENRE_ONLY.uses_genre and not ModelSpec.GENRE_ONLY.uses_year
    assert ModelSpec.YEAR_ONLY.uses_year and not ModelSpec.YEAR_ONLY.uses_genre
    assert ModelSpec.INTERACTION.has_interaction and not ModelSpec.ADDITIVE.has_interaction


def test_information_criteria_small_sample_correction():
    ic = information_criteria(llf=-100.0, k=3, n=50)
    assert ic["aic"] == pytest.approx(206.0)
    assert ic["aicc"] == pytest.approx(206.0 + 24.0 / 46.0)
    assert ic["bic"] == pytest.approx(200.0 + 3 * np.log(50))
    assert information_criteria(llf=-1.0, k=4, n=5)["aicc"] == np.inf


def test_rank_models_orders_by_aicc(make_fit):
    fits = {
        "interaction": make_fit(ModelSpec.INTERACTION, aicc=120.0, k_params=9),
        "null": make_fit(ModelSpec.NULL, aicc=100.0, k_params=3),
        "additive": make_fit(ModelSpec.ADDITIVE, aicc=104.0, k_params=6),
    }
    ranking = rank_models(fits)
    assert ranking["model_id"].tolist() == ["null", "additive", "interaction"]
    assert ranking["rank"].tolist() == [1, 2, 3]
    assert ranking["delta_aicc"].tolist() == pytest.approx([0.0, 4.0, 20.0])
    assert ranking["akaike_weight"].sum() == pytest.approx(1.0)
    assert select_best(ranking) == "null"


def test_rank_models_breaks_ties_toward_simpler(make_fit):
    fits = {
        "additive": make_fit(ModelSpec.ADDITIVE, aicc=100.0, k_params=6),
        "year_only": make_fit(ModelSpec.YEAR_ONLY, aicc=100.0, k_params=4),
        "genre_only": make_fit(ModelSpec.GENRE_ONLY, aicc=100.0, k_params=4),
    }
    ranking = rank_models(fits)
    assert ranking["model_id"].tolist() == ["year_only", "genre_only", "additive"]


def test_select_best_on_empty_ranking():
    assert select_best(rank_models({})) is None


def test_verdict_says_when_interaction_does_not_beat_null(make_fit):
    fits = {
        "interaction": make_fit(ModelSpec.INTERACTION, aicc=110.0),
        "null": make_fit(ModelSpec.NULL, aicc=100.0),
    }
    verdict = interaction_vs_null(fits, {})
    assert verdict["interaction_preferred"] is False
    assert verdict["delta"] == pytest.approx(10.0)
    assert "does NOT improve" in verdict["message"]


def test_verdict_when_interaction_wins(make_fit):
    fits = {
        "interaction": make_fit(ModelSpec.INTERACTION, aicc=90.0),
        "null": make_fit(ModelSpec.NULL, aicc=100.0),
    }
    verdict = interaction_vs_null(fits, {})
    assert verdict["interaction_preferred"] is True
    assert verdict["message"].startswith("Interaction model improves")


def test_verdict_names_failed_fit(make_fit):
    fits = {"null": make_fit(ModelSpec.NULL, aicc=100.0)}
    verdict = interaction_vs_null(fits, {"interaction": "optimizer did not report convergence"})
    assert verdict["interaction_preferred"] is None
    assert "interaction: optimizer did not report convergence" in verdict["message"]


def test_r_squared_decomposition(make_fit):
    fit = make_fit(ModelSpec.ADDITIVE, random_var=1.0, residual_var=2.0, fixed_var=1.0)
    r2 = r_squared(fit)
    assert r2["r2_marginal"] == pytest.approx(0.25)
    assert r2["r2_conditional"] == pytest.approx(0.5)
    assert intraclass_correlation(fit) == pytest.approx(1.0 / 3.0)


def test_r_squared_fixed_only_has_equal_parts(make_fit):
    r2 = r_squared(make_fit(ModelSpec.FIXED_EFFECTS_ONLY, residual_var=3.0, fixed_var=1.0))
    assert r2["r2_marginal"] == pytest.approx(0.25)
    assert r2["r2_conditional"] == pytest.approx(0.25)


def test_random_intercept_test(make_fit):
    mixed = make_fit(ModelSpec.INTERACTION, llf=-90.0)
    fixed = make_fit(ModelSpec.FIXED_EFFECTS_ONLY, llf=-100.0)
    result = random_intercept_test(mixed, fixed)
    assert result["lr_stat"] == pytest.approx(20.0)
    assert result["p_value"] < 1e-4
    assert result["justified"] is True

    no_gain = random_intercept_test(make_fit(ModelSpec.INTERACTION, llf=-100.0), fixed)
    assert no_gain["lr_stat"] == 0.0
    assert no_gain["p_value"] == 1.0
    assert no_gain["justified"] is False


def test_random_intercept_test_requires_matching_fixed_part(make_fit):
    with pytest.raises(ValueError):
        random_intercept_test(make_fit(ModelSpec.NULL), make_fit(ModelSpec.FIXED_EFFECTS_ONLY))


def test_genre_trends_contrasts(make_fit):
    fit = make_fit(
        ModelSpec.INTERACTION,
        fe_params={"Intercept": 6.0, "genre[T.Y]": 1.0, "year_z": 0.5, "genre[T.Y]:year_z": -0.5},
        fe_cov=np.eye(4) * 0.01,
    )
    trends = genre_trends(fit, ["X", "Y"], year_scale=2.0).set_index("genre")

    assert trends.loc["X", "intercept"] == pytest.approx(6.0)
    assert trends.loc["Y", "intercept"] == pytest.approx(7.0)
    assert trends.loc["X", "year_slope"] == pytest.approx(0.5)
    assert trends.loc["Y", "year_slope"] == pytest.approx(0.0)
    assert trends.loc["X", "year_slope_se"] == pytest.approx(0.1)
    assert trends.loc["Y", "year_slope_se"] == pytest.approx(np.sqrt(0.02))
    assert trends.loc["X", "year_slope_per_year"] == pytest.approx(0.25)
    assert trends.loc["X", "year_slope_ci_low"] == pytest.approx(0.5 - 1.959964 * 0.1, abs=1e-5)
    assert slopes_distinguishable(trends.reset_index(), "X", "Y")


def test_genre_trends_without_year_term(make_fit):
    fit = make_fit(ModelSpec.GENRE_ONLY, fe_params={"Intercept": 6.0, "genre[T.Y]": 1.0}, fe_cov=np.eye(2) * 0.01)
    trends = genre_trends(fit, ["X", "Y"])
    assert trends["year_slope"].isna().all()
    assert not slopes_distinguishable(trends, "X", "Y")
