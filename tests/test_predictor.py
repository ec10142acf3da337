import pytest

from poolstats.config import EngineConfig
from poolstats.normalize import RosterPlayer, SquadOverride, TeamRoster
from poolstats.predictor import (
    InvalidOverrideError,
    calc_strength_adjustments,
    predict,
    predict_fixture,
    predict_frame,
    scoreline_distribution,
    squad_strength,
    team_strengths,
)


def test_probabilities_sum_to_one_hundred() -> None:
    for home, away in [(0.0, 0.0), (1.0, -1.0), (-2.0, 0.5)]:
        result = predict(home, away)
        total = result.p_home_win + result.p_draw + result.p_away_win
        assert total == pytest.approx(100.0, abs=1.0)
        assert result.expected_home + result.expected_away == pytest.approx(10.0, abs=0.2)


def test_equal_teams_are_symmetric_without_home_advantage() -> None:
    result = predict(0.3, 0.3, config=EngineConfig(home_advantage=0.0))
    assert result.frame_probability == pytest.approx(0.5)
    assert result.p_home_win == result.p_away_win
    assert result.top_scores[0].label == "5-5"


def test_home_advantage_favours_home_side() -> None:
    result = predict(0.0, 0.0)
    assert result.p_home_win > result.p_away_win
    assert result.expected_home > 5.0


def test_stronger_home_side_wins_more_often() -> None:
    weak = predict(0.0, 0.0)
    strong = predict(0.8, 0.0)
    assert strong.p_home_win > weak.p_home_win
    assert predict_frame(1.0, 0.0) > predict_frame(0.5, 0.0)


def test_top_scores_are_ordered() -> None:
    result = predict(0.5, 0.0)
    assert len(result.top_scores) == 5
    probs = [s.probability for s in result.top_scores]
    assert probs == sorted(probs, reverse=True)
    assert len(predict(0.5, 0.0, top_n=3).top_scores) == 3


def test_scoreline_distribution_covers_every_score() -> None:
    dist = scoreline_distribution(0.6, 10)
    assert len(dist) == 11
    assert (dist[0].home, dist[0].away) == (10, 0)
    assert (dist[-1].home, dist[-1].away) == (0, 10)
    assert sum(s.probability for s in dist) == pytest.approx(1.0)


def test_baseline_only_with_adjustment() -> None:
    assert predict(0.0, 0.0).baseline is None
    adjusted = predict(0.0, 0.0, home_adjustment=-0.5)
    assert adjusted.baseline is not None
    assert adjusted.p_home_win < adjusted.baseline.p_home_win


def test_team_strengths_follow_frame_difference(dataset) -> None:
    strengths = team_strengths("A", dataset)
    assert set(strengths) == {"Lions", "Tigers", "Bears", "Wolves"}
    assert strengths["Lions"] > strengths["Bears"] > strengths["Tigers"]


def test_predict_fixture_favours_stronger_team(dataset) -> None:
    result = predict_fixture(dataset, "Lions", "Tigers")
    assert result.p_home_win > result.p_away_win
    assert result.baseline is None


def test_removing_best_player_weakens_team(dataset) -> None:
    overrides = {"Lions": SquadOverride(removed=["L1"])}
    adjustments = calc_strength_adjustments("A", overrides, None, dataset)
    assert adjustments["Lions"] < 0

    result = predict_fixture(dataset, "Lions", "Tigers", overrides)
    assert result.baseline is not None
    assert result.p_home_win < result.baseline.p_home_win


def test_adding_player_with_stats_changes_strength(dataset) -> None:
    overrides = {"Tigers": SquadOverride(added=["B1"])}
    adjustments = calc_strength_adjustments("A", overrides, None, dataset)
    assert adjustments["Tigers"] > 0


def test_overrides_for_unknown_teams_are_rejected(dataset) -> None:
    with pytest.raises(InvalidOverrideError):
        calc_strength_adjustments("A", {"Ghosts": SquadOverride(removed=["X"])}, None, dataset)
    with pytest.raises(InvalidOverrideError):
        predict_fixture(dataset, "Lions", "Tigers", {"Ghosts": SquadOverride(removed=["X"])})


def test_overrides_for_teams_outside_the_fixture_are_ignored(dataset) -> None:
    plain = predict_fixture(dataset, "Lions", "Tigers")
    result = predict_fixture(dataset, "Lions", "Tigers", {"Bears": SquadOverride(removed=["B1"])})
    assert result.p_home_win == plain.p_home_win
    assert result.baseline is None

    overrides = {"Lions": SquadOverride(removed=["L1"]), "Bears": SquadOverride(removed=["B1"])}
    both = predict_fixture(dataset, "Lions", "Tigers", overrides)
    alone = predict_fixture(dataset, "Lions", "Tigers", {"Lions": SquadOverride(removed=["L1"])})
    assert both.p_home_win == alone.p_home_win


def test_no_op_override_still_reports_baseline(dataset) -> None:
    result = predict_fixture(dataset, "Lions", "Tigers", {"Lions": SquadOverride(added=["Newcomer"])})
    assert result.baseline is not None
    assert result.p_home_win == result.baseline.p_home_win


def test_squad_strength_without_stats_is_none() -> None:
    roster = TeamRoster(team="X", division="A", players=[RosterPlayer("nobody")])
    assert squad_strength(roster) is None
    assert squad_strength(TeamRoster(team="X", division="A")) is None
