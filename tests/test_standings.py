from datetime import date

from poolstats.standings import calc_standings, match_points, remaining_fixtures, team_results
from poolstats.types import Outcome


def test_match_points_reward_away_wins() -> None:
    assert match_points(7, 3) == (2, 0)
    assert match_points(3, 7) == (0, 3)
    assert match_points(5, 5) == (1, 1)


def test_standings_from_results(dataset) -> None:
    table = calc_standings(dataset.teams("A"), dataset.results)
    assert [s.team for s in table] == ["Lions", "Bears", "Wolves", "Tigers"]
    lions = table[0]
    assert (lions.p, lions.w, lions.pts, lions.f, lions.a) == (2, 2, 5, 15, 5)
    assert lions.diff == 10
    assert table[1].pts == 4
    assert table[1].d == 1
    assert table[3].pts == 0


def test_results_for_teams_outside_the_table_are_ignored(dataset) -> None:
    table = calc_standings(["Lions", "Tigers"], dataset.results)
    assert {s.team: s.p for s in table} == {"Lions": 2, "Tigers": 2}
    tigers = next(s for s in table if s.team == "Tigers")
    assert tigers.l == 2


def test_remaining_fixtures_follow_latest_result(dataset) -> None:
    remaining = remaining_fixtures(dataset.fixtures, dataset.results)
    assert len(remaining) == 4
    assert all(f.date > date(2025, 1, 17) for f in remaining)
    assert remaining_fixtures(dataset.fixtures, []) == dataset.fixtures
    assert remaining_fixtures(dataset.fixtures, dataset.results, division="B") == []


def test_team_results_newest_first(dataset) -> None:
    rows = team_results("Wolves", dataset.results)
    assert [r.outcome for r in rows] == [Outcome.LOSS, Outcome.DRAW]
    assert rows[0].is_home is True
    assert rows[1].opponent == "Bears"
