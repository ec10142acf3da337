import json
from datetime import date
from pathlib import Path

import pytest

from poolstats.normalize import (
    DatasetError,
    PlayerSeasonStat,
    dataset_from_dict,
    load_dataset,
    overrides_from_json,
    team_entry,
    what_ifs_from_json,
)
from poolstats.types import Side

FIXTURE = Path(__file__).parent / "fixtures" / "league_sample.json"


def test_load_dataset_reads_league_file() -> None:
    ds = load_dataset(FIXTURE)
    assert ds.league_id == "sample"
    assert ds.name == "Sample League"
    assert ds.teams() == ["Anchor", "Bell", "Crown"]
    assert ds.teams("P1") == ["Anchor", "Bell"]
    assert ds.division_of("Crown") == "D2"
    assert ds.division_of("Nobody") is None


def test_results_and_fixtures_accept_several_date_formats() -> None:
    ds = load_dataset(FIXTURE)
    assert ds.results[0].home_score == 6
    assert ds.results[0].away_score == 4
    assert ds.results[0].date == date(2025, 1, 14)
    assert [f.date for f in ds.fixtures] == [date(2025, 1, 14), date(2025, 2, 4)]


def test_nested_and_flat_frames() -> None:
    ds = load_dataset(FIXTURE)
    assert len(ds.games) == 3
    first, second, flat = ds.games
    assert first.match_id == "x1"
    assert first.break_dish is True
    assert first.set_number == 1
    assert second.winner is Side.AWAY
    assert second.set_number == 2
    assert flat.match_id == "x2"
    assert flat.home_team == "Bell"
    assert flat.away_player == "Ann"
    assert flat.forfeit is True
    assert flat.won_by("Ann")
    assert flat.team_of("Ann") == "Anchor"


def test_rosters_merge_listed_names_with_season_stats() -> None:
    ds = load_dataset(FIXTURE)
    roster = ds.roster("Anchor")
    assert roster is not None
    assert roster.names == ["Ann", "Abe", "Cal"]
    ann, abe, cal = roster.players
    assert ann.current.played == 12
    assert ann.prior.win_pct == 0.58
    assert abe.current is None
    assert cal.rostered is False
    assert ds.roster("Bell").names == ["Bob", "Bea"]
    assert ds.roster("Nobody") is None
    assert set(ds.rosters("P1")) == {"Anchor", "Bell"}


def test_season_stats_coerce_numbers() -> None:
    ds = load_dataset(FIXTURE)
    bob = ds.season_stats["Bob"][0]
    assert bob.played == 7
    assert bob.bd_f == 0
    assert ds.season_stats["Ann"][0].division == "P1"


def test_league_id_falls_back_to_file_stem(tmp_path) -> None:
    data = json.loads(FIXTURE.read_text(encoding="utf-8"))
    del data["league"]
    path = tmp_path / "county.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    ds = load_dataset(path)
    assert ds.league_id == "county"
    assert ds.name == "county"


def test_invalid_data_raises_dataset_error() -> None:
    with pytest.raises(DatasetError):
        dataset_from_dict({"results": []})

    bad_date = {"divisions": {"A": {"teams": ["X"]}}, "results": [{"date": "someday", "home": "X", "away": "Y"}]}
    with pytest.raises(DatasetError):
        dataset_from_dict(bad_date)

    bad_winner = {
        "divisions": {"A": {"teams": ["X"]}},
        "frames": [{"date": "2025-01-01", "home": "X", "away": "Y", "winner": "nobody"}],
    }
    with pytest.raises(DatasetError):
        dataset_from_dict(bad_winner)


def test_top_level_must_be_an_object(tmp_path) -> None:
    with pytest.raises(DatasetError):
        dataset_from_dict([1, 2])
    path = tmp_path / "list.json"
    path.write_text("[1]", encoding="utf-8")
    with pytest.raises(DatasetError):
        load_dataset(path)


def test_team_entry_prefers_league_rows_over_cup_rows() -> None:
    cup = PlayerSeasonStat(player="Ann", team="Lions", played=3, won=3, cup=True)
    league = PlayerSeasonStat(player="Ann", team="Lions", played=9, won=4)
    stats = {"Ann": [cup, league]}
    assert team_entry(stats, "Ann", "Lions") is league
    assert team_entry({"Ann": [cup]}, "Ann", "Lions") is cup
    assert team_entry(stats, "Ann", "Tigers") is None


def test_what_if_and_override_parsing() -> None:
    what_ifs = what_ifs_from_json([{"home": "A", "away": "B", "homeScore": 6, "awayScore": 4}])
    assert what_ifs[0].key == "A:B"
    assert what_ifs[0].home_score == 6

    overrides = overrides_from_json({"A": {"removed": ["P1"]}})
    assert overrides["A"].removed == ["P1"]
    assert overrides["A"].added == []
