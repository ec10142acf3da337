from poolstats.report import build_report


def _report(dataset, team: str, **kwargs):
    return build_report(
        team,
        dataset.games,
        dataset.results,
        dataset.season_stats,
        dataset.rosters(),
        **kwargs,
    )


def test_report_for_known_team(dataset) -> None:
    report = _report(dataset, "Lions")
    assert report["opponent"] == "Lions"
    assert report["has_data"] is True
    assert report["team_form"] == ["W", "W"]
    assert report["home_away"]["home"]["w"] == 1
    assert report["home_away"]["away"]["f"] == 8

    names = [p["name"] for p in report["strongest_players"]]
    assert names == ["L1", "L2", "L3"]
    assert [p["name"] for p in report["weakest_players"]] == ["L4", "L5", "L3"]
    assert report["strongest_players"][0]["pct"] == 75.0

    categories = {p["name"]: p["category"] for p in report["predicted_lineup"]["players"]}
    assert categories == {name: "core" for name in ("L1", "L2", "L3", "L4", "L5")}
    assert report["set_performance"]["set1"]["played"] == 10


def test_report_top_n(dataset) -> None:
    report = _report(dataset, "Lions", top_n=1)
    assert [p["name"] for p in report["strongest_players"]] == ["L1"]
    assert [p["name"] for p in report["weakest_players"]] == ["L4"]


def test_report_for_unknown_team(dataset) -> None:
    report = _report(dataset, "Nobody")
    assert report["has_data"] is False
    assert report["team_form"] == []
    assert report["set_performance"] is None
    assert report["strongest_players"] == []
    assert report["predicted_lineup"]["players"] == []


def test_report_is_deterministic(dataset) -> None:
    assert _report(dataset, "Tigers") == _report(dataset, "Tigers")
