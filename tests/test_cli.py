import json

import pytest

from poolstats.cli import _parse_what_if, main


@pytest.fixture
def data_file(tmp_path, league_data) -> str:
    path = tmp_path / "test.json"
    path.write_text(json.dumps(league_data), encoding="utf-8")
    return str(path)


def test_predict_writes_json_output(tmp_path, data_file) -> None:
    out = tmp_path / "prediction.json"
    main(["--data", data_file, "--output", str(out), "predict", "--home", "Lions", "--away", "Tigers"])
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["p_home_win"] > payload["p_away_win"]
    assert len(payload["top_scores"]) == 5


def test_predict_with_overrides_file(tmp_path, data_file) -> None:
    overrides = tmp_path / "overrides.json"
    overrides.write_text(json.dumps({"Lions": {"removed": ["L1"]}}), encoding="utf-8")
    out = tmp_path / "prediction.json"
    main(
        [
            "--data", data_file, "--output", str(out),
            "predict", "--home", "Lions", "--away", "Tigers", "--overrides", str(overrides),
        ]
    )
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["baseline"] is not None


def test_simulate_text_output(capsys, data_file) -> None:
    main(
        [
            "--data", data_file, "--output-format", "text",
            "simulate", "--division", "A", "--iterations", "100", "--seed", "7",
            "--what-if", "Lions:Bears:10-0",
        ]
    )
    out = capsys.readouterr().out
    assert out.startswith("SEASON PROJECTION A")
    assert "Lions" in out


def test_report_and_lineup(tmp_path, data_file) -> None:
    out = tmp_path / "report.json"
    main(["--data", data_file, "--output", str(out), "report", "--team", "Lions", "--top-n", "2"])
    report = json.loads(out.read_text(encoding="utf-8"))
    assert [p["name"] for p in report["strongest_players"]] == ["L1", "L2"]

    main(["--data", data_file, "--output", str(out), "lineup", "--team", "Lions", "--opponent", "Tigers", "--away"])
    suggestion = json.loads(out.read_text(encoding="utf-8"))
    assert suggestion["excluded"] == ["L5"]


def test_h2h_without_meetings(capsys, data_file) -> None:
    main(["--data", data_file, "h2h", "--player-a", "L1", "--player-b", "B2"])
    assert "No meetings between L1 and B2." in capsys.readouterr().out


def test_rankings_json_and_text(tmp_path, capsys, data_file) -> None:
    out = tmp_path / "rankings.json"
    main(["--data", data_file, "--output", str(out), "rankings", "--division", "A"])
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["rankings"][0]["team"] == "Lions"
    assert payload["schedule"][0]["team"] == "Bears"

    main(["--data", data_file, "--output-format", "text", "rankings", "--division", "A"])
    text = capsys.readouterr().out
    assert text.startswith("POWER RANKINGS A")
    assert " 1. Lions" in text
    assert "REMAINING SCHEDULE (hardest first)" in text

    with pytest.raises(SystemExit):
        main(["--data", data_file, "rankings", "--division", "Z"])


def test_leagues_across_files(tmp_path, data_file, league_data) -> None:
    league_data["league"]["id"] = "second"
    second = tmp_path / "second.json"
    second.write_text(json.dumps(league_data), encoding="utf-8")
    out = tmp_path / "leagues.json"
    main(["--data", data_file, "--data", str(second), "--output", str(out), "leagues"])
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert [s["league_id"] for s in payload["strengths"]] == ["test", "second"]
    assert payload["bridge_players"] > 0
    assert payload["strengths"][1]["multiplier"] == pytest.approx(1.0)


def test_unknown_team_and_league_exit(data_file) -> None:
    with pytest.raises(SystemExit):
        main(["--data", data_file, "report", "--team", "Ghosts"])
    with pytest.raises(SystemExit):
        main(["--data", data_file, "--league", "nope", "predict", "--home", "Lions", "--away", "Tigers"])


def test_what_if_argument_parsing() -> None:
    what_if = _parse_what_if("Red Lion:Blue Bell:6-4")
    assert (what_if.home, what_if.away, what_if.home_score, what_if.away_score) == ("Red Lion", "Blue Bell", 6, 4)
    with pytest.raises(SystemExit):
        main(["--data", "x.json", "simulate", "--division", "A", "--what-if", "bad"])
