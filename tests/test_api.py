import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from poolstats.api import DatasetStore, create_app
from poolstats.config import EngineConfig
from poolstats.normalize import dataset_from_dict

FIXTURE = Path(__file__).parent / "fixtures" / "league_sample.json"


@pytest.fixture
def client(dataset) -> TestClient:
    store = DatasetStore(preloaded=[dataset])
    return TestClient(create_app(store=store, config=EngineConfig()))


def _error_code(response) -> str:
    return response.json()["detail"]["error"]["code"]


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "version": "1.0.0", "leagues": 1}


def test_list_leagues(client) -> None:
    body = client.get("/api/leagues").json()
    assert body[0]["id"] == "test"
    assert body[0]["divisions"]["A"]["teams"] == ["Lions", "Tigers", "Bears", "Wolves"]


def test_predict(client) -> None:
    response = client.post("/api/predict", json={"home": "Lions", "away": "Tigers"})
    assert response.status_code == 200
    body = response.json()
    assert body["p_home_win"] > body["p_away_win"]
    assert body["p_home_win"] + body["p_draw"] + body["p_away_win"] == pytest.approx(100.0, abs=1.0)
    assert len(body["top_scores"]) == 5
    assert body["baseline"] is None


def test_predict_with_override_includes_baseline(client) -> None:
    payload = {"home": "Lions", "away": "Tigers", "squadOverrides": {"Lions": {"removed": ["L1"]}}}
    body = client.post("/api/predict", json=payload).json()
    assert body["baseline"] is not None
    assert body["p_home_win"] < body["baseline"]["p_home_win"]


def test_predict_errors(client) -> None:
    response = client.post("/api/predict", json={"home": "Lions", "away": "Ghosts"})
    assert response.status_code == 404
    assert _error_code(response) == "TEAM_NOT_FOUND"

    payload = {"home": "Lions", "away": "Tigers", "squadOverrides": {"Ghosts": {"removed": ["X"]}}}
    response = client.post("/api/predict", json=payload)
    assert response.status_code == 422
    assert _error_code(response) == "INVALID_OVERRIDE"

    assert client.post("/api/predict", json={"away": "Tigers"}).status_code == 422


def test_simulate(client) -> None:
    response = client.post("/api/simulate", json={"division": "A", "iterations": 200, "seed": 1})
    assert response.status_code == 200
    body = response.json()
    assert body["division"] == "A"
    assert {r["team"] for r in body["results"]} == {"Lions", "Tigers", "Bears", "Wolves"}
    assert sum(r["p_title"] for r in body["results"]) == pytest.approx(100.0, abs=2.0)


def test_simulate_with_what_if(client) -> None:
    payload = {
        "division": "A",
        "iterations": 50,
        "seed": 1,
        "whatIf": [
            {"home": "Lions", "away": "Bears", "homeScore": 10, "awayScore": 0},
            {"home": "Wolves", "away": "Lions", "homeScore": 0, "awayScore": 10},
        ],
    }
    body = client.post("/api/simulate", json=payload).json()
    lions = next(r for r in body["results"] if r["team"] == "Lions")
    assert lions["p_title"] == 100.0
    assert lions["avg_pts"] == 10.0


def test_simulate_errors(client) -> None:
    response = client.post("/api/simulate", json={"division": "Z"})
    assert response.status_code == 404
    assert _error_code(response) == "DIVISION_NOT_FOUND"

    assert client.post("/api/simulate", json={"division": "A", "iterations": 0}).status_code == 422

    payload = {"division": "A", "whatIf": [{"home": "Lions", "away": "Ghosts", "homeScore": 5, "awayScore": 5}]}
    response = client.post("/api/simulate", json=payload)
    assert response.status_code == 422
    assert _error_code(response) == "SIMULATION_FAILED"


def test_rankings(client) -> None:
    body = client.get("/api/rankings/A").json()
    assert body["division"] == "A"
    assert [r["team"] for r in body["rankings"]] == ["Lions", "Bears", "Wolves", "Tigers"]
    assert body["rankings"][0]["previous_rank"] is None

    body = client.get("/api/schedule-strength/A").json()
    assert [s["team"] for s in body["teams"]] == ["Bears", "Wolves", "Lions", "Tigers"]
    assert body["teams"][0]["rank"] == 1

    for path in ("/api/rankings/Z", "/api/schedule-strength/Z"):
        response = client.get(path)
        assert response.status_code == 404
        assert _error_code(response) == "DIVISION_NOT_FOUND"


def test_scouting(client) -> None:
    body = client.get("/api/scouting/Lions", params={"topN": 2}).json()
    assert body["has_data"] is True
    assert body["team_form"] == ["W", "W"]
    assert len(body["strongest_players"]) == 2

    response = client.get("/api/scouting/Ghosts")
    assert response.status_code == 404


def test_lineup(client) -> None:
    response = client.post("/api/lineup", json={"team": "Lions", "opponent": "Tigers", "isHome": True})
    assert response.status_code == 200
    body = response.json()
    assert len(body["set1"]) == 4
    assert body["set2"] == []
    assert body["excluded"] == ["L5"]


def test_h2h(client) -> None:
    body = client.get("/api/h2h", params={"playerA": "L1", "playerB": "T1"}).json()
    assert body["analysis"]["record"]["wins"] == 2
    assert body["analysis"]["record"]["losses"] == 0

    body = client.get("/api/h2h", params={"playerA": "L1", "playerB": "B2"}).json()
    assert body["analysis"] is None


def test_league_strengths_single_league(client) -> None:
    body = client.get("/api/league-strengths").json()
    assert body["bridge_players"] == 0
    assert body["strengths"][0]["league_id"] == "test"
    assert body["strengths"][0]["multiplier"] == 1.0


def test_league_selection_with_several_leagues(dataset, league_data) -> None:
    other = dataset_from_dict(league_data, league_id="other")
    client = TestClient(create_app(store=DatasetStore(preloaded=[dataset, other]), config=EngineConfig()))

    response = client.post("/api/predict", json={"home": "Lions", "away": "Tigers"})
    assert response.status_code == 422
    assert _error_code(response) == "LEAGUE_REQUIRED"

    response = client.post("/api/predict", json={"leagueId": "nope", "home": "Lions", "away": "Tigers"})
    assert response.status_code == 404
    assert _error_code(response) == "LEAGUE_NOT_FOUND"

    response = client.post("/api/predict", json={"leagueId": "other", "home": "Lions", "away": "Tigers"})
    assert response.status_code == 200


def test_dataset_store_loads_directory(tmp_path) -> None:
    (tmp_path / "sample.json").write_text(FIXTURE.read_text(encoding="utf-8"), encoding="utf-8")
    (tmp_path / "broken.json").write_text("{", encoding="utf-8")
    (tmp_path / "nodivs.json").write_text(json.dumps({"league": {"id": "x"}}), encoding="utf-8")
    (tmp_path / "list.json").write_text("[1]", encoding="utf-8")

    store = DatasetStore(tmp_path)
    assert set(store.datasets()) == {"sample"}
    assert store.get("sample").name == "Sample League"
    assert store.get("missing") is None
    assert DatasetStore(tmp_path / "absent").datasets() == {}
