from typing import Any, Dict, List

import pytest

from poolstats.normalize import LeagueDataset, dataset_from_dict

TEAMS = {
    "Lions": ["L1", "L2", "L3", "L4", "L5"],
    "Tigers": ["T1", "T2", "T3", "T4", "T5"],
    "Bears": ["B1", "B2", "B3", "B4", "B5"],
    "Wolves": ["W1", "W2", "W3", "W4", "W5"],
}


def _match(match_id: str, date: str, home: str, away: str, home_wins: List[int]) -> Dict[str, Any]:
    frames = []
    for i in range(10):
        frames.append(
            {
                "frameNum": i + 1,
                "homePlayer": TEAMS[home][i % 5],
                "awayPlayer": TEAMS[away][i % 5],
                "winner": "home" if i + 1 in home_wins else "away",
                "breakDish": i == 0,
            }
        )
    return {"matchId": match_id, "date": date, "home": home, "away": away, "division": "A", "frames": frames}


def _stat(team: str, p: int, w: int, **extra: Any) -> Dict[str, Any]:
    return {"team": team, "div": "A", "p": p, "w": w, "bdF": 1, "bdA": 0, "forf": 0, **extra}


def build_league_data() -> Dict[str, Any]:
    return {
        "league": {"id": "test", "name": "Test League"},
        "divisions": {"A": {"name": "Division A", "teams": list(TEAMS)}},
        "results": [
            {"date": "10-01-2025", "home": "Lions", "away": "Tigers", "home_score": 7, "away_score": 3, "division": "A", "frames": 10},
            {"date": "10-01-2025", "home": "Bears", "away": "Wolves", "home_score": 5, "away_score": 5, "division": "A", "frames": 10},
            {"date": "17-01-2025", "home": "Tigers", "away": "Bears", "home_score": 4, "away_score": 6, "division": "A", "frames": 10},
            {"date": "17-01-2025", "home": "Wolves", "away": "Lions", "home_score": 2, "away_score": 8, "division": "A", "frames": 10},
        ],
        "fixtures": [
            {"date": "10-01-2025", "home": "Lions", "away": "Tigers", "division": "A"},
            {"date": "24-01-2025", "home": "Lions", "away": "Bears", "division": "A"},
            {"date": "24-01-2025", "home": "Tigers", "away": "Wolves", "division": "A"},
            {"date": "31-01-2025", "home": "Bears", "away": "Tigers", "division": "A"},
            {"date": "31-01-2025", "home": "Wolves", "away": "Lions", "division": "A"},
        ],
        "frames": [
            _match("m1", "10-01-2025", "Lions", "Tigers", [1, 2, 3, 4, 6, 7, 8]),
            _match("m2", "10-01-2025", "Bears", "Wolves", [1, 2, 3, 9, 10]),
            _match("m3", "17-01-2025", "Tigers", "Bears", [1, 2, 6, 7]),
            _match("m4", "17-01-2025", "Wolves", "Lions", [5, 10]),
        ],
        "rosters": {"A:" + team: players for team, players in TEAMS.items()},
        "players": {
            "L1": {"r": 60, "w": 0.6, "p": 20},
            "T1": {"r": 40, "w": 0.4, "p": 20},
        },
        "players2526": {
            "L1": {"teams": [_stat("Lions", 8, 6), _stat("Lions Cup", 4, 4, cup=True)]},
            "L2": {"teams": [_stat("Lions", 8, 5)]},
            "L3": {"teams": [_stat("Lions", 6, 3)]},
            "L4": {"teams": [_stat("Lions", 5, 2)]},
            "L5": {"teams": [_stat("Lions", 4, 2)]},
            "T1": {"teams": [_stat("Tigers", 6, 2)]},
            "T2": {"teams": [_stat("Tigers", 6, 3)]},
            "B1": {"teams": [_stat("Bears", 6, 4)]},
            "W1": {"teams": [_stat("Wolves", 6, 1)]},
        },
    }


@pytest.fixture
def league_data() -> Dict[str, Any]:
    return build_league_data()


@pytest.fixture
def dataset(league_data: Dict[str, Any]) -> LeagueDataset:
    return dataset_from_dict(league_data)
