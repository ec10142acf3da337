from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List


def jsonable(obj: Any) -> Any:
    """Dataclasses, enums and dates to plain JSON types."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return jsonable(asdict(obj))
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [jsonable(v) for v in obj]
    return obj


def _pct(value: Any) -> str:
    return f"{float(value or 0):.1f}%"


def render_report(report: Dict[str, Any]) -> str:
    lines = []
    lines.append("SCOUTING REPORT")
    lines.append(f"Opponent: {report.get('opponent')}")
    if not report.get("has_data"):
        lines.append("No data for this team.")
        return "\n".join(lines)
    lines.append("")

    lines.append("Form: " + (" ".join(report.get("team_form") or []) or "-"))
    home_away = report.get("home_away") or {}
    for venue in ("home", "away"):
        rec = home_away.get(venue) or {}
        lines.append(
            f"{venue.title()}: P{rec.get('p', 0)} W{rec.get('w', 0)} D{rec.get('d', 0)} "
            f"L{rec.get('l', 0)} | {_pct(rec.get('win_pct'))}"
        )

    sets = report.get("set_performance")
    if sets:
        lines.append(
            f"Sets: S1 {_pct(sets['set1'].get('pct'))} | S2 {_pct(sets['set2'].get('pct'))} | "
            f"bias {sets.get('bias', 0):+.1f}pp" + (" (even)" if sets.get("is_even") else "")
        )

    bd = report.get("bd_stats") or {}
    lines.append(
        f"Break & dish: for {bd.get('bd_f_rate', 0):.2f}/game | against {bd.get('bd_a_rate', 0):.2f}/game | "
        f"net {bd.get('net_bd', 0):+d}"
    )
    lines.append(f"Forfeit rate: {report.get('forfeit_rate', 0) * 100:.1f}%")
    lines.append("")

    lines.append("Predicted lineup")
    for p in (report.get("predicted_lineup") or {}).get("players", [])[:10]:
        lines.append(f"- {p['name']}: {p['appearances']}/{p['total_matches']} ({p['category']})")
    lines.append("")

    for key, title in (("strongest_players", "Strongest"), ("weakest_players", "Weakest")):
        lines.append(title)
        for p in report.get(key) or []:
            lines.append(f"- {p['name']}: adj {_pct(p['adj_pct'])} ({p['played']} games)")
    return "\n".join(lines)


def render_prediction(home: str, away: str, prediction: Dict[str, Any]) -> str:
    lines = [f"{home} v {away}"]
    lines.append(
        f"Home {_pct(prediction['p_home_win'])} | Draw {_pct(prediction['p_draw'])} | "
        f"Away {_pct(prediction['p_away_win'])}"
    )
    lines.append(f"Expected: {prediction['expected_home']:.1f} - {prediction['expected_away']:.1f}")
    lines.append("Likely scores")
    for s in prediction.get("top_scores") or []:
        lines.append(f"- {s['home']}-{s['away']}: {s['probability'] * 100:.1f}%")
    baseline = prediction.get("baseline")
    if baseline:
        lines.append(
            f"Baseline: Home {_pct(baseline['p_home_win'])} | Draw {_pct(baseline['p_draw'])} | "
            f"Away {_pct(baseline['p_away_win'])}"
        )
    return "\n".join(lines)


def render_simulation(division: str, results: List[Dict[str, Any]]) -> str:
    lines = [f"SEASON PROJECTION {division}"]
    lines.append(f"{'Team':<28}{'Pts':>5}{'Avg':>7}{'Title':>8}{'Top2':>8}{'Bot2':>8}")
    for r in results:
        lines.append(
            f"{r['team']:<28}{r['current_pts']:>5}{r['avg_pts']:>7.1f}"
            f"{r['p_title']:>7.1f}%{r['p_top2']:>7.1f}%{r['p_bot2']:>7.1f}%"
        )
    return "\n".join(lines)


def render_lineup(suggestion: Dict[str, Any]) -> str:
    lines = []
    for key, title in (("set1", "Set 1"), ("set2", "Set 2")):
        lines.append(title)
        for s in suggestion.get(key) or []:
            lines.append(f"- {s['name']}: {s['score']:.1f} (h2h {s['h2h_advantage']:+d})")
    insights = suggestion.get("insights") or []
    if insights:
        lines.append("")
        lines.append("Insights")
        lines.extend(f"- {i}" for i in insights)
    return "\n".join(lines)


def render_h2h(analysis: Dict[str, Any]) -> str:
    record = analysis["record"]
    lines = [
        f"{record['player_a']} v {record['player_b']}: {record['wins']}-{record['losses']} "
        f"({analysis['advantage']}, confidence {analysis['confidence']:.1f})"
    ]
    for m in analysis.get("recent") or []:
        lines.append(f"- {m['date']} {'W' if m['won'] else 'L'} {m['division']}")
    return "\n".join(lines)


def render_league_strengths(strengths: List[Dict[str, Any]]) -> str:
    lines = ["LEAGUE STRENGTHS"]
    for s in strengths:
        lines.append(
            f"- {s['league_id']}: x{s['multiplier']:.3f} | confidence {s['confidence']:.1f} | "
            f"{s['bridge_player_count']} bridge players"
        )
    return "\n".join(lines)


def render_rankings(division: str, rankings: List[Dict[str, Any]], schedule: List[Dict[str, Any]]) -> str:
    lines = [f"POWER RANKINGS {division}"]
    for r in rankings:
        lines.append(
            f"{r['rank']:>2}. {r['team']:<26}{r['score']:.3f}  form {r['form']:.2f}  "
            f"mov {r['mov']:.2f}  sos {r['sos']:.2f}"
        )
    lines.append("")
    lines.append("REMAINING SCHEDULE (hardest first)")
    for s in schedule:
        lines.append(f"{s['rank']:>2}. {s['team']:<26}{s['remaining_sos']:+.3f} over {s['remaining_count']} fixtures")
    return "\n".join(lines)
