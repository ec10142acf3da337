from __future__ import annotations

import argparse
import json
import logging
from typing import Dict, List, Optional

from dotenv import load_dotenv

from .config import engine_config_from_env
from .head_to_head import analyze_h2h
from .league_strength import calculate_league_strengths, find_all_bridge_players
from .lineup import suggest_lineup
from .normalize import LeagueDataset, SquadOverrides, WhatIfResult, load_dataset, overrides_from_json
from .predictor import predict_fixture
from .rankings import all_schedule_strengths, power_rankings
from .render import (
    jsonable,
    render_h2h,
    render_league_strengths,
    render_lineup,
    render_prediction,
    render_rankings,
    render_report,
    render_simulation,
)
from .report import build_report
from .simulation import simulate_division

logger = logging.getLogger(__name__)


def _load_env() -> None:
    load_dotenv()


def _parse_what_if(value: str) -> WhatIfResult:
    # "Home Team:Away Team:7-3"
    try:
        home, away, score = value.rsplit(":", 2)
        home_score, away_score = (int(x) for x in score.split("-", 1))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected HOME:AWAY:H-A, got {value!r}") from exc
    return WhatIfResult(home=home, away=away, home_score=home_score, away_score=away_score)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pool league prediction and scouting engine")
    parser.add_argument("--data", action="append", required=True, help="League dataset JSON file (repeatable)")
    parser.add_argument("--league", default=None, help="League id to use when several datasets are given")
    parser.add_argument("--output", default=None, help="Path to write output")
    parser.add_argument("--output-format", choices=["json", "text"], default="json", help="Output format")
    parser.add_argument("--debug", action="store_true", help="Print debug logs")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("report", help="Scouting report for a team")
    p.add_argument("--team", required=True)
    p.add_argument("--top-n", type=int, default=None)

    p = sub.add_parser("predict", help="Predict a fixture")
    p.add_argument("--home", required=True)
    p.add_argument("--away", required=True)
    p.add_argument("--overrides", default=None, help="Squad overrides JSON file")
    p.add_argument("--top-n", type=int, default=None, help="Rate squads on their top N players")

    p = sub.add_parser("simulate", help="Project a division's final table")
    p.add_argument("--division", required=True)
    p.add_argument("--what-if", type=_parse_what_if, action="append", default=[], help="HOME:AWAY:H-A")
    p.add_argument("--overrides", default=None, help="Squad overrides JSON file")
    p.add_argument("--top-n", type=int, default=None)
    p.add_argument("--iterations", type=int, default=None)
    p.add_argument("--seed", type=int, default=None)

    p = sub.add_parser("lineup", help="Suggest a lineup against an opponent")
    p.add_argument("--team", required=True)
    p.add_argument("--opponent", required=True)
    p.add_argument("--away", action="store_true", help="Playing away")
    p.add_argument("--set-size", type=int, default=5)

    p = sub.add_parser("h2h", help="Head-to-head between two players")
    p.add_argument("--player-a", required=True)
    p.add_argument("--player-b", required=True)

    p = sub.add_parser("rankings", help="Power rankings and schedule strength for a division")
    p.add_argument("--division", required=True)

    p = sub.add_parser("leagues", help="Relative league strengths from bridge players")
    p.add_argument("--reference", default=None)

    return parser.parse_args(argv)


def _pick(datasets: Dict[str, LeagueDataset], league: Optional[str]) -> LeagueDataset:
    if league is not None:
        if league not in datasets:
            raise SystemExit(f"Unknown league {league!r}; loaded: {', '.join(datasets)}")
        return datasets[league]
    return next(iter(datasets.values()))


def _read_overrides(path: Optional[str]) -> SquadOverrides:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return overrides_from_json(json.load(f))


def _run(args: argparse.Namespace) -> str:
    config = engine_config_from_env()
    datasets: Dict[str, LeagueDataset] = {}
    for path in args.data:
        ds = load_dataset(path)
        datasets[ds.league_id] = ds
    logger.info("Loaded %d dataset(s): %s", len(datasets), ", ".join(datasets))
    text = args.output_format == "text"

    if args.command == "leagues":
        bridges = find_all_bridge_players(datasets, config.bridge_min_games, config.fuzzy_min_confidence)
        strengths = jsonable(calculate_league_strengths(datasets, bridges, reference=args.reference, config=config))
        if text:
            return render_league_strengths(strengths)
        return json.dumps({"bridge_players": len(bridges), "strengths": strengths}, indent=2)

    ds = _pick(datasets, args.league)

    if args.command == "report":
        if ds.division_of(args.team) is None:
            raise SystemExit(f"Unknown team {args.team!r}")
        report = build_report(args.team, ds.games, ds.results, ds.season_stats, ds.rosters(), args.top_n, config)
        report = jsonable(report)
        return render_report(report) if text else json.dumps(report, indent=2)

    if args.command == "predict":
        for team in (args.home, args.away):
            if ds.division_of(team) is None:
                raise SystemExit(f"Unknown team {team!r}")
        result = predict_fixture(ds, args.home, args.away, _read_overrides(args.overrides), args.top_n, config)
        payload = jsonable(result)
        return render_prediction(args.home, args.away, payload) if text else json.dumps(payload, indent=2)

    if args.command == "simulate":
        if args.division not in ds.divisions:
            raise SystemExit(f"Unknown division {args.division!r}")
        results = simulate_division(
            ds,
            args.division,
            what_if=args.what_if,
            squad_overrides=_read_overrides(args.overrides),
            top_n=args.top_n,
            iterations=args.iterations,
            seed=args.seed,
            config=config,
        )
        payload = jsonable(results)
        return render_simulation(args.division, payload) if text else json.dumps(payload, indent=2)

    if args.command == "lineup":
        suggestion = suggest_lineup(
            args.team,
            args.opponent,
            not args.away,
            ds.games,
            ds.season_stats,
            ds.rosters(),
            set_size=args.set_size,
            config=config,
        )
        payload = jsonable(suggestion)
        return render_lineup(payload) if text else json.dumps(payload, indent=2)

    if args.command == "rankings":
        if args.division not in ds.divisions:
            raise SystemExit(f"Unknown division {args.division!r}")
        rankings = jsonable(power_rankings(args.division, ds, config=config))
        schedule = jsonable(all_schedule_strengths(args.division, ds, config))
        if text:
            return render_rankings(args.division, rankings, schedule)
        return json.dumps({"division": args.division, "rankings": rankings, "schedule": schedule}, indent=2)

    if args.command == "h2h":
        analysis = analyze_h2h(args.player_a, args.player_b, ds.games)
        if analysis is None:
            return f"No meetings between {args.player_a} and {args.player_b}."
        payload = jsonable(analysis)
        return render_h2h(payload) if text else json.dumps(payload, indent=2)

    raise SystemExit(f"Unknown command {args.command!r}")


def main(argv: Optional[List[str]] = None) -> None:
    _load_env()
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    output_text = _run(args)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output_text)
    else:
        print(output_text)


if __name__ == "__main__":
    main()
