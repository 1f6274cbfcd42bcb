"""
League leaderboard computation.

Rows are derived from the latest scoring run of every tournament in the
league's season. Ordering: total points desc, then each of the league's
named tie-breaker rules desc (in list order), then user id asc. Insertion
order never decides a tie.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from fantabeach_admin.clock import storage_timestamp
from fantabeach_admin.errors import bad_request
from fantabeach_admin.models.league import LeaderboardRow, League
from fantabeach_admin.models.scoring import ScoringRun

logger = logging.getLogger(__name__)

LEGACY_TIE_BREAK_MODULUS = 17


@dataclass
class UserSeasonAggregate:
    user_id: int
    total_points: int = 0
    best_player_score: int = 0
    tournaments_topped: int = 0


@dataclass
class LeaderboardEntry:
    user_id: int
    display_name: str
    rank: int
    total_points: int
    tie_breaker_score: int


TIE_BREAKER_RULES: Dict[str, Callable[[UserSeasonAggregate], int]] = {
    "highest_player_score": lambda agg: agg.best_player_score,
    "match_dominance": lambda agg: agg.tournaments_topped,
    "total_mod_17": lambda agg: agg.total_points % LEGACY_TIE_BREAK_MODULUS,
}


def validate_tie_breakers(rules: Iterable[str]) -> List[str]:
    rules = list(rules)
    unknown = [rule for rule in rules if rule not in TIE_BREAKER_RULES]
    if unknown:
        raise bad_request(
            "Unknown tie-breaker rule",
            {"tie_breakers": unknown, "allowed": sorted(TIE_BREAKER_RULES)},
        )
    if len(set(rules)) != len(rules):
        raise bad_request("Tie-breaker rules must be unique", {"tie_breakers": rules})
    return rules


def aggregate_runs(latest_runs: Iterable[ScoringRun]) -> Dict[int, UserSeasonAggregate]:
    aggregates: Dict[int, UserSeasonAggregate] = {}
    for run in sorted(latest_runs, key=lambda r: (r.tournament_id, r.id or 0)):
        top = max((row["total_points"] for row in run.totals_by_user), default=None)
        for row in run.totals_by_user:
            user_id = int(row["user_id"])
            agg = aggregates.setdefault(user_id, UserSeasonAggregate(user_id=user_id))
            total = int(row["total_points"])
            agg.total_points += total
            player_scores = [int(v) for v in (row.get("player_points") or {}).values()]
            if player_scores:
                agg.best_player_score = max(agg.best_player_score, max(player_scores))
            if top is not None and total == top and top > 0:
                agg.tournaments_topped += 1
    return aggregates


def tie_breaker_score(agg: UserSeasonAggregate, rules: List[str]) -> int:
    if not rules:
        return agg.total_points % LEGACY_TIE_BREAK_MODULUS
    return TIE_BREAKER_RULES[rules[0]](agg)


def recompute_league_rows(
    tie_breakers: List[str],
    latest_runs: Iterable[ScoringRun],
    display_names: Optional[Mapping[int, str]] = None,
) -> List[LeaderboardEntry]:
    display_names = display_names or {}
    rules = [rule for rule in tie_breakers if rule in TIE_BREAKER_RULES]
    aggregates = aggregate_runs(latest_runs)

    def sort_key(agg: UserSeasonAggregate):
        return (
            -agg.total_points,
            *(-TIE_BREAKER_RULES[rule](agg) for rule in rules),
            agg.user_id,
        )

    ordered = sorted(aggregates.values(), key=sort_key)
    return [
        LeaderboardEntry(
            user_id=agg.user_id,
            display_name=display_names.get(agg.user_id, str(agg.user_id)),
            rank=index,
            total_points=agg.total_points,
            tie_breaker_score=tie_breaker_score(agg, rules),
        )
        for index, agg in enumerate(ordered, start=1)
    ]


def latest_run_per_tournament(runs: Iterable[ScoringRun]) -> List[ScoringRun]:
    """Most recent run per tournament (highest id wins)."""
    latest: Dict[int, ScoringRun] = {}
    for run in runs:
        current = latest.get(run.tournament_id)
        if current is None or (run.id or 0) > (current.id or 0):
            latest[run.tournament_id] = run
    return [latest[tid] for tid in sorted(latest)]


def refresh_league(repo, league: League, now: datetime) -> List[LeaderboardRow]:
    """Rebuild a league's stored rows from the latest run of every season tournament."""
    runs: List[ScoringRun] = []
    for tournament in repo.list_tournaments(season_id=league.season_id):
        runs.extend(repo.list_scoring_runs(tournament.id))
    latest = latest_run_per_tournament(runs)

    user_ids = {int(row["user_id"]) for run in latest for row in run.totals_by_user}
    names = {uid: user.display_name for uid, user in repo.users_by_ids(user_ids).items()}
    stamp = storage_timestamp(now)
    entries = recompute_league_rows(league.tie_breakers, latest, names)
    rows = [
        LeaderboardRow(
            league_id=league.id,
            user_id=entry.user_id,
            display_name=entry.display_name,
            rank=entry.rank,
            total_points=entry.total_points,
            tie_breaker_score=entry.tie_breaker_score,
            last_updated=stamp,
        )
        for entry in entries
    ]
    logger.info("League %s leaderboard rebuilt from %d run(s): %d row(s)", league.id, len(latest), len(rows))
    return repo.replace_leaderboard_rows(league.id, rows)
