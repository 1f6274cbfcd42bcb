"""
Fantasy scoring.

Per match, every player of a pair earns the pair's points from the first two
sets times the base multiplier; the winning pair's players add the 2-0 or
2-1 bonus from the tournament's scoring config. A manager's tournament total
is the sum over the starters who played, with non-playing starters replaced
by the first unused reserve who did play.

Output ordering is fixed (points desc, user id asc) so that two runs over
the same state are identical.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from fantabeach_admin.models.entry_list_item import EntryListItem
from fantabeach_admin.models.fantasy_team import UserTournamentTeam
from fantabeach_admin.models.match import FINISHED_STATUSES, Match
from fantabeach_admin.models.scoring import ScoringConfig
from fantabeach_admin.models.tournament import Tournament
from fantabeach_admin.services.set_scores import compute_winner

PairToPlayers = Mapping[str, Sequence[int]]


def pair_to_players(entry_items: Iterable[EntryListItem]) -> Dict[str, List[int]]:
    return {item.pair_id: [item.player_a_id, item.player_b_id] for item in entry_items}


def is_scored(match: Match) -> bool:
    return match.status in FINISHED_STATUSES and match.completed_at is not None


def points_by_player_for_match(match: Match, pairs: PairToPlayers, config: ScoringConfig) -> Dict[int, int]:
    points: Dict[int, int] = defaultdict(int)

    first_two = match.set_scores[:2]
    pair_a_base = sum(int(s.get("pair_a_score", 0)) for s in first_two)
    pair_b_base = sum(int(s.get("pair_b_score", 0)) for s in first_two)

    for player_id in pairs.get(match.pair_a_id, []):
        points[player_id] += pair_a_base * config.base_point_multiplier
    for player_id in pairs.get(match.pair_b_id, []):
        points[player_id] += pair_b_base * config.base_point_multiplier

    winner = match.winner_pair_id or compute_winner(match.set_scores, match.pair_a_id, match.pair_b_id, match.best_of)
    if winner:
        sets_won = 0
        for s in match.set_scores:
            a, b = int(s.get("pair_a_score", 0)), int(s.get("pair_b_score", 0))
            if a > b and winner == match.pair_a_id:
                sets_won += 1
            elif b > a and winner == match.pair_b_id:
                sets_won += 1
        bonus = config.bonus_win_20 if sets_won >= 2 and len(match.set_scores) == 2 else config.bonus_win_21
        for player_id in pairs.get(winner, []):
            points[player_id] += bonus

    return dict(points)


def _eligible_matches(
    matches: Sequence[Match],
    registered_at: Optional[datetime],
    no_retroactive_scoring: bool,
) -> List[Match]:
    if not no_retroactive_scoring or registered_at is None:
        return list(matches)
    return [m for m in matches if m.completed_at >= registered_at]


def compute_tournament_totals(
    tournament: Tournament,
    teams: Iterable[UserTournamentTeam],
    matches: Iterable[Match],
    pairs: PairToPlayers,
    config: ScoringConfig,
    registrations: Optional[Mapping[int, datetime]] = None,
) -> List[Dict[str, Any]]:
    registrations = registrations or {}
    scored = sorted(
        (m for m in matches if m.tournament_id == tournament.id and is_scored(m)),
        key=lambda m: (m.completed_at, m.id or 0),
    )
    match_points = {id(m): points_by_player_for_match(m, pairs, config) for m in scored}

    output: List[Dict[str, Any]] = []
    for team in sorted((t for t in teams if t.tournament_id == tournament.id), key=lambda t: (t.user_id, t.id or 0)):
        eligible = _eligible_matches(scored, registrations.get(team.user_id), tournament.no_retroactive_scoring)

        played: Dict[int, int] = defaultdict(int)
        player_totals: Dict[int, int] = defaultdict(int)
        for match in eligible:
            for pair_id in (match.pair_a_id, match.pair_b_id):
                for player_id in pairs.get(pair_id, []):
                    played[player_id] += 1
            for player_id, pts in match_points[id(match)].items():
                player_totals[player_id] += pts

        counted: List[int] = []
        used_reserves = set()
        for starter in team.starters:
            if played.get(starter, 0) > 0:
                counted.append(starter)
                continue
            replacement = next(
                (r for r in team.reserves if r not in used_reserves and r not in team.starters and played.get(r, 0) > 0),
                None,
            )
            if replacement is not None:
                used_reserves.add(replacement)
                counted.append(replacement)

        output.append(
            {
                "user_id": team.user_id,
                "total_points": sum(player_totals.get(pid, 0) for pid in counted),
                "counted_players": counted,
                "player_points": {str(pid): player_totals.get(pid, 0) for pid in counted},
            }
        )

    output.sort(key=lambda row: (-row["total_points"], row["user_id"]))
    return output
