"""
Set-score parsing for beach volleyball matches.

Input is the structured list stored on a match:
  [{"set_number": 1, "pair_a_score": 21, "pair_b_score": 18}, ...]

A set goes to the higher score; equal scores count for nobody. The match
goes to the pair that reaches a majority of `best_of` sets.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fantabeach_admin.errors import bad_request


@dataclass
class ParsedScore:
    sets: List[Tuple[int, int]]  # (pair_a_points, pair_b_points) per set
    pair_a_sets_won: int
    pair_b_sets_won: int
    pair_a_points: int
    pair_b_points: int


def parse_set_scores(set_scores: Sequence[Dict[str, Any]]) -> ParsedScore:
    sets: List[Tuple[int, int]] = []
    a_sets = 0
    b_sets = 0
    for s in set_scores:
        a = int(s.get("pair_a_score", 0))
        b = int(s.get("pair_b_score", 0))
        sets.append((a, b))
        if a > b:
            a_sets += 1
        elif b > a:
            b_sets += 1
    return ParsedScore(
        sets=sets,
        pair_a_sets_won=a_sets,
        pair_b_sets_won=b_sets,
        pair_a_points=sum(a for a, _ in sets),
        pair_b_points=sum(b for _, b in sets),
    )


def sets_needed(best_of: int) -> int:
    return best_of // 2 + 1


def decided_after(set_scores: Sequence[Dict[str, Any]], best_of: int = 3) -> Optional[int]:
    """1-based number of the set that decided the match, or None if undecided."""
    needed = sets_needed(best_of)
    a_sets = 0
    b_sets = 0
    for index, s in enumerate(set_scores, start=1):
        a = int(s.get("pair_a_score", 0))
        b = int(s.get("pair_b_score", 0))
        if a > b:
            a_sets += 1
        elif b > a:
            b_sets += 1
        if a_sets >= needed or b_sets >= needed:
            return index
    return None


def compute_winner(
    set_scores: Sequence[Dict[str, Any]],
    pair_a_id: str,
    pair_b_id: str,
    best_of: int = 3,
) -> Optional[str]:
    """Winning pair id, or None when no pair reached the set majority.

    Sets played after the deciding one make the score invalid.
    """
    if len(set_scores) > best_of:
        return None
    if decided_after(set_scores, best_of) != len(set_scores):
        return None
    parsed = parse_set_scores(set_scores)
    needed = sets_needed(best_of)
    if parsed.pair_a_sets_won >= needed:
        return pair_a_id
    if parsed.pair_b_sets_won >= needed:
        return pair_b_id
    return None


def normalize_set_scores(set_scores: Sequence[Dict[str, Any]], best_of: int = 3) -> List[Dict[str, int]]:
    """Validate and renumber submitted sets (1-based, submission order)."""
    if len(set_scores) > best_of:
        raise bad_request(
            "Too many sets for this match format",
            {"best_of": best_of, "sets": len(set_scores)},
        )
    normalized: List[Dict[str, int]] = []
    for index, s in enumerate(set_scores, start=1):
        a = int(s.get("pair_a_score", 0))
        b = int(s.get("pair_b_score", 0))
        if a < 0 or b < 0:
            raise bad_request("Set scores cannot be negative", {"set_number": index, "pair_a_score": a, "pair_b_score": b})
        normalized.append({"set_number": index, "pair_a_score": a, "pair_b_score": b})
    decided = decided_after(normalized, best_of)
    if decided is not None and decided < len(normalized):
        raise bad_request(
            "Sets recorded after the match was decided",
            {"best_of": best_of, "decided_after_set": decided, "sets": len(normalized)},
        )
    return normalized
