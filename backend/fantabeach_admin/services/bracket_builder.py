"""
Bracket projection.

The bracket is never stored: it is rebuilt from the tournament's matches on
every read, so identical match sets always give identical brackets. Edges
follow the same slot arithmetic the progression engine uses to fill
successor matches.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from fantabeach_admin.models.match import PHASES, Match
from fantabeach_admin.schemas import BracketData, BracketEdge, BracketNode

KNOCKOUT_PHASES = ("qualification", "main_draw")


def _phase_order(phase: str) -> int:
    return PHASES.index(phase) if phase in PHASES else len(PHASES)


def _node_for(match: Match) -> BracketNode:
    return BracketNode(
        id=f"node_{match.id}",
        tournament_id=match.tournament_id,
        phase=match.phase,
        round=match.round,
        slot=match.slot,
        match_id=match.id,
        label=f"{match.phase} R{match.round} M{match.slot}",
        pair_a_id=match.pair_a_id,
        pair_b_id=match.pair_b_id,
        winner_pair_id=match.winner_pair_id,
        status=match.status,
    )


def _edge(source: BracketNode, target: BracketNode, outcome: str, to_slot: str) -> BracketEdge:
    return BracketEdge(
        id=f"edge_{source.id}_{target.id}_{outcome}",
        from_node_id=source.id,
        to_node_id=target.id,
        outcome=outcome,
        to_slot=to_slot,
    )


def knockout_successor(slot: int) -> Tuple[int, str]:
    """Next-round slot and pair side fed by the winner of `slot`."""
    return (slot + 1) // 2, ("A" if slot % 2 == 1 else "B")


def pool_successors(slot: int) -> Tuple[int, int, str]:
    """Round-2 (winners slot, losers slot, side) fed by a round-1 pool match."""
    base = slot if slot % 2 == 1 else slot - 1
    pool_index = (base + 1) // 2
    winners_slot = pool_index * 2 - 1
    return winners_slot, winners_slot + 1, ("A" if slot % 2 == 1 else "B")


def build(tournament_id: int, matches: Iterable[Match]) -> BracketData:
    tournament_matches = sorted(
        (m for m in matches if m.tournament_id == tournament_id),
        key=lambda m: (_phase_order(m.phase), m.round, m.slot, m.id or 0),
    )
    nodes = [_node_for(m) for m in tournament_matches]

    by_position: Dict[Tuple[str, int, int], BracketNode] = {}
    for node in nodes:
        by_position.setdefault((node.phase, node.round, node.slot), node)

    def lookup(phase: str, round_: int, slot: int) -> Optional[BracketNode]:
        return by_position.get((phase, round_, slot))

    edges: List[BracketEdge] = []
    for node in nodes:
        if node.phase in KNOCKOUT_PHASES:
            next_slot, side = knockout_successor(node.slot)
            target = lookup(node.phase, node.round + 1, next_slot)
            if target is not None:
                edges.append(_edge(node, target, "winner", side))
        elif node.phase == "pools" and node.round == 1:
            winners_slot, losers_slot, side = pool_successors(node.slot)
            winners = lookup(node.phase, 2, winners_slot)
            losers = lookup(node.phase, 2, losers_slot)
            if winners is not None:
                edges.append(_edge(node, winners, "winner", side))
            if losers is not None:
                edges.append(_edge(node, losers, "loser", side))

    return BracketData(tournament_id=tournament_id, nodes=nodes, edges=edges)
