'''Scoring functions evaluating how well an option is ranked by the voters.

A rank scoring function takes the rankings an option received, as a list of
``(rank, voters)`` pairs where voters is the collection of voters that gave
the option that rank, and returns a single number; higher is better. Ranks
run from 1 (best) to 9 (worst); ranks outside that range do not contribute
to the Borda scores.

All scoring functions are assembled in the `RANK_SCORERS` dictionary keyed
by their name. `get()` retrieves from this dictionary by string key;
`construct()` also accepts callables and passes them through.
'''

import math
from typing import Any, Callable, Collection, List, Tuple

import nettally.component.core


MAX_RANK = 9
WILSON_Z = 1.96

RankedVoters = List[Tuple[int, Collection[Any]]]

RANK_SCORERS = {}


rank_score_mark, get, construct = (
    nettally.component.core.register_functions(
        RANK_SCORERS, 'rank scorer', Callable[[RankedVoters], float]
    )
)


@rank_score_mark
def borda(ranks: RankedVoters) -> float:
    '''Borda score normalized to 9 points for the first rank.

    Each voter contributes ``10 - rank`` points.
    '''
    return float(sum(
        (10 - rank) * len(voters)
        for rank, voters in ranks
        if 0 < rank <= MAX_RANK
    ))


@rank_score_mark
def inverse_borda(ranks: RankedVoters) -> float:
    '''Inverse Borda (Dowdall) score: each voter contributes ``1 / rank``.'''
    return sum(
        len(voters) / rank
        for rank, voters in ranks
        if 0 < rank <= MAX_RANK
    )


def positive_portion(rank: int) -> float:
    '''Map a rank onto the positive portion of a nine-point scale.

    Rank 1 is fully positive, rank 9 and worse fully negative, with even
    steps between. Ranks below 1 are invalid and count as negative.
    '''
    if rank < 1:
        return 0.0
    return 1.0 - (min(rank, MAX_RANK) - 1) * 0.125


@rank_score_mark
def lower_wilson(ranks: RankedVoters) -> float:
    '''Lower bound of the Wilson score confidence interval.

    Each ranking is treated as a partially positive rating according to
    :func:`positive_portion`. The lower bound of the 95% confidence interval
    of the positive proportion favors options ranked well by many voters
    over options ranked slightly better by few.

    :returns: The lower bound, zero if there are no voters or no positive
        ratings.
    '''
    n = sum(len(voters) for rank, voters in ranks)
    if n == 0:
        return 0.0
    positive = sum(
        positive_portion(rank) * len(voters) for rank, voters in ranks
    )
    if positive == 0:
        return 0.0
    p = positive / n
    z2 = WILSON_Z * WILSON_Z
    spread = math.sqrt((p * (1 - p) + z2 / (4 * n)) / n)
    return (p + z2 / (2 * n) - WILSON_Z * spread) / (1 + z2 / n)


@rank_score_mark
def voter_count(ranks: RankedVoters) -> int:
    '''Number of distinct voters that ranked the option at all.'''
    distinct = set()
    for rank, voters in ranks:
        distinct.update(voters)
    return len(distinct)
