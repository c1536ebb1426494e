'''Various utility functions for other modules of NetTally.

There should normally be no need to use these functions directly.
'''

import operator
import collections
from typing import Any, List, Tuple, Dict, FrozenSet, Hashable, Iterable


Vote = Hashable
Voter = str
RankedVotes = Dict[Vote, Dict[Voter, int]]
RankedVoters = Dict[Vote, List[Tuple[int, FrozenSet[Voter]]]]
VoterRankings = Dict[Voter, List[Tuple[Vote, int]]]


def to_ranked_voters(votes: RankedVotes) -> RankedVoters:
    '''Group the voters of each option by the rank they gave it.

    :param votes: Mapping of options to their voters and the ranks given.
    :returns: Mapping of options to lists of ``(rank, voters)`` pairs,
        ordered by rank.
    '''
    result = {}
    for vote, rankings in votes.items():
        by_rank = collections.defaultdict(set)
        for voter, rank in rankings.items():
            by_rank[rank].add(voter)
        result[vote] = [
            (rank, frozenset(voters))
            for rank, voters in sorted(by_rank.items())
        ]
    return result


def to_voter_rankings(votes: RankedVotes) -> VoterRankings:
    '''Pivot ranked votes to give each voter's ranking of the options.

    :param votes: Mapping of options to their voters and the ranks given.
    :returns: Mapping of voters to lists of ``(option, rank)`` pairs,
        ordered by rank; options with equal rank keep the input order.
    '''
    result = collections.defaultdict(list)
    for vote, rankings in votes.items():
        for voter, rank in rankings.items():
            result[voter].append((vote, rank))
    return {
        voter: sorted(ranking, key=operator.itemgetter(1))
        for voter, ranking in result.items()
    }


def all_voters(votes: RankedVotes) -> FrozenSet[Voter]:
    return frozenset(
        voter for rankings in votes.values() for voter in rankings
    )


def copy_votes(votes: RankedVotes) -> RankedVotes:
    return {vote: dict(rankings) for vote, rankings in votes.items()}


def first_index(items: Iterable[Any]) -> Dict[Any, int]:
    '''Map items to the position of their first occurrence.'''
    index = {}
    for i, item in enumerate(items):
        index.setdefault(item, i)
    return index
