'''Condorcet ranked vote counters.

These counters examine pairwise orderings between options (how many voters
prefer one option to another). An option that beats every other option in
these pairwise contests is always placed first.
'''

import logging
from typing import Any, List, Tuple

import nettally.util
from nettally.evaluate.core import RankCounter
from nettally.persist import simple_serialization
from nettally.util import RankedVotes


logger = logging.getLogger(__name__)

Matrix = List[List[int]]


def pairwise_preferences(votes: RankedVotes, options: List[Any]) -> Matrix:
    '''Count the voters preferring each option to each other option.

    A voter prefers option i to option j if they rank i better than or
    equal to j, or rank i and not j at all. The diagonal stays zero.

    :param votes: Ranked votes.
    :param options: The options; the matrix is indexed by their positions.
    '''
    n = len(options)
    index = {option: i for i, option in enumerate(options)}
    matrix = [[0] * n for i in range(n)]
    for ranking in nettally.util.to_voter_rankings(votes).values():
        ranks = [None] * n
        for option, rank in ranking:
            ranks[index[option]] = rank
        for i in range(n):
            if ranks[i] is None:
                continue
            for j in range(n):
                if i != j and (ranks[j] is None or ranks[i] <= ranks[j]):
                    matrix[i][j] += 1
    return matrix


@simple_serialization
class Schulze(RankCounter):
    '''Schulze (beatpath) Condorcet ranked vote counter.

    Finds the strongest paths between pairs of options in which each option
    pairwise beats the next, keeps the paths that win over the reverse ones
    and orders the options by the number of such winning paths, then by
    their total strength, which is also the reported score.
    '''
    def order(self, votes: RankedVotes) -> List[Tuple[Any, int]]:
        options = list(votes)
        preferences = pairwise_preferences(votes, options)
        logger.debug('pairwise preferences: %s', preferences)
        paths = self.winning_paths(self.widest_paths(preferences))
        wins = [sum(1 for strength in row if strength > 0) for row in paths]
        totals = [sum(row) for row in paths]
        ordering = sorted(
            range(len(options)), key=lambda i: (-wins[i], -totals[i], i)
        )
        return [(options[i], totals[i]) for i in ordering]

    @staticmethod
    def widest_paths(preferences: Matrix) -> Matrix:
        '''Compute the strengths of the strongest paths between options.'''
        n = len(preferences)
        paths = [list(row) for row in preferences]
        for i in range(n):
            for j in range(n):
                if i != j:
                    for k in range(n):
                        if k != i and k != j:
                            paths[j][k] = max(
                                paths[j][k], min(paths[j][i], paths[i][k])
                            )
        return paths

    @staticmethod
    def winning_paths(paths: Matrix) -> Matrix:
        '''Keep only the path strengths not weaker than the reverse paths.'''
        n = len(paths)
        return [
            [
                paths[i][j] if i != j and paths[i][j] >= paths[j][i] else 0
                for j in range(n)
            ]
            for i in range(n)
        ]


EVALUATORS = {
    'schulze': Schulze(),
}
