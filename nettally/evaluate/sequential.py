'''Ranked vote counters electing one winner after another by elimination.

Both counters here fill the result from the top: they find the winner among
the remaining options, place it, remove it from all ballots and repeat until
no options remain. They differ in how the winner of each round is found.
'''

import collections
import logging
from typing import Any, List, Tuple, Dict

import nettally.util
from nettally.evaluate.core import RankCounter, RankCountingError
from nettally.evaluate.cardinal import wilson_scores
from nettally.persist import simple_serialization
from nettally.util import RankedVotes


logger = logging.getLogger(__name__)


def remove_option(votes: RankedVotes, option: Any) -> None:
    del votes[option]


class SequentialCounter(RankCounter):
    '''A counter that places the options one by one, best first.'''
    def order(self, votes: RankedVotes) -> List[Tuple[Any, float]]:
        ordered = []
        while votes:
            if len(votes) == 1:
                winner, score = next(iter(votes)), 1
            else:
                winner, score = self.winner(votes)
            logger.info('placing %s at rank %d', winner, len(ordered) + 1)
            ordered.append((winner, score))
            remove_option(votes, winner)
        return ordered

    def winner(self, votes: RankedVotes) -> Tuple[Any, float]:
        raise NotImplementedError


@simple_serialization
class Baldwin(SequentialCounter):
    '''Baldwin-style instant runoff ranked vote counter.

    In each round, every voter supports their most preferred remaining
    options (all of them if several share the voter's best rank). If an
    option is supported by a majority of the voters, it wins with its support
    as the score. Otherwise, the option with the lowest lower Wilson score is
    eliminated and the round is repeated. The last option standing wins with
    a score of one.
    '''
    def winner(self, votes: RankedVotes) -> Tuple[Any, float]:
        remaining = nettally.util.copy_votes(votes)
        win_count = len(nettally.util.all_voters(remaining)) // 2 + 1
        while len(remaining) > 1:
            support = self.first_preferences(remaining)
            if support:
                best = max(support, key=support.get)
                if support[best] >= win_count:
                    logger.debug('%s has majority support %d of needed %d',
                                 best, support[best], win_count)
                    return best, support[best]
            scores = wilson_scores(remaining)
            eliminated = min(scores, key=scores.get)
            logger.info('eliminating %s', eliminated)
            remove_option(remaining, eliminated)
        if not remaining:
            raise RankCountingError('all options eliminated')
        return next(iter(remaining)), 1

    @staticmethod
    def first_preferences(votes: RankedVotes) -> Dict[Any, int]:
        '''Count the voters that prefer each option most.

        Options with no such voters are left out; the result keeps the input
        order of the options.
        '''
        best_ranks = {}
        for option, rankings in votes.items():
            for voter, rank in rankings.items():
                if voter not in best_ranks or rank < best_ranks[voter]:
                    best_ranks[voter] = rank
        support = collections.Counter()
        for option, rankings in votes.items():
            for voter, rank in rankings.items():
                if rank == best_ranks[voter]:
                    support[option] += 1
        return {
            option: support[option] for option in votes if option in support
        }


@simple_serialization
class RIRV(SequentialCounter):
    '''Rated instant runoff ranked vote counter.

    In each round, the two options with the highest lower Wilson scores
    proceed to a runoff. Each voter supports the one they rank better; a
    voter ranking only one of them supports that one and a voter ranking
    both equally supports neither. The option with more support wins, with
    ties going to the one with the higher Wilson score. The score is the
    runoff support of the winner.
    '''
    def winner(self, votes: RankedVotes) -> Tuple[Any, float]:
        scores = wilson_scores(votes)
        index = nettally.util.first_index(votes)
        first, second = sorted(
            votes, key=lambda option: (-scores[option], index[option])
        )[:2]
        count1, count2 = self.runoff(votes, first, second)
        logger.debug('runoff %s (%d) vs %s (%d)',
                     first, count1, second, count2)
        if count2 > count1:
            return second, count2
        return first, count1

    @staticmethod
    def runoff(votes: RankedVotes, option1: Any, option2: Any
               ) -> Tuple[int, int]:
        '''Count the voters preferring each of the two options.'''
        ranks1 = votes[option1]
        ranks2 = votes[option2]
        count1 = 0
        count2 = 0
        for voter in set(ranks1) | set(ranks2):
            rank1 = ranks1.get(voter)
            rank2 = ranks2.get(voter)
            if rank2 is None or (rank1 is not None and rank1 < rank2):
                count1 += 1
            elif rank1 is None or rank2 < rank1:
                count2 += 1
        return count1, count2


EVALUATORS = {
    'baldwin': Baldwin(),
    'rirv': RIRV(),
}
