'''General ranked vote counter machinery.'''

import abc
from typing import Any, List, Tuple, NamedTuple
from numbers import Number

import nettally.util
from nettally.util import RankedVotes


class RankCountingError(Exception):
    '''A ranked vote counter ended up in an inconsistent state.'''
    pass


class RankResult(NamedTuple):
    '''A single place in the ranked result of a task.

    :param rank: Place of the option, starting at 1.
    :param score: Score that decided the place; its meaning depends on the
        counting method.
    :param vote: The option.
    '''
    rank: int
    score: Number
    vote: Any


class RankCounter(metaclass=abc.ABCMeta):
    '''An abstract base class for ranked vote counters.

    Counters take ranked votes as a mapping of options to the ranks given
    to them by individual voters and order all the options. Subclasses
    implement :meth:`order`; the input given to it is a private copy that
    the counter is free to modify.
    '''
    def evaluate(self, votes: RankedVotes) -> List[RankResult]:
        '''Rank all options of a task.

        :param votes: Mapping of options to mappings of voters to the rank
            (1 to 9) they gave the option.
        :returns: One result per option, with ranks running from 1.
        :raises RankCountingError: If the counting method fails to order
            every option exactly once.
        '''
        if not votes:
            return []
        elif len(votes) == 1:
            return [RankResult(1, 1, next(iter(votes)))]
        ordered = self.order(nettally.util.copy_votes(votes))
        return ranked_results(ordered, votes)

    @abc.abstractmethod
    def order(self, votes: RankedVotes) -> List[Tuple[Any, Number]]:
        '''Return all options with their scores, best first.'''
        raise NotImplementedError


def ranked_results(ordered: List[Tuple[Any, Number]],
                   votes: RankedVotes,
                   ) -> List[RankResult]:
    '''Number the ordered options, checking that each appears once.'''
    options = [option for option, score in ordered]
    if len(options) != len(votes) or set(options) != set(votes):
        raise RankCountingError(
            f'ordering of {len(options)} options does not match'
            f' the {len(votes)} counted'
        )
    return [
        RankResult(rank, score, option)
        for rank, (option, score) in enumerate(ordered, start=1)
    ]
