'''Ranked vote counters ordering options by a score computed for each.

These counters evaluate every option independently of the others, by
converting the ranks it received into a single score; their results thus
never depend on which other options are on the ballot.
'''

import logging
from typing import Any, List, Tuple

import nettally.util
import nettally.component.rankscore
from nettally.evaluate.core import RankCounter
from nettally.persist import simple_serialization
from nettally.util import RankedVotes


logger = logging.getLogger(__name__)


@simple_serialization
class Wilson(RankCounter):
    '''Lower Wilson score ranked vote counter.

    Orders the options by the lower bound of the Wilson confidence interval
    of their ratings (see :func:`nettally.component.rankscore.lower_wilson`),
    so that an option ranked well by many voters beats one ranked somewhat
    better by a few. Ties are broken by the number of voters ranking the
    option, then by the order of the input.
    '''
    def order(self, votes: RankedVotes) -> List[Tuple[Any, float]]:
        scores = wilson_scores(votes)
        ranked = nettally.util.to_ranked_voters(votes)
        index = nettally.util.first_index(votes)
        ordered = sorted(votes, key=lambda option: (
            -scores[option],
            -nettally.component.rankscore.voter_count(ranked[option]),
            index[option],
        ))
        logger.debug('wilson scores: %s', scores)
        return [(option, scores[option]) for option in ordered]


def wilson_scores(votes: RankedVotes) -> dict:
    '''Compute the lower Wilson score of every option.'''
    return {
        option: nettally.component.rankscore.lower_wilson(ranks)
        for option, ranks in nettally.util.to_ranked_voters(votes).items()
    }


EVALUATORS = {
    'wilson': Wilson(),
}
