'''Count ranked votes.

Ranked votes of a single task are given as a dictionary mapping each option
to a dictionary of the voters that ranked it and the ranks (1 to 9, lower is
better) they gave it. Counters return a list of
:class:`core.RankResult` objects, one for each option, ranked from 1.

Four counting methods are available:

-   :class:`cardinal.Wilson` orders the options by the lower bound of the
    Wilson score of their ratings,
-   :class:`sequential.Baldwin` repeatedly eliminates the option with the
    lowest Wilson score until one has majority support,
-   :class:`sequential.RIRV` runs off the two best options by Wilson score
    against each other,
-   :class:`condorcet.Schulze` uses the beatpath Condorcet method.

Instances of all of them are available in the ``EVALUATORS`` dictionary and
through :func:`get_counter`.
'''

from typing import Union

from nettally.evaluate import cardinal, condorcet, sequential
from nettally.evaluate.core import RankCounter
from nettally.quest import RankCounterMethod


EVALUATORS = {
    **cardinal.EVALUATORS,
    **sequential.EVALUATORS,
    **condorcet.EVALUATORS,
}

DEFAULT_COUNTER = 'wilson'


def get_counter(
    method: Union[RankCounterMethod, str] = RankCounterMethod.DEFAULT,
) -> RankCounter:
    '''Return the ranked vote counter for a counting method.

    :param method: The counting method, or its name.
    :raises KeyError: If no counter of that name exists.
    '''
    if isinstance(method, RankCounterMethod):
        method = method.value
    if method == RankCounterMethod.DEFAULT.value:
        method = DEFAULT_COUNTER
    try:
        return EVALUATORS[method]
    except KeyError:
        raise KeyError(f'unknown rank counter: {method}') from None
