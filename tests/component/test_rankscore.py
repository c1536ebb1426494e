import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))
import nettally.component.rankscore as rs

RANKINGS = {
    'empty': [],
    'one_first': [(1, {'a'})],
    'many_first': [(1, {'a', 'b', 'c', 'd'})],
    'mixed': [(1, {'a'}), (2, {'b', 'c'}), (9, {'d'})],
    'last': [(9, {'a', 'b'})],
    'invalid': [(0, {'a'}), (12, {'b'})],
}


@pytest.mark.parametrize('scorer_name', ['borda', 'inverse_borda',
                                         'lower_wilson', 'voter_count'])
@pytest.mark.parametrize('ranking_name', list(RANKINGS.keys()))
def test_nonnegative(scorer_name, ranking_name):
    assert rs.get(scorer_name)(RANKINGS[ranking_name]) >= 0


def test_borda():
    assert rs.borda(RANKINGS['mixed']) == 9 + 8 * 2 + 1
    assert rs.borda(RANKINGS['invalid']) == 0
    assert rs.borda([]) == 0


def test_inverse_borda():
    assert rs.inverse_borda(RANKINGS['mixed']) == pytest.approx(
        1 + 2 / 2 + 1 / 9
    )


POSITIVE_PORTIONS = {
    -1: 0,
    0: 0,
    1: 1,
    2: .875,
    5: .5,
    9: 0,
    15: 0,
}


@pytest.mark.parametrize('rank, portion', POSITIVE_PORTIONS.items())
def test_positive_portion(rank, portion):
    assert rs.positive_portion(rank) == pytest.approx(portion)


def test_lower_wilson_single():
    assert rs.lower_wilson(RANKINGS['one_first']) == pytest.approx(
        1 / (1 + rs.WILSON_Z ** 2)
    )


def test_lower_wilson_empty():
    assert rs.lower_wilson([]) == 0


def test_lower_wilson_more_voters_better():
    assert (rs.lower_wilson(RANKINGS['many_first'])
            > rs.lower_wilson(RANKINGS['one_first']))


def test_lower_wilson_better_ranks_better():
    assert (rs.lower_wilson([(1, {'a', 'b'})])
            > rs.lower_wilson([(3, {'a', 'b'})])
            > rs.lower_wilson(RANKINGS['last']))


def test_lower_wilson_bounds():
    for ranking in RANKINGS.values():
        assert 0 <= rs.lower_wilson(ranking) <= 1


def test_voter_count():
    assert rs.voter_count(RANKINGS['mixed']) == 4
    assert rs.voter_count([(1, {'a'}), (2, {'a'})]) == 1


def test_get_unknown():
    with pytest.raises(KeyError, match='rank scorer'):
        rs.get('nonexistent')


def test_construct():
    assert rs.construct('borda') is rs.borda
    custom = lambda ranks: 42
    assert rs.construct(custom) is custom
    assert set(rs.RANK_SCORERS) == {
        'borda', 'inverse_borda', 'lower_wilson', 'voter_count'
    }
