import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import nettally.storage
from nettally.block import VoteLineBlock
from nettally.storage import VoteStorage, VoteType
from nettally.voteline import MarkerType, parse_line


def vote_of(*texts):
    return VoteLineBlock([parse_line(text) for text in texts])


APPLE = vote_of('[X] Apple')
BANANA = vote_of('[X] Banana')
CHERRY = vote_of('[X] Cherry')


def test_add_votes_replaces():
    storage = VoteStorage()
    storage.add_votes([APPLE], 'A', 1)
    storage.add_votes([BANANA], 'A', 2)
    assert list(storage) == [BANANA]
    assert storage.voter_posts == {'A': 2}
    assert APPLE not in storage


def test_markers_kept():
    storage = VoteStorage()
    storage.add_votes([vote_of('[1] Apple')], 'A', 1)
    storage.add_votes([vote_of('[2] apple!')], 'B', 2)
    assert len(storage) == 1
    assert storage.key_of(APPLE).marker == '1'
    support = storage.support(APPLE)
    assert support['A'].marker_value == 1
    assert support['B'].marker_value == 2


def test_initial_votes():
    storage = VoteStorage({APPLE: {'A': APPLE}})
    assert storage.voters() == {'A'}
    assert storage.support(BANANA) == {}
    assert storage.key_of(BANANA) is None


def test_remove_unsupported():
    storage = VoteStorage({APPLE: {'A': APPLE}, BANANA: {}})
    assert storage.remove_unsupported() == [BANANA]
    assert list(storage) == [APPLE]


def test_votes_by():
    storage = VoteStorage()
    storage.add_votes([vote_of('[2] Apple'), BANANA], 'A', 1)
    storage.add_votes([CHERRY], 'B', 2)
    assert storage.votes_by('A') == [APPLE, BANANA]
    assert storage.votes_by('A')[0].marker == '2'
    assert storage.votes_by('Nobody') == []


def test_merge_keeps_markers():
    storage = VoteStorage()
    storage.add_votes([vote_of('[1] Apple')], 'A', 1)
    storage.add_votes([vote_of('[2] Banana')], 'B', 2)
    storage.merge(BANANA, APPLE)
    assert list(storage) == [APPLE]
    moved = storage.support(APPLE)['B']
    assert moved.marker == '2'
    assert moved.marker_type == MarkerType.RANK
    assert moved.first.content == 'Apple'


def test_merge_invalid():
    storage = VoteStorage({APPLE: {'A': APPLE}, BANANA: {'B': BANANA}})
    with pytest.raises(KeyError):
        storage.merge(CHERRY, APPLE)
    with pytest.raises(ValueError):
        storage.merge(APPLE, vote_of('[X] apple'))


def test_join():
    storage = VoteStorage()
    storage.add_votes([APPLE], 'A', 1)
    storage.add_votes([BANANA, CHERRY], 'B', 2)
    storage.add_votes([CHERRY], 'C', 3)
    storage.join(['B', 'A'], 'A')
    assert storage.votes_by('B') == [APPLE]
    assert storage.voters() == {'A', 'B', 'C'}
    assert BANANA not in storage
    assert storage.support(CHERRY).keys() == {'C'}


def test_delete():
    storage = VoteStorage({APPLE: {'A': APPLE}, BANANA: {'B': BANANA}})
    assert storage.delete(APPLE) == {'A': APPLE}
    assert list(storage) == [BANANA]


def test_replace():
    parent = vote_of('[2] Go', '-[X] Ale', '-[X] Wine')
    storage = VoteStorage()
    storage.add_votes([parent], 'A', 1)
    ale, wine = vote_of('[X] Ale'), vote_of('[X] Wine')
    storage.replace(parent, [ale, wine])
    assert list(storage) == [ale, wine]
    assert storage.support(wine)['A'].marker_value == 2


def test_restore():
    storage = VoteStorage()
    storage.add_votes([APPLE], 'A', 1)
    storage.add_votes([APPLE], 'B', 2)
    snapshot = storage.snapshot([APPLE, CHERRY])
    assert list(snapshot) == [APPLE]
    post_ids = dict(storage.voter_posts)
    storage.delete(APPLE)
    storage.add_votes([BANANA], 'C', 3)
    storage.restore(snapshot, added=[BANANA], voter_posts=post_ids)
    assert list(storage) == [APPLE]
    assert storage.voters() == {'A', 'B'}
    assert storage.voter_posts == {'A': 1, 'B': 2}


def test_snapshot_copies():
    storage = VoteStorage({APPLE: {'A': APPLE}})
    snapshot = storage.snapshot([APPLE])
    storage.add_votes([APPLE], 'B', 2)
    assert snapshot[APPLE] == {'A': APPLE}


VOTE_TYPES = {
    ('A', '[1] Apple'): VoteType.RANK,
    ('A', '[X] Apple'): VoteType.VOTE,
    ('A', '[+] Apple'): VoteType.APPROVAL,
    ('A', '[-] Apple'): VoteType.APPROVAL,
    ('A', '[+7] Apple'): VoteType.SCORE,
    ('◈Crawl', '[X] Apple'): VoteType.PLAN,
    ('◈Crawl', '[1] Apple'): VoteType.PLAN,
}


@pytest.mark.parametrize('voter, text', VOTE_TYPES.keys())
def test_vote_type_of(voter, text):
    assert nettally.storage.vote_type_of(voter, vote_of(text)) == (
        VOTE_TYPES[voter, text]
    )


def test_vote_type_support():
    storage = VoteStorage()
    storage.add_votes([vote_of('[1] Apple')], 'A', 1)
    storage.add_votes([APPLE], 'B', 2)
    storage.add_votes([APPLE, BANANA], '◈Crawl', 3)
    ranked = storage.vote_type_support(VoteType.RANK)
    assert list(ranked) == [APPLE]
    assert ranked[APPLE].keys() == {'A'}
    assert storage.vote_type_support(VoteType.VOTE)[APPLE].keys() == {'B'}
    plans = storage.vote_type_support(VoteType.PLAN)
    assert list(plans) == [APPLE, BANANA]
    assert storage.vote_type_support(VoteType.APPROVAL) == {}


def test_tasks():
    storage = VoteStorage()
    storage.add_votes([
        vote_of('[X][Food] Apple'), vote_of('[X][food] Pear'),
        vote_of('[X] Walk'),
    ], 'A', 1)
    assert storage.tasks() == ['Food', '']


def test_find():
    storage = VoteStorage({vote_of('[X][Food] [b]Apple[/b]'): {'A': APPLE}})
    assert storage.find('[][Food] Apple') == vote_of('[X][food] apple')
    assert storage.find('[] Apple') is None
