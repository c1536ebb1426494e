import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import nettally.ledger
import nettally.tally
from nettally.block import VoteLineBlock
from nettally.post import Post
from nettally.quest import Quest, PartitionMode
from nettally.storage import VoteType
from nettally.tally import CancellationToken, TallyCancelled
from nettally.voteline import parse_line


def vote_of(*texts):
    return VoteLineBlock([parse_line(text) for text in texts])


def voters(*names):
    return frozenset(names)


APPLE = vote_of('[X] Apple')
BANANA = vote_of('[X] Banana')
CHERRY = vote_of('[X] Cherry')

BY_LINE = Quest(name='Fruit', partition_mode=PartitionMode.BY_LINE)


def tally_of(quest, *posts):
    return nettally.tally.run_tally(quest, [
        Post(author, post_id, text) for post_id, author, text in posts
    ])


def test_latest_vote_counts():
    tally = tally_of(
        Quest(),
        (1, 'Kinematics', '[X] Apple\n[X] Banana'),
        (2, 'Rad', '[x] apple'),
        (3, 'Kinematics', '[X] Cherry'),
    )
    assert tally.votes() == {
        APPLE: voters('Rad'),
        CHERRY: voters('Kinematics'),
    }


def test_posts_sorted():
    tally = tally_of(
        Quest(),
        (3, 'Kinematics', '[X] Cherry'),
        (1, 'Kinematics', '[X] Apple'),
    )
    assert tally.votes() == {CHERRY: voters('Kinematics')}


def test_proxy_vote():
    tally = tally_of(
        BY_LINE,
        (1, 'Kinematics', '[X] Apple\n[X] Banana'),
        (2, 'Rad', '[X] kinematics'),
    )
    assert tally.votes() == {
        APPLE: voters('Kinematics', 'Rad'),
        BANANA: voters('Kinematics', 'Rad'),
    }


def test_proxy_vote_future():
    tally = tally_of(
        BY_LINE,
        (1, 'Rad', '[X] Kinematics'),
        (2, 'Kinematics', '[X] Apple'),
    )
    assert tally.votes() == {APPLE: voters('Kinematics', 'Rad')}


def test_proxy_vote_follows_latest():
    tally = tally_of(
        BY_LINE,
        (1, 'Kinematics', '[X] Apple'),
        (2, 'Rad', '[X] Kinematics'),
        (3, 'Kinematics', '[X] Banana'),
    )
    assert tally.votes() == {BANANA: voters('Kinematics', 'Rad')}


def test_pinned_proxy_vote():
    tally = tally_of(
        BY_LINE,
        (1, 'Kinematics', '[X] Apple'),
        (2, 'Rad', '[X] ^Kinematics'),
        (3, 'Kinematics', '[X] Banana'),
    )
    assert tally.votes() == {
        APPLE: voters('Rad'),
        BANANA: voters('Kinematics'),
    }


def test_forced_pinned_proxy_vote():
    quest = Quest(
        partition_mode=PartitionMode.BY_LINE, force_pinned_proxy_votes=True
    )
    tally = tally_of(
        quest,
        (1, 'Kinematics', '[X] Apple'),
        (2, 'Rad', '[X] Kinematics'),
        (3, 'Kinematics', '[X] Banana'),
    )
    assert tally.votes() == {
        APPLE: voters('Rad'),
        BANANA: voters('Kinematics'),
    }


def test_disabled_proxy_vote():
    quest = Quest(
        partition_mode=PartitionMode.BY_LINE, disable_proxy_votes=True
    )
    tally = tally_of(
        quest,
        (1, 'Kinematics', '[X] Apple'),
        (2, 'Rad', '[X] Kinematics'),
    )
    assert tally.votes() == {
        APPLE: voters('Kinematics'),
        vote_of('[X] Kinematics'): voters('Rad'),
    }


def test_self_reference_is_plain_vote():
    tally = tally_of(BY_LINE, (1, 'Kinematics', '[X] Kinematics'))
    assert tally.votes() == {vote_of('[X] Kinematics'): voters('Kinematics')}


def test_circular_proxy_votes():
    tally = tally_of(
        BY_LINE,
        (1, 'Kinematics', '[X] Rad'),
        (2, 'Rad', '[X] Kinematics'),
    )
    assert tally.votes() == {vote_of('[X] Rad'): voters('Kinematics', 'Rad')}


def test_superseded_deferred_post():
    tally = tally_of(
        BY_LINE,
        (1, 'Rad', '[X] Kinematics'),
        (2, 'Rad', '[X] Cherry'),
        (3, 'Kinematics', '[X] Apple'),
    )
    assert tally.votes() == {
        CHERRY: voters('Rad'),
        APPLE: voters('Kinematics'),
    }


CRAWL_POSTS = [
    (1, 'Kinematics', '[X] Plan: Crawl\n-[X] Tavern\n-[X] Inn'),
    (2, 'Rad', '[X] Plan: Crawl'),
]


def test_plan_reference_whole():
    tally = tally_of(Quest(), *CRAWL_POSTS)
    crawl = vote_of('[X] Plan: Crawl', '-[X] Tavern', '-[X] Inn')
    assert tally.votes() == {crawl: voters('Kinematics', 'Rad')}
    assert tally.votes(VoteType.PLAN) == {crawl: voters('◈Crawl')}
    assert 'crawl' in tally.plans


def test_plan_reference_by_line():
    tally = tally_of(BY_LINE, *CRAWL_POSTS)
    assert tally.votes() == {
        vote_of('[X] Tavern'): voters('Kinematics', 'Rad'),
        vote_of('[X] Inn'): voters('Kinematics', 'Rad'),
    }


def test_plan_reference_before_definition():
    tally = tally_of(
        BY_LINE,
        (1, 'Rad', '[X] Plan: Crawl'),
        (2, 'Kinematics', '[X] Plan: Crawl\n-[X] Tavern'),
    )
    assert tally.votes() == {
        vote_of('[X] Tavern'): voters('Kinematics', 'Rad'),
    }


def test_tally_post_skipped():
    tally = tally_of(
        Quest(),
        (1, 'Kinematics', '[X] Apple'),
        (2, 'Rad', '[color=transparent]##### NetTally[/color]\n[X] Banana'),
    )
    assert tally.votes() == {APPLE: voters('Kinematics')}


def test_task_filter():
    quest = Quest(
        partition_mode=PartitionMode.BY_LINE, task_filter=['Food']
    )
    tally = tally_of(quest, (1, 'Kinematics', '[X][food] Apple\n[X] Walk'))
    assert tally.votes() == {
        vote_of('[X][Food] Apple'): voters('Kinematics')
    }
    assert tally.tasks() == ['food']


def test_trim_extended_text():
    quest = Quest(trim_extended_text=True)
    tally = tally_of(quest, (1, 'Kinematics', (
        '[X] Attack the orcs: they have been raiding our farms for weeks now'
        ' and we cannot let it go on'
    )))
    assert tally.votes() == {
        vote_of('[X] Attack the orcs'): voters('Kinematics')
    }


def test_failures():
    tally = tally_of(Quest(), (4, 'Kinematics', '[X] Apple\n[Y] Broken'))
    assert list(tally.failures) == [4]
    assert tally.failures[4][0].line_number == 2


TYPO_POSTS = [
    (1, 'Kinematics', '[X] Apple'),
    (2, 'Rad', '[X] Aple'),
]

TYPO = vote_of('[X] Aple')


def test_merge_and_undo():
    tally = tally_of(Quest(), *TYPO_POSTS)
    tally.merge(TYPO, APPLE)
    assert tally.votes() == {APPLE: voters('Kinematics', 'Rad')}
    assert len(tally.merge_records) == 1
    assert tally.can_undo
    action = tally.undo()
    assert action.action_type == nettally.ledger.UndoActionType.MERGE
    assert tally.votes() == {
        APPLE: voters('Kinematics'),
        TYPO: voters('Rad'),
    }
    assert len(tally.merge_records) == 0
    assert not tally.can_undo
    assert tally.undo() is None


def test_merge_replayed():
    tally = tally_of(Quest(), *TYPO_POSTS)
    tally.merge(TYPO, APPLE)
    tally.run()
    assert tally.votes() == {APPLE: voters('Kinematics', 'Rad')}
    assert not tally.can_undo
    tally.reset_merges()
    tally.run()
    assert len(tally.votes()) == 2


def test_merge_unknown_vote():
    tally = tally_of(Quest(), *TYPO_POSTS)
    with pytest.raises(KeyError):
        tally.merge(CHERRY, APPLE)


def test_merge_cycle():
    tally = tally_of(Quest(), *TYPO_POSTS)
    with pytest.raises(nettally.ledger.MergeCycleError):
        tally.merge(APPLE, vote_of('[X] apple'))


def test_join_and_undo():
    tally = tally_of(
        Quest(),
        (1, 'Kinematics', '[X] Apple'),
        (2, 'Rad', '[X] Banana'),
    )
    tally.join(['Rad'], 'Kinematics')
    assert tally.votes() == {APPLE: voters('Kinematics', 'Rad')}
    tally.undo()
    assert tally.votes() == {
        APPLE: voters('Kinematics'),
        BANANA: voters('Rad'),
    }


def test_delete_and_undo():
    tally = tally_of(Quest(), *TYPO_POSTS)
    tally.delete(TYPO)
    assert tally.votes() == {APPLE: voters('Kinematics')}
    tally.undo()
    assert tally.votes()[TYPO] == voters('Rad')


def test_partition_children_and_undo():
    tally = tally_of(
        Quest(), (1, 'Kinematics', '[X] Go\n-[X] Ale\n-[X] Wine')
    )
    parent = vote_of('[X] Go', '-[X] Ale', '-[X] Wine')
    tally.partition_children(parent)
    assert tally.votes() == {
        vote_of('[X] Ale'): voters('Kinematics'),
        vote_of('[X] Wine'): voters('Kinematics'),
    }
    tally.undo()
    assert tally.votes() == {parent: voters('Kinematics')}


def test_partition_children_single_line():
    tally = tally_of(Quest(), *TYPO_POSTS)
    with pytest.raises(ValueError):
        tally.partition_children(APPLE)


def test_cancelled_keeps_results():
    tally = tally_of(Quest(), *TYPO_POSTS)
    before = tally.votes()
    tally.add_posts([Post('Someone', 3, '[X] Cherry')])
    token = CancellationToken()
    token.cancel()
    assert token.is_cancelled
    with pytest.raises(TallyCancelled):
        tally.run(token)
    assert tally.was_cancelled
    assert tally.votes() == before
    tally.run()
    assert not tally.was_cancelled
    assert CHERRY in tally.votes()


FRUIT_POSTS = [
    (1, 'v1', '[1] Apple\n[2] Banana'),
    (2, 'v2', '[2] Apple\n[1] Banana'),
    (3, 'v3', '[2] Apple\n[1] Cherry'),
]


def test_ranked_votes():
    tally = tally_of(BY_LINE, *FRUIT_POSTS)
    assert tally.ranked_votes() == {'': {
        APPLE: {'v1': 1, 'v2': 2, 'v3': 2},
        BANANA: {'v1': 2, 'v2': 1},
        CHERRY: {'v3': 1},
    }}
    assert tally.votes() == {}
    assert set(tally.votes(VoteType.RANK)) == {APPLE, BANANA, CHERRY}


@pytest.mark.parametrize('counter', [None, 'schulze', 'baldwin', 'rirv'])
def test_ranked_results(counter):
    tally = tally_of(BY_LINE, *FRUIT_POSTS)
    results = tally.ranked_results(counter)
    assert list(results) == ['']
    assert results[''][0].vote == APPLE
    assert [result.rank for result in results['']] == [1, 2, 3]


def test_vote_nodes():
    tally = tally_of(
        Quest(),
        (1, 'Kinematics', '[X] Go\n-[X] Ale'),
        (2, 'Rad', '[X] Go\n-[X] Wine'),
    )
    nodes = tally.vote_nodes()
    assert list(nodes) == ['']
    assert len(nodes['']) == 1
    assert nodes[''][0].voter_count == 2


def test_continuation_single_vote():
    tally = tally_of(BY_LINE, (
        1, 'Kinematics', '[X] Go to the tavern and\n[*] order an ale'
    ))
    assert tally.votes() == {
        vote_of('[X] Go to the tavern and order an ale'): voters('Kinematics')
    }


def test_approval_results():
    tally = tally_of(
        Quest(),
        (1, 'v1', '[+] Apple'),
        (2, 'v2', '[-] Apple'),
        (3, 'v3', '[-] apple'),
        (4, 'v4', '[+] Banana'),
    )
    assert tally.votes() == {}
    results = tally.approval_results()
    assert list(results) == ['']
    banana, apple = results['']
    assert banana.vote == BANANA
    assert (banana.positive, banana.negative, banana.net) == (1, 0, 1)
    assert apple.vote == APPLE
    assert (apple.positive, apple.negative, apple.net) == (1, 2, -1)
    assert apple.voters == voters('v1', 'v2', 'v3')


def test_score_results():
    tally = tally_of(
        Quest(),
        (1, 'v1', '[+7] Apple'),
        (2, 'v2', '[+8] Apple'),
        (3, 'v3', '[+9] Banana'),
    )
    assert tally.votes() == {}
    results = tally.score_results()['']
    assert [result.vote for result in results] == [BANANA, APPLE]
    assert [result.average for result in results] == [9, 7.5]
    assert results[1].voters == voters('v1', 'v2')
