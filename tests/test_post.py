import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import nettally.post
from nettally.post import Post
from nettally.voteline import MarkerType


POST_TEXT = '''I think we should go.

[X] Go to the tavern
-[X] Order an ale
[Y] Broken line
Some more discussion.
[X] Sleep
'''

NOMINATIONS = '''@Kinematics
[url=https://forum.example/members/12]@Someone Else[/url]
'''


def test_parse_post():
    parsed = nettally.post.parse_post(POST_TEXT)
    assert [line.content for line in parsed.lines] == [
        'Go to the tavern', 'Order an ale', 'Sleep'
    ]
    assert len(parsed.failures) == 1
    failure = parsed.failures[0]
    assert failure.line_number == 5
    assert failure.text == '[Y] Broken line'
    assert 'unrecognized marker' in failure.reason


def test_first_line_top_level():
    parsed = nettally.post.parse_post('--[X] Indented start\n---[X] Deeper')
    assert [line.depth for line in parsed.lines] == [0, 3]


def test_no_votes():
    parsed = nettally.post.parse_post('Just chatting here.\nNothing else.')
    assert parsed.lines == []
    assert parsed.failures == []


def test_nominations():
    parsed = nettally.post.parse_post(NOMINATIONS)
    assert [line.content for line in parsed.lines] == [
        'Kinematics', 'Someone Else'
    ]
    assert all(line.marker_type == MarkerType.VOTE for line in parsed.lines)
    assert all(line.marker == 'X' for line in parsed.lines)


def test_nominations_all_or_nothing():
    text = NOMINATIONS + 'And some chatter\n'
    assert nettally.post.parse_post(text).lines == []


def test_nomination_name():
    assert nettally.post.nomination_name('@Someone') == 'Someone'
    assert nettally.post.nomination_name('  @Someone Else  ') == 'Someone Else'
    assert nettally.post.nomination_name('Someone') is None


TALLY_POSTS = [
    '[b]Vote Tally[/b] : Quest\n[color=transparent]##### NetTally[/color]'
    '\n[X] Go to the tavern',
    '##### NetTally 1.0\n[X] Something',
    '[b]#####[/b]\n[X] Something',
]


@pytest.mark.parametrize('text', TALLY_POSTS)
def test_tally_post(text):
    assert nettally.post.is_tally_post(text)
    assert nettally.post.parse_post(text).lines == []


def test_not_tally_post():
    assert not nettally.post.is_tally_post('[X] Vote for #####')


def test_post_fields():
    post = Post('Kinematics', 12, '[X] Vote')
    assert post.author == 'Kinematics'
    assert post.post_id == 12
    lines = post.parse().lines
    assert len(lines) == 1


@pytest.mark.parametrize('author, post_id', [('', 1), ('  ', 1), ('A', -1)])
def test_invalid_post(author, post_id):
    with pytest.raises(ValueError):
        Post(author, post_id, '[X] Vote')


CONTINUED = '''[X] Go to the tavern and
[*] order an ale
-[X] Sit by the fire
[*] near the [b]bard[/b]
'''


def test_continuation_lines():
    parsed = nettally.post.parse_post(CONTINUED)
    assert [line.content for line in parsed.lines] == [
        'Go to the tavern and order an ale',
        'Sit by the fire near the 『b』bard『/b』',
    ]
    assert [line.marker_type for line in parsed.lines] == [
        MarkerType.VOTE, MarkerType.VOTE
    ]
    assert [line.depth for line in parsed.lines] == [0, 1]
    assert parsed.failures == []


def test_continuation_without_vote_line():
    parsed = nettally.post.parse_post('[*] order an ale\n[X] Sleep')
    assert [line.content for line in parsed.lines] == ['Sleep']
    assert len(parsed.failures) == 1
    assert parsed.failures[0].line_number == 1
    assert 'continuation' in parsed.failures[0].reason
