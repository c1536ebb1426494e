import sys
import os
import io

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))
import nettally.io.posts
from nettally.io.posts import PostsParseError
from nettally.post import Post


POSTS = [
    Post('Kinematics', 1021, '[X] Go to the tavern\n-[X] Order an ale'),
    Post('Someone Else', 1024, '#post 5 Impostor\n\\[X] Escaped'),
    Post('Rad', 1030, ''),
]

DUMPED = '''#post 1021 Kinematics
[X] Go to the tavern
-[X] Order an ale

#post 1024 Someone Else
\\#post 5 Impostor
\\\\[X] Escaped

#post 1030 Rad
'''


def test_dumps():
    assert nettally.io.posts.dumps(POSTS) == DUMPED


def test_loads():
    assert nettally.io.posts.loads(DUMPED) == POSTS


def test_dump_load_file():
    buffer = io.StringIO()
    nettally.io.posts.dump(buffer, POSTS)
    buffer.seek(0)
    assert nettally.io.posts.load(buffer) == POSTS


def test_load_blank_lines():
    posts = nettally.io.posts.loads(
        '\n\n#post 1 Kinematics\n\n[X] Apple\n\n\n#post 2 Rad  \n[X] Pear\n'
    )
    assert posts == [
        Post('Kinematics', 1, '\n[X] Apple'),
        Post('Rad', 2, '[X] Pear'),
    ]


def test_load_empty():
    assert nettally.io.posts.loads('') == []


INVALID_DUMPS = {
    'stray text\n#post 1 Kinematics\n[X] Apple': 1,
    '#post 1 Kinematics\n#post 1 Rad': 2,
    '#post one Kinematics': 1,
    '#post 1': 1,
    '#post -1 Kinematics': 1,
    '\n#post 1 \t ': 2,
    '#postal service': 1,
}


@pytest.mark.parametrize('text, line_number', INVALID_DUMPS.items())
def test_invalid(text, line_number):
    with pytest.raises(PostsParseError) as excinfo:
        nettally.io.posts.loads(text)
    assert excinfo.value.line_number == line_number
