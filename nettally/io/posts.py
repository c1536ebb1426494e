'''Plain text dumps of forum posts.

A post dump lists the posts of a thread, each introduced by a header line
with the post identifier and the author name, followed by the lines of the
post text::

    #post 1021 Kinematics
    [X] Go to the tavern
    -[X] Order an ale

    #post 1024 Someone Else
    [X] Kinematics

Blank lines at the end of each post are dropped. Text lines that would be
mistaken for a header, and lines starting with a backslash, are escaped by
a leading backslash.
'''

import re
from typing import Iterable, List

import nettally.io.core
from nettally.post import Post


HEADER_START = '#post'
ESCAPE = '\\'
HEADER_REGEX = re.compile(r'#post\s+(?P<post_id>\S+)\s+(?P<author>.+?)\s*')


class PostsParseError(nettally.io.core.ParseError):
    pass


def dump_lines(posts: Iterable[Post]) -> Iterable[str]:
    for i, post in enumerate(posts):
        if i:
            yield ''
        yield f'{HEADER_START} {post.post_id} {post.author}'
        for line in post.text.splitlines():
            yield _escape(line)


dump, dumps = nettally.io.core.dumpers(dump_lines)


def _escape(line: str) -> str:
    if line.startswith(HEADER_START) or line.startswith(ESCAPE):
        return ESCAPE + line
    return line


def _unescape(line: str) -> str:
    return line[1:] if line.startswith(ESCAPE) else line


def load_lines(post_lines: Iterable[str]) -> List[Post]:
    posts = []
    seen_ids = set()
    header = None
    text_lines = []
    for line_number, line in enumerate(post_lines, start=1):
        line = line.rstrip('\r\n')
        if line.startswith(HEADER_START):
            if header is not None:
                posts.append(_make_post(header, text_lines))
            header = _parse_header(line, line_number)
            if header[1] in seen_ids:
                raise PostsParseError(
                    f'duplicate post id {header[1]}', line_number
                )
            seen_ids.add(header[1])
            text_lines = []
        elif header is None:
            if line.strip():
                raise PostsParseError(
                    f'text outside of any post: {line!r}', line_number
                )
        else:
            text_lines.append(_unescape(line))
    if header is not None:
        posts.append(_make_post(header, text_lines))
    return posts


load, loads = nettally.io.core.loaders(load_lines)


def _parse_header(line: str, line_number: int) -> tuple:
    match = HEADER_REGEX.fullmatch(line)
    if match is None:
        raise PostsParseError(
            f'invalid post header, need post id and author: {line!r}',
            line_number
        )
    try:
        post_id = int(match.group('post_id'))
    except ValueError as e:
        raise PostsParseError(
            f'invalid post id: {match.group("post_id")!r}', line_number
        ) from e
    if post_id < 0:
        raise PostsParseError(f'negative post id: {post_id}', line_number)
    return line_number, post_id, match.group('author')


def _make_post(header: tuple, text_lines: List[str]) -> Post:
    line_number, post_id, author = header
    while text_lines and not text_lines[-1].strip():
        text_lines.pop()
    try:
        return Post(author, post_id, '\n'.join(text_lines))
    except ValueError as e:
        raise PostsParseError(str(e), line_number) from e
