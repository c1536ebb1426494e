'''Forum posts and the extraction of vote lines from their text.

A post is reduced to its vote lines by :func:`parse_post`. Lines that look
like vote lines but are malformed are reported as failures without
discarding the rest of the post. Posts that contain no vote lines at all may
still be nomination posts - posts listing user mentions, one per line - which
are converted to plain votes for the mentioned users.
'''

import dataclasses
import logging
import re
from typing import List, NamedTuple, Optional

import nettally.text
from nettally.agnostic import ComparisonConfig, DEFAULT
from nettally.voteline import VoteLine, VoteLineError, MarkerType, parse_line


logger = logging.getLogger(__name__)

TALLY_MARK = '#####'
NOMINATION_REGEX = re.compile(
    r'\s*(?:\[url=[^\]]*\]\s*@?(?P<linked>[^\[\]]+?)\s*\[/url\]'
    r'|@(?P<plain>\S.*?))\s*',
    re.IGNORECASE
)


@dataclasses.dataclass(frozen=True)
class Post:
    '''A forum post to be tallied.

    :param author: Name of the post author (the voter).
    :param post_id: Forum identifier of the post; higher means later.
    :param text: Plain text of the post, one vote line per line.
    '''
    author: str
    post_id: int
    text: str

    def __post_init__(self):
        if not self.author or not self.author.strip():
            raise ValueError('post author must not be empty')
        if self.post_id < 0:
            raise ValueError(f'invalid post id: {self.post_id}')

    def parse(self, config: ComparisonConfig = DEFAULT) -> 'ParsedPost':
        parsed = parse_post(self.text, config)
        for failure in parsed.failures:
            logger.debug('post %d by %s: %s',
                         self.post_id, self.author, failure.reason)
        return parsed


class LineFailure(NamedTuple):
    '''A line of a post that could not be parsed as a vote line.'''
    line_number: int
    text: str
    reason: str


class ParsedPost(NamedTuple):
    '''Vote lines found in a post and the lines that failed to parse.'''
    lines: List[VoteLine]
    failures: List[LineFailure]


def is_tally_post(text: str) -> bool:
    '''Return True if the post text is a posted tally of previous votes.'''
    return any(
        nettally.text.strip_markup(
            nettally.text.normalize_markup(line)
        ).startswith(TALLY_MARK)
        for line in text.splitlines()
    )


def parse_post(text: str,
               config: ComparisonConfig = DEFAULT,
               ) -> ParsedPost:
    '''Extract vote lines from the text of a post.

    The first vote line found is always placed at depth zero. Continuation
    lines (marked ``[*]``) extend the content of the preceding vote line
    instead of starting a new one. If no vote lines are found, the post is
    checked for being a nomination post.

    :param text: Text of the post.
    :param config: Comparison configuration for the created lines.
    '''
    if is_tally_post(text):
        return ParsedPost([], [])
    lines = []
    failures = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        try:
            vote_line = parse_line(line, config)
        except VoteLineError as err:
            failures.append(LineFailure(line_number, line, err.reason))
            continue
        if vote_line is None:
            continue
        if vote_line.marker_type == MarkerType.CONTINUATION:
            if not lines:
                failures.append(LineFailure(
                    line_number, line, 'continuation without a vote line'
                ))
            else:
                lines[-1] = lines[-1].continued(vote_line)
            continue
        if not lines and vote_line.depth > 0:
            vote_line = vote_line.with_prefix_depth(0)
        lines.append(vote_line)
    if not lines:
        lines = nomination_lines(text, config)
    return ParsedPost(lines, failures)


def nomination_name(line: str) -> Optional[str]:
    '''Return the user mentioned on a nomination line, or None.'''
    match = NOMINATION_REGEX.fullmatch(line)
    if match is None:
        return None
    return (match.group('linked') or match.group('plain')).strip()


def nomination_lines(text: str,
                     config: ComparisonConfig = DEFAULT,
                     ) -> List[VoteLine]:
    '''Convert a nomination post into plain vote lines.

    Every non-blank line must mention a user, otherwise no lines are
    returned.
    '''
    lines = []
    for line in nettally.text.split_lines(text):
        name = nomination_name(line)
        if name is None:
            return []
        lines.append(VoteLine(
            prefix='',
            marker='X',
            marker_type=MarkerType.VOTE,
            marker_value=0,
            task='',
            content=name,
            config=config,
        ))
    return lines
