'''Vote lines - the atomic units of votes in forum posts.

A vote line has the following shape::

    --[X][Task] Content of the vote

The optional leading run of hyphens (the prefix) gives the depth of the line
within a multi-line vote. The bracketed marker determines how the line is
counted:

-   ``X``, ``✓`` or ``✔`` (in any case) is a plain **vote**,
-   a digit ``1`` to ``9``, optionally preceded by ``#``, is a **rank**,
-   a digit preceded by ``+`` is a **score**,
-   a lone ``+`` or ``-`` is an **approval** or disapproval,
-   ``*`` is a **continuation** of the content of the preceding line.

The optional second bracket names the task the vote belongs to; the rest of
the line is the content.

Lines are parsed by :func:`parse_line` into :class:`VoteLine` objects whose
equality is agnostic (see :mod:`nettally.agnostic`) and ignores the marker,
so that differently marked or typed lines for the same thing compare equal.
'''

import dataclasses
import enum
from typing import Tuple, Optional

import nettally.text
from nettally.agnostic import ComparisonConfig, DEFAULT
from nettally.io.core import ParseError


PREFIX_CHARS = '-–—'
VOTE_MARKERS = frozenset('xX✓✔')
RANK_DIGITS = frozenset('123456789')


class MarkerType(enum.Enum):
    '''Kind of the vote line marker.'''
    NONE = 0
    VOTE = 1
    RANK = 2
    SCORE = 3
    APPROVAL = 4
    CONTINUATION = 5
    PLAN = 6


class VoteLineError(ParseError):
    '''A line looks like a vote line but cannot be parsed as one.

    :param line: The offending line text.
    :param reason: What is wrong with it.
    '''
    def __init__(self, line: str, reason: str, line_number: int = None):
        self.line = line
        self.reason = reason
        super().__init__(f'{reason}: {line!r}', line_number=line_number)


@dataclasses.dataclass(frozen=True, eq=False)
class VoteLine:
    '''A single parsed line of a vote.

    Equality and hashing consider the depth, the task and the markup-free
    content, the latter two compared agnostically under the line's comparison
    configuration. The marker is disregarded.

    :param prefix: Depth-encoding prefix, a string of hyphens.
    :param marker: The raw marker token (without brackets).
    :param marker_type: Kind of the marker.
    :param marker_value: Rank or score value for the corresponding marker
        types, 1 for approval and -1 for disapproval, zero otherwise.
    :param task: Task the line was assigned to, may be empty.
    :param content: Raw content with markup in the internal form.
    :param config: Comparison configuration to use for equality.
    '''
    prefix: str
    marker: str
    marker_type: MarkerType
    marker_value: int
    task: str
    content: str
    config: ComparisonConfig = DEFAULT

    @property
    def depth(self) -> int:
        return len(self.prefix)

    @property
    def display_content(self) -> str:
        return nettally.text.format_markup(self.content)

    @property
    def comparable_content(self) -> str:
        return nettally.text.strip_markup(self.content)

    @property
    def simplified_content(self) -> str:
        return self.config.simplify(self.comparable_content)

    @property
    def trimmed_content(self) -> str:
        return nettally.text.trim_extended_text(self.comparable_content)

    def with_prefix_depth(self, depth: int) -> 'VoteLine':
        return dataclasses.replace(self, prefix='-' * max(depth, 0))

    def promoted(self, levels: int = 1) -> 'VoteLine':
        '''Return the line moved up by the given number of depth levels.'''
        return self.with_prefix_depth(self.depth - levels)

    def with_marker(self,
                    marker: str,
                    marker_type: MarkerType,
                    marker_value: int = 0,
                    ) -> 'VoteLine':
        return dataclasses.replace(
            self,
            marker=marker,
            marker_type=marker_type,
            marker_value=marker_value,
        )

    def with_task(self, task: str) -> 'VoteLine':
        return dataclasses.replace(self, task=task)

    def with_content(self, content: str) -> 'VoteLine':
        return dataclasses.replace(
            self, content=nettally.text.normalize_markup(content)
        )

    def continued(self, continuation: 'VoteLine') -> 'VoteLine':
        '''Return the line extended by the content of a continuation.'''
        return dataclasses.replace(
            self, content=f'{self.content} {continuation.content}'
        )

    def with_trimmed_content(self) -> 'VoteLine':
        return dataclasses.replace(self, content=self.trimmed_content)

    def with_config(self, config: ComparisonConfig) -> 'VoteLine':
        return dataclasses.replace(self, config=config)

    def sort_key(self) -> Tuple[str, str, int]:
        return (
            self.config.key(self.comparable_content),
            self.config.key(self.task),
            -self.depth,
        )

    def to_string(self,
                  marker: Optional[str] = None,
                  task: Optional[str] = None,
                  prefix: Optional[str] = None,
                  ) -> str:
        '''Render the line, optionally overriding some of its parts.'''
        marker = self.marker if marker is None else marker
        task = self.task if task is None else task
        prefix = self.prefix if prefix is None else prefix
        task_part = f'[{task}]' if task else ''
        return f'{prefix}[{marker}]{task_part} {self.display_content}'

    def to_comparable_string(self) -> str:
        task_part = f'[{self.task}]' if self.task else ''
        return f'{self.prefix}[]{task_part} {self.comparable_content}'

    def __str__(self) -> str:
        return self.to_string()

    def __eq__(self, other) -> bool:
        if not isinstance(other, VoteLine):
            return NotImplemented
        return (
            self.depth == other.depth
            and self.config.equal(self.task, other.task)
            and self.config.equal(
                self.comparable_content, other.comparable_content
            )
        )

    def __hash__(self) -> int:
        return hash((
            self.depth,
            self.config.hash(self.task),
            self.config.hash(self.comparable_content),
        ))


def classify_marker(marker: str) -> Tuple[MarkerType, int]:
    '''Determine the type and value of a vote line marker.

    :param marker: Marker text without brackets and whitespace.
    :returns: A tuple of the marker type and value. The type is
        ``MarkerType.NONE`` for unrecognized markers.
    '''
    if len(marker) == 1:
        if marker in VOTE_MARKERS:
            return MarkerType.VOTE, 0
        elif marker in RANK_DIGITS:
            return MarkerType.RANK, int(marker)
        elif marker == '+':
            return MarkerType.APPROVAL, 1
        elif marker == '-':
            return MarkerType.APPROVAL, -1
        elif marker == '*':
            return MarkerType.CONTINUATION, 0
    elif len(marker) == 2 and marker[1] in RANK_DIGITS:
        if marker[0] == '#':
            return MarkerType.RANK, int(marker[1])
        elif marker[0] == '+':
            return MarkerType.SCORE, int(marker[1])
    return MarkerType.NONE, 0


def _skip_markup_tag(line: str, pos: int) -> int:
    # position after a markup tag starting at pos, or pos if there is none
    end = line.find(']', pos + 1)
    if end >= 0 and nettally.text.is_markup_tag(line[pos+1:end]):
        return end + 1
    return pos


def _skip_whitespace(line: str, pos: int) -> int:
    while pos < len(line) and line[pos].isspace():
        pos += 1
    return pos


def parse_line(line: str,
               config: ComparisonConfig = DEFAULT,
               ) -> Optional[VoteLine]:
    '''Parse a line of post text into a vote line.

    Markup tags preceding the marker (e.g. bold formatting of the whole line)
    are skipped.

    :param line: A single line of text.
    :param config: Comparison configuration for the resulting line.
    :returns: The parsed vote line, or None if the line does not have the
        shape of a vote line at all (no marker bracket after the prefix).
    :raises VoteLineError: If the line starts like a vote line but its
        brackets are not closed, its marker is not recognized or it has no
        content.
    '''
    prefix = ''
    pos = 0
    while pos < len(line):
        char = line[pos]
        if char in PREFIX_CHARS:
            prefix += '-'
            pos += 1
        elif char.isspace():
            pos += 1
        elif char == '[':
            after_tag = _skip_markup_tag(line, pos)
            if after_tag == pos:
                break
            pos = after_tag
        else:
            break
    if pos >= len(line) or line[pos] != '[':
        return None
    marker_end = line.find(']', pos + 1)
    if marker_end < 0:
        raise VoteLineError(line, 'unclosed marker bracket')
    marker = ''.join(line[pos+1:marker_end].split())
    marker_type, marker_value = classify_marker(marker)
    if marker_type == MarkerType.NONE:
        raise VoteLineError(line, f'unrecognized marker {marker!r}')
    pos = marker_end + 1
    task = ''
    task_start = _skip_whitespace(line, pos)
    if task_start < len(line) and line[task_start] == '[':
        task_end = line.find(']', task_start + 1)
        if task_end < 0:
            raise VoteLineError(line, 'unclosed task bracket')
        task_text = line[task_start+1:task_end]
        if not nettally.text.is_markup_tag(task_text):
            task = ' '.join(task_text.split())
            pos = task_end + 1
    content = line[pos:].strip()
    if not nettally.text.strip_markup(
        nettally.text.normalize_markup(content)
    ):
        raise VoteLineError(line, 'missing content')
    return VoteLine(
        prefix=prefix,
        marker=marker,
        marker_type=marker_type,
        marker_value=marker_value,
        task=task,
        content=nettally.text.normalize_markup(content),
        config=config,
    )


def format_line(line: VoteLine) -> str:
    '''Render a vote line in a form that parses back to an equal line.'''
    return line.to_string()
