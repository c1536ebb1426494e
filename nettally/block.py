'''Blocks of vote lines and detection of plans within them.

A block is a top-level vote line followed by its sub-lines (lines with a
nonzero depth). Blocks whose first line names a plan (``Plan: Name``,
``Base Plan: Name``, ``Name's Plan``) define or reference plans - named
votes that other voters may reuse.
'''

import enum
import re
from typing import List, Tuple, Iterable, Iterator, NamedTuple, Optional

from nettally.agnostic import ComparisonConfig
from nettally.voteline import VoteLine, MarkerType, parse_line


PLAN_NAME_MARKER = '◈'

BASE_PLAN_REGEX = re.compile(
    r'(?:base|proposed)\s*plan(?::|\s)+(?P<name>.+)', re.IGNORECASE
)
ANY_PLAN_REGEX = re.compile(
    r'^plan(?::|\s)+' + PLAN_NAME_MARKER + r'?(?P<name>.+?)\.?$',
    re.IGNORECASE
)
ALT_PLAN_REGEX = re.compile(r"^(?P<name>.+?)'s\s+plan$", re.IGNORECASE)


class PlanStatus(enum.Enum):
    '''What the first line of a block says about it being a plan.'''
    NONE = 0
    PLAN = 1
    PROPOSED = 2


class PlanCheck(NamedTuple):
    is_plan: bool
    is_implicit: bool
    name: str


NOT_A_PLAN = PlanCheck(False, False, '')


class VoteLineBlock:
    '''An ordered, immutable sequence of vote lines forming a single vote.

    The task and the marker of the block are those of its first line unless
    overridden - overriding is used when a referenced plan or proxy vote is
    pulled into another voter's vote, keeping that voter's marker.

    Blocks compare equal if they have the same number of lines, agnostically
    equal tasks and pairwise equal lines (the task of the first line being
    disregarded in favor of the block task).

    :param lines: The vote lines. Must not be empty.
    :param task: Task override for the whole block.
    :param marker: Marker override.
    :param marker_type: Marker type override.
    :param marker_value: Marker value override.
    '''
    def __init__(self,
                 lines: Iterable[VoteLine],
                 task: Optional[str] = None,
                 marker: Optional[str] = None,
                 marker_type: Optional[MarkerType] = None,
                 marker_value: Optional[int] = None,
                 ):
        self.lines = tuple(lines)
        if not self.lines:
            raise ValueError('vote line block must not be empty')
        first = self.lines[0]
        self.task = first.task if task is None else task
        self.marker = first.marker if marker is None else marker
        self.marker_type = (
            first.marker_type if marker_type is None else marker_type
        )
        self.marker_value = (
            first.marker_value if marker_value is None else marker_value
        )

    @property
    def first(self) -> VoteLine:
        return self.lines[0]

    @property
    def config(self) -> ComparisonConfig:
        return self.first.config

    def __iter__(self) -> Iterator[VoteLine]:
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    def __getitem__(self, index):
        return self.lines[index]

    def with_task(self, task: str) -> 'VoteLineBlock':
        return VoteLineBlock(
            self.lines, task, self.marker, self.marker_type, self.marker_value
        )

    def with_marker(self,
                    marker: str,
                    marker_type: MarkerType,
                    marker_value: int = 0,
                    ) -> 'VoteLineBlock':
        return VoteLineBlock(
            self.lines, self.task, marker, marker_type, marker_value
        )

    def key(self) -> Tuple:
        '''Return a hashable key such that equal blocks have equal keys.'''
        config = self.config
        return (config.key(self.task),) + tuple(
            (
                line.depth,
                config.key(line.task) if i else '',
                config.key(line.comparable_content),
            )
            for i, line in enumerate(self.lines)
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, VoteLineBlock):
            return NotImplemented
        return self.key() == other.key()

    def __hash__(self) -> int:
        return hash(self.key())

    def to_string(self,
                  marker: Optional[str] = None,
                  sub_marker: Optional[str] = None,
                  ) -> str:
        '''Render the block as multi-line text.

        :param marker: Marker to show on the first line; the block marker
            by default.
        :param sub_marker: Marker to show on the other lines; their own
            markers by default.
        '''
        rendered = [self.first.to_string(
            marker=self.marker if marker is None else marker,
            task=self.task,
        )]
        rendered.extend(line.to_string(marker=sub_marker)
                        for line in self.lines[1:])
        return '\n'.join(rendered)

    def to_comparable_string(self) -> str:
        return '\n'.join(
            self.first.with_task(self.task).to_comparable_string()
            if i == 0 else line.to_comparable_string()
            for i, line in enumerate(self.lines)
        )

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f'<VoteLineBlock({self.to_string()!r})>'


def get_blocks(lines: Iterable[VoteLine]) -> List[VoteLineBlock]:
    '''Group vote lines into blocks, starting a new block at each top line.'''
    blocks = []
    current = []
    for line in lines:
        if line.depth == 0 and current:
            blocks.append(VoteLineBlock(current))
            current = []
        current.append(line)
    if current:
        blocks.append(VoteLineBlock(current))
    return blocks


def is_content_block(lines: Iterable[VoteLine]) -> bool:
    '''Return True for a top line followed only by its sub-lines.'''
    lines = list(lines)
    return (
        len(lines) > 1
        and lines[0].depth == 0
        and all(line.depth > 0 for line in lines[1:])
    )


def check_if_plan(line: VoteLine) -> Tuple[PlanStatus, str]:
    '''Determine whether a vote line names a plan.

    :returns: The plan status of the line and the name of the plan
        (an empty string if it names none).
    '''
    content = line.comparable_content
    match = BASE_PLAN_REGEX.search(content)
    if match:
        return PlanStatus.PROPOSED, match.group('name').strip()
    for regex in (ANY_PLAN_REGEX, ALT_PLAN_REGEX):
        match = regex.match(content)
        if match:
            return PlanStatus.PLAN, match.group('name').strip()
    return PlanStatus.NONE, ''


def plan_name_of(text: str) -> Optional[str]:
    '''Return the name of the plan named on the first line of a vote text.'''
    for raw_line in text.splitlines():
        if raw_line.strip():
            line = parse_line(raw_line)
            if line is None:
                return None
            status, name = check_if_plan(line)
            return name if status != PlanStatus.NONE else None
    return None


def is_explicit_plan(lines: List[VoteLine]) -> PlanCheck:
    '''Check for a plan label (any kind) heading a content block.'''
    status, name = check_if_plan(lines[0])
    if status != PlanStatus.NONE and is_content_block(lines):
        return PlanCheck(True, False, name)
    return NOT_A_PLAN


def is_proposed_plan(lines: List[VoteLine]) -> PlanCheck:
    '''Check for a base/proposed plan label heading a content block.'''
    status, name = check_if_plan(lines[0])
    if status == PlanStatus.PROPOSED and is_content_block(lines):
        return PlanCheck(True, False, name)
    return NOT_A_PLAN


def is_implicit_plan(lines: List[VoteLine]) -> PlanCheck:
    '''Check for a plan label followed by lines at the top level.'''
    if len(lines) > 1 and lines[1].depth == 0:
        status, name = check_if_plan(lines[0])
        if status == PlanStatus.PLAN:
            return PlanCheck(True, True, name)
    return NOT_A_PLAN


def is_single_line_plan(lines: List[VoteLine]) -> PlanCheck:
    '''Check for a lone plan label line.'''
    if len(lines) == 1:
        status, name = check_if_plan(lines[0])
        if status == PlanStatus.PLAN:
            return PlanCheck(True, False, name)
    return NOT_A_PLAN
