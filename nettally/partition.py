'''Plans and partitioning of votes into individually counted parts.

Plans are extracted from posts before the votes are processed, so that
votes referencing a plan defined later in the thread still resolve. When
several posts define a plan of the same name, the kind of definition
decides which one is kept - a base (proposed) plan beats a plan with
indented content, which beats a plan label followed by plain lines, which
beats a lone plan label line. Same-kind definitions that differ are kept as
numbered variants.

Votes are partitioned according to the quest's :class:`PartitionMode`.
'''

import dataclasses
import enum
import logging
import re
from typing import (
    List, Dict, Tuple, Union, Iterable, Iterator, Callable, NamedTuple,
    Optional
)

import nettally.block
from nettally.agnostic import ComparisonConfig, DEFAULT
from nettally.block import (
    VoteLineBlock, PlanStatus, PlanCheck, PLAN_NAME_MARKER, check_if_plan
)
from nettally.quest import PartitionMode
from nettally.voteline import VoteLine, MarkerType


logger = logging.getLogger(__name__)

MAX_REFERENCE_LENGTH = 100
REFERENCE_REGEX = re.compile(
    r'^(?P<label>(?:\^|↑)(?=\s*\w)'
    r'|(?:(?:(?:base|proposed)\s*)?plan\b)(?=\s*:?\s*\S))?'
    r'\s*:?\s*(?P<reference>.+)',
    re.IGNORECASE
)

WorkingItem = Union[VoteLine, VoteLineBlock]


class PlanType(enum.IntEnum):
    '''Kind of a plan definition, in the order of increasing priority.'''
    SINGLE_LINE = 1
    LABEL = 2
    CONTENT = 3
    BASE = 4


@dataclasses.dataclass(frozen=True)
class Plan:
    '''A named vote that other voters can reference.

    :param name: Name of the plan.
    :param author: Name of the voter that defined the plan.
    :param post_id: Identifier of the post the plan was defined in.
    :param plan_type: Kind of the plan definition.
    :param block: Vote lines of the plan, including the label line.
    :param number: Index among same-named variants of the same kind.
    '''
    name: str
    author: str
    post_id: int
    plan_type: PlanType
    block: VoteLineBlock
    number: int = 0

    @property
    def voter_name(self) -> str:
        '''Name under which the plan supports its own votes.'''
        return PLAN_NAME_MARKER + self.name


def is_plan_name(voter: str) -> bool:
    return voter.startswith(PLAN_NAME_MARKER)


class PlanRegistry:
    '''Named plans found in the posts of a thread.

    Plan names are compared agnostically.

    :param config: Comparison configuration for plan names and contents.
    '''
    def __init__(self, config: ComparisonConfig = DEFAULT):
        self.config = config
        self._plans: Dict[str, List[Plan]] = {}

    def add(self, plan: Plan) -> bool:
        '''Register a plan definition.

        A definition of a higher kind than the stored ones replaces all of
        them; a lower kind is ignored; the same kind is added as a numbered
        variant if its content differs from all stored variants.

        :returns: True if the plan was stored.
        '''
        key = self.config.key(plan.name)
        existing = self._plans.get(key)
        if not existing:
            self._plans[key] = [dataclasses.replace(plan, number=0)]
            return True
        current_type = existing[0].plan_type
        if plan.plan_type < current_type:
            return False
        elif plan.plan_type > current_type:
            logger.debug('plan %s superseded by a %s definition',
                         plan.name, plan.plan_type.name)
            self._plans[key] = [dataclasses.replace(plan, number=0)]
            return True
        elif all(plan.block != other.block for other in existing):
            existing.append(dataclasses.replace(plan, number=len(existing)))
            return True
        else:
            return False

    def get(self, name: str) -> Optional[Plan]:
        '''Return the primary definition of the named plan, or None.'''
        variants = self._plans.get(self.config.key(name))
        return variants[0] if variants else None

    def variants(self, name: str) -> List[Plan]:
        return list(self._plans.get(self.config.key(name), []))

    def __contains__(self, name: str) -> bool:
        return self.config.key(name) in self._plans

    def __iter__(self) -> Iterator[Plan]:
        return (variants[0] for variants in self._plans.values())

    def __len__(self) -> int:
        return len(self._plans)


PlanDetector = Tuple[bool, Callable[[List[VoteLine]], PlanCheck], PlanType]

# detectors in the order of decreasing plan kind priority;
# the flag says whether the detector runs on blocks or whole posts
PLAN_DETECTORS: List[PlanDetector] = [
    (True, nettally.block.is_proposed_plan, PlanType.BASE),
    (True, nettally.block.is_explicit_plan, PlanType.CONTENT),
    (False, nettally.block.is_implicit_plan, PlanType.LABEL),
    (False, nettally.block.is_single_line_plan, PlanType.SINGLE_LINE),
]


def is_valid_plan_name(name: str,
                       author: str,
                       is_voter: Callable[[str], bool],
                       config: ComparisonConfig = DEFAULT,
                       ) -> bool:
    '''Check that a plan is not named after a voter other than its author.

    :param name: The plan name.
    :param author: Author of the post defining the plan.
    :param is_voter: A predicate telling whether a name is a known voter.
    :param config: Comparison configuration for names.
    '''
    return not name or not is_voter(name) or config.equal(name, author)


def find_plans(lines: List[VoteLine],
               author: str,
               post_id: int,
               is_voter: Callable[[str], bool],
               task_filter: Callable[[str], bool] = lambda task: True,
               allow_labels: bool = True,
               detectors: Optional[List[PlanDetector]] = None,
               ) -> List[Plan]:
    '''Find all plan definitions within the vote lines of a post.

    :param lines: Vote lines of the post.
    :param author: Author of the post.
    :param post_id: Identifier of the post.
    :param is_voter: A predicate telling whether a name is a known voter;
        plans named after other voters are not plans but proxy votes.
    :param task_filter: A predicate telling whether a task is tallied.
    :param allow_labels: Whether to accept implicit plans (plan labels
        followed by plain lines).
    :param detectors: Plan detectors to run, all of them by default.
    '''
    if not lines:
        return []
    if detectors is None:
        detectors = PLAN_DETECTORS
    config = lines[0].config
    plans = []
    for as_blocks, detector, plan_type in detectors:
        if as_blocks:
            candidates = [list(block) for block in
                          nettally.block.get_blocks(lines)]
        else:
            candidates = [lines]
        for candidate in candidates:
            check = detector(candidate)
            if (check.is_plan
                    and not (check.is_implicit and not allow_labels)
                    and is_valid_plan_name(check.name, author, is_voter,
                                           config)
                    and task_filter(candidate[0].task)):
                plans.append(Plan(
                    name=check.name,
                    author=author,
                    post_id=post_id,
                    plan_type=plan_type,
                    block=VoteLineBlock(candidate),
                ))
    return plans


def normalize_plan(name: str, block: VoteLineBlock) -> VoteLineBlock:
    '''Prepare plan contents for storage as votes.

    Base and proposed plan labels are rewritten to plain ``Plan: name``
    labels and the block is marked as a plan.

    :param name: Name of the plan.
    :param block: Vote lines of the plan, including the label line.
    '''
    first = block.first
    status, _ = check_if_plan(first)
    if status == PlanStatus.PROPOSED:
        first = first.with_content(f'Plan: {name}')
    first = first.with_marker('', MarkerType.NONE)
    return VoteLineBlock(
        [first] + list(block.lines[1:]),
        task=block.task,
        marker=PLAN_NAME_MARKER,
        marker_type=MarkerType.PLAN,
    )


def _promoted_rest(lines: List[VoteLine]) -> List[VoteLine]:
    rest = lines[1:]
    min_depth = min(line.depth for line in rest)
    return [line.promoted(min_depth) for line in rest]


def partition(block: VoteLineBlock,
              mode: PartitionMode,
              as_plan: bool = False,
              ) -> List[VoteLineBlock]:
    '''Split a vote block into individually counted parts.

    :param block: The block to partition.
    :param mode: The partitioning mode.
    :param as_plan: Whether the block is a plan, whose label line is not
        counted as a vote of its own.
    '''
    lines = list(block)
    if mode == PartitionMode.NONE or len(lines) == 1:
        return [block]
    if nettally.block.is_content_block(lines):
        if mode in (PartitionMode.BY_LINE, PartitionMode.BY_LINE_TASK):
            return [VoteLineBlock([line]) for line in _promoted_rest(lines)]
        elif mode == PartitionMode.BY_BLOCK:
            return [block]
        elif mode == PartitionMode.BY_BLOCK_ALL:
            return nettally.block.get_blocks(_promoted_rest(lines))
    else:
        skipped = lines[1:] if as_plan else lines
        if mode in (PartitionMode.BY_LINE, PartitionMode.BY_LINE_TASK):
            return [VoteLineBlock([line]) for line in skipped]
        elif mode == PartitionMode.BY_BLOCK:
            if as_plan and not nettally.block.is_implicit_plan(lines).is_plan:
                return nettally.block.get_blocks(skipped)
            return [block]
        elif mode == PartitionMode.BY_BLOCK_ALL:
            return nettally.block.get_blocks(skipped)
    raise ValueError(f'unknown partition mode: {mode!r}')


def _cascade_line(line: VoteLine,
                  current: Tuple[int, str],
                  stack: List[Tuple[int, str]],
                  ) -> Tuple[VoteLine, Tuple[int, str]]:
    depth, task = current
    if not line.task and not task:
        return line, current
    while depth > line.depth and stack:
        depth, task = stack.pop()
    if line.depth == depth:
        return line, (depth, line.task)
    elif line.depth > depth:
        if not line.task:
            return line.with_task(task), (depth, task)
        stack.append((depth, task))
        return line, (line.depth, line.task)
    return line, (depth, task)


def cascade_tasks(working: Iterable[WorkingItem]) -> List[VoteLineBlock]:
    '''Split the working vote into lines inheriting tasks of their parents.

    A line without a task gets the task of the nearest less indented line
    that has one. Embedded blocks (votes pulled in from references) are kept
    whole and interrupt the inheritance.
    '''
    result = []
    current = (0, '')
    stack = []
    for item in working:
        if isinstance(item, VoteLineBlock):
            result.append(item)
            current = (0, '')
            stack = []
        else:
            line, current = _cascade_line(item, current, stack)
            result.append(VoteLineBlock([line]))
    return result


def partition_post(working: Iterable[WorkingItem],
                   mode: PartitionMode,
                   ) -> List[VoteLineBlock]:
    '''Split the working vote of a post into individually counted parts.

    The working vote is a sequence of the post's own vote lines interleaved
    with blocks pulled in from referenced plans and voters. Those blocks are
    already partitioned and are kept as they are, except when not
    partitioning at all, where everything is merged into a single block.

    :param working: Lines and embedded blocks forming the vote.
    :param mode: The partitioning mode.
    '''
    working = list(working)
    if not working:
        return []
    if mode == PartitionMode.NONE:
        lines = []
        for item in working:
            if isinstance(item, VoteLineBlock):
                lines.extend(item)
            else:
                lines.append(item)
        return [VoteLineBlock(lines)]
    elif mode == PartitionMode.BY_LINE:
        return [
            item if isinstance(item, VoteLineBlock) else VoteLineBlock([item])
            for item in working
        ]
    elif mode == PartitionMode.BY_LINE_TASK:
        return cascade_tasks(working)
    elif mode in (PartitionMode.BY_BLOCK, PartitionMode.BY_BLOCK_ALL):
        blocks = []
        current = []
        for item in working:
            if isinstance(item, VoteLineBlock):
                if current:
                    blocks.append(VoteLineBlock(current))
                    current = []
                blocks.append(item)
            else:
                if item.depth == 0 and current:
                    blocks.append(VoteLineBlock(current))
                    current = []
                current.append(item)
        if current:
            blocks.append(VoteLineBlock(current))
        return blocks
    raise ValueError(f'unknown partition mode: {mode!r}')


class ReferenceLabel(enum.Enum):
    '''How a vote line referring to a plan or a voter is labeled.'''
    NONE = 0
    PINNED = 1
    BASE_PLAN = 2
    PLAN = 3


class Reference(NamedTuple):
    '''A potential reference to a plan or a voter found on a vote line.'''
    label: ReferenceLabel
    name: str


def split_reference(line: VoteLine) -> Optional[Reference]:
    '''Split the content of a vote line into a reference label and a name.

    Long lines are never references.

    :returns: The reference, or None if the line cannot be one.
    '''
    content = line.comparable_content
    if len(content) > MAX_REFERENCE_LENGTH:
        return None
    match = REFERENCE_REGEX.match(content)
    if match is None:
        return None
    name = match.group('reference').strip()
    label_text = (match.group('label') or '').strip().lower()
    if not label_text:
        label = ReferenceLabel.NONE
    elif label_text in ('^', '↑'):
        label = ReferenceLabel.PINNED
    elif label_text.startswith('plan'):
        label = ReferenceLabel.PLAN
    else:
        label = ReferenceLabel.BASE_PLAN
    # a trailing period is commonly typed after a reference
    if name.endswith('.'):
        name = name[:-1].rstrip()
    if not name:
        return None
    return Reference(label, name)
