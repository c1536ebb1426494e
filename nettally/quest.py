'''Quest configuration - how the votes of a single thread are tallied.'''

import dataclasses
import enum
from typing import List, Optional

from nettally.agnostic import ComparisonConfig, get_comparer
from nettally.persist import simple_serialization


class PartitionMode(enum.Enum):
    '''How multi-line votes are split into individually counted votes.

    -   ``NONE`` counts each post's vote as a whole.
    -   ``BY_LINE`` counts each line separately.
    -   ``BY_LINE_TASK`` counts each line separately, with lines inheriting
        the task of their parent lines.
    -   ``BY_BLOCK`` counts each top-level block (a line and its sub-lines)
        separately, keeping plans whole.
    -   ``BY_BLOCK_ALL`` counts each block separately, splitting plans into
        blocks too.
    '''
    NONE = 'none'
    BY_LINE = 'line'
    BY_LINE_TASK = 'line_task'
    BY_BLOCK = 'block'
    BY_BLOCK_ALL = 'block_all'


class RankCounterMethod(enum.Enum):
    '''Counting method for ranked votes.'''
    DEFAULT = 'default'
    WILSON = 'wilson'
    SCHULZE = 'schulze'
    BALDWIN = 'baldwin'
    RIRV = 'rirv'


@simple_serialization
@dataclasses.dataclass
class Quest:
    '''Tally settings of a quest thread.

    :param name: Display name of the quest.
    :param partition_mode: How to split votes into individually counted
        parts.
    :param case_sensitive: Whether letter case distinguishes votes.
    :param symbols_significant: Whether whitespace and punctuation
        distinguish votes.
    :param rank_counter: Method to count ranked votes with.
    :param trim_extended_text: Whether to cut explanations off long vote
        lines.
    :param forbid_vote_label_plan_names: Whether to disregard implicit plans
        (plan labels followed by plain vote lines).
    :param disable_proxy_votes: Whether to disregard votes referencing other
        voters.
    :param force_pinned_proxy_votes: Whether all voter references use the
        vote the referenced voter had at the time of the referencing post.
    :param force_plan_references_to_be_labeled: Whether plan references need
        an explicit ``Plan`` label.
    :param task_filter: If given, only votes with one of these tasks are
        tallied.
    '''
    name: str = ''
    partition_mode: PartitionMode = PartitionMode.NONE
    case_sensitive: bool = False
    symbols_significant: bool = False
    rank_counter: RankCounterMethod = RankCounterMethod.DEFAULT
    trim_extended_text: bool = False
    forbid_vote_label_plan_names: bool = False
    disable_proxy_votes: bool = False
    force_pinned_proxy_votes: bool = False
    force_plan_references_to_be_labeled: bool = False
    task_filter: Optional[List[str]] = None

    @property
    def config(self) -> ComparisonConfig:
        return get_comparer(self.case_sensitive, self.symbols_significant)

    def task_filter_passes(self, task: str) -> bool:
        '''Return True if votes with the given task should be tallied.'''
        if self.task_filter is None:
            return True
        elif not task:
            return False
        else:
            return any(
                self.config.equal(task, allowed)
                for allowed in self.task_filter
            )
