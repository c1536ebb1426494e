'''Operator corrections of the tally and their undo history.

Automatic grouping of votes is never perfect; the operator may merge votes
that mean the same thing, make voters join other voters, delete votes or
split a vote into its parts. Merges are recorded in :class:`MergeRecords`,
a ledger kept per partition mode, which is replayed after each retally so
that the corrections survive changes in the thread.

Every correction also produces an :class:`UndoAction`, an immutable
snapshot of the affected votes before the change. Each undo action carries
the ledger delta its correction caused, so undoing it reverts the stored
votes and the ledger together.
'''

import dataclasses
import enum
import logging
import types
from typing import (
    Any, Dict, FrozenSet, Hashable, Iterable, List, Mapping, Optional, Tuple
)

from nettally.block import VoteLineBlock
from nettally.storage import VoteType


logger = logging.getLogger(__name__)

VoteSupport = Mapping[VoteLineBlock, Mapping[str, VoteLineBlock]]


class MergeCycleError(ValueError):
    '''A merge would make a vote merge, directly or indirectly, into itself.'''
    pass


@dataclasses.dataclass(frozen=True)
class LedgerDelta:
    '''A single change of the merge ledger.

    :param mode: The partition mode the change applies to.
    :param original: The vote text that was redirected.
    :param revised: The vote text it was redirected to.
    :param previous: Where the original vote pointed before the change,
        None if it was not redirected.
    '''
    mode: Hashable
    original: str
    revised: str
    previous: Optional[str] = None


class MergeRecords:
    '''A ledger of merges of votes, kept separately per partition mode.

    Each entry redirects an original vote text to a revised one. Entries
    never point at themselves and never form cycles, so every chain of
    redirections ends.
    '''
    def __init__(self):
        self._records: Dict[Hashable, Dict[str, str]] = {}

    def add(self, original: str, revised: str, mode: Hashable) -> LedgerDelta:
        '''Record that a vote was merged into another.

        :param original: Text of the merged vote.
        :param revised: Text of the vote it was merged into.
        :param mode: The partition mode in effect.
        :returns: The change made to the ledger.
        :raises ValueError: If any of the texts is empty.
        :raises MergeCycleError: If the merge would form a cycle.
        '''
        if not original or not revised:
            raise ValueError('merged vote texts must not be empty')
        if original == revised:
            raise MergeCycleError(f'cannot merge {original!r} into itself')
        records = self._records.setdefault(mode, {})
        target = revised
        visited = set()
        while target in records and target not in visited:
            visited.add(target)
            target = records[target]
            if target == original:
                raise MergeCycleError(
                    f'merging {original!r} into {revised!r} forms a cycle'
                )
        delta = LedgerDelta(mode, original, revised, records.get(original))
        records[original] = revised
        logger.debug('recorded merge %r -> %r', original, revised)
        return delta

    def resolve(self, vote: str, mode: Hashable) -> Optional[str]:
        '''Follow the redirections of a vote to the final one.

        :returns: The final vote text, None if the vote is not redirected.
        '''
        records = self._records.get(mode, {})
        if vote not in records:
            return None
        target = vote
        visited = set()
        while target in records and target not in visited:
            visited.add(target)
            target = records[target]
        return target

    def remove(self, original: str, revised: str, mode: Hashable) -> bool:
        '''Remove a redirection if it currently points to the revised vote.

        :returns: Whether the redirection was removed.
        '''
        records = self._records.get(mode, {})
        if records.get(original) == revised:
            del records[original]
            return True
        return False

    def revert(self, delta: LedgerDelta) -> bool:
        '''Undo a change of the ledger returned by :meth:`add`.

        :returns: Whether the ledger still contained the change and was
            reverted; False if the entry was changed or cleared since.
        '''
        records = self._records.get(delta.mode, {})
        if records.get(delta.original) != delta.revised:
            logger.debug('ledger entry %r changed, not reverting',
                         delta.original)
            return False
        if delta.previous is None:
            del records[delta.original]
        else:
            records[delta.original] = delta.previous
        return True

    def reset(self) -> None:
        self._records.clear()

    def items(self, mode: Hashable) -> List[Tuple[str, str]]:
        return list(self._records.get(mode, {}).items())

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())


class UndoActionType(enum.Enum):
    MERGE = 'merge'
    JOIN = 'join'
    DELETE = 'delete'
    PARTITION_CHILDREN = 'partition_children'


def _freeze_support(votes: Mapping[VoteLineBlock, Mapping[str, Any]]
                    ) -> Mapping[VoteLineBlock, Mapping[str, Any]]:
    return types.MappingProxyType({
        vote: types.MappingProxyType(dict(support))
        for vote, support in votes.items()
    })


@dataclasses.dataclass(frozen=True, eq=False)
class UndoAction:
    '''A snapshot allowing to revert a single correction of the tally.

    Use the class methods named after the correction types to create the
    actions; the constructor checks that the data match the type.

    :param action_type: Type of the correction.
    :param vote_type: Category of the corrected votes.
    :param post_ids: Post identifiers of all voters before the correction.
    :param prior_votes: Support of the affected votes that existed before
        the correction.
    :param added_votes: Votes created by the correction.
    :param joined_voters: Voters made to join another voter.
    :param ledger_delta: The change of the merge ledger caused by the
        correction, if any.
    '''
    action_type: UndoActionType
    vote_type: VoteType
    post_ids: Mapping[str, int]
    prior_votes: VoteSupport
    added_votes: FrozenSet[VoteLineBlock] = frozenset()
    joined_voters: Tuple[str, ...] = ()
    ledger_delta: Optional[LedgerDelta] = None

    def __post_init__(self):
        if not isinstance(self.action_type, UndoActionType):
            raise TypeError(f'invalid undo action type: {self.action_type!r}')
        if not isinstance(self.vote_type, VoteType):
            raise TypeError(f'invalid vote type: {self.vote_type!r}')
        object.__setattr__(
            self, 'post_ids', types.MappingProxyType(dict(self.post_ids))
        )
        object.__setattr__(
            self, 'prior_votes', _freeze_support(self.prior_votes)
        )
        object.__setattr__(self, 'added_votes', frozenset(self.added_votes))
        object.__setattr__(self, 'joined_voters', tuple(self.joined_voters))
        problem = self._payload_problem()
        if problem:
            raise ValueError(
                f'invalid {self.action_type.value} undo action: {problem}'
            )

    def _payload_problem(self) -> Optional[str]:
        n_prior = len(self.prior_votes)
        if self.action_type != UndoActionType.JOIN and self.joined_voters:
            return 'only joins have joined voters'
        if (self.action_type != UndoActionType.MERGE
                and self.ledger_delta is not None):
            return 'only merges change the merge ledger'
        if (self.action_type != UndoActionType.PARTITION_CHILDREN
                and self.added_votes):
            return 'only partitioning creates votes'
        if self.action_type == UndoActionType.MERGE and n_prior != 2:
            return f'two merged votes required, got {n_prior}'
        elif (self.action_type == UndoActionType.JOIN
                and not self.joined_voters):
            return 'no joined voters'
        elif self.action_type == UndoActionType.DELETE and not n_prior:
            return 'no deleted votes'
        elif (self.action_type == UndoActionType.PARTITION_CHILDREN
                and not n_prior):
            return 'no partitioned vote'
        return None

    @classmethod
    def merge(cls,
              vote_type: VoteType,
              post_ids: Mapping[str, int],
              from_vote: VoteLineBlock,
              from_support: Mapping[str, VoteLineBlock],
              to_vote: VoteLineBlock,
              to_support: Mapping[str, VoteLineBlock],
              ledger_delta: Optional[LedgerDelta] = None,
              ) -> 'UndoAction':
        '''Record a merge of one vote into another.

        :param from_vote: The merged (removed) vote.
        :param from_support: Its support before the merge.
        :param to_vote: The vote merged into.
        :param to_support: Its support before the merge.
        :param ledger_delta: The ledger entry recorded for the merge.
        '''
        return cls(
            UndoActionType.MERGE, vote_type, post_ids,
            {from_vote: from_support, to_vote: to_support},
            ledger_delta=ledger_delta,
        )

    @classmethod
    def join(cls,
             vote_type: VoteType,
             post_ids: Mapping[str, int],
             joined_voters: Iterable[str],
             prior_votes: VoteSupport,
             ) -> 'UndoAction':
        '''Record voters joining another voter.

        :param joined_voters: The voters that joined.
        :param prior_votes: Support before the join of every vote that the
            joining voters or the joined voter supported.
        '''
        return cls(
            UndoActionType.JOIN, vote_type, post_ids, prior_votes,
            joined_voters=tuple(joined_voters),
        )

    @classmethod
    def delete(cls,
               vote_type: VoteType,
               post_ids: Mapping[str, int],
               deleted_votes: VoteSupport,
               ) -> 'UndoAction':
        '''Record deletion of votes together with their former support.'''
        return cls(UndoActionType.DELETE, vote_type, post_ids, deleted_votes)

    @classmethod
    def partition_children(cls,
                           vote_type: VoteType,
                           post_ids: Mapping[str, int],
                           vote: VoteLineBlock,
                           support: Mapping[str, VoteLineBlock],
                           prior_children: VoteSupport,
                           added_votes: Iterable[VoteLineBlock],
                           ) -> 'UndoAction':
        '''Record splitting a vote into its child blocks.

        :param vote: The split vote.
        :param support: Its support before the split.
        :param prior_children: Support of the child votes that already
            existed before the split.
        :param added_votes: Child votes that did not exist before.
        '''
        prior = dict(prior_children)
        prior[vote] = support
        return cls(
            UndoActionType.PARTITION_CHILDREN, vote_type, post_ids, prior,
            added_votes=frozenset(added_votes),
        )
