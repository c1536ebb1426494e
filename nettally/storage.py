'''Storage of tallied votes and the voters supporting them.

Each stored vote (a :class:`VoteLineBlock`) maps the voters supporting it to
the copy of the vote as the voter cast it, so that every voter's marker
(a rank, for example) is retained. Votes compare agnostically, so votes
typed slightly differently by different voters end up in a single entry,
keyed by the first version seen.
'''

import enum
import logging
from typing import Dict, List, Iterable, Iterator, Mapping, Optional, Set

from nettally.block import VoteLineBlock, PLAN_NAME_MARKER
from nettally.voteline import MarkerType


logger = logging.getLogger(__name__)

Support = Dict[str, VoteLineBlock]


class VoteType(enum.Enum):
    '''Category of a vote as presented in the tally output.'''
    VOTE = 'vote'
    PLAN = 'plan'
    RANK = 'rank'
    SCORE = 'score'
    APPROVAL = 'approval'


def is_plan_voter(voter: str) -> bool:
    return voter.startswith(PLAN_NAME_MARKER)


def vote_type_of(voter: str, marked: VoteLineBlock) -> VoteType:
    '''Determine the category of a vote cast by a voter.'''
    if is_plan_voter(voter):
        return VoteType.PLAN
    elif marked.marker_type == MarkerType.RANK:
        return VoteType.RANK
    elif marked.marker_type == MarkerType.SCORE:
        return VoteType.SCORE
    elif marked.marker_type == MarkerType.APPROVAL:
        return VoteType.APPROVAL
    else:
        return VoteType.VOTE


class VoteStorage:
    '''Votes of a tally with their supporting voters.

    :param votes: Initial contents, mapping votes to their support.
    '''
    def __init__(self,
                 votes: Optional[Mapping[VoteLineBlock, Support]] = None,
                 ):
        self.votes: Dict[VoteLineBlock, Support] = {}
        self.voter_posts: Dict[str, int] = {}
        if votes:
            for vote, support in votes.items():
                self.votes[vote] = dict(support)

    def __contains__(self, vote: VoteLineBlock) -> bool:
        return vote in self.votes

    def __iter__(self) -> Iterator[VoteLineBlock]:
        return iter(self.votes)

    def __len__(self) -> int:
        return len(self.votes)

    def support(self, vote: VoteLineBlock) -> Support:
        '''Return the voters of a vote with their marked copies.'''
        return self.votes.get(vote, {})

    def key_of(self, vote: VoteLineBlock) -> Optional[VoteLineBlock]:
        '''Return the stored version of the vote, or None.'''
        for stored in self.votes:
            if stored == vote:
                return stored
        return None

    def find(self, text: str) -> Optional[VoteLineBlock]:
        '''Find a stored vote by its comparable string form.'''
        for stored in self.votes:
            if stored.to_comparable_string() == text:
                return stored
        return None

    def add_votes(self,
                  votes: Iterable[VoteLineBlock],
                  voter: str,
                  post_id: int,
                  ) -> None:
        '''Replace all votes of a voter by the given ones.

        :param votes: The votes as cast by the voter, with their markers.
        :param voter: Name of the voter.
        :param post_id: Identifier of the post the votes come from.
        '''
        self.remove_voter(voter)
        for vote in votes:
            self.votes.setdefault(vote, {})[voter] = vote
        self.voter_posts[voter] = post_id
        self.remove_unsupported()

    def remove_voter(self, voter: str) -> None:
        for support in self.votes.values():
            support.pop(voter, None)

    def remove_unsupported(self) -> List[VoteLineBlock]:
        '''Drop the votes no voter supports any more.'''
        unsupported = [vote for vote, support in self.votes.items()
                       if not support]
        for vote in unsupported:
            del self.votes[vote]
        return unsupported

    def votes_by(self, voter: str) -> List[VoteLineBlock]:
        '''Return the votes of a voter as they cast them.'''
        return [
            support[voter] for support in self.votes.values()
            if voter in support
        ]

    def voters(self) -> Set[str]:
        return {voter for support in self.votes.values() for voter in support}

    def snapshot(self, votes: Iterable[VoteLineBlock]
                 ) -> Dict[VoteLineBlock, Support]:
        '''Copy the current support of the given stored votes.'''
        return {
            vote: dict(self.votes[vote])
            for vote in votes if vote in self.votes
        }

    def merge(self, from_vote: VoteLineBlock, to_vote: VoteLineBlock) -> None:
        '''Move the supporters of a vote to another one.

        The moved supporters keep their own markers. The emptied vote is
        removed.
        '''
        if from_vote not in self.votes or to_vote not in self.votes:
            raise KeyError('both merged votes must be stored')
        if from_vote == to_vote:
            raise ValueError('cannot merge a vote into itself')
        target = self.votes[to_vote]
        for voter, marked in self.votes.pop(from_vote).items():
            target[voter] = to_vote.with_marker(
                marked.marker, marked.marker_type, marked.marker_value
            )

    def join(self, voters: Iterable[str], target: str) -> None:
        '''Make voters support exactly what the target voter supports.'''
        target_votes = [vote for vote, support in self.votes.items()
                        if target in support]
        for voter in voters:
            if voter == target:
                continue
            for vote, support in self.votes.items():
                if voter in support and vote not in target_votes:
                    del support[voter]
            for vote in target_votes:
                if voter not in self.votes[vote]:
                    self.votes[vote][voter] = self.votes[vote][target]
        self.remove_unsupported()

    def delete(self, vote: VoteLineBlock) -> Support:
        '''Remove a vote, returning its former support.'''
        return self.votes.pop(vote)

    def replace(self,
                vote: VoteLineBlock,
                replacements: List[VoteLineBlock],
                ) -> None:
        '''Move the supporters of a vote to several other votes.'''
        support = self.votes.pop(vote)
        for replacement in replacements:
            stored = self.votes.setdefault(replacement, {})
            for voter, marked in support.items():
                stored[voter] = replacement.with_marker(
                    marked.marker, marked.marker_type, marked.marker_value
                )

    def restore(self,
                prior: Mapping[VoteLineBlock, Mapping[str, VoteLineBlock]],
                added: Iterable[VoteLineBlock] = (),
                voter_posts: Optional[Mapping[str, int]] = None,
                ) -> None:
        '''Return the given votes to an earlier state.

        :param prior: The earlier support of votes that existed then.
        :param added: Votes that did not exist then and are to be removed.
        :param voter_posts: Earlier post identifiers of the voters.
        '''
        for vote in added:
            self.votes.pop(vote, None)
        for vote, support in prior.items():
            self.votes.pop(vote, None)
            self.votes[vote] = dict(support)
        if voter_posts is not None:
            self.voter_posts = dict(voter_posts)
        self.remove_unsupported()

    def vote_type_support(self, vote_type: VoteType
                          ) -> Dict[VoteLineBlock, Support]:
        '''Select the stored votes and voters of a single category.'''
        result = {}
        for vote, support in self.votes.items():
            selected = {
                voter: marked for voter, marked in support.items()
                if vote_type_of(voter, marked) == vote_type
            }
            if selected:
                result[vote] = selected
        return result

    def tasks(self) -> List[str]:
        '''List the distinct tasks of the stored votes, first seen first.'''
        tasks = []
        for vote in self.votes:
            if not any(vote.config.equal(vote.task, task) for task in tasks):
                tasks.append(vote.task)
        return tasks
