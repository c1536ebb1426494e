'''Tallying of the votes in a thread of forum posts.

A tally runs in two phases. First, all posts are searched for plans, which
are registered and stored as votes of their own. Then the posts are
processed in order: references to plans and to other voters are replaced by
the referenced votes, the resulting vote is partitioned according to the
quest settings and stored as the votes of the post author. A vote
referencing a voter whose post has not been processed yet (a future
reference) is deferred to a later pass; when a pass makes no progress, the
remaining posts are processed with whatever is available.

Operator corrections (merges, joins, deletions and partitioning of votes)
are applied to the results of the last run and can be undone one by one.
Merges are also recorded in the merge ledger and replayed on each run.

The run can be cancelled from another thread through a
:class:`CancellationToken`; a cancelled run leaves the previous results in
place.
'''

import logging
import threading
from typing import (
    Collection, Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Set
)

import nettally.block
import nettally.evaluate
import nettally.node
import nettally.partition
import nettally.quest
import nettally.storage
from nettally.block import VoteLineBlock
from nettally.evaluate.core import RankResult
from nettally.ledger import MergeRecords, UndoAction
from nettally.node import VoteNode
from nettally.partition import (
    Plan, PlanRegistry, ReferenceLabel, WorkingItem, split_reference
)
from nettally.post import Post, LineFailure
from nettally.quest import Quest
from nettally.storage import VoteStorage, VoteType
from nettally.voteline import VoteLine


logger = logging.getLogger(__name__)


class ApprovalResult(NamedTuple):
    '''Approval balance of a vote.

    :param vote: The vote.
    :param positive: Number of voters approving of the vote.
    :param negative: Number of voters disapproving of the vote.
    :param voters: All voters who gave the vote an approval marker.
    '''
    vote: VoteLineBlock
    positive: int
    negative: int
    voters: FrozenSet[str]

    @property
    def net(self) -> int:
        return self.positive - self.negative


class ScoreResult(NamedTuple):
    '''Average of the scores given to a vote.'''
    vote: VoteLineBlock
    average: float
    voters: FrozenSet[str]


class TallyCancelled(Exception):
    '''The tally run was cancelled before it finished.'''
    pass


class CancellationToken:
    '''A flag to cancel a running tally from another thread.'''
    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TallyCancelled('tally cancelled')


class TallyRun:
    '''A single tally of a list of posts, producing fresh vote storage.

    :param quest: Tally settings.
    :param posts: The posts to tally.
    :param token: Token to poll for cancellation.
    '''
    def __init__(self,
                 quest: Quest,
                 posts: Iterable[Post],
                 token: Optional[CancellationToken] = None,
                 ):
        self.quest = quest
        self.config = quest.config
        self.posts = sorted(posts, key=lambda post: post.post_id)
        self.token = token if token is not None else CancellationToken()
        self.storage = VoteStorage()
        self.plans = PlanRegistry(self.config)
        self.failures: Dict[int, List[LineFailure]] = {}
        self.lines: Dict[int, List[VoteLine]] = {}
        self.authors: Dict[str, str] = {}
        self.processed: Set[int] = set()

    def execute(self) -> VoteStorage:
        '''Run both phases of the tally.

        :raises TallyCancelled: If cancelled through the token.
        '''
        logger.info('tallying %d posts', len(self.posts))
        self.parse_posts()
        self.preprocess_plans()
        logger.info('found %d plans', len(self.plans))
        self.process_posts()
        logger.info('tallied %d votes', len(self.storage))
        return self.storage

    def parse_posts(self) -> None:
        for post in self.posts:
            self.token.raise_if_cancelled()
            parsed = post.parse(self.config)
            self.lines[post.post_id] = parsed.lines
            if parsed.failures:
                self.failures[post.post_id] = parsed.failures
            self.authors.setdefault(self.config.key(post.author), post.author)

    def voter_name(self, name: str) -> Optional[str]:
        '''Return the name of a voter as they post, or None if unknown.'''
        return self.authors.get(self.config.key(name))

    def is_voter(self, name: str) -> bool:
        return self.voter_name(name) is not None

    def preprocess_plans(self) -> None:
        '''Find the plans in all posts and store their contents as votes.'''
        for detector in nettally.partition.PLAN_DETECTORS:
            for post in self.posts:
                self.token.raise_if_cancelled()
                lines = self.lines[post.post_id]
                if not lines:
                    continue
                found = nettally.partition.find_plans(
                    lines, post.author, post.post_id, self.is_voter,
                    task_filter=self.quest.task_filter_passes,
                    allow_labels=not self.quest.forbid_vote_label_plan_names,
                    detectors=[detector],
                )
                for plan in found:
                    self.add_plan(plan)

    def add_plan(self, plan: Plan) -> None:
        if not self.plans.add(plan):
            return
        stored = self.plans.get(plan.name)
        if stored.post_id != plan.post_id or stored.block != plan.block:
            # a same-kind variant, kept in the registry only
            return
        logger.debug('storing plan %s from post %d', plan.name, plan.post_id)
        content = nettally.partition.normalize_plan(stored.name, stored.block)
        partitions = nettally.partition.partition(
            content, self.quest.partition_mode, as_plan=True
        )
        self.storage.add_votes(partitions, stored.voter_name, stored.post_id)

    def process_posts(self) -> None:
        '''Process the votes of all posts, resolving references.'''
        unprocessed = []
        for post in self.posts:
            if self.lines[post.post_id]:
                unprocessed.append(post)
            else:
                self.processed.add(post.post_id)
        force = False
        while unprocessed:
            progress = False
            for post in unprocessed:
                self.token.raise_if_cancelled()
                if self.process_post(post, force):
                    progress = True
            unprocessed = [post for post in unprocessed
                           if post.post_id not in self.processed]
            if unprocessed and not progress:
                logger.debug('forcing %d posts with future references',
                             len(unprocessed))
                force = True

    def process_post(self, post: Post, force: bool = False) -> bool:
        '''Process the vote of a single post.

        :returns: Whether the post was processed; False if it has a future
            reference and processing was not forced.
        '''
        working = self.working_vote(post, force)
        if working is None:
            return False
        self.processed.add(post.post_id)
        if self.storage.voter_posts.get(post.author, -1) > post.post_id:
            logger.debug('post %d superseded by a newer vote', post.post_id)
            return True
        partitions = [
            part for part in nettally.partition.partition_post(
                working, self.quest.partition_mode
            )
            if self.quest.task_filter_passes(part.task)
        ]
        if partitions:
            self.storage.add_votes(partitions, post.author, post.post_id)
        return True

    def last_post_by(self,
                     author: str,
                     before: Optional[int] = None,
                     ) -> Optional[Post]:
        last = None
        for post in self.posts:
            if before is not None and post.post_id >= before:
                break
            if self.config.equal(post.author, author):
                last = post
        return last

    def is_own_proposed_plan(self, post: Post, block: VoteLineBlock) -> bool:
        check = nettally.block.is_proposed_plan(list(block))
        if not check.is_plan:
            return False
        plan = self.plans.get(check.name)
        return plan is not None and plan.post_id == post.post_id

    def working_vote(self,
                     post: Post,
                     force: bool = False,
                     ) -> Optional[List[WorkingItem]]:
        '''Assemble the vote of a post with references replaced.

        :returns: The lines of the post and the blocks pulled in for
            references, or None if a referenced voter has not been
            processed yet.
        '''
        lines = [
            line
            for block in nettally.block.get_blocks(self.lines[post.post_id])
            if not self.is_own_proposed_plan(post, block)
            for line in block
        ]
        working = []
        i = 0
        while i < len(lines):
            line = lines[i]
            target = self.reference_of(line, post)
            if target is None:
                working.append(self.direct_line(line))
            elif isinstance(target, Plan):
                plan_lines = list(target.block)
                if lines[i:i+len(plan_lines)] == plan_lines:
                    i += len(plan_lines) - 1
                elif i + 1 < len(lines) and lines[i+1].depth > 0:
                    working.append(self.direct_line(line))
                    i += 1
                    continue
                working.extend(self.referenced_votes(target.voter_name, line))
            else:
                voter, pinned = target
                ref_post = self.last_post_by(
                    voter, before=post.post_id if pinned else None
                )
                if ref_post is None:
                    working.append(line)
                elif ref_post.post_id not in self.processed and not force:
                    return None
                else:
                    pulled = self.referenced_votes(voter, line)
                    working.extend(pulled if pulled else [line])
            i += 1
        return working

    def direct_line(self, line: VoteLine) -> VoteLine:
        if self.quest.trim_extended_text:
            return line.with_trimmed_content()
        return line

    def referenced_votes(self,
                         voter: str,
                         line: VoteLine,
                         ) -> List[VoteLineBlock]:
        '''Copy the votes of a voter or plan, marked as on the given line.'''
        return [
            vote.with_marker(line.marker, line.marker_type, line.marker_value)
            for vote in self.storage.votes_by(voter)
        ]

    def reference_of(self, line: VoteLine, post: Post):
        '''Determine what a vote line refers to.

        :returns: A :class:`Plan`, a tuple of a voter name and whether the
            reference is pinned to the time of the post, or None for lines
            that are not references.
        '''
        reference = split_reference(line)
        if reference is None:
            return None
        label, name = reference
        voter = self.voter_name(name)
        if voter is not None and (
            self.quest.disable_proxy_votes
            or self.config.equal(voter, post.author)
        ):
            voter = None
        plan = self.plans.get(name)
        pinned = self.quest.force_pinned_proxy_votes
        if label == ReferenceLabel.PINNED:
            return (voter, True) if voter is not None else None
        elif label == ReferenceLabel.BASE_PLAN:
            return plan
        elif label == ReferenceLabel.PLAN:
            if plan is not None:
                return plan
            return (voter, pinned) if voter is not None else None
        else:
            if voter is not None:
                return (voter, pinned)
            if self.quest.force_plan_references_to_be_labeled:
                return None
            return plan


class Tally:
    '''A tally of a quest thread with its operator corrections.

    :param quest: Tally settings.
    :param posts: Posts of the thread.
    '''
    def __init__(self, quest: Quest, posts: Iterable[Post] = ()):
        self.quest = quest
        self.posts: List[Post] = list(posts)
        self.storage = VoteStorage()
        self.plans = PlanRegistry(quest.config)
        self.failures: Dict[int, List[LineFailure]] = {}
        self.merge_records = MergeRecords()
        self.undo_stack: List[UndoAction] = []
        self.was_cancelled = False

    def add_posts(self, posts: Iterable[Post]) -> None:
        self.posts.extend(posts)

    def run(self, token: Optional[CancellationToken] = None) -> VoteStorage:
        '''Tally all posts from scratch and replay the recorded merges.

        :param token: Token to poll for cancellation.
        :raises TallyCancelled: If cancelled; the results of the previous
            run are kept.
        '''
        self.was_cancelled = False
        tally_run = TallyRun(self.quest, self.posts, token)
        try:
            storage = tally_run.execute()
        except TallyCancelled:
            self.was_cancelled = True
            logger.info('tally cancelled, keeping previous results')
            raise
        self.storage = storage
        self.plans = tally_run.plans
        self.failures = tally_run.failures
        self.undo_stack.clear()
        self.replay_merges()
        return self.storage

    def replay_merges(self) -> None:
        '''Apply the merges recorded in the ledger to fresh results.'''
        mode = self.quest.partition_mode
        for vote in list(self.storage):
            if vote not in self.storage:
                continue
            target_text = self.merge_records.resolve(
                vote.to_comparable_string(), mode
            )
            if target_text is None:
                continue
            target = self.storage.find(target_text)
            if target is None or target == vote:
                continue
            logger.debug('replaying merge into %s', target_text)
            self.storage.merge(vote, target)

    def reset_merges(self) -> None:
        self.merge_records.reset()

    def vote_type(self, vote: VoteLineBlock) -> VoteType:
        for voter, marked in self.storage.support(vote).items():
            return nettally.storage.vote_type_of(voter, marked)
        return VoteType.VOTE

    def _stored(self, vote: VoteLineBlock) -> VoteLineBlock:
        stored = self.storage.key_of(vote)
        if stored is None:
            raise KeyError(f'vote not in the tally: {vote}')
        return stored

    def merge(self,
              from_vote: VoteLineBlock,
              to_vote: VoteLineBlock,
              ) -> UndoAction:
        '''Merge a vote into another, recording the merge in the ledger.

        :raises KeyError: If any of the votes is not in the tally.
        :raises MergeCycleError: If the merge would form a cycle.
        '''
        from_vote = self._stored(from_vote)
        to_vote = self._stored(to_vote)
        delta = self.merge_records.add(
            from_vote.to_comparable_string(),
            to_vote.to_comparable_string(),
            self.quest.partition_mode,
        )
        action = UndoAction.merge(
            self.vote_type(from_vote),
            self.storage.voter_posts,
            from_vote, self.storage.support(from_vote),
            to_vote, self.storage.support(to_vote),
            ledger_delta=delta,
        )
        self.storage.merge(from_vote, to_vote)
        self.undo_stack.append(action)
        return action

    def join(self, voters: Iterable[str], target: str) -> UndoAction:
        '''Make voters vote exactly like the target voter.'''
        voters = [voter for voter in voters if voter != target]
        affected = [
            vote for vote, support in self.storage.votes.items()
            if target in support or any(voter in support for voter in voters)
        ]
        target_votes = self.storage.votes_by(target)
        vote_type = (
            nettally.storage.vote_type_of(target, target_votes[0])
            if target_votes else VoteType.VOTE
        )
        action = UndoAction.join(
            vote_type,
            self.storage.voter_posts,
            voters,
            self.storage.snapshot(affected),
        )
        self.storage.join(voters, target)
        self.undo_stack.append(action)
        return action

    def delete(self, vote: VoteLineBlock) -> UndoAction:
        '''Remove a vote from the tally.'''
        vote = self._stored(vote)
        action = UndoAction.delete(
            self.vote_type(vote),
            self.storage.voter_posts,
            self.storage.snapshot([vote]),
        )
        self.storage.delete(vote)
        self.undo_stack.append(action)
        return action

    def partition_children(self, vote: VoteLineBlock) -> UndoAction:
        '''Split a vote into its child blocks, moving its voters to them.

        :raises ValueError: If the vote has no children to split into.
        '''
        vote = self._stored(vote)
        children = nettally.partition.partition(
            vote, nettally.quest.PartitionMode.BY_BLOCK_ALL
        )
        if len(children) == 1 and children[0] == vote:
            raise ValueError(f'vote has no children to split into: {vote}')
        existing = [child for child in children if child in self.storage]
        added = [child for child in children if child not in self.storage]
        action = UndoAction.partition_children(
            self.vote_type(vote),
            self.storage.voter_posts,
            vote,
            self.storage.support(vote),
            self.storage.snapshot(existing),
            added,
        )
        self.storage.replace(vote, children)
        self.undo_stack.append(action)
        return action

    @property
    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    def undo(self) -> Optional[UndoAction]:
        '''Revert the last correction, including its ledger entry.

        :returns: The reverted action, None if there was none.
        '''
        if not self.undo_stack:
            return None
        action = self.undo_stack.pop()
        self.storage.restore(
            action.prior_votes, action.added_votes, action.post_ids
        )
        if action.ledger_delta is not None:
            self.merge_records.revert(action.ledger_delta)
        logger.info('undid %s of %s votes',
                    action.action_type.value, action.vote_type.value)
        return action

    def votes(self, vote_type: VoteType = VoteType.VOTE
              ) -> Dict[VoteLineBlock, FrozenSet[str]]:
        '''Return the votes of a category with their voters.'''
        return {
            vote: frozenset(support)
            for vote, support in self.storage.vote_type_support(
                vote_type
            ).items()
        }

    def tasks(self) -> List[str]:
        return self.storage.tasks()

    def vote_nodes(self, vote_type: VoteType = VoteType.VOTE
                   ) -> Dict[str, List[VoteNode]]:
        '''Build the display hierarchy of the votes of a category per task.'''
        plan_names = [plan.name for plan in self.plans]
        return {
            task: nettally.node.build_vote_nodes(
                texts, plan_names, self.storage.voter_posts,
                self.quest.config,
            )
            for task, texts in nettally.node.group_by_task(
                self.votes(vote_type)
            ).items()
        }

    def marker_values(self, vote_type: VoteType
                      ) -> Dict[str, Dict[VoteLineBlock, Dict[str, int]]]:
        '''Return the votes of a category per task, with the marker value
        (rank, score or approval sign) given by each voter.
        '''
        config = self.quest.config
        by_task: Dict[str, Dict[VoteLineBlock, Dict[str, int]]] = {}
        selected = self.storage.vote_type_support(vote_type)
        for vote, support in selected.items():
            task = next(
                (known for known in by_task if config.equal(known, vote.task)),
                vote.task
            )
            by_task.setdefault(task, {})[vote] = {
                voter: marked.marker_value
                for voter, marked in support.items()
            }
        return by_task

    def ranked_votes(self) -> Dict[str, Dict[VoteLineBlock, Dict[str, int]]]:
        '''Return ranked votes per task, as the ranks given by each voter.'''
        return self.marker_values(VoteType.RANK)

    def approval_results(self) -> Dict[str, List[ApprovalResult]]:
        '''Count the approvals and disapprovals of the votes of each task.

        The most approved votes come first; of those equally approved, the
        least disapproved.
        '''
        results = {}
        for task, votes in self.marker_values(VoteType.APPROVAL).items():
            task_results = [
                ApprovalResult(
                    vote,
                    sum(1 for value in values.values() if value > 0),
                    sum(1 for value in values.values() if value < 0),
                    frozenset(values),
                )
                for vote, values in votes.items()
            ]
            task_results.sort(
                key=lambda result: (-result.positive, result.negative)
            )
            results[task] = task_results
        return results

    def score_results(self) -> Dict[str, List[ScoreResult]]:
        '''Average the scores given to the votes of each task, best first.'''
        results = {}
        for task, votes in self.marker_values(VoteType.SCORE).items():
            task_results = [
                ScoreResult(
                    vote,
                    sum(values.values()) / len(values),
                    frozenset(values),
                )
                for vote, values in votes.items()
            ]
            task_results.sort(
                key=lambda result: (-result.average, -len(result.voters))
            )
            results[task] = task_results
        return results

    def ranked_results(self,
                       counter: Optional[str] = None,
                       ) -> Dict[str, List[RankResult]]:
        '''Count the ranked votes of each task.

        :param counter: Name of the counting method; the quest's method by
            default.
        '''
        evaluator = nettally.evaluate.get_counter(
            self.quest.rank_counter if counter is None else counter
        )
        return {
            task: evaluator.evaluate(votes)
            for task, votes in self.ranked_votes().items()
        }


def run_tally(quest: Quest,
              posts: Collection[Post],
              token: Optional[CancellationToken] = None,
              ) -> Tally:
    '''Create a tally of the given posts and run it.'''
    session = Tally(quest, posts)
    session.run(token)
    return session
