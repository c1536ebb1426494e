'''Presentation of tally results as forum-postable text or JSON data.

The text output uses forum markup (BBCode) so that it can be posted back to
the thread. Its header contains a tally mark line (``#####``), so a posted
tally is recognized and skipped when the thread is tallied again.
'''

import enum
from typing import (
    Any, Collection, Dict, Iterable, Iterator, List, Mapping, Optional
)

import nettally.persist
from nettally.evaluate.core import RankResult
from nettally.node import VoteNode
from nettally.post import TALLY_MARK
from nettally.storage import VoteType, is_plan_voter
from nettally.tally import ApprovalResult, ScoreResult, Tally


PRODUCT_NAME = 'NetTally'
LINE_BREAK = '[hr][/hr]'


class DisplayMode(enum.Enum):
    '''How much detail the text output shows.

    -   ``NORMAL`` lists each vote with its vote count and voters.
    -   ``NO_VOTERS`` lists each vote with its vote count only.
    -   ``COMPACT`` puts the vote count into the marker of each vote line.
    '''
    NORMAL = 'normal'
    NO_VOTERS = 'no_voters'
    COMPACT = 'compact'


def header_lines(tally: Tally) -> Iterator[str]:
    yield f'[b]Vote Tally[/b] : {tally.quest.name}'
    yield f'[color=transparent]{TALLY_MARK} {PRODUCT_NAME}[/color]'
    yield ''


def voter_display(voter: str) -> str:
    if is_plan_voter(voter):
        return f'[b]Plan: {voter[1:]}[/b]'
    return voter


def ordered_voters(voters: Iterable[str],
                   voter_posts: Mapping[str, int],
                   ) -> List[str]:
    '''Order voters by the post they voted in, plans first.'''
    return sorted(voters, key=lambda voter: (
        not is_plan_voter(voter), voter_posts.get(voter, 0), voter
    ))


def _compact_marker(text: str, count: int) -> str:
    return text.replace('[X]', f'[{count}]', 1)


def node_lines(node: VoteNode,
               display_mode: DisplayMode = DisplayMode.NORMAL,
               voter_posts: Optional[Mapping[str, int]] = None,
               ) -> Iterator[str]:
    '''Render a vote node and its children.

    :param node: The top-level node to render.
    :param display_mode: Level of detail.
    :param voter_posts: Post identifiers of the voters, to order them by.
    '''
    if voter_posts is None:
        voter_posts = {}
    if display_mode == DisplayMode.COMPACT:
        yield _compact_marker(node.text, node.voter_count)
        for child in node.children:
            yield _compact_marker(child.text, child.voter_count)
        return
    yield node.text
    for child in node.children:
        yield child.text
    yield f'[b]No. of Votes: {node.voter_count}[/b]'
    if display_mode == DisplayMode.NORMAL:
        for voter in ordered_voters(node.all_voters, voter_posts):
            yield voter_display(voter)
    yield ''


def _listed_voters(voters: Collection[str],
                   display_mode: DisplayMode,
                   voter_posts: Mapping[str, int],
                   ) -> Iterator[str]:
    yield f'[b]No. of Votes: {len(voters)}[/b]'
    if display_mode == DisplayMode.NORMAL:
        for voter in ordered_voters(voters, voter_posts):
            yield voter_display(voter)


def approval_lines(results: List[ApprovalResult],
                   display_mode: DisplayMode = DisplayMode.NORMAL,
                   voter_posts: Optional[Mapping[str, int]] = None,
                   ) -> Iterator[str]:
    '''Render the approval votes of a single task with their balances.'''
    if voter_posts is None:
        voter_posts = {}
    for result in results:
        balance = f'+{result.positive}/-{result.negative}'
        if display_mode == DisplayMode.COMPACT:
            yield result.vote.to_string(marker=balance)
            continue
        yield f'[b]Support: {balance}[/b]'
        yield result.vote.to_string(marker='±')
        yield from _listed_voters(result.voters, display_mode, voter_posts)
        yield ''


def score_lines(results: List[ScoreResult],
                display_mode: DisplayMode = DisplayMode.NORMAL,
                voter_posts: Optional[Mapping[str, int]] = None,
                ) -> Iterator[str]:
    '''Render the scored votes of a single task with their average scores.'''
    if voter_posts is None:
        voter_posts = {}
    for result in results:
        average = f'{result.average:.2f}'
        if display_mode == DisplayMode.COMPACT:
            yield result.vote.to_string(marker=average)
            continue
        yield f'[b]Score: {average}[/b]'
        yield result.vote.to_string(marker='+')
        yield from _listed_voters(result.voters, display_mode, voter_posts)
        yield ''


def ranked_lines(results: List[RankResult], debug: bool = False
                 ) -> Iterator[str]:
    '''Render the ranked results of a single task, best first.'''
    for result in results:
        yield f'[#{result.rank}] {vote_text(result.vote)}'
        if debug:
            yield f'[b]Ranking: #{result.rank}[/b] ({result.score:.6f})'


def vote_text(vote: Any) -> str:
    '''Render a stored vote without its marker.'''
    if hasattr(vote, 'lines'):
        if len(vote.lines) == 1:
            return vote.first.display_content
        return vote.to_string(marker='X')
    return str(vote)


def task_heading(task: str) -> Iterator[str]:
    if task:
        yield f'[b]Task: {task}[/b]'
        yield ''


def failure_lines(tally: Tally) -> Iterator[str]:
    '''Render the vote lines that could not be parsed, per post.'''
    if not tally.failures:
        return
    authors = {post.post_id: post.author for post in tally.posts}
    yield 'Unparseable vote lines:'
    for post_id in sorted(tally.failures):
        for failure in tally.failures[post_id]:
            yield (
                f'post {post_id} by {authors.get(post_id, "?")},'
                f' line {failure.line_number}: {failure.reason}'
                f' ({failure.text.strip()})'
            )
    yield ''


def total_voters(tally: Tally) -> int:
    return sum(
        1 for voter in tally.storage.voters() if not is_plan_voter(voter)
    )


def tally_lines(tally: Tally,
                display_mode: DisplayMode = DisplayMode.NORMAL,
                counter: Optional[str] = None,
                debug: bool = False,
                ) -> Iterator[str]:
    '''Render the results of a finished tally as forum text.

    :param tally: The tally to render.
    :param display_mode: Level of detail of the vote listing.
    :param counter: Name of the ranked vote counting method; the quest's
        method by default.
    :param debug: Whether to show ranking scores and parse failures.
    '''
    yield from header_lines(tally)
    voter_posts = tally.storage.voter_posts
    for task, nodes in tally.vote_nodes(VoteType.VOTE).items():
        yield from task_heading(task)
        for node in nodes:
            yield from node_lines(node, display_mode, voter_posts)
        yield LINE_BREAK
        yield ''
    for task, results in tally.ranked_results(counter).items():
        yield from task_heading(task)
        yield from ranked_lines(results, debug)
        yield ''
        yield LINE_BREAK
        yield ''
    sections = (
        (tally.score_results(), score_lines),
        (tally.approval_results(), approval_lines),
    )
    for results_by_task, render in sections:
        for task, results in results_by_task.items():
            yield from task_heading(task)
            yield from render(results, display_mode, voter_posts)
            yield LINE_BREAK
            yield ''
    n_voters = total_voters(tally)
    if n_voters:
        yield f'Total No. of Voters: {n_voters}'
        yield ''
    if debug:
        yield from failure_lines(tally)


def tally_text(tally: Tally, **kwargs) -> str:
    return '\n'.join(tally_lines(tally, **kwargs))


def node_to_dict(node: VoteNode) -> Dict[str, Any]:
    return {
        'text': node.text,
        'count': node.voter_count,
        'voters': node.all_voters,
        'children': [node_to_dict(child) for child in node.children],
    }


def tally_to_dict(tally: Tally,
                  counter: Optional[str] = None,
                  ) -> Dict[str, Any]:
    '''Serialize the results of a finished tally to a JSON-ready dict.

    :param tally: The tally to serialize.
    :param counter: Name of the ranked vote counting method; the quest's
        method by default.
    '''
    return nettally.persist.to_dict({
        'quest': tally.quest,
        'votes': {
            VoteType.VOTE.value: {
                task: [node_to_dict(node) for node in nodes]
                for task, nodes in tally.vote_nodes(VoteType.VOTE).items()
            },
        },
        'ranked': {
            task: [
                {
                    'rank': result.rank,
                    'score': result.score,
                    'vote': vote_text(result.vote),
                }
                for result in results
            ]
            for task, results in tally.ranked_results(counter).items()
        },
        'score': {
            task: [
                {
                    'vote': vote_text(result.vote),
                    'average': result.average,
                    'voters': result.voters,
                }
                for result in results
            ]
            for task, results in tally.score_results().items()
        },
        'approval': {
            task: [
                {
                    'vote': vote_text(result.vote),
                    'positive': result.positive,
                    'negative': result.negative,
                    'net': result.net,
                    'voters': result.voters,
                }
                for result in results
            ]
            for task, results in tally.approval_results().items()
        },
        'failures': {
            str(post_id): [failure._asdict() for failure in failures]
            for post_id, failures in tally.failures.items()
        },
        'total_voters': total_voters(tally),
    })
