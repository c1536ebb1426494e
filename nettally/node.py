'''Hierarchical aggregation of votes for display.

Votes consisting of several lines are grouped by their first line; the
first line becomes a parent node and the remaining lines its children, so
that the tally shows how many voters support each top-level option and,
beneath it, which details they voted for.
'''

import logging
from typing import Collection, Dict, Iterable, List, Mapping, Optional, Tuple

import nettally.text
from nettally.agnostic import ComparisonConfig, DEFAULT
from nettally.block import VoteLineBlock, PLAN_NAME_MARKER, plan_name_of
from nettally.voteline import VoteLineError, parse_line


logger = logging.getLogger(__name__)


class VoteNode:
    '''A vote line shown in the tally with the voters supporting it.

    :param text: The vote text of the node.
    :param voters: Voters directly supporting the node.
    :param config: Comparison configuration to merge children with.
    '''
    def __init__(self,
                 text: str,
                 voters: Iterable[str] = (),
                 config: ComparisonConfig = DEFAULT,
                 ):
        self.text = text
        self.config = config
        self.children: List[VoteNode] = []
        self.voters = set(voters)
        self.all_voters = set(self.voters)

    def add_voters(self, voters: Iterable[str]) -> None:
        voters = set(voters)
        self.voters |= voters
        self.all_voters |= voters

    def add_child(self, text: str, voters: Iterable[str]) -> 'VoteNode':
        '''Add a child node, merging it into an equal existing child.'''
        voters = set(voters)
        key = _text_key(text, self.config)
        for child in self.children:
            if _text_key(child.text, self.config) == key:
                child.add_voters(voters)
                break
        else:
            child = VoteNode(text, voters, self.config)
            self.children.append(child)
        self.all_voters |= voters
        return child

    @property
    def voter_count(self) -> int:
        '''Number of voters supporting the node, plans not counted.'''
        return sum(
            1 for voter in self.all_voters
            if not voter.startswith(PLAN_NAME_MARKER)
        )

    def sort_key(self, voter_post_ids: Mapping[str, int]) -> Tuple[int, int]:
        last_post = max(
            (voter_post_ids.get(voter, 0) for voter in self.voters),
            default=0,
        )
        return (-self.voter_count, last_post)

    def sort(self, voter_post_ids: Mapping[str, int]) -> None:
        '''Order the children, most supported first, recursively.'''
        self.children.sort(key=lambda node: node.sort_key(voter_post_ids))
        for child in self.children:
            child.sort(voter_post_ids)

    def __repr__(self):
        return (
            f'<VoteNode({self.text!r}, {self.voter_count} voters,'
            f' {len(self.children)} children)>'
        )


def _line_key(text: str, config: ComparisonConfig) -> Tuple[str, str]:
    try:
        line = parse_line(text, config)
    except VoteLineError:
        line = None
    if line is None:
        return '', config.key(text)
    return config.key(line.task), config.key(line.comparable_content)


def _text_key(text: str, config: ComparisonConfig) -> Tuple:
    # markers do not distinguish lines
    return tuple(
        (_prefix_length(line),) + _line_key(line, config)
        for line in nettally.text.split_lines(text)
    )


def _prefix_length(text: str) -> int:
    try:
        line = parse_line(text)
    except VoteLineError:
        return 0
    return 0 if line is None else line.depth


def _names_known_plan(text: str,
                      known_plans: Collection[str],
                      config: ComparisonConfig,
                      ) -> bool:
    name = plan_name_of(text)
    return name is not None and any(
        config.equal(name, plan) for plan in known_plans
    )


def build_vote_nodes(votes: Mapping[str, Collection[str]],
                     known_plans: Collection[str] = (),
                     voter_post_ids: Optional[Mapping[str, int]] = None,
                     config: ComparisonConfig = DEFAULT,
                     ) -> List[VoteNode]:
    '''Build the display hierarchy of the votes of a single task.

    :param votes: Mapping of vote texts (possibly of several lines) to the
        voters supporting them.
    :param known_plans: Names of the plans found in the thread.
    :param voter_post_ids: Identifiers of the posts the voters voted in,
        used to order nodes of equal support.
    :param config: Comparison configuration to group the lines with.
    :returns: Top-level nodes, the most supported first.
    '''
    if voter_post_ids is None:
        voter_post_ids = {}
    groups: Dict[Tuple[str, str], List[Tuple[List[str], Collection[str]]]]
    groups = {}
    for text, voters in votes.items():
        lines = nettally.text.split_lines(text)
        if not lines:
            continue
        key = _line_key(lines[0], config)
        groups.setdefault(key, []).append((lines, voters))
    nodes = []
    for members in groups.values():
        first_lines, first_voters = members[0]
        if (len(members) == 1
                and _names_known_plan(first_lines[0], known_plans, config)):
            text = '\n'.join(first_lines)
            nodes.append(VoteNode(text, first_voters, config))
            continue
        parent = VoteNode(first_lines[0], config=config)
        for lines, voters in members:
            rest = lines[1:]
            if not rest:
                parent.add_voters(voters)
            elif all(_prefix_length(line) == 1 for line in rest):
                for line in rest:
                    parent.add_child(line, voters)
            elif len(rest) == 1 and _prefix_length(rest[0]) > 0:
                parent.add_child(rest[0], voters)
            else:
                parent.add_child('\n'.join(lines), voters)
        nodes.append(parent)
    for node in nodes:
        node.sort(voter_post_ids)
    nodes.sort(key=lambda node: node.sort_key(voter_post_ids))
    logger.debug('built %d vote nodes from %d votes', len(nodes), len(votes))
    return nodes


def group_by_task(votes: Mapping[VoteLineBlock, Collection[str]],
                  ) -> Dict[str, Dict[str, Collection[str]]]:
    '''Split votes into per-task mappings of vote texts to voters.

    Tasks are compared agnostically; each group is keyed by the task as
    written in its first vote.
    '''
    grouped: Dict[str, Dict[str, Collection[str]]] = {}
    for vote, voters in votes.items():
        task = next(
            (existing for existing in grouped
             if vote.config.equal(existing, vote.task)),
            vote.task
        )
        texts = grouped.setdefault(task, {})
        text = vote.to_string(marker='X')
        texts[text] = set(texts.get(text, ())) | set(voters)
    return grouped
