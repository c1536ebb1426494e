import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import nettally.block
from nettally.block import VoteLineBlock, PlanStatus
from nettally.voteline import MarkerType, parse_line


def lines_of(*texts):
    return [parse_line(text) for text in texts]


def block_of(*texts):
    return VoteLineBlock(lines_of(*texts))


PLAN_LINES = {
    '[X] Plan: Tavern Crawl': (PlanStatus.PLAN, 'Tavern Crawl'),
    '[X] Plan Tavern Crawl': (PlanStatus.PLAN, 'Tavern Crawl'),
    '[X] Plan: Tavern Crawl.': (PlanStatus.PLAN, 'Tavern Crawl'),
    '[X] Plan: ◈Tavern Crawl': (PlanStatus.PLAN, 'Tavern Crawl'),
    "[X] Kinematics's Plan": (PlanStatus.PLAN, 'Kinematics'),
    '[X] Base Plan: Tavern Crawl': (PlanStatus.PROPOSED, 'Tavern Crawl'),
    '[X] Proposed Plan Tavern Crawl': (PlanStatus.PROPOSED, 'Tavern Crawl'),
    '[X] Go to the tavern': (PlanStatus.NONE, ''),
    '[X] Planet of the apes': (PlanStatus.NONE, ''),
}


@pytest.mark.parametrize('text, expected', PLAN_LINES.items())
def test_check_if_plan(text, expected):
    assert nettally.block.check_if_plan(parse_line(text)) == expected


def test_empty_block():
    with pytest.raises(ValueError):
        VoteLineBlock([])


def test_block_properties():
    block = block_of('[2][Food] Apple', '-[X] Red one')
    assert block.task == 'Food'
    assert block.marker == '2'
    assert block.marker_type == MarkerType.RANK
    assert block.marker_value == 2
    assert len(block) == 2
    assert block[1].content == 'Red one'
    assert block.first.content == 'Apple'


def test_block_equality():
    block1 = block_of('[X] Apple', '-[X] Red one')
    block2 = block_of('[1] apple!', '-[+] red ONE')
    assert block1 == block2
    assert hash(block1) == hash(block2)
    assert block1 != block_of('[X] Apple')
    assert block1 != block_of('[X] Apple', '-[X] Green one')


def test_block_task_override():
    block = block_of('[X][Food] Apple')
    assert block.with_task('Drink') != block
    assert block.with_task('food') == block
    assert block.with_task('Drink').to_string() == '[X][Drink] Apple'


def test_block_marker_override():
    block = block_of('[X] Apple', '-[X] Red one')
    marked = block.with_marker('3', MarkerType.RANK, 3)
    assert marked == block
    assert marked.marker_value == 3
    assert marked.to_string() == '[3] Apple\n-[X] Red one'
    assert marked.to_string(marker='X', sub_marker='1') == (
        '[X] Apple\n-[1] Red one'
    )


def test_to_comparable_string():
    block = block_of('[X][Food] [b]Apple[/b]', '-[X] Red one')
    assert block.to_comparable_string() == '[][Food] Apple\n-[] Red one'


def test_get_blocks():
    blocks = nettally.block.get_blocks(lines_of(
        '[X] A', '-[X] A1', '--[X] A11', '[X] B', '[X] C', '-[X] C1'
    ))
    assert [len(block) for block in blocks] == [3, 1, 2]
    assert nettally.block.get_blocks([]) == []


def test_is_content_block():
    assert nettally.block.is_content_block(lines_of('[X] A', '-[X] A1'))
    assert not nettally.block.is_content_block(lines_of('[X] A'))
    assert not nettally.block.is_content_block(lines_of('[X] A', '[X] B'))


def test_explicit_plan():
    check = nettally.block.is_explicit_plan(
        lines_of('[X] Plan: Crawl', '-[X] Tavern one', '-[X] Tavern two')
    )
    assert check.is_plan
    assert not check.is_implicit
    assert check.name == 'Crawl'


def test_proposed_plan():
    lines = lines_of('[X] Base Plan: Crawl', '-[X] Tavern one')
    assert nettally.block.is_proposed_plan(lines).is_plan
    assert nettally.block.is_explicit_plan(lines).is_plan
    plain = lines_of('[X] Plan: Crawl', '-[X] Tavern one')
    assert not nettally.block.is_proposed_plan(plain).is_plan


def test_implicit_plan():
    lines = lines_of('[X] Plan: Crawl', '[X] Tavern one', '[X] Tavern two')
    check = nettally.block.is_implicit_plan(lines)
    assert check.is_plan
    assert check.is_implicit
    assert not nettally.block.is_explicit_plan(lines).is_plan


def test_single_line_plan():
    check = nettally.block.is_single_line_plan(lines_of('[X] Plan: Crawl'))
    assert check == (True, False, 'Crawl')
    assert not nettally.block.is_single_line_plan(
        lines_of('[X] Go somewhere')
    ).is_plan


def test_plan_name_of():
    assert nettally.block.plan_name_of('\n[X] Plan: Crawl\n-[X] A') == 'Crawl'
    assert nettally.block.plan_name_of('[X] Go somewhere') is None
    assert nettally.block.plan_name_of('no vote here') is None
