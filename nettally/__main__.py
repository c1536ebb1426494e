"""A commandline tool to tally the votes in a dump of forum posts.

Reads posts in the plain text post dump format (see nettally.io.posts),
tallies them with the given quest settings and prints the tally as
forum-postable text or as JSON.
"""

import argparse
import io
import json
import logging
import sys
import warnings
from typing import Optional, List

import nettally.io.posts
import nettally.output
import nettally.tally
from nettally.output import DisplayMode
from nettally.quest import Quest, PartitionMode, RankCounterMethod

argparser = argparse.ArgumentParser(
    description=__doc__,
    formatter_class=argparse.ArgumentDefaultsHelpFormatter,
)
argparser.add_argument(
    '-i', '--input-file',
    type=argparse.FileType('r', encoding='utf8'),
    help='file to load the post dump from',
)
argparser.add_argument(
    '-I', '--use-stdin',
    action='store_true',
    help='load the post dump from standard input',
)
argparser.add_argument(
    '-n', '--name',
    default='',
    help='quest name to show in the tally header',
)
argparser.add_argument(
    '-p', '--partition-mode',
    choices=[mode.value for mode in PartitionMode],
    default=PartitionMode.NONE.value,
    help='how to split multi-line votes into individually counted parts',
)
argparser.add_argument(
    '-c', '--rank-counter',
    choices=[method.value for method in RankCounterMethod],
    default=RankCounterMethod.DEFAULT.value,
    help='method to count ranked votes with',
)
argparser.add_argument(
    '-C', '--case-sensitive',
    action='store_true',
    help='distinguish votes differing in letter case only',
)
argparser.add_argument(
    '-S', '--symbols-significant',
    action='store_true',
    help='distinguish votes differing in whitespace or punctuation only',
)
argparser.add_argument(
    '-t', '--trim-extended-text',
    action='store_true',
    help='cut explanations off long vote lines',
)
argparser.add_argument(
    '-T', '--task',
    action='append',
    help='only tally votes for this task (may be given repeatedly)',
)
argparser.add_argument(
    '--forbid-plan-labels',
    action='store_true',
    help='do not treat plan labels followed by plain vote lines as plans',
)
argparser.add_argument(
    '--disable-proxy-votes',
    action='store_true',
    help='do not resolve votes referencing other voters',
)
argparser.add_argument(
    '--force-pinned-proxy-votes',
    action='store_true',
    help=(
        'resolve all voter references to the vote the referenced voter had'
        ' at the time of the referencing post'
    ),
)
argparser.add_argument(
    '--force-labeled-plans',
    action='store_true',
    help='only resolve plan references with an explicit Plan label',
)
argparser.add_argument(
    '-d', '--display-mode',
    choices=[mode.value for mode in DisplayMode],
    default=DisplayMode.NORMAL.value,
    help='level of detail of the text output',
)
argparser.add_argument(
    '-j', '--json',
    dest='as_json',
    action='store_true',
    help='output the tally as JSON instead of text',
)
argparser.add_argument(
    '-D', '--debug',
    action='store_true',
    help='show ranking scores and unparseable vote lines in the text output',
)
argparser.add_argument(
    '-v', '--verbose',
    action='store_true',
    help='show all tally log messages and other info',
)
argparser.add_argument(
    '-q', '--quiet',
    action='store_true',
    help='do not show any tally log messages or other info',
)


def main(input_file: io.TextIOBase,
         use_stdin: bool = False,
         name: str = '',
         partition_mode: str = PartitionMode.NONE.value,
         rank_counter: str = RankCounterMethod.DEFAULT.value,
         case_sensitive: bool = False,
         symbols_significant: bool = False,
         trim_extended_text: bool = False,
         task: Optional[List[str]] = None,
         forbid_plan_labels: bool = False,
         disable_proxy_votes: bool = False,
         force_pinned_proxy_votes: bool = False,
         force_labeled_plans: bool = False,
         display_mode: str = DisplayMode.NORMAL.value,
         as_json: bool = False,
         debug: bool = False,
         verbose: bool = False,
         quiet: bool = False,
         ) -> None:
    logging.basicConfig(
        level=(
            logging.DEBUG if verbose
            else (logging.WARNING if quiet else logging.INFO)
        ),
        format='%(levelname)-10s %(message)s'
    )
    if use_stdin:
        input_file = sys.stdin
    posts = nettally.io.posts.load(input_file)
    if not posts:
        warnings.warn('empty post dump: nothing to tally, terminating')
        return
    quest = Quest(
        name=name,
        partition_mode=PartitionMode(partition_mode),
        case_sensitive=case_sensitive,
        symbols_significant=symbols_significant,
        rank_counter=RankCounterMethod(rank_counter),
        trim_extended_text=trim_extended_text,
        forbid_vote_label_plan_names=forbid_plan_labels,
        disable_proxy_votes=disable_proxy_votes,
        force_pinned_proxy_votes=force_pinned_proxy_votes,
        force_plan_references_to_be_labeled=force_labeled_plans,
        task_filter=task,
    )
    tally = nettally.tally.run_tally(quest, posts)
    if as_json:
        show_json(tally)
    else:
        print(nettally.output.tally_text(
            tally, display_mode=DisplayMode(display_mode), debug=debug
        ))


def show_json(tally: nettally.tally.Tally) -> None:
    print(json.dumps(
        nettally.output.tally_to_dict(tally),
        indent=2,
        ensure_ascii=False,
    ))


if __name__ == '__main__':
    args = argparser.parse_args()
    if not args.input_file and not args.use_stdin:
        argparser.print_usage()
    else:
        main(**vars(args))
