"""NetTally - a library for tallying votes cast in forum quest threads.

Quest threads are run by a game master who lets the readers vote on what
happens next. The readers post their votes as structured lines of text such
as ``[X] Go to the tavern`` and NetTally objects reduce a set of such posts
into tallied results.

A tally usually goes through the following stages:

-   Each post is parsed into vote lines by the :mod:`voteline` and
    :mod:`post` modules. A vote line carries an indentation prefix, a marker
    (plain vote, rank, score or approval), an optional task and its content.
-   Lines are grouped into blocks and plans and partitioned into individually
    countable votes according to the quest's partition mode. This is the
    task of the :mod:`block` and :mod:`partition` modules.
-   The :class:`tally.Tally` session stores the votes, resolves references to
    other voters and plans, and applies manual corrections recorded in the
    merge ledger from the :mod:`ledger` module.
-   The results are presented as flat vote-to-voters mappings, trees of
    :class:`node.VoteNode` objects, or ranked result lists produced by the
    counters from the :mod:`evaluate` subpackage.

Whether two differently typed texts refer to the same vote is decided by the
agnostic comparison from the :mod:`agnostic` module, configured per quest.
"""
