'''Agnostic comparison of vote and voter texts.

Voters rarely type the same thing in exactly the same way. The comparison
implemented here treats two texts as equal if they differ only in diacritics,
character width and (configurably) in letter case and in whitespace,
punctuation and other symbols.

The comparison is configured by a :class:`ComparisonConfig` object that is
passed explicitly to every parsing and grouping function; there is no
process-wide comparison state. The four possible configurations are
precomputed in the ``COMPARERS`` module variable.
'''

import dataclasses
import unicodedata
from typing import Dict, Tuple


# first letters of Unicode categories ignored when symbols are insignificant:
# separators, punctuation, symbols and control characters
SYMBOL_CATEGORIES = frozenset('ZPSC')


def fold_diacritics(text: str) -> str:
    '''Remove diacritics and compatibility forms from the text.

    Applies the NFKD normalization, which also folds full-width and other
    compatibility characters to their plain forms, and drops all combining
    marks produced by the decomposition.
    '''
    decomposed = unicodedata.normalize('NFKD', text)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def is_symbol(char: str) -> bool:
    return (
        char.isspace()
        or unicodedata.category(char)[0] in SYMBOL_CATEGORIES
    )


def strip_symbols(text: str) -> str:
    '''Remove whitespace, punctuation and symbols from the text.'''
    return ''.join(ch for ch in text if not is_symbol(ch))


@dataclasses.dataclass(frozen=True)
class ComparisonConfig:
    '''Sensitivity settings of the agnostic comparison.

    Diacritics and character width are always insignificant.

    :param case_sensitive: Whether letter case is significant.
    :param symbols_significant: Whether whitespace, punctuation and symbols
        are significant.
    '''
    case_sensitive: bool = False
    symbols_significant: bool = False

    def simplify(self, text: str) -> str:
        '''Fold diacritics and strip symbols unless they are significant.

        Letter case is retained; use :meth:`key` to get a comparison key.
        '''
        folded = fold_diacritics(text)
        if not self.symbols_significant:
            folded = strip_symbols(folded)
        return folded

    def key(self, text: str) -> str:
        '''Return a comparison key: texts are equal iff their keys are.'''
        if not self.case_sensitive:
            text = text.casefold()
        return self.simplify(text)

    def equal(self, text1: str, text2: str) -> bool:
        return self.key(text1) == self.key(text2)

    def compare(self, text1: str, text2: str) -> int:
        '''Order two texts agnostically, returning -1, 0 or 1.'''
        key1 = self.key(text1)
        key2 = self.key(text2)
        return (key1 > key2) - (key1 < key2)

    def hash(self, text: str) -> int:
        '''Hash the text consistently with :meth:`equal`.

        The hash is computed from the comparison key folded further to
        case-insensitive letters and digits, so equal texts always produce
        equal hashes while some unequal texts might collide.
        '''
        return hash(''.join(
            ch for ch in self.key(text).casefold() if ch.isalnum()
        ))


COMPARERS: Dict[Tuple[bool, bool], ComparisonConfig] = {
    (case, symbols): ComparisonConfig(case, symbols)
    for case in (False, True)
    for symbols in (False, True)
}

DEFAULT = COMPARERS[False, False]


def get_comparer(case_sensitive: bool = False,
                 symbols_significant: bool = False,
                 ) -> ComparisonConfig:
    '''Return one of the precomputed comparison configurations.'''
    return COMPARERS[bool(case_sensitive), bool(symbols_significant)]
