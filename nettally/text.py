'''Text transformations of vote line contents.

Vote contents often contain forum markup (BBCode). To keep square brackets
in the content unambiguous with vote line markers and tasks, recognized
markup tags are stored internally in the ``『tag』`` form and rendered back
as ``[tag]`` for display. All functions in this module are pure and never
raise on any string input.

The module also contains the heuristic to trim "extended text" from long
vote lines - explanations that voters append to the actual vote, usually
after a colon, a dash or the first sentence.
'''

import re
from typing import List, Iterator, Optional


MARKUP_TAG_NAMES = ('b', 'i', 'u', 's', 'color', 'url', 'spoiler')

_TAG_PATTERN = r'/?(?:' + '|'.join(MARKUP_TAG_NAMES) + r')(?:=[^\]]*)?'

MARKUP_REGEX = re.compile(r'\[(' + _TAG_PATTERN + r')\]', re.IGNORECASE)
MARKUP_TAG_REGEX = re.compile(_TAG_PATTERN, re.IGNORECASE)
INTERNAL_MARKUP_REGEX = re.compile(r'『[^』]*』')
INTERNAL_URL_REGEX = re.compile(
    r'『url=[^』]*』@?(.*?)『/url』', re.IGNORECASE
)

QUOTE_TRANSLATION = str.maketrans({
    '‘': "'", '’': "'", '“': '"', '”': '"', '〃': '"',
})

TRIM_MIN_LENGTH = 50
WORD_REGEX = re.compile(r'\S+\b')
PLAN_BEFORE_REGEX = re.compile(r'plan\s*$', re.IGNORECASE)
PLAN_WORD_REGEX = re.compile(r'plan\b', re.IGNORECASE)
SENTENCE_END_CHARS = '.?!'


def is_markup_tag(text: str) -> bool:
    '''Return True if the bracketed text is a recognized markup tag.'''
    return MARKUP_TAG_REGEX.fullmatch(text.strip()) is not None


def normalize_markup(content: str) -> str:
    '''Convert recognized ``[tag]`` markup to the internal ``『tag』`` form.

    Also folds typographic quotes to their ASCII counterparts.
    '''
    return MARKUP_REGEX.sub(r'『\1』', content).translate(QUOTE_TRANSLATION)


def format_markup(content: str) -> str:
    '''Render internal markup back in the ``[tag]`` form.'''
    return content.replace('『', '[').replace('』', ']')


def strip_markup(content: str) -> str:
    '''Remove all markup from the content.

    Links are replaced by their text, dropping an initial at-sign of user
    mentions.
    '''
    delinked = INTERNAL_URL_REGEX.sub(r'\1', content)
    return INTERNAL_MARKUP_REGEX.sub('', delinked).strip()


def split_lines(text: str) -> List[str]:
    '''Split text to its lines, dropping blank ones.'''
    return [line for line in text.splitlines() if line.strip()]


def first_line(text: str) -> str:
    lines = split_lines(text)
    return lines[0] if lines else ''


def count_words(text: str) -> int:
    return len(WORD_REGEX.findall(text))


def _inside_parentheses(text: str) -> List[bool]:
    # for each position, whether an unclosed parenthesis precedes it
    mask = []
    inside = False
    for char in text:
        mask.append(inside)
        if char == '(':
            inside = True
        elif char == ')':
            inside = False
    return mask


def _hyphen_separator_end(text: str, i: int) -> Optional[int]:
    # a hyphen followed by more hyphens, by whitespace,
    # or directly by a character that is not a lowercase letter
    j = i + 1
    if j < len(text) and text[j] == '-':
        while j < len(text) and text[j] == '-':
            j += 1
        return j
    k = j
    while k < len(text) and text[k].isspace():
        k += 1
    if k > j:
        return k
    if j < len(text) and not text[j].islower():
        return j + 1
    return None


def extended_separators(content: str) -> Iterator[int]:
    '''Yield positions of separators of extended text in the content.

    Separators are colons (unless part of a plan label or an URL), em dashes
    and hyphens that do not join two lowercase words. Separators within
    parentheses are not considered.
    '''
    inside = _inside_parentheses(content)
    i = 0
    while i < len(content):
        end = None
        if not inside[i]:
            char = content[i]
            if char == ':':
                if (not content.startswith('//', i + 1)
                        and not PLAN_BEFORE_REGEX.search(content, 0, i)):
                    end = i + 1
            elif char == '—':
                end = i + 1
            elif char == '-':
                end = _hyphen_separator_end(content, i)
        if end is None:
            i += 1
        else:
            yield i
            i = end


def _ends_sentence_word(content: str, i: int) -> bool:
    start = i
    while start > 0 and not content[start - 1].isspace():
        start -= 1
    word = content[start:i]
    if len(word) >= 4:
        return True
    return start > 0 and len(word) >= 2 and word[0].islower()


def sentence_ends(content: str) -> Iterator[int]:
    '''Yield positions of sentence-ending punctuation in the content.

    The punctuation must follow a sufficiently long word and be followed by
    whitespace and a character that is not a lowercase letter. Punctuation
    within parentheses or after the word "plan" is not considered.
    '''
    inside = _inside_parentheses(content)
    plan_ends = [m.end() for m in PLAN_WORD_REGEX.finditer(content)]
    first_plan_end = min(plan_ends) if plan_ends else len(content)
    for i, char in enumerate(content):
        if char not in SENTENCE_END_CHARS or inside[i] or first_plan_end < i:
            continue
        j = i + 1
        while j < len(content) and content[j].isspace():
            j += 1
        if (j > i + 1 and j < len(content) and not content[j].islower()
                and _ends_sentence_word(content, i)):
            yield i


def trim_index(content: str) -> int:
    '''Find where the extended text of the content starts.

    Short contents are never trimmed. The last separator that fits into the
    first 30 % of the content is selected, provided that more than one word
    precedes it when there are multiple separators. Failing that, the
    content is cut after its first sentence if it ends in the first half.

    :returns: The index to cut the content at, or 0 if it should not be
        trimmed.
    '''
    if len(content) < TRIM_MIN_LENGTH:
        return 0
    limit = len(content) * 3 // 10
    separators = list(extended_separators(content))
    if len(separators) == 1:
        if 0 < separators[0] < limit:
            return separators[0]
    else:
        for index in reversed(separators):
            if 0 < index < limit and count_words(content[:index]) > 1:
                return index
    limit = len(content) // 2
    sentence_end = next(sentence_ends(content), None)
    if sentence_end is not None and 0 < sentence_end < limit:
        return sentence_end + 1
    return 0


def trim_extended_text(content: str) -> str:
    '''Remove the extended text from markup-free content, if any is found.'''
    index = trim_index(content)
    if index:
        return content[:index].rstrip()
    else:
        return content
