"""Shared functionality for post and tally text I/O. Internal."""

import typing
from typing import Any, Tuple, Callable, Iterable, TextIO


class ParseError(Exception):
    """An input that is invalid according to the given format was detected.

    :param message: Description of the problem.
    :param line_number: One-based number of the offending line, if known.
    """
    def __init__(self, message: str, line_number: int = None):
        self.line_number = line_number
        if line_number is not None:
            message = f'line {line_number}: {message}'
        super().__init__(message)


def loaders(line_loader: Callable[..., Any]
            ) -> Tuple[Callable[..., Any], Callable[..., Any]]:
    """Create load() and loads() functions from an iterating function."""
    return_annot = typing.get_type_hints(line_loader).get('return', Any)

    def load(file: TextIO, **kwargs) -> return_annot:
        return line_loader(file, **kwargs)

    def loads(text: str, **kwargs) -> return_annot:
        return line_loader(iter(text.split('\n')), **kwargs)

    return load, loads


def dumpers(line_dumper: Callable[..., Iterable[str]]
            ) -> Tuple[Callable[..., None], Callable[..., str]]:
    """Create dump() and dumps() functions from a line generator function."""

    def dump(file: TextIO, *args, **kwargs) -> None:
        for line in line_dumper(*args, **kwargs):
            file.write(line if line.endswith('\n') else line + '\n')

    def dumps(*args, **kwargs) -> str:
        return ''.join(
            line if line.endswith('\n') else line + '\n'
            for line in line_dumper(*args, **kwargs)
        )

    return dump, dumps
