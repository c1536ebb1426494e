'''Named registers of interchangeable functions.

A register is a plain dictionary mapping names to functions. The helpers
here build a decorator that stores a function in the register under its
own name, a getter that looks it up and a constructer that also passes
custom callables through.
'''

from typing import Callable, Dict, Tuple, Union


def marker(register: Dict[str, Callable],
           name: str,
           signature,
           ) -> Callable[[Callable], Callable]:
    '''Make a decorator registering functions under their names.'''
    def mark_function(func):
        register[func.__name__] = func
        return func
    return mark_function


def getter(register: Dict[str, Callable],
           name: str,
           signature,
           ) -> Callable[[str], Callable]:
    '''Make a function looking up the register by name.

    Unknown names raise a KeyError naming the kind of function sought.
    '''
    def get(func_def: str) -> signature:
        try:
            return register[func_def]
        except KeyError:
            raise KeyError(f'unknown {name}: {func_def}') from None
    get.__doc__ = f'Return a {name} function by its name.'
    return get


def constructer(register: Dict[str, Callable],
                name: str,
                signature,
                ) -> Callable[[Union[str, Callable]], Callable]:
    '''Make a function accepting either a registered name or a callable.'''
    get = getter(register, name, signature)

    def construct(func_def: Union[str, signature]) -> signature:
        return func_def if callable(func_def) else get(func_def)
    construct.__doc__ = (
        f'Get a {name} function by its name, passing callables through.'
    )
    return construct


def register_functions(register: Dict[str, Callable],
                       name: str,
                       signature,
                       ) -> Tuple[Callable, Callable, Callable]:
    '''Construct the marker, getter and constructer for a register at once.

    :param register: The dictionary to store the functions in.
    :param name: Human-readable name of the kind of functions, used in error
        messages.
    :param signature: Type of the registered functions.
    '''
    return (
        marker(register, name, signature),
        getter(register, name, signature),
        constructer(register, name, signature),
    )
