from __future__ import annotations

import functools
import inspect
from collections.abc import Callable, Iterable


def validate(**checks_by_argument: Callable | Iterable[Callable]):
    """Run validator functions on the arguments of a function before calling it.

    Each validator receives the argument value (defaults included) and raises if it is invalid.
    Several validators for one argument run in the order given.

    .. code-block:: python

        @validate(values=(validators.one_dimensional, validators.finite))
        def smooth(values, width=3): ...
    """

    def decorator(func):
        sig = inspect.signature(func)
        unknown = set(checks_by_argument) - set(sig.parameters)
        if unknown:
            raise TypeError(
                f"Cannot validate {func.__name__}(); it has no argument(s) {sorted(unknown)}"
            )
        checks = {
            argument: tuple(check) if isinstance(check, Iterable) else (check,)
            for argument, check in checks_by_argument.items()
        }

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            bound = sig.bind(*args, **kwargs)
            bound.apply_defaults()
            for argument, argument_checks in checks.items():
                for check in argument_checks:
                    check(bound.arguments[argument])
            return func(*args, **kwargs)

        return wrapper

    return decorator
