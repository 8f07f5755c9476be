"""Ctrl-C handling for code running on worker threads.

Python delivers signals to the main thread only. A KeyboardInterrupt raised on
a compile worker (for example by a blocking call that was interrupted) would
end just that worker, so these helpers hand it to the main thread, which owns
the process supervisor and its teardown.
"""

import _thread
import functools
from typing import Any, Callable, TypeVar

F = TypeVar("F", bound=Callable[..., Any])


def handle_keyboard_interrupt_properly(ke: KeyboardInterrupt) -> None:
    """Interrupt the main thread, then re-raise on the current one.

    Args:
        ke: The KeyboardInterrupt caught on a worker thread

    Raises:
        KeyboardInterrupt: Always
    """
    _thread.interrupt_main()
    raise ke


def forwards_interrupts(func: F) -> F:
    """Decorate a worker entry point so Ctrl-C reaches the main thread.

    Usage:
        @forwards_interrupts
        def compile_one(source):
            ...
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt as ke:
            handle_keyboard_interrupt_properly(ke)
            raise  # Never reached, but satisfies type checker

    return wrapper  # type: ignore[return-value]
