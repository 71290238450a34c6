import functools
import inspect

import anyio


def _unwrap(fn):
    while isinstance(fn, functools.partial):
        fn = fn.func
    return fn


def is_async_fn(fn) -> bool:
    if fn is None:
        return False
    fn = _unwrap(fn)
    if hasattr(fn, '__wrapped__'):  # @functools.wraps()
        return is_async_fn(fn.__wrapped__)
    return inspect.iscoroutinefunction(fn)


def nonblocking(func):
    """Decorator that marks a given sync function as safe to call from the event loop."""
    func.__nonblocking__ = True
    return func


async def invoke(func, *args, **kwargs):
    """Call sync or async `func`.

    Sync functions run in a worker thread unless they are marked with
    `@nonblocking`.
    """
    if is_async_fn(func):
        return await func(*args, **kwargs)
    elif getattr(_unwrap(func), '__nonblocking__', False):
        return func(*args, **kwargs)
    else:
        return await anyio.to_thread.run_sync(
            functools.partial(func, *args, **kwargs)
        )
