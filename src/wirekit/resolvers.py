from __future__ import annotations

import inspect
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from wirekit.exceptions import WirekitCircularDependencyError, WirekitInvalidRegistrationError

if TYPE_CHECKING:
    from wirekit.fetch import Fetcher

logger = logging.getLogger(__name__)

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class Lifetime(str, Enum):
    """Define how often a registered producer runs."""

    FACTORY = "factory"
    """The producer runs on every fetch."""

    SINGLETON = "singleton"
    """The producer runs on the first fetch and its result is cached."""


class Resolver(ABC):
    """Produce the value registered under one name.

    The producer is one of:

    - a class, default-constructed on each production;
    - a callable with one required positional parameter (or ``*args``),
      called with the ``Fetcher`` scoped to the current production chain;
    - any other callable, called with no arguments. Positional parameters
      with defaults keep their defaults.

    The kind is resolved once, here, into a one-argument callable.

    Raises:
        WirekitInvalidRegistrationError: If the producer is none of the above.

    """

    def __init__(self, producer: Any) -> None:
        self._producer = _normalize_producer(producer)

    @abstractmethod
    def produce(self, fetcher: Fetcher) -> Any:
        """Return the dependency value."""


class FactoryResolver(Resolver):
    """Run the producer every time the value is fetched."""

    def produce(self, fetcher: Fetcher) -> Any:
        return self._producer(fetcher)


class SingletonResolver(Resolver):
    """Run the producer the first time the value is fetched and cache the result.

    The production and the cache write happen under one lock, so concurrent
    first fetches call the producer once and all observe the same value. If
    the producer raises, nothing is cached.

    Singletons that depend on each other and are first fetched from different
    threads would each hold one lock and wait for the other. The thread that
    closes that loop raises ``WirekitCircularDependencyError`` instead of
    waiting. Unwinding releases the locks it held, so the other threads
    continue and meet the same cycle through ordinary cycle detection.
    """

    def __init__(self, producer: Any) -> None:
        super().__init__(producer)
        self._lock = threading.Lock()
        self._has_value = False
        self._value: Any = None

    def produce(self, fetcher: Fetcher) -> Any:
        if self._has_value:
            return self._value

        _singleton_locks.acquire(self, fetcher.production_chain)
        try:
            # Double-check after acquiring the lock.
            if not self._has_value:
                value = self._producer(fetcher)
                self._value = value
                self._has_value = True
                logger.debug("Cached singleton %r", fetcher.production_chain[-1])
            return self._value
        finally:
            _singleton_locks.release(self)


class _SingletonLocks:
    """Track which thread holds and which thread awaits each singleton lock.

    Before blocking on a lock held by another thread, the waiter follows the
    holder's own wait, then that holder's, and so on. Reaching the waiter again
    means the threads would wait on each other forever; that is reported as a
    ``WirekitCircularDependencyError`` instead of blocking.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._holders: dict[SingletonResolver, int] = {}
        self._waits: dict[int, tuple[SingletonResolver, str]] = {}

    def acquire(self, resolver: SingletonResolver, production_chain: tuple[str, ...]) -> None:
        thread_id = threading.get_ident()
        with self._lock:
            if resolver._lock.acquire(blocking=False):
                self._holders[resolver] = thread_id
                return
            cycle = self._find_cycle(thread_id, resolver, production_chain)
            if cycle is not None:
                raise WirekitCircularDependencyError(cycle)
            self._waits[thread_id] = (resolver, production_chain[-1])

        resolver._lock.acquire()
        with self._lock:
            del self._waits[thread_id]
            self._holders[resolver] = thread_id

    def release(self, resolver: SingletonResolver) -> None:
        with self._lock:
            del self._holders[resolver]
            resolver._lock.release()

    def _find_cycle(
        self,
        thread_id: int,
        resolver: SingletonResolver,
        production_chain: tuple[str, ...],
    ) -> tuple[str, ...] | None:
        awaited_names: list[str] = []
        visited: set[int] = set()
        holder = self._holders.get(resolver)
        while holder is not None and holder not in visited:
            if holder == thread_id:
                return (*production_chain, *awaited_names)
            visited.add(holder)
            wait = self._waits.get(holder)
            if wait is None:
                return None
            awaited, name = wait
            awaited_names.append(name)
            holder = self._holders.get(awaited)
        return None


_singleton_locks = _SingletonLocks()


_RESOLVERS_BY_LIFETIME: dict[Lifetime, type[Resolver]] = {
    Lifetime.FACTORY: FactoryResolver,
    Lifetime.SINGLETON: SingletonResolver,
}


def resolver_for(lifetime: Lifetime, producer: Any) -> Resolver:
    """Build the resolver matching ``lifetime`` around ``producer``."""
    try:
        resolver_class = _RESOLVERS_BY_LIFETIME[Lifetime(lifetime)]
    except ValueError:
        msg = f"invalid lifetime: expected one of {[item.value for item in Lifetime]}, got {lifetime!r}"
        raise WirekitInvalidRegistrationError(msg) from None
    return resolver_class(producer)


def _normalize_producer(producer: Any) -> Callable[[Fetcher], Any]:
    if inspect.isclass(producer):
        if inspect.isabstract(producer):
            msg = f"invalid argument: class '{producer.__qualname__}' is abstract"
            raise WirekitInvalidRegistrationError(msg)
        cls = producer
        return lambda _fetcher: cls()

    if callable(producer):
        func = producer
        if _accepts_fetcher(func):
            return func
        return lambda _fetcher: func()

    msg = f"invalid argument: expected a callable or a class, got: {type(producer).__name__}"
    raise WirekitInvalidRegistrationError(msg)


def _accepts_fetcher(func: Callable[..., Any]) -> bool:
    """Return whether ``func`` takes the fetcher as its single positional argument."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # No introspectable signature: treat as a zero-argument callable.
        return False

    required_positional = 0
    accepts_var_positional = False
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            accepts_var_positional = True
        elif parameter.kind in _POSITIONAL_KINDS:
            if parameter.default is inspect.Parameter.empty:
                required_positional += 1
        elif (
            parameter.kind is inspect.Parameter.KEYWORD_ONLY
            and parameter.default is inspect.Parameter.empty
        ):
            msg = f"invalid argument: producer {func!r} has required keyword-only parameter '{parameter.name}'"
            raise WirekitInvalidRegistrationError(msg)

    if required_positional > 1:
        msg = f"invalid argument: producer {func!r} must accept at most one positional argument"
        raise WirekitInvalidRegistrationError(msg)
    return required_positional == 1 or accepts_var_positional
