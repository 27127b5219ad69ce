from __future__ import annotations

from typing import TYPE_CHECKING, Any

from wirekit.exceptions import WirekitCircularDependencyError, WirekitDependencyNotRegisteredError

if TYPE_CHECKING:
    from wirekit.resolvers import Resolver
    from wirekit.synchronized_store import SynchronizedStore


class FetchMixin:
    """Provide ``fetch`` (and ``[]``) to the registry and to fetchers.

    Subclasses define ``_resolvers``, the shared registration store, and
    ``_production_chain``, the immutable tuple of names being produced along
    the current call path. The chain is used to detect cycles; it is never
    mutated, only copied and extended for each nested fetch.
    """

    __slots__ = ()

    _resolvers: SynchronizedStore[str, Resolver]
    _production_chain: tuple[str, ...]

    def fetch(self, name: str) -> Any:
        """Return the dependency registered under ``name``.

        Args:
            name: Registered dependency name.

        Returns:
            The value produced by the name's resolver.

        Raises:
            WirekitCircularDependencyError: If ``name`` is already being
                produced along the current chain.
            WirekitDependencyNotRegisteredError: If ``name`` has no
                registration.

        """
        chain = self._production_chain
        if name in chain:
            raise WirekitCircularDependencyError((*chain, name))

        resolver = self._resolvers.lookup(name)
        if resolver is None:
            msg = f"dependency not found: {name}"
            raise WirekitDependencyNotRegisteredError(msg, key=name, receiver=self)

        fetcher = Fetcher(resolvers=self._resolvers, production_chain=(*chain, name))
        return resolver.produce(fetcher)

    def __getitem__(self, name: str) -> Any:
        return self.fetch(name)


class Fetcher(FetchMixin):
    """Read-only view of a registry passed to producers.

    Exposes ``fetch`` only. Its production chain is the chain of the fetch
    that created it, plus the name being produced.
    """

    __slots__ = ("_production_chain", "_resolvers")

    def __init__(
        self,
        *,
        resolvers: SynchronizedStore[str, Resolver],
        production_chain: tuple[str, ...],
    ) -> None:
        self._resolvers = resolvers
        self._production_chain = production_chain

    @property
    def production_chain(self) -> tuple[str, ...]:
        return self._production_chain

    def __repr__(self) -> str:
        return f"{type(self).__name__}(production_chain={self._production_chain!r})"
