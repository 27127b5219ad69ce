from __future__ import annotations

from typing import Any


class WirekitError(Exception):
    """Represent a base class for all wirekit-specific failures.

    Catch this type when you want to handle any wirekit error path without
    matching each concrete exception class individually.
    """


class WirekitInvalidRegistrationError(WirekitError):
    """Signal invalid registration arguments.

    Raised by ``Registry.register``, ``Registry.register_factory``,
    ``Registry.register_singleton`` and ``Registry.register_settings`` when the
    name is not a non-empty string or the producer is neither a class nor a
    callable. Raised at registration time, never deferred to the first fetch.
    """


class WirekitInvalidMixinSpecError(WirekitInvalidRegistrationError):
    """Signal an export specification ``Registry.mixin`` cannot normalize.

    Typical fixes include passing a list of names, or a mapping of
    ``Visibility`` (or its string value) to names and ``{name: alias}``
    mappings.
    """


class WirekitKeyError(WirekitError):
    """Signal a failed key operation on a registration table.

    Carries the offending ``key`` and, where known, the ``receiver`` that
    performed the failed lookup (a ``Registry`` or a ``Fetcher``).
    """

    def __init__(self, message: str, *, key: Any = None, receiver: Any = None) -> None:
        super().__init__(message)
        self.key = key
        self.receiver = receiver


class WirekitDuplicateNameError(WirekitKeyError):
    """Signal an attempt to register a name that is already registered.

    The existing registration is left untouched. Names are bound once for the
    lifetime of a registry, so pick a different name instead of replacing.
    """


class WirekitDependencyNotRegisteredError(WirekitKeyError):
    """Signal that a fetched name has no registration.

    Raised by ``Registry.fetch`` and by the ``Fetcher`` passed to producers.
    Names only need to exist by fetch time, so registering the missing
    dependency later makes the same fetch succeed.
    """


class WirekitCircularDependencyError(WirekitError):
    """Signal that a fetch requested a name already being produced.

    ``chain`` holds the names in traversal order, ending with the repeated
    name, e.g. ``("a", "b", "a")``.
    """

    def __init__(self, chain: tuple[str, ...]) -> None:
        self.chain = chain
        path = " -> ".join(chain)
        super().__init__(f"cycle detected: {path}")
