from wirekit.exceptions import (
    WirekitCircularDependencyError,
    WirekitDependencyNotRegisteredError,
    WirekitDuplicateNameError,
    WirekitError,
    WirekitInvalidMixinSpecError,
    WirekitInvalidRegistrationError,
    WirekitKeyError,
)
from wirekit.fetch import Fetcher
from wirekit.markers import Wired
from wirekit.mixin import Visibility
from wirekit.registry import Registry
from wirekit.resolvers import Lifetime
from wirekit.synchronized_store import SynchronizedStore

__all__ = [
    "Fetcher",
    "Lifetime",
    "Registry",
    "SynchronizedStore",
    "Visibility",
    "Wired",
    "WirekitCircularDependencyError",
    "WirekitDependencyNotRegisteredError",
    "WirekitDuplicateNameError",
    "WirekitError",
    "WirekitInvalidMixinSpecError",
    "WirekitInvalidRegistrationError",
    "WirekitKeyError",
]
