from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable
from typing import Any, TypeVar, overload

from wirekit.exceptions import WirekitInvalidRegistrationError
from wirekit.fetch import FetchMixin
from wirekit.injection import INJECT_WRAPPER_MARKER, InjectedCallableInspector
from wirekit.integrations.pydantic_settings import is_pydantic_settings_subclass
from wirekit.mixin import Exports, Visibility, build_mixin, normalize_exports
from wirekit.resolvers import Lifetime, Resolver, resolver_for
from wirekit.synchronized_store import SynchronizedStore

T = TypeVar("T")
InjectableF = TypeVar("InjectableF", bound=Callable[..., Any])

logger = logging.getLogger(__name__)


class Registry(FetchMixin):
    """Map names to lazily produced dependencies.

    Each name is bound once to a producer that runs either on every fetch
    (factory) or on the first fetch only (singleton). Producers that accept an
    argument receive a ``Fetcher`` they can use to fetch other dependencies;
    cycles between producers are detected when first traversed.

    Registrations may happen in any order: a producer's dependencies only need
    to be registered by the time it is fetched. All operations are safe to
    call from several threads.

    Examples:
        .. code-block:: python

            registry = Registry()
            registry.register_singleton("settings", AppSettings)
            registry.register_factory("db", lambda wired: Database(wired["settings"].dsn))

            db = registry["db"]

    """

    def __init__(self, default_visibility: Visibility | str = Visibility.PRIVATE) -> None:
        """Initialize an empty registry.

        Args:
            default_visibility: Visibility used by ``mixin`` when it receives a
                plain list of names.

        Raises:
            WirekitInvalidRegistrationError: If ``default_visibility`` is not a
                ``Visibility`` or one of its values.

        """
        try:
            self._default_visibility = Visibility(default_visibility)
        except ValueError:
            msg = f"invalid default visibility: {default_visibility!r}"
            raise WirekitInvalidRegistrationError(msg) from None

        self._resolvers: SynchronizedStore[str, Resolver] = SynchronizedStore()
        self._production_chain: tuple[str, ...] = ()
        self._mixins: SynchronizedStore[Exports, type] = SynchronizedStore()
        self._injected_callable_inspector = InjectedCallableInspector()

    # region Registration Methods
    def register(self, name: str, producer: Any = None, *, lifetime: Lifetime = Lifetime.FACTORY) -> None:
        """Bind ``name`` to a producer.

        Args:
            name: Dependency name. Must be a non-empty string.
            producer: A class to default-construct, a callable taking the
                ``Fetcher``, or a callable taking no arguments.
            lifetime: ``Lifetime.FACTORY`` to produce on every fetch,
                ``Lifetime.SINGLETON`` to produce once and cache.

        Raises:
            WirekitInvalidRegistrationError: If the name or producer is invalid.
            WirekitDuplicateNameError: If ``name`` is already registered.

        """
        _validate_name(name)
        if producer is None:
            msg = f"invalid argument: no producer supplied for {name!r}"
            raise WirekitInvalidRegistrationError(msg)

        self._resolvers.insert(name, resolver_for(lifetime, producer))
        logger.debug("Registered %s %r", Lifetime(lifetime).value, name)

    def register_factory(self, name: str, producer: Any = None) -> None:
        """Bind ``name`` to a producer that runs on every fetch."""
        self.register(name, producer, lifetime=Lifetime.FACTORY)

    def register_singleton(self, name: str, producer: Any = None) -> None:
        """Bind ``name`` to a producer that runs once; later fetches return the cached value."""
        self.register(name, producer, lifetime=Lifetime.SINGLETON)

    def register_settings(self, name: str, settings_cls: type[Any]) -> None:
        """Bind ``name`` to a Pydantic settings class, read once as a singleton.

        Raises:
            WirekitInvalidRegistrationError: If ``settings_cls`` is not a
                ``BaseSettings`` subclass.

        """
        if not is_pydantic_settings_subclass(settings_cls):
            msg = f"invalid argument: {settings_cls!r} is not a pydantic settings class"
            raise WirekitInvalidRegistrationError(msg)
        self.register(name, settings_cls, lifetime=Lifetime.SINGLETON)

    def provider(self, name: str, *, lifetime: Lifetime = Lifetime.FACTORY) -> Callable[[T], T]:
        """Register the decorated class or function under ``name``.

        Examples:
            .. code-block:: python

                @registry.provider("clock", lifetime=Lifetime.SINGLETON)
                class Clock: ...


                @registry.provider("db")
                def make_db(wired: Fetcher) -> Database:
                    return Database(wired["clock"])

        """

        def decorator(producer: T) -> T:
            self.register(name, producer, lifetime=lifetime)
            return producer

        return decorator

    # endregion Registration Methods

    def contains(self, name: str) -> bool:
        """Return whether ``name`` is registered."""
        return self._resolvers.contains(name)

    def __contains__(self, name: object) -> bool:
        return name in self._resolvers

    def __len__(self) -> int:
        return len(self._resolvers)

    def mixin(self, exports: Any) -> type:
        """Return a class exposing selected dependencies as read-only attributes.

        Args:
            exports: A list of import specifiers exposed with the default
                visibility, or a mapping of ``Visibility`` (or its value) to
                specifiers. A specifier is a name, or a ``{name: attribute}``
                mapping to rename the attribute.

        Returns:
            A class to inherit from. Equal specs return the same class.

        Raises:
            WirekitInvalidMixinSpecError: If ``exports`` cannot be normalized.

        Examples:
            .. code-block:: python

                class Handler(registry.mixin({"public": "clock", "private": [{"db": "database"}]})):
                    def run(self) -> None:
                        self.__database.save(self.clock.now())

        """
        normalized = normalize_exports(exports, self._default_visibility)
        return self._mixins.get_or_create(normalized, lambda: build_mixin(self, normalized))

    @overload
    def inject(self, func: InjectableF) -> InjectableF: ...

    @overload
    def inject(self, func: None = None) -> Callable[[InjectableF], InjectableF]: ...

    def inject(
        self,
        func: InjectableF | None = None,
    ) -> InjectableF | Callable[[InjectableF], InjectableF]:
        """Decorate a callable to fetch its ``Annotated[..., Wired(name)]`` parameters.

        The wrapper hides wired parameters from the public signature. Callers
        may still pass any wired argument explicitly.

        Raises:
            WirekitInvalidRegistrationError: If ``func`` is not callable.

        """
        if func is None:
            return self.inject
        if not callable(func):
            msg = f"inject() parameter 'func' must be callable, got: {type(func).__name__}"
            raise WirekitInvalidRegistrationError(msg)
        return self._inject_callable(func)

    def _inject_callable(self, callable_obj: InjectableF) -> InjectableF:
        inspection = self._injected_callable_inspector.inspect_callable(callable_obj)
        signature = inspection.signature
        public_signature = inspection.public_signature
        wired_parameters = inspection.wired_parameters

        @functools.wraps(callable_obj)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            explicit = {
                parameter.name: kwargs.pop(parameter.name)
                for parameter in wired_parameters
                if parameter.name in kwargs
            }
            arguments = dict(public_signature.bind(*args, **kwargs).arguments)
            for parameter in wired_parameters:
                if parameter.name in explicit:
                    arguments[parameter.name] = explicit[parameter.name]
                else:
                    arguments[parameter.name] = self.fetch(parameter.dependency)

            ordered = {
                name: arguments[name] for name in signature.parameters if name in arguments
            }
            bound = inspect.BoundArguments(signature, ordered)  # type: ignore[arg-type]
            # Positional-only parameters after an omitted default must stay positional.
            bound.apply_defaults()
            return callable_obj(*bound.args, **bound.kwargs)

        wrapper.__signature__ = public_signature  # type: ignore[attr-defined]
        setattr(wrapper, INJECT_WRAPPER_MARKER, True)
        return wrapper  # type: ignore[return-value]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(registered={len(self._resolvers)})"


def _validate_name(name: object) -> None:
    if not isinstance(name, str) or not name:
        msg = f"invalid argument: dependency name must be a non-empty string, got: {name!r}"
        raise WirekitInvalidRegistrationError(msg)
