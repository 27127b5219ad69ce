from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeAlias

from wirekit.exceptions import WirekitInvalidMixinSpecError

if TYPE_CHECKING:
    from wirekit.fetch import FetchMixin

logger = logging.getLogger(__name__)


class Visibility(str, Enum):
    """Select how a mixin accessor is named on the consuming class."""

    PRIVATE = "private"
    """Exposed as ``self.__name``, name-mangled for each consuming class."""

    PROTECTED = "protected"
    """Exposed as ``self._name``."""

    PUBLIC = "public"
    """Exposed as ``self.name``."""


Exports: TypeAlias = tuple[tuple[Visibility, tuple[tuple[str, str], ...]], ...]
"""Normalized export spec: ``(visibility, ((dependency, attribute), ...))`` pairs."""


def normalize_exports(spec: Any, default_visibility: Visibility) -> Exports:
    """Normalize a mixin export spec into a hashable ``Exports`` value.

    ``spec`` is either a list (or tuple) of import specifiers exported with
    ``default_visibility``, or a mapping of visibility to specifiers. A
    specifier is a dependency name, or a ``{dependency: attribute}`` mapping
    to expose the dependency under another name. A single specifier does not
    need to be wrapped in a list.

    Examples:
        .. code-block:: python

            normalize_exports(["db", "cache"], Visibility.PRIVATE)
            normalize_exports(
                {"public": "db", "protected": [{"cache": "store"}, "clock"]},
                Visibility.PRIVATE,
            )

    Raises:
        WirekitInvalidMixinSpecError: If the spec has any other shape.

    """
    if isinstance(spec, Mapping):
        specifiers_by_visibility = {
            _coerce_visibility(visibility): specifiers for visibility, specifiers in spec.items()
        }
    elif isinstance(spec, (list, tuple)):
        specifiers_by_visibility = {Visibility(default_visibility): spec}
    else:
        msg = f"invalid mixin argument: expected a list or a mapping, got: {type(spec).__name__}"
        raise WirekitInvalidMixinSpecError(msg)

    return tuple(
        (visibility, _normalize_specifiers(specifiers_by_visibility.get(visibility, ())))
        for visibility in Visibility
    )


def build_mixin(registry: FetchMixin, exports: Exports) -> type:
    """Build a class whose properties fetch the exported dependencies.

    Every access fetches again, so factories still produce a fresh value per
    access and singletons return their cached value.
    """
    namespace: dict[str, Any] = {"__slots__": ()}
    private_exports: list[tuple[str, str]] = []

    for visibility, pairs in exports:
        for dependency, attribute in pairs:
            if visibility is Visibility.PUBLIC:
                namespace[attribute] = _accessor(registry, dependency)
            elif visibility is Visibility.PROTECTED:
                namespace[f"_{attribute}"] = _accessor(registry, dependency)
            else:
                private_exports.append((dependency, attribute))

    def __init_subclass__(cls: type, **kwargs: Any) -> None:
        super(mixin, cls).__init_subclass__(**kwargs)
        for dependency, attribute in private_exports:
            mangled = _mangle(cls.__name__, attribute)
            # The class's own definition wins, as it does for public and protected accessors.
            if mangled not in cls.__dict__:
                setattr(cls, mangled, _accessor(registry, dependency))

    namespace["__init_subclass__"] = classmethod(__init_subclass__)
    mixin = type("RegistryMixin", (), namespace)
    logger.debug("Generated mixin for exports %s", exports)
    return mixin


def _coerce_visibility(visibility: Any) -> Visibility:
    try:
        return Visibility(visibility)
    except ValueError:
        msg = f"invalid mixin visibility: {visibility!r}"
        raise WirekitInvalidMixinSpecError(msg) from None


def _normalize_specifiers(specifiers: Any) -> tuple[tuple[str, str], ...]:
    if isinstance(specifiers, (str, Mapping)):
        specifiers = [specifiers]
    elif not isinstance(specifiers, (list, tuple)):
        msg = f"invalid mixin import: expected a name, a mapping or a list, got: {type(specifiers).__name__}"
        raise WirekitInvalidMixinSpecError(msg)

    attributes_by_dependency: dict[str, str] = {}
    for specifier in specifiers:
        if isinstance(specifier, str):
            attributes_by_dependency[specifier] = specifier
        elif isinstance(specifier, Mapping):
            attributes_by_dependency.update(specifier)
        else:
            msg = f"invalid mixin import: expected a name or a mapping, got: {type(specifier).__name__}"
            raise WirekitInvalidMixinSpecError(msg)

    for dependency, attribute in attributes_by_dependency.items():
        if not isinstance(dependency, str) or not isinstance(attribute, str) or not attribute.isidentifier():
            msg = f"invalid mixin import: {dependency!r} -> {attribute!r}"
            raise WirekitInvalidMixinSpecError(msg)

    return tuple(attributes_by_dependency.items())


def _accessor(registry: FetchMixin, dependency: str) -> property:
    return property(
        lambda _self: registry.fetch(dependency),
        doc=f"Fetch {dependency!r} from the registry.",
    )


def _mangle(class_name: str, attribute: str) -> str:
    # Same rule the compiler applies to ``self.__attribute`` inside a class body.
    stripped = class_name.lstrip("_")
    if not stripped:
        return f"__{attribute}"
    return f"_{stripped}__{attribute}"
