from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any, get_args, get_origin, get_type_hints

from wirekit.markers import Wired

_ANNOTATED_DEPENDENCY_MIN_ARGS = 2
INJECT_WRAPPER_MARKER = "__wirekit_inject_wrapper__"


@dataclass(frozen=True, slots=True)
class WiredParameter:
    """Wired parameter metadata for callable wrapper generation."""

    name: str
    dependency: str


@dataclass(frozen=True, slots=True)
class InjectedCallableInspection:
    """Injection metadata derived from a callable signature and annotations."""

    signature: inspect.Signature
    wired_parameters: tuple[WiredParameter, ...]
    public_signature: inspect.Signature


@dataclass(slots=True)
class InjectedCallableInspector:
    """Inspect callables for ``Annotated[..., Wired(...)]`` parameters."""

    def inspect_callable(self, callable_obj: Callable[..., Any]) -> InjectedCallableInspection:
        """Build injection metadata and a public signature for a callable."""
        signature = inspect.signature(callable_obj)
        wired_parameters = self.extract_wired_parameters(
            callable_obj=callable_obj,
            signature=signature,
        )
        public_signature = self.build_public_signature(
            signature=signature,
            hidden_parameter_names={parameter.name for parameter in wired_parameters},
        )
        return InjectedCallableInspection(
            signature=signature,
            wired_parameters=wired_parameters,
            public_signature=public_signature,
        )

    def extract_wired_parameters(
        self,
        *,
        callable_obj: Callable[..., Any],
        signature: inspect.Signature,
    ) -> tuple[WiredParameter, ...]:
        """Extract wired parameter metadata from a callable."""
        resolved_annotations = self.resolved_annotations(callable_obj=callable_obj)
        wired_parameters: list[WiredParameter] = []
        for parameter in signature.parameters.values():
            annotation = resolved_annotations.get(parameter.name, parameter.annotation)
            dependency = self.resolve_wired_dependency(annotation=annotation)
            if dependency is None:
                continue
            wired_parameters.append(WiredParameter(name=parameter.name, dependency=dependency))
        return tuple(wired_parameters)

    def resolved_annotations(self, *, callable_obj: Callable[..., Any]) -> dict[str, Any]:
        """Resolve callable annotations with extras, falling back to an empty mapping."""
        try:
            return get_type_hints(callable_obj, include_extras=True)
        except (AttributeError, NameError, TypeError):
            return {}

    def resolve_wired_dependency(self, *, annotation: Any) -> str | None:
        """Return the dependency name of a wired annotation, or ``None``."""
        if annotation is inspect.Signature.empty or isinstance(annotation, str):
            return None
        if get_origin(annotation) is not Annotated:
            return None

        annotation_args = get_args(annotation)
        if len(annotation_args) < _ANNOTATED_DEPENDENCY_MIN_ARGS:
            return None
        for item in annotation_args[1:]:
            if isinstance(item, Wired):
                return item.name
        return None

    def build_public_signature(
        self,
        *,
        signature: inspect.Signature,
        hidden_parameter_names: set[str],
    ) -> inspect.Signature:
        """Build a signature that hides wired parameters."""
        filtered_parameters = [
            parameter
            for parameter in signature.parameters.values()
            if parameter.name not in hidden_parameter_names
        ]
        return signature.replace(parameters=filtered_parameters)
