"""Fetch ``Annotated[T, Wired(name)]`` test parameters from a registry fixture.

Enable with ``pytest_plugins = ["wirekit.integrations.pytest_plugin"]`` and
override ``wirekit_registry`` to supply registrations.
"""

from __future__ import annotations

import inspect
from typing import Any

import pytest

from wirekit.injection import InjectedCallableInspection, InjectedCallableInspector
from wirekit.registry import Registry

REGISTRY_FIXTURE = "wirekit_registry"
_INSPECTION_ATTR = "__wirekit_inspection__"
_inspector = InjectedCallableInspector()


@pytest.fixture()
def wirekit_registry() -> Registry:
    """Return an empty registry; override this fixture to register dependencies."""
    return Registry()


def pytest_pycollect_makeitem(collector: pytest.Module | pytest.Class, name: str, obj: object) -> None:
    """Replace wired parameters with the registry fixture in the collected signature.

    pytest matches every parameter against a fixture. Wired parameters are
    removed from the signature it sees, and ``wirekit_registry`` is added when
    the test does not request it already, so pytest sets the registry up.
    Coroutine tests are left alone.
    """
    if not inspect.isfunction(obj) or inspect.iscoroutinefunction(obj):
        return
    if not collector.istestfunction(obj, name):
        return

    inspection = _inspector.inspect_callable(obj)
    if not inspection.wired_parameters:
        return

    obj.__dict__[_INSPECTION_ATTR] = inspection
    obj.__signature__ = _with_registry_parameter(inspection.public_signature)  # type: ignore[attr-defined]


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Call tests that have wired parameters, fetching those from ``wirekit_registry``."""
    inspection: InjectedCallableInspection | None = getattr(pyfuncitem.obj, _INSPECTION_ATTR, None)
    if inspection is None:
        return None

    registry: Registry = pyfuncitem.funcargs[REGISTRY_FIXTURE]
    declared = inspection.signature.parameters
    kwargs: dict[str, Any] = {
        name: value for name, value in pyfuncitem.funcargs.items() if name in declared
    }
    for parameter in inspection.wired_parameters:
        kwargs[parameter.name] = registry.fetch(parameter.dependency)

    pyfuncitem.obj(**kwargs)
    return True


def _with_registry_parameter(signature: inspect.Signature) -> inspect.Signature:
    if REGISTRY_FIXTURE in signature.parameters:
        return signature

    parameters = list(signature.parameters.values())
    registry_parameter = inspect.Parameter(REGISTRY_FIXTURE, inspect.Parameter.KEYWORD_ONLY)
    if parameters and parameters[-1].kind is inspect.Parameter.VAR_KEYWORD:
        parameters.insert(-1, registry_parameter)
    else:
        parameters.append(registry_parameter)
    return signature.replace(parameters=parameters)
