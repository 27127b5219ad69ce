from __future__ import annotations

import types


def is_pydantic_settings_subclass(candidate: object) -> bool:
    """Return whether ``candidate`` is a ``pydantic_settings.BaseSettings`` subclass.

    Always ``False`` when ``pydantic-settings`` is not installed.
    """
    try:
        from pydantic_settings import BaseSettings
    except ImportError:
        return False
    # ``list[int]`` passes the ``type`` check but cannot be used with ``issubclass``.
    if not isinstance(candidate, type) or isinstance(candidate, types.GenericAlias):
        return False
    return issubclass(candidate, BaseSettings)


__all__ = ["is_pydantic_settings_subclass"]
