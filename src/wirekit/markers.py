from typing import NamedTuple


class Wired(NamedTuple):
    """Mark a parameter to be fetched from a registry by name.

    Attach ``Wired`` metadata with ``typing.Annotated``; ``Registry.inject``
    and the pytest plugin fetch the named dependency for the parameter.

    Examples:
        .. code-block:: python

            @registry.inject
            def handle(db: Annotated[Database, Wired("db")], query: str) -> list[Row]:
                return db.execute(query)

    """

    name: str
