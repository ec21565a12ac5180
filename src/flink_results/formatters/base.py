"""Formatter protocol and registry for output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from flink_results.core.models import ABSENT

if TYPE_CHECKING:
    from collections.abc import Iterator

    from flink_results.core.models import ResultsView


@runtime_checkable
class Formatter(Protocol):
    """Protocol for output formatters.

    Each formatter turns a ResultsView into lines of text. Yielding lines
    lets ``results watch`` print every newly buffered page as it arrives.
    """

    def format(self, view: ResultsView) -> Iterator[str]:
        """Transform a ResultsView into formatted output lines."""
        ...


def cell_text(value: Any) -> str:
    """Text for one cell. Missing values and SQL NULL both render empty."""
    if value is None or value is ABSENT:
        return ""
    return str(value)


class FormatterRegistry:
    """Registry for looking up formatters by name."""

    def __init__(self) -> None:
        self._formatters: dict[str, type[Formatter]] = {}

    def register(self, name: str, formatter_class: type[Formatter]) -> None:
        self._formatters[name] = formatter_class

    def get(self, name: str, **kwargs: object) -> Formatter:
        """Return a formatter instance by name.

        Raises KeyError if the format name is not registered.
        """
        if name not in self._formatters:
            available = ", ".join(sorted(self._formatters))
            msg = f"Unknown format {name!r}. Available: {available}"
            raise KeyError(msg)
        return self._formatters[name](**kwargs)

    @property
    def available(self) -> list[str]:
        return sorted(self._formatters)


registry = FormatterRegistry()
