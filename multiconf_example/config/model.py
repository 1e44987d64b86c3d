from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import ClassVar, TextIO


@dataclass(frozen=True, slots=True, init=False)
class ApplicationProperties:
    """Values bound from the `app.properties` namespace.

    Construction echoes both values to stdout; nothing else observes them.
    """

    PREFIX: ClassVar[str] = "app.properties"
    KEYS: ClassVar[tuple[str, str]] = ("firstProperty", "secondProperty")

    first_property: str
    second_property: str

    def __init__(self, first_property: str, second_property: str, /, *, out: TextIO | None = None) -> None:
        for name, value in (("first_property", first_property), ("second_property", second_property)):
            if not isinstance(value, str):
                raise TypeError(f"{name} must be a str, got {type(value).__name__}")
            object.__setattr__(self, name, value)

        stream = out if out is not None else sys.stdout
        stream.write(f"first property: {first_property}\n")
        stream.write(f"second property: {second_property}\n")
