from __future__ import annotations

import dataclasses
import io

import pytest

from multiconf_example.config.model import ApplicationProperties


def test_constructor_prints_both_values(capsys: pytest.CaptureFixture[str]) -> None:
    props = ApplicationProperties("hello", "world")

    assert capsys.readouterr().out == "first property: hello\nsecond property: world\n"
    assert props.first_property == "hello"
    assert props.second_property == "world"


def test_empty_strings_are_valid() -> None:
    buf = io.StringIO()
    props = ApplicationProperties("", "", out=buf)

    assert buf.getvalue() == "first property: \nsecond property: \n"
    assert props.first_property == ""


def test_is_immutable() -> None:
    props = ApplicationProperties("a", "b", out=io.StringIO())

    with pytest.raises(dataclasses.FrozenInstanceError):
        props.first_property = "c"  # type: ignore[misc]


def test_rejects_none() -> None:
    buf = io.StringIO()
    with pytest.raises(TypeError) as ei:
        ApplicationProperties("a", None, out=buf)  # type: ignore[arg-type]

    assert "second_property" in str(ei.value)
    assert buf.getvalue() == ""


def test_values_are_positional_only() -> None:
    with pytest.raises(TypeError):
        ApplicationProperties(first_property="a", second_property="b")  # type: ignore[call-arg]


def test_namespace() -> None:
    assert ApplicationProperties.PREFIX == "app.properties"
    assert ApplicationProperties.KEYS == ("firstProperty", "secondProperty")
