"""Tests for error annotation."""
from __future__ import annotations

from engine.errors import EnsureError, NotFoundError, TransportError


def test_annotate_keeps_type_and_first_values() -> None:
    """Test annotation adds identity without overwriting earlier context."""
    error = TransportError("connection reset", operation="fetch")
    annotated = error.annotate("Southclaws/SIF:1.3.x", "ensure")

    assert annotated is error
    assert isinstance(annotated, TransportError)
    assert annotated.dependency == "Southclaws/SIF:1.3.x"
    assert annotated.operation == "fetch"
    assert str(annotated) == "Southclaws/SIF:1.3.x: fetch: connection reset"

    error.annotate("other/repo")
    assert error.dependency == "Southclaws/SIF:1.3.x"


def test_plain_message() -> None:
    assert str(NotFoundError("no tag")) == "no tag"
    assert issubclass(NotFoundError, EnsureError)
