"""
Tracing Tests
"""

import pytest

from aiaconvert.core import tracing
from aiaconvert.core.tracing import Tracer, trace_operation


@pytest.fixture
def tracer(monkeypatch):
    """Tracer installed for the duration of one test; spans are captured."""
    instance = Tracer("test")
    submitted = []
    monkeypatch.setattr(instance, "submit", submitted.append)
    monkeypatch.setattr(tracing, "_tracer", instance)
    instance.submitted = submitted
    return instance


@pytest.mark.unit
def test_noop_without_tracer(monkeypatch):
    monkeypatch.setattr(tracing, "_tracer", None)
    with trace_operation("convert_screen") as span:
        assert span is None


@pytest.mark.unit
def test_span_recorded(tracer):
    with trace_operation("convert_screen", screen="Screen1") as span:
        assert span.name == "convert_screen"

    (recorded,) = tracer.submitted
    assert recorded.tags == {"screen": "Screen1"}
    assert recorded.duration >= 0
    assert recorded.error is None


@pytest.mark.unit
def test_nested_spans_share_trace(tracer):
    with trace_operation("convert_project") as outer:
        with trace_operation("convert_screen") as inner:
            pass

    assert inner.trace_id == outer.trace_id
    assert inner.parent_id == outer.span_id
    assert outer.parent_id == ""
    assert [s.name for s in tracer.submitted] == ["convert_screen", "convert_project"]


@pytest.mark.unit
def test_context_restored_after_span(tracer):
    with trace_operation("first") as first:
        pass
    with trace_operation("second") as second:
        pass

    assert first.trace_id != second.trace_id
    assert second.parent_id == ""


@pytest.mark.unit
def test_error_recorded_and_reraised(tracer):
    with pytest.raises(ValueError):
        with trace_operation("convert_screen"):
            raise ValueError("boom")

    (recorded,) = tracer.submitted
    assert isinstance(recorded.error, ValueError)
