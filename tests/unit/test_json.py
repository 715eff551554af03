"""Descriptor JSON extraction tests."""

import json

import pytest
from hypothesis import given, strategies as st

from aiaconvert.core import JSONParseError, extract_json, safe_json_dumps


@pytest.mark.unit
def test_framed_descriptor():
    """The #| $JSON ... |# frame is stripped."""
    text = '#|\n$JSON\n{"Source": "Form", "Properties": {"$Name": "Screen1"}}\n|#'
    assert extract_json(text) == {"Source": "Form", "Properties": {"$Name": "Screen1"}}


@pytest.mark.unit
def test_bare_json():
    assert extract_json('{"a": 1}') == {"a": 1}


@pytest.mark.unit
@pytest.mark.parametrize("text", ["", "#| no closing frame", "no object here", "[1, 2]"])
def test_no_object(text):
    with pytest.raises(JSONParseError):
        extract_json(text)


@pytest.mark.unit
def test_invalid_json_without_repair():
    with pytest.raises(JSONParseError):
        extract_json('{"a": 1,}')


@pytest.mark.unit
def test_invalid_json_with_repair():
    """json_repair recovers trailing commas."""
    assert extract_json('{"a": 1,}', repair=True) == {"a": 1}


@pytest.mark.unit
def test_safe_json_dumps_indent():
    data = {"project": "Demo", "diagnostics": []}
    assert json.loads(safe_json_dumps(data, indent=2)) == data
    assert "\n  " in safe_json_dumps(data, indent=2)


@pytest.mark.unit
@given(st.dictionaries(st.text(max_size=10), st.integers(min_value=-(2**53), max_value=2**53), max_size=5))
def test_dumps_then_extract(data):
    """Property test: compact output extracts back to the same object."""
    assert extract_json(safe_json_dumps(data)) == data
