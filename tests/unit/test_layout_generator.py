"""Tests for layout XML generation."""

import xml.etree.ElementTree as ET

import pytest
from hypothesis import given, settings as hyp_settings, strategies as st

from aiaconvert.core import DiagnosticCode, IdentifierAllocator
from aiaconvert.layout import ComponentNode, LayoutGenerator, generate_layout, parse_layout
from aiaconvert.mapping import ValueFormat, format_value, load_mapping_table

ANDROID = "{http://schemas.android.com/apk/res/android}"

EXPECTED_BUTTON_LABEL = """\
<?xml version="1.0" encoding="utf-8"?>
<LinearLayout
    xmlns:android="http://schemas.android.com/apk/res/android"
    xmlns:tools="http://schemas.android.com/tools"
    android:id="@+id/screen1"
    android:layout_width="match_parent"
    android:layout_height="match_parent"
    android:orientation="vertical"
    tools:context=".MainActivity">
    <Button
        android:id="@+id/button1"
        android:layout_width="wrap_content"
        android:layout_height="wrap_content"
        android:text="Press" />
    <TextView
        android:id="@+id/textView1"
        android:layout_width="wrap_content"
        android:layout_height="wrap_content"
        android:text="Hello" />
</LinearLayout>
"""


def _generate(table, scm):
    return generate_layout(parse_layout(scm).root, table)


@pytest.mark.unit
def test_button_label_layout(table, button_label_scm):
    """Exact markup for a two-component screen."""
    result = _generate(table, button_label_scm)
    assert result.markup == EXPECTED_BUTTON_LABEL
    assert len(result.diagnostics) == 0


@pytest.mark.unit
def test_markup_is_well_formed(table, make_scm, make_component):
    """Output parses as a single-root XML document."""
    scm = make_scm(
        [
            make_component("VerticalArrangement", "Col", [make_component("TextBox", "Name", Hint="Your name")]),
            make_component("CheckBox", "Agree", Checked="True"),
        ]
    )
    root = ET.fromstring(_generate(table, scm).markup.encode("utf-8"))
    assert root.tag == "LinearLayout"
    column = root[0]
    assert column.get(f"{ANDROID}orientation") == "vertical"
    assert column[0].tag == "EditText"
    assert column[0].get(f"{ANDROID}hint") == "Your name"
    assert root[1].get(f"{ANDROID}checked") == "true"


@pytest.mark.unit
def test_ids_sequential_per_prefix(table, make_scm, make_component):
    """Identifiers count up per prefix in traversal order."""
    scm = make_scm(
        [
            make_component("Button", "B1"),
            make_component("Label", "L1"),
            make_component("Button", "B2"),
            make_component("Button", "B3"),
        ]
    )
    result = _generate(table, scm)
    assert [result.components[name].view_id for name in ("B1", "B2", "B3", "L1")] == [
        "button1",
        "button2",
        "button3",
        "textView1",
    ]


@pytest.mark.unit
def test_component_index(table, button_label_scm):
    """The index maps instance names to ids and view classes."""
    components = _generate(table, button_label_scm).components
    assert set(components) == {"Screen1", "Button1", "Label1"}
    label = components["Label1"]
    assert label.component_type == "Label"
    assert label.view_id == "textView1"
    assert label.rule.view_class_name == "TextView"


@pytest.mark.unit
def test_deterministic_output(table, make_scm, make_component):
    """Two runs over the same input are byte-identical."""
    scm = make_scm(
        [
            make_component("HorizontalArrangement", "Row", [make_component("Button", "B1"), make_component("Image", "Pic", Picture="cat.png")]),
            make_component("Slider", "Volume", ThumbPosition="10.0"),
        ]
    )
    assert _generate(table, scm).markup == _generate(table, scm).markup


@pytest.mark.unit
def test_unmapped_component_hoists_children(table, make_scm, make_component):
    """An unmapped container is skipped but its mapped children survive."""
    scm = make_scm(
        [
            make_component("FancyArrangement", "Fancy", [make_component("Label", "Inner")]),
            make_component("Button", "After"),
        ]
    )
    result = _generate(table, scm)
    root = ET.fromstring(result.markup.encode("utf-8"))
    assert [child.tag for child in root] == ["TextView", "Button"]
    assert result.diagnostics.count(DiagnosticCode.UNMAPPED_COMPONENT_TYPE) == 1
    assert "Fancy" not in result.components
    assert "Inner" in result.components


@pytest.mark.unit
def test_unmapped_leaf_skipped(table, make_scm, make_component):
    """Non-visible components (no rule) produce no element."""
    scm = make_scm([make_component("Clock", "Clock1"), make_component("Label", "Label1")])
    result = _generate(table, scm)
    assert "Clock" not in result.markup
    assert result.diagnostics.count(DiagnosticCode.UNMAPPED_COMPONENT_TYPE) == 1


@pytest.mark.unit
def test_unmapped_root_falls_back(table):
    """A root type without a rule still yields one document element."""
    root = ComponentNode(type="Canvas", name="Screen1", children=(ComponentNode(type="Label", name="L"),))
    result = generate_layout(root, table)
    element = ET.fromstring(result.markup.encode("utf-8"))
    assert element.tag == "LinearLayout"
    assert element[0].tag == "TextView"
    assert result.diagnostics.count(DiagnosticCode.UNMAPPED_COMPONENT_TYPE) == 1


@pytest.mark.unit
def test_attribute_values_escaped(table, make_scm, make_component):
    """Markup characters in property values are escaped."""
    scm = make_scm([make_component("Label", "Label1", Text='Tom & "Jerry" <3')])
    result = _generate(table, scm)
    assert 'android:text="Tom &amp; &quot;Jerry&quot; &lt;3"' in result.markup
    element = ET.fromstring(result.markup.encode("utf-8"))[0]
    assert element.get(f"{ANDROID}text") == 'Tom & "Jerry" <3'


@pytest.mark.unit
def test_line_breaks_survive_attribute_normalization(table, make_scm, make_component):
    """Multi-line text keeps its line breaks once the XML is read back."""
    scm = make_scm([make_component("Label", "Label1", Text="Line one\nLine two\tend")])
    result = _generate(table, scm)
    assert 'android:text="Line one&#10;Line two&#9;end"' in result.markup
    element = ET.fromstring(result.markup.encode("utf-8"))[0]
    assert element.get(f"{ANDROID}text") == "Line one\nLine two\tend"


@pytest.mark.unit
def test_duplicate_names_bind_first(table, make_scm, make_component):
    """Blocks bind to the first component with a given name."""
    scm = make_scm([make_component("Button", "Twin"), make_component("Label", "Twin")])
    result = _generate(table, scm)
    assert result.components["Twin"].component_type == "Button"
    assert result.diagnostics.count(DiagnosticCode.DUPLICATE_DECLARATION) == 1


@pytest.mark.unit
def test_shared_allocator_continues_sequence(table, button_label_scm):
    """A run-scoped allocator is threaded through; ids are never reissued."""
    allocator = IdentifierAllocator()
    allocator.claim("button1")
    result = LayoutGenerator(table, allocator=allocator).generate(parse_layout(button_label_scm).root)
    assert result.components["Button1"].view_id == "button2"


@pytest.mark.unit
@pytest.mark.parametrize("comp_type", [t for t in load_mapping_table().types() if t != "Form"])
def test_every_mapped_type_emits_its_tag(table, make_scm, make_component, comp_type):
    """Each mapped type yields its tag, its prefixed id and every configured default."""
    rule = table.rule_for(comp_type)
    result = _generate(table, make_scm([make_component(comp_type, "Subject")]))
    assert f"<{rule.target_tag}" in result.markup
    assert f'android:id="@+id/{rule.id_prefix}1"' in result.markup
    assert result.components["Subject"].view_id == f"{rule.id_prefix}1"

    element = ET.fromstring(result.markup.encode("utf-8"))[0]
    assert element.get(f"{ANDROID}id") == f"@+id/{rule.id_prefix}1"
    for prop, value in rule.default_properties.items():
        attribute = rule.property_to_attribute.get(prop)
        if attribute is None:
            continue
        expected = format_value(value, rule.value_formats.get(prop, ValueFormat.TEXT))
        assert element.get(ANDROID + attribute.removeprefix("android:")) == expected, prop


@hyp_settings(max_examples=30, deadline=None)
@given(st.lists(st.sampled_from(["Button", "Label", "TextBox", "Image", "Clock", "VerticalArrangement"]), max_size=8))
def test_generation_is_deterministic(types):
    """Property test: fresh runs over the same tree agree byte for byte."""
    table = load_mapping_table()
    root = ComponentNode(
        type="Form",
        name="Screen1",
        children=tuple(ComponentNode(type=t, name=f"C{i}") for i, t in enumerate(types)),
    )
    first = generate_layout(root, table)
    second = generate_layout(root, table)
    assert first.markup == second.markup
    ET.fromstring(first.markup.encode("utf-8"))
