"""Pytest configuration and fixtures."""

import io
import json
import os
import zipfile
from xml.sax.saxutils import escape

import pytest
from prometheus_client import CollectorRegistry

from aiaconvert.core import IdentifierAllocator, create_container, get_settings
from aiaconvert.core.config import Settings
from aiaconvert.mapping import load_mapping_table
from aiaconvert.monitoring import MetricsCollector


# ============================================================================
# Pytest Hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with environment variables."""
    os.environ["AIA_LOG_LEVEL"] = "DEBUG"
    os.environ["AIA_CONVERSION_TIMEOUT"] = "30"


# ============================================================================
# Core Fixtures
# ============================================================================

@pytest.fixture
def settings():
    """Test settings."""
    return get_settings()


@pytest.fixture(scope="session")
def table():
    """Packaged component mapping table."""
    return load_mapping_table()


@pytest.fixture
def allocator():
    """Fresh identifier allocator for one run."""
    return IdentifierAllocator()


@pytest.fixture
def metrics():
    """Metrics collector on a private registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def di_container(metrics):
    """Dependency injection container for testing."""
    return create_container(Settings(), metrics=metrics)


# ============================================================================
# Descriptor Builders
# ============================================================================

def build_scm(components, form=None):
    """Framed .scm text for a Screen1 Form holding ``components``."""
    properties = {
        "$Name": "Screen1",
        "$Type": "Form",
        "$Version": "27",
        "AppName": "Demo",
        "Title": "Screen1",
        "Uuid": "0",
    }
    properties.update(form or {})
    properties["$Components"] = components
    document = {
        "authURL": ["ai2.appinventor.mit.edu"],
        "YaVersion": "208",
        "Source": "Form",
        "Properties": properties,
    }
    return "#|\n$JSON\n" + json.dumps(document) + "\n|#\n"


def component(comp_type, name, children=None, **properties):
    entry = {"$Name": name, "$Type": comp_type, "$Version": "6", "Uuid": "1"}
    entry.update(properties)
    if children is not None:
        entry["$Components"] = children
    return entry


class Blockly:
    """Builders for .bky block XML."""

    @staticmethod
    def xml(*blocks):
        return '<xml xmlns="https://developers.google.com/blockly/xml">' + "".join(blocks) + "</xml>"

    @staticmethod
    def chain(*blocks):
        """Link statement blocks through <next>."""
        result = ""
        for block in reversed(blocks):
            if result:
                block = block[: -len("</block>")] + f"<next>{result}</next></block>"
            result = block
        return result

    @staticmethod
    def event(component_name, event_name, *body, component_type="Button", generic=False):
        statement = f'<statement name="DO">{Blockly.chain(*body)}</statement>' if body else ""
        return (
            '<block type="component_event">'
            f'<mutation component_type="{component_type}" is_generic="{str(generic).lower()}" '
            f'instance_name="{component_name}" event_name="{event_name}"></mutation>'
            f'<field name="COMPONENT_SELECTOR">{component_name}</field>'
            f"{statement}</block>"
        )

    @staticmethod
    def set_property(component_name, prop, value, component_type="Label"):
        return (
            '<block type="component_set_get">'
            f'<mutation component_type="{component_type}" set_or_get="set" property_name="{prop}" '
            f'is_generic="false" instance_name="{component_name}"></mutation>'
            f'<field name="COMPONENT_SELECTOR">{component_name}</field>'
            f'<field name="PROP">{prop}</field>'
            f'<value name="VALUE">{value}</value></block>'
        )

    @staticmethod
    def get_property(component_name, prop, component_type="Label"):
        return (
            '<block type="component_set_get">'
            f'<mutation component_type="{component_type}" set_or_get="get" property_name="{prop}" '
            f'is_generic="false" instance_name="{component_name}"></mutation>'
            f'<field name="COMPONENT_SELECTOR">{component_name}</field>'
            f'<field name="PROP">{prop}</field></block>'
        )

    @staticmethod
    def method(component_name, method_name, *args, component_type="WebViewer"):
        values = "".join(f'<value name="ARG{i}">{arg}</value>' for i, arg in enumerate(args))
        return (
            '<block type="component_method">'
            f'<mutation component_type="{component_type}" method_name="{method_name}" '
            f'is_generic="false" instance_name="{component_name}"></mutation>'
            f'<field name="COMPONENT_SELECTOR">{component_name}</field>{values}</block>'
        )

    @staticmethod
    def text(value):
        return f'<block type="text"><field name="TEXT">{escape(value)}</field></block>'

    @staticmethod
    def number(value):
        return f'<block type="math_number"><field name="NUM">{value}</field></block>'

    @staticmethod
    def boolean(value):
        return f'<block type="logic_boolean"><field name="BOOL">{"TRUE" if value else "FALSE"}</field></block>'

    @staticmethod
    def binary(block_type, left, right, op=None):
        field = f'<field name="OP">{op}</field>' if op else ""
        return (
            f'<block type="{block_type}">{field}'
            f'<value name="A">{left}</value><value name="B">{right}</value></block>'
        )

    @staticmethod
    def nary(block_type, *operands, prefix="NUM"):
        values = "".join(f'<value name="{prefix}{i}">{op}</value>' for i, op in enumerate(operands))
        return f'<block type="{block_type}"><mutation items="{len(operands)}"></mutation>{values}</block>'

    @staticmethod
    def get_var(name):
        return f'<block type="lexical_variable_get"><field name="VAR">{name}</field></block>'

    @staticmethod
    def set_var(name, value):
        return (
            f'<block type="lexical_variable_set"><field name="VAR">{name}</field>'
            f'<value name="VALUE">{value}</value></block>'
        )

    @staticmethod
    def local(names_and_values, *body):
        names = "".join(f'<localname name="{name}"></localname>' for name, _ in names_and_values)
        fields = "".join(f'<field name="VAR{i}">{name}</field>' for i, (name, _) in enumerate(names_and_values))
        values = "".join(
            f'<value name="DECL{i}">{value}</value>' for i, (_, value) in enumerate(names_and_values)
        )
        stack = f'<statement name="STACK">{Blockly.chain(*body)}</statement>' if body else ""
        return (
            f'<block type="local_declaration_statement"><mutation>{names}</mutation>'
            f"{fields}{values}{stack}</block>"
        )

    @staticmethod
    def global_var(name, value=None):
        slot = f'<value name="VALUE">{value}</value>' if value is not None else ""
        return f'<block type="global_declaration"><field name="NAME">{name}</field>{slot}</block>'

    @staticmethod
    def if_(condition, *body, else_body=()):
        mutation = '<mutation else="1"></mutation>' if else_body else ""
        else_slot = f'<statement name="ELSE">{Blockly.chain(*else_body)}</statement>' if else_body else ""
        return (
            f'<block type="controls_if">{mutation}<value name="IF0">{condition}</value>'
            f'<statement name="DO0">{Blockly.chain(*body)}</statement>{else_slot}</block>'
        )

    @staticmethod
    def for_range(var, start, end, step, *body):
        return (
            f'<block type="controls_forRange"><field name="VAR">{var}</field>'
            f'<value name="START">{start}</value><value name="END">{end}</value>'
            f'<value name="STEP">{step}</value>'
            f'<statement name="STATEMENT">{Blockly.chain(*body)}</statement></block>'
        )

    @staticmethod
    def procedure(name, params, *body):
        args = "".join(f'<arg name="{p}"></arg>' for p in params)
        fields = "".join(f'<field name="VAR{i}">{p}</field>' for i, p in enumerate(params))
        stack = f'<statement name="STACK">{Blockly.chain(*body)}</statement>' if body else ""
        return (
            f'<block type="procedures_defnoreturn"><mutation>{args}</mutation>'
            f'<field name="NAME">{name}</field>{fields}{stack}</block>'
        )

    @staticmethod
    def call(name, *args):
        mutation = "".join(f'<arg name="x{i}"></arg>' for i in range(len(args)))
        values = "".join(f'<value name="ARG{i}">{arg}</value>' for i, arg in enumerate(args))
        return (
            f'<block type="procedures_callnoreturn"><mutation name="{name}">{mutation}</mutation>'
            f'<field name="PROCNAME">{name}</field>{values}</block>'
        )


def build_aia(scm, bky=None, assets=None, prefix="src/appinventor/ai_test/Demo/"):
    """In-memory .aia archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("youngandroidproject/project.properties", "main=appinventor.ai_test.Demo.Screen1\n")
        archive.writestr(f"{prefix}Screen1.scm", scm)
        if bky is not None:
            archive.writestr(f"{prefix}Screen1.bky", bky)
        for name, data in (assets or {}).items():
            archive.writestr(f"assets/{name}", data)
    return buffer.getvalue()


@pytest.fixture
def bk():
    """Block XML builders."""
    return Blockly


@pytest.fixture
def make_scm():
    return build_scm


@pytest.fixture
def make_component():
    return component


@pytest.fixture
def make_aia():
    return build_aia


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def button_label_scm():
    """Screen with Button1 and Label1."""
    return build_scm(
        [
            component("Button", "Button1", Text="Press"),
            component("Label", "Label1", Text="Hello"),
        ]
    )


@pytest.fixture
def button_label_bky():
    """Button1.Click sets Label1.Text to "Clicked"."""
    return Blockly.xml(
        Blockly.event("Button1", "Click", Blockly.set_property("Label1", "Text", Blockly.text("Clicked")))
    )
