"""Tests for ControlFactory."""

import pytest

from pyqt_controlgen.controls.base_control import Control
from pyqt_controlgen.core.exceptions import ConstructionFailure, DefinitionError, DefinitionWarning
from pyqt_controlgen.widgets import (
    ButtonControl,
    CartGridControl,
    LabelControl,
    PanelControl,
    TextBoxControl,
)


class RatingControl(Control):
    tag = "span"

    def get_base_classes(self):
        return "rating-control"


class ExplodingControl(Control):
    def __init__(self, definition=None, session=None):
        raise RuntimeError("constructor failed")


def test_create_builtin_types(session):
    factory = session.factory
    assert isinstance(factory.create({"type": "button", "UID": "b", "text": "OK"}), ButtonControl)
    assert isinstance(factory.create({"type": "label", "UID": "l"}), LabelControl)
    assert isinstance(factory.create({"type": "panel", "UID": "p"}), PanelControl)
    assert isinstance(factory.create({"type": "cart-grid", "UID": "c"}), CartGridControl)


def test_input_alias(session):
    assert isinstance(session.factory.create({"type": "input", "UID": "i"}), TextBoxControl)


def test_unimplemented_builtin_degrades_to_base(session):
    control = session.factory.create({"type": "splitter", "UID": "s"})
    assert type(control) is Control
    assert control.type == "splitter"


def test_rejects_unusable_definitions(session):
    factory = session.factory
    assert factory.create(None) is None
    assert factory.create("button") is None
    assert factory.create({"UID": "x"}) is None
    assert factory.create({"type": "hologram", "UID": "x"}) is None


def test_non_critical_errors_do_not_block(session):
    """Only missing/unknown types block creation."""
    control = session.factory.create({"type": "button", "UID": "b", "props": {"variant": "loud"}})
    assert isinstance(control, ButtonControl)
    assert not control.validation_result.is_valid


def test_strict_mode_raises(session):
    with pytest.raises(DefinitionError) as excinfo:
        session.factory.create({"type": "button", "UID": "b", "props": {"variant": "loud"}}, strict=True)
    assert excinfo.value.errors

    with pytest.raises(DefinitionError):
        session.factory.create(None, strict=True)


def test_sanitized_definition_used(session):
    control = session.factory.create({"type": "label", "text": "Hi<script>x</script>"})
    assert control.text == "Hi"
    assert control.UID.startswith("label-")
    assert control.validation_result.is_valid


def test_validation_result_on_node(session):
    control = session.factory.create({"type": "label", "UID": "l", "text": "x"})
    node = control.render()
    assert session.node_data.get(node, "validation") is control.validation_result
    assert session.node_data.get(node, "control") is control


def test_register_control(session):
    factory = session.factory
    assert factory.register_control("rating", lambda: RatingControl)
    assert factory.is_valid_type("rating")
    assert "rating" in factory.known_types()

    control = factory.create({"type": "rating", "UID": "r"})
    assert isinstance(control, RatingControl)
    assert control.render().tag == "span"

    assert factory.unregister_control("rating")
    assert not factory.unregister_control("rating")
    assert factory.create({"type": "rating", "UID": "r"}) is None


def test_register_rejects_non_callable(session):
    assert not session.factory.register_control("rating", RatingControl())


def test_provider_failures_degrade(session):
    """Provider returning nothing, provider raising and constructor raising all fall back to Control."""
    factory = session.factory
    factory.register_control("empty", lambda: None)
    factory.register_control("broken", lambda: 1 / 0)
    factory.register_control("exploding", lambda: ExplodingControl)

    for control_type in ("empty", "broken", "exploding"):
        control = factory.create({"type": control_type, "UID": control_type})
        assert type(control) is Control
        assert control.type == control_type
        assert isinstance(control.construction_failure, ConstructionFailure)


def test_constructed_controls_carry_no_failure(session):
    assert session.factory.create({"type": "button", "UID": "b"}).construction_failure is None


def test_strict_mode_raises_construction_failure(session):
    session.factory.register_control("exploding", lambda: ExplodingControl)
    with pytest.raises(ConstructionFailure) as excinfo:
        session.factory.create({"type": "exploding", "UID": "x"}, strict=True)
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_strict_mode_reports_warnings(session):
    """Strict creation surfaces validation warnings as DefinitionWarning and still builds the control."""
    with pytest.warns(DefinitionWarning, match="Dropdown has no options"):
        control = session.factory.create({"type": "dropdown", "UID": "d", "props": {"options": []}}, strict=True)
    assert control is not None


def test_create_from_template(session):
    template = {"type": "label", "UID": "greeting", "text": "Hi #{name}", "props": {"variant": "heading"}}
    control = session.factory.create_from_template(template, {"name": "Ann"})
    assert control.text == "Hi Ann"
    assert template["text"] == "Hi #{name}"

    assert session.factory.create_from_template(None) is None


def test_create_batch(session):
    controls = session.factory.create_batch([
        {"type": "label", "UID": "a"},
        {"type": "hologram", "UID": "b"},
        None,
        {"type": "button", "UID": "c", "text": "Go"},
    ])
    assert [control.UID for control in controls] == ["a", "c"]
    assert session.factory.create_batch("not a list") == []


def test_create_from_json(session):
    control = session.factory.create_from_json('{"type": "button", "UID": "b1", "text": "Hi"}')
    assert isinstance(control, ButtonControl)
    assert session.factory.create_from_json("{not json") is None


def test_control_info(session):
    factory = session.factory
    info = factory.get_control_info("button")
    assert info == {
        "type": "button",
        "available": True,
        "category": "action",
        "description": "Action button with multiple variants",
    }
    assert factory.get_control_info("hologram") is None
    assert "cart-grid" in factory.get_available_types()


def test_factories_are_independent(session):
    from pyqt_controlgen.controls.session import ControlSession

    other = ControlSession()
    session.factory.register_control("rating", lambda: RatingControl)
    assert not other.factory.is_valid_type("rating")
