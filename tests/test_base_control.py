"""Tests for the Control lifecycle."""

import pytest

from pyqt_controlgen.controls.base_control import Control, RenderOptions, to_kebab_case
from pyqt_controlgen.core.exceptions import ControlDestroyedError, HandlerFailure
from pyqt_controlgen.protocols.control_config import ControlGenConfig, set_control_config


class FailingRenderControl(Control):
    def create_node(self):
        raise RuntimeError("render failed")


class PickyContainerControl(Control):
    def place_child(self, child, child_node):
        if child.type == "button":
            raise ValueError("no buttons here")
        super().place_child(child, child_node)


def panel(**overrides):
    definition = {"type": "panel", "UID": "root"}
    definition.update(overrides)
    return definition


def test_to_kebab_case():
    assert to_kebab_case("paddingTop") == "padding-top"
    assert to_kebab_case("color") == "color"


def test_render_node(session):
    control = Control(panel(), session)
    node = control.render()

    assert node.attributes["id"] == "root"
    assert node.attributes["data-control-type"] == "panel"
    assert "control-base" in node.classes
    assert session.node_data.get(node, "control") is control
    assert session.get_control("root") is control


def test_styles_converted_and_layout_keys_skipped(session):
    control = Control(panel(style={"paddingTop": "4px", "backgroundColor": "red", "rows": 2, "gap": "1rem"}), session)
    node = control.render()
    assert node.styles == {"padding-top": "4px", "background-color": "red"}


def test_hidden_and_disabled(session):
    node = Control(panel(visible=False, disabled=True), session).render()
    assert node.styles["display"] == "none"
    assert node.attributes["disabled"] == "true"
    assert "opacity-50" in node.classes
    assert "pointer-events-none" in node.classes


def test_show_hide_enable_disable_reversible(session):
    control = Control(panel(), session)
    node = control.render()

    control.hide()
    assert node.styles["display"] == "none"
    control.show()
    assert "display" not in node.styles

    control.disable()
    assert control.get_attribute("disabled") == "true"
    control.enable()
    assert control.get_attribute("disabled") is None
    assert "opacity-50" not in node.classes


def test_children_rendered_in_order(session):
    control = Control(panel(children=[
        {"type": "label", "UID": "a", "text": "A"},
        {"type": "label", "UID": "b", "text": "B"},
    ]), session)
    node = control.render()

    assert [child.UID for child in control.child_controls] == ["a", "b"]
    assert [child.attributes["id"] for child in node.children] == ["a", "b"]
    assert control.child_controls[0].parent is control


def test_failing_child_does_not_stop_siblings(session):
    session.factory.register_control("failing", lambda: FailingRenderControl)
    control = Control(panel(children=[
        {"type": "failing", "UID": "bad"},
        {"type": "hologram", "UID": "unknown"},
        {"type": "label", "UID": "good", "text": "ok"},
    ]), session)
    control.render()
    assert [child.UID for child in control.child_controls] == ["good"]



def test_unplaceable_child_is_destroyed(session):
    """A child whose node cannot be placed leaves neither a control nor a live UID behind."""
    control = PickyContainerControl(panel(children=[
        {"type": "button", "UID": "rejected"},
        {"type": "label", "UID": "kept"},
    ]), session)
    control.render()

    assert [child.UID for child in control.child_controls] == ["kept"]
    assert len(control.node.children) == 1
    assert not session.is_uid_live("rejected")
    assert session.is_uid_live("kept")

def test_parent_is_weak(session):
    parent = Control(panel(children=[{"type": "label", "UID": "a"}]), session)
    parent.render()
    child = parent.child_controls[0]
    assert child.parent is parent

    parent.parent = None
    child.parent = None
    assert child.parent is None


def test_initial_state_published(session):
    control = Control(panel(state={"count": 1}), session)
    control.render()
    assert session.store.get_state("root") == {"count": 1}


def test_set_state(session):
    seen = []

    class Recording(Control):
        def on_state_change(self, new_state, old_state):
            seen.append((new_state, old_state))

    control = Recording(panel(state={"a": 1}), session)
    control.set_state({"b": 2})

    assert control.state == {"a": 1, "b": 2}
    assert session.store.get_state("root") == {"a": 1, "b": 2}
    assert seen == [({"b": 2}, {"a": 1})]


def test_set_state_rejects_non_mapping(session):
    control = Control(panel(), session)
    control.set_state(["a"])
    assert control.state == {}


def test_emit_bubbles_with_source(session):
    parent = Control(panel(children=[{"type": "label", "UID": "child"}]), session)
    parent.render()
    child = parent.child_controls[0]

    received = []
    child.on("ping", lambda data: received.append(("child", data)))
    parent.on("ping", lambda data: received.append(("parent", data)))

    child.emit("ping", {"n": 1})
    assert received == [("child", {"n": 1}), ("parent", {"n": 1, "source": "child"})]


def test_emit_handler_failure_isolated(session):
    parent = Control(panel(children=[{"type": "label", "UID": "child"}]), session)
    parent.render()
    child = parent.child_controls[0]
    calls = []

    def broken(data):
        raise ValueError("bad handler")

    child.on("ping", broken)
    child.on("ping", lambda data: calls.append("child"))
    parent.on("ping", lambda data: calls.append("parent"))

    failures = child.emit("ping")
    assert calls == ["child", "parent"]
    assert len(failures) == 1
    assert isinstance(failures[0], HandlerFailure)
    assert isinstance(failures[0].__cause__, ValueError)


def test_off(session):
    control = Control(panel(), session)
    calls = []

    def handler(data):
        calls.append(data)

    control.on("ping", handler)
    control.off("ping", handler)
    control.emit("ping")

    control.on("ping", handler)
    control.on("ping", lambda data: calls.append("other"))
    control.off("ping")
    control.emit("ping")
    assert calls == []


def test_destroy_cleans_everything(session):
    control = Control(panel(state={"a": 1}, children=[
        {"type": "button", "UID": "btn", "text": "Go"},
        {"type": "label", "UID": "lbl", "text": "Hi #{UserName}"},
    ]), session)
    node = session.target.mount(control.render())
    button = control.child_controls[0]

    assert session.events.has_handlers(button.node)
    control.destroy()

    assert control.destroyed
    assert button.destroyed
    assert session.events.get_registry() == {}
    assert len(session.node_data) == 0
    assert not session.store.has_key("root")
    assert not session.target.is_attached(node)
    assert control.child_controls == []
    assert session.live_controls() == []
    assert session.templates._watchers == {}


def test_destroy_idempotent(session):
    control = Control(panel(), session)
    control.render()
    control.destroy()
    control.destroy()
    assert control.destroyed


def test_destroy_child_removes_from_parent(session):
    parent = Control(panel(children=[{"type": "label", "UID": "a"}, {"type": "label", "UID": "b"}]), session)
    node = parent.render()
    parent.child_controls[0].destroy()

    assert [child.UID for child in parent.child_controls] == ["b"]
    assert [child.attributes["id"] for child in node.children] == ["b"]


def test_render_after_destroy_raises(session):
    control = Control(panel(), session)
    control.destroy()
    with pytest.raises(ControlDestroyedError):
        control.render()


def test_rerender_releases_previous_node(session):
    control = Control(panel(children=[{"type": "button", "UID": "btn", "text": "Go"}]), session)
    container = session.target.root
    first = session.target.mount(control.render())
    old_button = control.child_controls[0]

    second = control.render()
    assert first is not second
    assert first not in container.children
    assert old_button.destroyed
    assert not session.events.has_handlers(old_button.node)
    assert control.child_controls[0].node is not old_button.node


def test_designer_mode(session):
    control = Control(panel(children=[{"type": "label", "UID": "a", "text": "x"}]), session)
    node = control.render(RenderOptions(designer_mode=True))

    assert "designer-outline" in node.classes
    tooltips = [child for child in node.children if "designer-tooltip" in child.classes]
    assert [tooltip.text for tooltip in tooltips] == ["panel | root"]
    child_node = control.child_controls[0].node
    assert "designer-outline" in child_node.classes


def test_generated_uid_avoids_live_controls(session):
    set_control_config(ControlGenConfig(uid_max=1, uid_max_attempts=3))
    first = Control({"type": "panel"}, session)
    first.render()
    assert first.UID == "control-0"

    second = Control({"type": "panel"}, session)
    assert second.UID != first.UID
    assert second.UID.startswith("control-")


def test_default_session_used(session):
    assert Control(panel()).session is session


def test_set_value(session):
    control = Control({"type": "textbox", "UID": "t"}, session)
    changes = []
    control.on("valueChange", changes.append)

    assert control.set_value("<script>x</script>hello")
    assert control.value == "hello"
    assert changes == [{"old_value": "", "new_value": "hello"}]


def test_set_value_none_validates_as_value(session):
    """None is a value to validate and clear, not a request for whole-control validation."""
    box = session.factory.create({"type": "textbox", "UID": "t1", "value": "Ann"})
    box.render()
    changes = []
    box.on("valueChange", changes.append)

    assert box.set_value(None)
    assert box.value is None
    assert box.node.attributes["value"] == ""
    assert changes == [{"old_value": "Ann", "new_value": None}]


def test_set_value_rejected(session):
    control = Control({"type": "numeric-input", "UID": "n", "value": "1"}, session)
    assert not control.set_value("abc")
    assert control.value == "1"


def test_whole_control_validation(session):
    control = Control({"type": "button", "UID": "b", "props": {"variant": "loud"}, "text": "x"}, session)
    assert not control.is_valid()
    assert control.get_validation_errors()[0].startswith("Invalid button variant")
    assert control.validation_result is not None


def test_find_child(session):
    control = Control(panel(children=[
        {"type": "panel", "UID": "inner", "children": [{"type": "label", "UID": "deep"}]},
    ]), session)
    control.render()
    assert control.find_child("deep").UID == "deep"
    assert control.find_child("missing") is None


def test_node_helpers_without_node(session):
    control = Control(panel(), session)
    control.add_class("x")
    control.set_attribute("a", "b")
    assert control.get_attribute("a") is None
