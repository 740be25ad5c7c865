from pixelpulse.sensors.dom import Element, FocusEvent, FormEvent
from pixelpulse.sensors.forms import FieldStatus


def make_form():
    form = Element(tag="form", id="signup")
    email = Element(tag="input", name="email", type="email",
                    labels=[Element(tag="label", text="Email address")], form=form)
    return form, email


def touch(h, el, value=None):
    h.fire("focusin", FocusEvent(el))
    if value is not None:
        el.value = value
    h.fire("focusout", FocusEvent(el))


def test_blur_without_submit_is_a_drop(harness):
    _, email = make_form()
    touch(harness, email, "a@b.co")
    harness.clock.advance(1999)
    assert harness.of("drop") == []
    harness.clock.advance(1)
    (ev,) = harness.of("drop")
    assert ev.props == {"field": "email", "type": "email", "label": "Email address",
                        "value": "a@b.co", "hasValue": True}


def test_value_is_read_when_timer_fires(harness):
    _, email = make_form()
    touch(harness, email, "first")
    email.value = "edited later"
    harness.clock.advance(2000)
    assert harness.of("drop")[0].props["value"] == "edited later"


def test_submit_within_window_cancels_drop(harness):
    form, email = make_form()
    touch(harness, email, "a@b.co")
    harness.clock.advance(500)
    harness.fire("submit", FormEvent(form))
    harness.clock.advance(5000)
    assert harness.of("drop") == []
    (ev,) = harness.of("form_submit")
    assert ev.props == {"field": "email", "success": True}
    assert harness.tracker.sensor("forms").touched_fields == []


def test_password_is_masked(harness):
    pw = Element(tag="input", name="pw", type="password")
    touch(harness, pw, "hunter2")
    harness.clock.advance(2000)
    (ev,) = harness.of("drop")
    assert ev.props["value"] == "***"
    assert "hunter2" not in str(ev.model_dump())
    assert ev.props["hasValue"] is True


def test_empty_field_drop(harness):
    el = Element(tag="textarea", id="notes")
    touch(harness, el)
    harness.clock.advance(2000)
    (ev,) = harness.of("drop")
    assert ev.props["field"] == "notes"
    assert ev.props["type"] == "text"
    assert ev.props["label"] == "notes"
    assert ev.props["value"] == "" and ev.props["hasValue"] is False


def test_refocus_cancels_pending_timer(harness):
    _, email = make_form()
    touch(harness, email, "a")
    harness.clock.advance(1500)
    harness.fire("focusin", FocusEvent(email))
    harness.clock.advance(1500)
    assert harness.of("drop") == []
    harness.fire("focusout", FocusEvent(email))
    harness.clock.advance(2000)
    assert len(harness.of("drop")) == 1
    harness.clock.advance(10000)
    assert len(harness.of("drop")) == 1


def test_field_identity_fallbacks(harness):
    by_placeholder = Element(tag="input", placeholder="Your city")
    anonymous = Element(tag="select")
    touch(harness, by_placeholder)
    touch(harness, anonymous)
    harness.clock.advance(2000)
    fields = sorted(e.props["field"] for e in harness.of("drop"))
    assert fields == ["Your city", "unknown"]
    labels = {e.props["field"]: e.props["label"] for e in harness.of("drop")}
    assert labels["Your city"] == "Your city"


def test_reset_flushes_immediately(harness):
    form, email = make_form()
    touch(harness, email, "x")
    harness.fire("reset", FormEvent(form))
    assert len(harness.of("drop")) == 1
    harness.clock.advance(5000)
    assert len(harness.of("drop")) == 1


def test_unload_flushes_touched_fields(harness):
    _, email = make_form()
    harness.fire("focusin", FocusEvent(email))
    email.value = "typing"
    harness.page.unload()
    (ev,) = harness.of("drop")
    assert ev.props["value"] == "typing"
    assert harness.tracker.started is False


def test_soft_navigation_flushes(harness):
    _, email = make_form()
    harness.fire("focusin", FocusEvent(email))
    harness.page.navigate("https://app.example.com/next")
    harness.clock.advance(1000)
    (ev,) = harness.of("drop")
    assert ev.url == "https://app.example.com/next"


def test_non_field_focus_ignored(harness):
    touch(harness, Element(tag="button", id="go"))
    harness.clock.advance(3000)
    assert harness.of("drop") == []


def test_submit_from_non_form_ignored(harness):
    _, email = make_form()
    touch(harness, email, "x")
    harness.fire("submit", FormEvent(Element(tag="div")))
    harness.clock.advance(2000)
    assert len(harness.of("drop")) == 1
    assert harness.of("form_submit") == []


def test_each_touch_reports_exactly_once(harness):
    form, email = make_form()
    pw = Element(tag="input", name="pw", type="password", form=form)
    touch(harness, email, "x")
    touch(harness, pw, "y")
    harness.clock.advance(1000)
    harness.fire("submit", FormEvent(form))
    harness.page.unload()
    harness.clock.advance(5000)
    reported = [e.props["field"] for e in harness.events if e.type in ("drop", "form_submit")]
    assert sorted(reported) == ["email", "pw"]


def test_field_status_walks_touched_pending_then_leaves_map(harness):
    _, email = make_form()
    forms = harness.tracker.sensor("forms")
    assert "email" not in forms.fields
    harness.fire("focusin", FocusEvent(email))
    assert forms.fields["email"].status == FieldStatus.TOUCHED
    harness.fire("focusout", FocusEvent(email))
    assert forms.fields["email"].status == FieldStatus.PENDING
    harness.clock.advance(2000)
    assert "email" not in forms.fields
    assert [s.value for s in FieldStatus] == ["touched", "pending-timeout", "resolved"]
