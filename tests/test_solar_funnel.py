"""Scenario tests for the solar quote funnel (solar.yaml).

Funnel structure:
  intro (landing, random variant)
  owner (single: own → roof, rent → renter_end)
  roof (flow_ref roof_check → contact)
    roof_type (single, bind answers.roof)
    features (multi, preselect panels, bind answers.features)
    roof_router (flat → flat_note, else __end__)
    flat_note (form, onSubmit __end__)
  contact (form: name*, email*, phone)
  route (router: owner+battery → results, no phone → results, else callback_end)
  results (results)
  renter_end / callback_end (end)
"""
from __future__ import annotations

from funnel_engine.engine.results import MockResultsProvider

# ─── Helpers ───

def _walk_to_contact(h, roof="pitched", features=()):
    """Common helper: landing → owner → roof sub-flow → contact form."""
    h.start()
    h.advance()
    h.choose("own")
    assert h.step == "roof_type"
    assert h.stack == ["roof_check"]
    h.choose(roof)
    for option_id in features:
        h.toggle(option_id)
    h.advance()
    if roof == "flat":
        assert h.step == "flat_note"
        h.submit(note="gravel on top")
    assert h.step == "contact"
    assert h.stack == []


# ═══════════════════════════════════════════════════════
# Scenario 1: homeowner wants a battery → results
# ═══════════════════════════════════════════════════════

def test_s1_battery_owner_gets_results(harness_factory):
    h = harness_factory("solar.yaml")
    r = h.start()
    assert r
    assert h.step == "intro"
    variant = h.context["system"]["variant"]["intro"]
    assert variant["headline"] in ("Go solar this summer", "Cut your energy bill")

    h.advance()
    h.choose("own")
    assert h.context["answers"]["owner"] is True

    h.choose("pitched")
    assert h.step == "features"
    assert h.state.selection == ["panels"]
    h.toggle("battery")
    h.advance()
    assert h.context["answers"]["features"] == ["panels", "battery"]
    assert h.step == "contact"
    assert h.stack == []

    r = h.submit(name="Ada", email="ada@example.com", phone="555-0101")
    assert r
    assert h.step == "results"
    assert h.status == "loading"
    assert h.interpreter.view().actions == []
    assert h.rendered[-1].config["loading"]["headline"] == "Crunching the numbers…"

    provider = MockResultsProvider(delay=0)
    r = h.fetch_results(provider)
    assert r
    assert h.status == "done"
    assert h.state.outcome["headline"] == "Your best matches"
    assert provider.calls[0]["lead"] == {"name": "Ada", "email": "ada@example.com", "phone": "555-0101"}


# ═══════════════════════════════════════════════════════
# Scenario 2: renter short-circuits
# ═══════════════════════════════════════════════════════

def test_s2_renter_ends_immediately(harness_factory):
    h = harness_factory("solar.yaml")
    h.start()
    h.advance()
    h.choose("rent")
    assert h.step == "renter_end"
    assert h.status == "done"
    assert h.context["answers"]["owner"] is False
    assert h.stack == []


# ═══════════════════════════════════════════════════════
# Scenario 3: flat roof detour inside the sub-flow
# ═══════════════════════════════════════════════════════

def test_s3_flat_roof_asks_for_note_then_returns(harness_factory):
    h = harness_factory("solar.yaml")
    _walk_to_contact(h, roof="flat")
    assert h.context["answers"]["roof"] == "flat"
    assert h.context["answers"]["roof_note"] == "gravel on top"


# ═══════════════════════════════════════════════════════
# Scenario 4: router default → callback
# ═══════════════════════════════════════════════════════

def test_s4_no_battery_with_phone_gets_callback(harness_factory):
    h = harness_factory("solar.yaml")
    _walk_to_contact(h)
    h.submit(name="Bo", email="bo@example.com", phone="555-0199")
    assert h.step == "callback_end"
    assert h.status == "done"


def test_s4b_no_phone_routes_to_results(harness_factory):
    h = harness_factory("solar.yaml")
    _walk_to_contact(h)
    h.submit(name="Bo", email="bo@example.com", phone="  ")
    assert h.step == "results"
    assert h.context["lead"]["phone"] == "  "


# ═══════════════════════════════════════════════════════
# Scenario 5: validation on the contact form
# ═══════════════════════════════════════════════════════

def test_s5_contact_requires_name_and_email(harness_factory):
    h = harness_factory("solar.yaml")
    _walk_to_contact(h)
    r = h.submit(phone="555")
    assert not r
    assert r.message == "Required: Name, Email"
    assert h.step == "contact"
    assert h.context["lead"] == {}

    r = h.submit(name="Cy", email="cy@example.com", phone="555")
    assert r
    assert h.context["lead"] == {"name": "Cy", "email": "cy@example.com", "phone": "555"}


# ═══════════════════════════════════════════════════════
# Scenario 6: redirect back into the top level and restart
# ═══════════════════════════════════════════════════════

def test_s6_redirect_and_restart(harness_factory):
    h = harness_factory("solar.yaml", seed=1)
    h.start()
    h.advance()
    h.choose("own")
    h.redirect("owner")
    assert h.step == "owner"
    assert h.stack == ["roof_check"]  # redirect keeps the current scope

    h.restart()
    assert h.step == "intro"
    assert h.stack == []
    assert "owner" not in h.context["answers"]
    assert h.context["system"]["variant"]["intro"]["headline"] in (
        "Go solar this summer", "Cut your energy bill",
    )


def test_s7_history_trail_covers_flow_entry_and_exit(harness_factory):
    h = harness_factory("solar.yaml")
    _walk_to_contact(h)
    actions = [e["action"] for e in reversed(h.get_history(100))]
    assert "enter_flow" in actions
    assert "exit_flow" in actions
    enter = next(e for e in h.get_history(100) if e["action"] == "enter_flow")
    assert enter["data"] == '"roof_check"'
