"""
Test the personnel research chain: model order, exhaustion, fallback,
phone-first abort, and response parsing.
"""

import os
import sys

import pytest

_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _root)

from conftest import FakeAIProvider
from leadgen import db
from leadgen.errors import AllProvidersExhaustedError, ModelUnavailableError, QuotaExceededError
from leadgen.research import (
    NO_PHONE_NOTE,
    ModelExhaustionRegistry,
    PersonnelResearchChain,
    classify_ai_error,
    parse_personnel_response,
    parse_phone_response,
    research_venue,
    research_venues,
)
from leadgen.rules import CampaignRule

MODELS = ["m1", "m2", "m3"]

ONE_PERSON = '{"personnel": [{"name": "Ada Lovelace", "title": "Owner", "phone": null, "email": "ada@example.com", "recommended_pitch": "Hi Ada"}]}'


def _venue(**overrides):
    base = {"name": "Bean There", "address": "1 High St", "types": ["cafe"], "phone": "+1 555 0100"}
    base.update(overrides)
    return base


def _chain(primary_script=None, fallback_script=None, fallback=True, registry=None):
    primary = FakeAIProvider("gemini", primary_script)
    backup = FakeAIProvider("groq", fallback_script) if fallback else None
    chain = PersonnelResearchChain(
        primary=primary,
        models=MODELS,
        fallback=backup,
        fallback_model="llama",
        registry=registry or ModelExhaustionRegistry(),
        call_delay=0,
        sleep=lambda s: None,
    )
    return chain, primary, backup


# ---------------------------------------------------------------------------
# Fallback chain
# ---------------------------------------------------------------------------

def test_first_model_answers():
    chain, primary, backup = _chain({"m1": ONE_PERSON})
    result = chain.research(_venue(), "Coffee")
    assert result.model_used == "m1"
    assert [p["name"] for p in result.personnel] == ["Ada Lovelace"]
    assert [c[0] for c in primary.calls] == ["m1"]
    assert backup.calls == []


def test_quota_moves_to_next_model_and_marks_exhausted():
    registry = ModelExhaustionRegistry()
    chain, primary, _ = _chain(
        {"m1": QuotaExceededError("429"), "m2": ModelUnavailableError("404 not found"), "m3": ONE_PERSON},
        registry=registry,
    )
    result = chain.research(_venue(), "Coffee")
    assert result.model_used == "m3"
    assert registry.exhausted == ["m1", "m2"]

    # Exhausted models are skipped on the next call
    primary.calls.clear()
    chain.research(_venue(), "Coffee")
    assert [c[0] for c in primary.calls] == ["m3"]


def test_fallback_after_all_primary_models():
    chain, primary, backup = _chain({}, {"llama": ONE_PERSON})
    result = chain.research(_venue(), "Coffee")
    assert result.model_used == "groq/llama"
    assert [c[0] for c in primary.calls] == MODELS
    assert len(backup.calls) == 1


def test_everything_exhausted():
    registry = ModelExhaustionRegistry()
    chain, _, _ = _chain({}, {}, registry=registry)
    with pytest.raises(AllProvidersExhaustedError):
        chain.research(_venue(), "Coffee")
    assert "groq/llama" in registry.exhausted

    # Registry reset makes models eligible again
    registry.reset()
    assert registry.exhausted == []


def test_no_fallback_configured():
    chain, _, _ = _chain({}, fallback=False)
    with pytest.raises(AllProvidersExhaustedError):
        chain.research(_venue(), "Coffee")


def test_other_errors_propagate_without_exhausting():
    registry = ModelExhaustionRegistry()
    chain, _, _ = _chain({"m1": RuntimeError("bad prompt")}, registry=registry)
    with pytest.raises(RuntimeError):
        chain.research(_venue(), "Coffee")
    assert registry.exhausted == []


def test_prompt_includes_product_and_notes():
    chain, primary, _ = _chain({"m1": '{"personnel": []}'})
    chain.research(_venue(), "Oat milk supply", notes=["Ask about weekend volume"])
    prompt = primary.calls[0][1]
    assert "Oat milk supply" in prompt
    assert "Ask about weekend volume" in prompt
    assert "Bean There" in prompt


def test_classify_ai_error_markers():
    assert isinstance(classify_ai_error(Exception("RESOURCE_EXHAUSTED: quota")), QuotaExceededError)
    assert isinstance(classify_ai_error(Exception("models/x is not supported")), ModelUnavailableError)
    assert classify_ai_error(Exception("invalid argument")) is None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def test_parse_fenced_json_and_filters_generic_names():
    text = """Here you go:
```json
{"personnel": [
  {"name": "Manager", "title": "General Manager"},
  {"name": "Owner", "title": "Owner"},
  {"name": "unknown", "title": "Director"},
  {"name": "", "title": "Chef"},
  {"name": "Grace Hopper", "title": "Operations Manager", "phone": "null", "recommended_pitch": "Hello"}
]}
```"""
    personnel = parse_personnel_response(text)
    assert personnel == [{
        "name": "Grace Hopper",
        "title": "Operations Manager",
        "phone": None,
        "email": None,
        "recommended_pitch": "Hello",
    }]


def test_parse_malformed_is_empty():
    assert parse_personnel_response("no json here") == []
    assert parse_personnel_response('{"personnel": "none"}') == []
    assert parse_personnel_response("") == []


def test_parse_phone():
    assert parse_phone_response("NONE") is None
    assert parse_phone_response("  none ") is None
    assert parse_phone_response("I could not find it") is None
    assert parse_phone_response("+1 555-0123") == "+1 555-0123"


# ---------------------------------------------------------------------------
# Venue-level orchestration
# ---------------------------------------------------------------------------

def _stored_venue(phone=None):
    campaign = db.create_campaign("Beans", "Wholesale coffee")
    db.create_campaign_rules(campaign["id"], [CampaignRule(venue_type="cafe", custom_notes="Mention free tasting")])
    return db.insert_venue({
        "campaign_id": campaign["id"],
        "fsq_id": "v1",
        "name": "Bean There",
        "address": "1 High St",
        "phone": phone,
        "types": ["cafe"],
    })


def test_research_venue_persists_personnel(temp_db):
    venue = _stored_venue(phone="+1 555 0100")
    chain, primary, _ = _chain({"m1": ONE_PERSON})

    outcome = research_venue(venue["id"], chain)

    assert outcome["personnelFound"] == 1
    assert outcome["modelUsed"] == "m1"
    stored = db.get_venue(venue["id"])
    assert stored["status"] == "researched"
    assert stored["ai_research_raw"] == ONE_PERSON
    assert db.get_personnel_by_venues([venue["id"]])[venue["id"]][0]["email"] == "ada@example.com"
    assert "Mention free tasting" in primary.calls[0][1]


def test_phone_lookup_then_research(temp_db):
    venue = _stored_venue(phone=None)
    chain, primary, _ = _chain()

    # First call answers the phone lookup, second the research
    answers = iter(["+1 555 0199", ONE_PERSON])
    primary.complete = lambda prompt, model, system=None: next(answers)

    outcome = research_venue(venue["id"], chain)

    assert outcome["personnelFound"] == 1
    assert db.get_venue(venue["id"])["phone"] == "+1 555 0199"


def test_found_phone_survives_failed_research(temp_db):
    venue = _stored_venue(phone=None)
    chain, primary, _ = _chain()

    def complete(prompt, model, system=None):
        if not primary.calls:
            primary.calls.append((model, prompt))
            return "+1 555 0199"
        raise RuntimeError("connection reset")

    primary.complete = complete

    with pytest.raises(RuntimeError):
        research_venue(venue["id"], chain)

    stored = db.get_venue(venue["id"])
    assert stored["phone"] == "+1 555 0199"
    assert stored["status"] == "new"
    assert db.get_personnel_by_venues([venue["id"]]) == {}


def test_no_phone_aborts_before_research(temp_db):
    venue = _stored_venue(phone=None)
    chain, primary, backup = _chain({"m1": "NONE"})

    outcome = research_venue(venue["id"], chain)

    assert outcome["aborted"] is True
    assert outcome["reason"] == "no_phone"
    # Only the phone lookup ran
    assert len(primary.calls) == 1
    assert backup.calls == []
    stored = db.get_venue(venue["id"])
    assert stored["status"] == "skipped"
    assert stored["ai_research_raw"] == NO_PHONE_NOTE
    assert db.get_personnel_by_venues([venue["id"]]) == {}


def test_batch_stops_when_providers_exhausted(temp_db):
    first = _stored_venue(phone="+1 555 0100")
    second = db.insert_venue({
        "campaign_id": first["campaign_id"],
        "fsq_id": "v2",
        "name": "Second Cup",
        "phone": "+1 555 0101",
    })
    chain, primary, _ = _chain({}, {})

    result = research_venues([first["id"], second["id"]], chain)

    assert result["researched"] == 0
    assert result["total"] == 2
    assert len(result["errors"]) == 1
    assert db.get_venue(second["id"])["status"] == "new"
