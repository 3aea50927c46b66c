"""
AI personnel research for venues.

Gemini models are tried in order, then Groq (Llama, OpenAI-compatible API)
as the last resort. A model that hits its quota or is unavailable is marked
exhausted in a ModelExhaustionRegistry and skipped for later venues until the
registry is reset. Any other provider error aborts the chain.

Phone-first policy: a venue without a phone gets a phone lookup before full
research; if no phone is found the venue is skipped and no research call is
made.
"""

import os
import re
import json
import time
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import google.generativeai as genai
import openai
from openai import OpenAI

from . import db
from .errors import (
    AllProvidersExhaustedError,
    ModelUnavailableError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Each Gemini model has its own quota
GEMINI_MODELS = [
    "gemini-2.0-flash",
    "gemini-1.5-flash",
    "gemini-1.5-flash-8b",
    "gemini-1.5-pro",
]
DEFAULT_GROQ_MODEL = "llama-3.3-70b-versatile"
DEFAULT_GROQ_BASE_URL = "https://api.groq.com/openai/v1"
AI_CALL_DELAY = 2.0  # seconds before every provider call
REQUEST_TIMEOUT = 60

DEFAULT_PRODUCT_DESCRIPTION = "our product/service"
NO_PHONE_NOTE = "Research aborted: No verifiable phone number found for this venue."

GENERIC_ROLE_NAMES = {"manager", "owner", "operator", "director", "coordinator", "founder", "ceo"}
PLACEHOLDER_NAMES = {"unknown", "n/a"}

RESEARCH_SYSTEM_PROMPT = "You are a lead generation research assistant. Always respond with valid JSON only."

_QUOTA_MARKERS = ("429", "resource_exhausted", "quota", "rate_limit", "rate limit")
_UNAVAILABLE_MARKERS = ("404", "not found", "not supported")
_PHONE_RE = re.compile(r"[\d+\-\s()]{7,}")
_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

def classify_ai_error(exc: Exception) -> Optional[Exception]:
    """
    Map a provider exception to QuotaExceededError / ModelUnavailableError.

    Returns None for errors that should abort the chain.
    """
    if isinstance(exc, (QuotaExceededError, ModelUnavailableError)):
        return exc
    if isinstance(exc, openai.RateLimitError):
        return QuotaExceededError(str(exc))
    if isinstance(exc, openai.NotFoundError):
        return ModelUnavailableError(str(exc))

    message = str(exc).lower()
    if any(marker in message for marker in _QUOTA_MARKERS):
        return QuotaExceededError(str(exc))
    if any(marker in message for marker in _UNAVAILABLE_MARKERS):
        return ModelUnavailableError(str(exc))
    return None


class GeminiProvider:
    """Google Gemini through google-generativeai."""

    name = "gemini"

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY environment variable is required")
        self._configured = False

    def complete(self, prompt: str, model: str, system: Optional[str] = None) -> str:
        if not self._configured:
            genai.configure(api_key=self.api_key)
            self._configured = True
        try:
            response = genai.GenerativeModel(model).generate_content(prompt)
            return response.text or ""
        except Exception as e:
            classified = classify_ai_error(e)
            if classified is None:
                raise
            raise classified from e


class GroqProvider:
    """Groq chat completions through the OpenAI SDK (OpenAI-compatible API)."""

    name = "groq"

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        api_key = api_key or os.getenv("GROQ_API_KEY")
        if not api_key:
            raise ValueError("GROQ_API_KEY environment variable is required")
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url or os.getenv("GROQ_BASE_URL") or DEFAULT_GROQ_BASE_URL,
        )

    def complete(self, prompt: str, model: str, system: Optional[str] = None) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=0.3,
                max_tokens=2000,
                timeout=REQUEST_TIMEOUT,
            )
        except Exception as e:
            classified = classify_ai_error(e)
            if classified is None:
                raise
            raise classified from e
        choice = response.choices[0] if response.choices else None
        if not choice or not getattr(choice, "message", None):
            return ""
        return choice.message.content or ""


# ---------------------------------------------------------------------------
# Prompting and parsing
# ---------------------------------------------------------------------------

def build_research_prompt(
    venue_name: str,
    venue_address: str,
    venue_types: Sequence[str],
    product_description: str,
    notes: Optional[Sequence[str]] = None,
) -> str:
    notes_block = ""
    if notes:
        notes_block = "\nCAMPAIGN NOTES:\n" + "\n".join(f"- {n}" for n in notes) + "\n"
    return f"""You are a lead generation research assistant. Research the following venue and find ALL key decision-makers (owner, general manager, director, operations manager, etc.).

VENUE INFORMATION:
- Name: {venue_name}
- Address: {venue_address}
- Type: {", ".join(venue_types)}

PRODUCT BEING SOLD:
{product_description}
{notes_block}
1. ONLY find personnel if you can discover their actual FULL NAMES (e.g., 'John Doe', 'Jane Smith').
2. DO NOT return generic results like 'General Manager' or 'Owner' if you cannot find a specific person's name associated with that role.
3. If you cannot find any specific personnel with verifiable names, return an empty list for the 'personnel' array.
4. For each person with a name, generate a concise, professional pitch tailored to their specific role.
5. Include any specific phone numbers or emails you can find.

Respond ONLY with valid JSON in this exact format:
{{
  "personnel": [
    {{
      "name": "Full Name",
      "title": "Their Title/Role",
      "phone": "phone number or null",
      "email": "email or null",
      "recommended_pitch": "A concise, personalized pitch for this person"
    }}
  ]
}}

If no people with specific names are found, return exactly: {{"personnel": []}}"""


def build_phone_prompt(venue_name: str, venue_address: str, venue_types: Sequence[str]) -> str:
    return f"""You are a research assistant. Find the official, current phone number for the following venue.

VENUE: {venue_name}
ADDRESS: {venue_address}
TYPES: {", ".join(venue_types)}

Respond ONLY with the phone number in international format (e.g. +1 555-0123) or the word "NONE" if you cannot verify a specific number for this specific location. No other text."""


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none"):
        return None
    return text


def parse_personnel_response(text: str) -> List[Dict]:
    """
    Extract personnel entries from an AI response.

    Accepts bare JSON or JSON inside a code fence. Drops entries whose name is
    empty, a placeholder, a generic role, or the same as the title. Malformed
    JSON yields an empty list.
    """
    raw = (text or "").strip()
    if not raw:
        return []

    fenced = _FENCE_RE.search(raw)
    if fenced:
        raw = fenced.group(1).strip()
    obj = _OBJECT_RE.search(raw)
    if obj:
        raw = obj.group(0)

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse AI response: %s; %s", e, (text or "")[:200])
        return []

    entries = data.get("personnel") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        return []

    personnel = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        name = str(entry.get("name") or "").strip()
        title = str(entry.get("title") or "Unknown").strip()
        lower_name = name.lower()

        if not name or lower_name in PLACEHOLDER_NAMES:
            continue
        # Same text in both fields means the model guessed a role, not a person
        if lower_name == title.lower():
            continue
        if lower_name in GENERIC_ROLE_NAMES:
            continue

        personnel.append({
            "name": name,
            "title": title,
            "phone": _clean(entry.get("phone")),
            "email": _clean(entry.get("email")),
            "recommended_pitch": str(entry.get("recommended_pitch") or "").strip(),
        })
    return personnel


def parse_phone_response(text: str) -> Optional[str]:
    """Phone number from a lookup response, or None for NONE / non-phone text."""
    value = (text or "").strip()
    if not value or value.upper() == "NONE":
        return None
    if _PHONE_RE.search(value):
        return value
    return None


# ---------------------------------------------------------------------------
# Fallback chain
# ---------------------------------------------------------------------------

class ModelExhaustionRegistry:
    """
    Models marked unusable (quota or availability) for the process lifetime.

    Shared by every chain that should skip the same models; reset() clears it.
    """

    def __init__(self):
        self._exhausted = set()

    def is_exhausted(self, model_key: str) -> bool:
        return model_key in self._exhausted

    def mark_exhausted(self, model_key: str) -> None:
        self._exhausted.add(model_key)

    def reset(self) -> None:
        self._exhausted.clear()

    @property
    def exhausted(self) -> List[str]:
        return sorted(self._exhausted)


@dataclass
class ResearchResult:
    personnel: List[Dict] = field(default_factory=list)
    raw_response: str = ""
    model_used: Optional[str] = None


class PersonnelResearchChain:
    """
    Ordered fallback over AI models.

    Args:
        primary: provider serving `models` in order (may be None)
        fallback: last-resort provider serving `fallback_model` (may be None)
        registry: shared ModelExhaustionRegistry
        call_delay: pause before every provider call, in seconds
    """

    def __init__(
        self,
        primary=None,
        models: Sequence[str] = GEMINI_MODELS,
        fallback=None,
        fallback_model: str = DEFAULT_GROQ_MODEL,
        registry: Optional[ModelExhaustionRegistry] = None,
        call_delay: float = AI_CALL_DELAY,
        sleep=time.sleep,
    ):
        self.primary = primary
        self.models = list(models) if primary is not None else []
        self.fallback = fallback
        self.fallback_model = fallback_model
        self.registry = registry if registry is not None else ModelExhaustionRegistry()
        self.call_delay = call_delay
        self._sleep = sleep

    @property
    def fallback_key(self) -> str:
        return f"{getattr(self.fallback, 'name', 'fallback')}/{self.fallback_model}"

    def research(
        self,
        venue: Dict,
        product_description: str,
        notes: Optional[Sequence[str]] = None,
    ) -> ResearchResult:
        """
        Find named decision-makers for a venue.

        Raises:
            AllProvidersExhaustedError: every model and the fallback are exhausted
            Exception: any non-quota provider error, unchanged
        """
        prompt = build_research_prompt(
            venue.get("name") or "",
            venue.get("address") or "",
            venue.get("types") or [],
            product_description or DEFAULT_PRODUCT_DESCRIPTION,
            notes,
        )

        for model in self.models:
            if self.registry.is_exhausted(model):
                logger.info(f"Skipping exhausted model: {model}")
                continue
            logger.info(f"Trying {self.primary.name} {model} for \"{venue.get('name')}\"")
            self._sleep(self.call_delay)
            try:
                text = self.primary.complete(prompt, model, system=RESEARCH_SYSTEM_PROMPT)
            except (QuotaExceededError, ModelUnavailableError) as e:
                logger.warning(f"{model} unavailable ({e}); trying next model")
                self.registry.mark_exhausted(model)
                continue
            return ResearchResult(parse_personnel_response(text), text, model)

        if self.fallback is None or self.registry.is_exhausted(self.fallback_key):
            raise AllProvidersExhaustedError(
                "All AI providers exhausted. Please wait for quota reset."
            )

        logger.info(f"All primary models exhausted; falling back to {self.fallback_key}")
        self._sleep(self.call_delay)
        try:
            text = self.fallback.complete(prompt, self.fallback_model, system=RESEARCH_SYSTEM_PROMPT)
        except (QuotaExceededError, ModelUnavailableError) as e:
            self.registry.mark_exhausted(self.fallback_key)
            raise AllProvidersExhaustedError(
                "All AI providers exhausted. Please wait for quota reset."
            ) from e
        return ResearchResult(parse_personnel_response(text), text, self.fallback_key)

    def find_phone(self, name: str, address: str, types: Sequence[str]) -> Optional[str]:
        """
        Look up a venue's phone number. Never raises for provider errors;
        a failed lookup is the same as no number.
        """
        prompt = build_phone_prompt(name, address, types or [])

        for model in self.models:
            if self.registry.is_exhausted(model):
                continue
            self._sleep(self.call_delay)
            try:
                return parse_phone_response(self.primary.complete(prompt, model))
            except (QuotaExceededError, ModelUnavailableError) as e:
                logger.warning(f"Phone lookup: {model} unavailable ({e})")
                self.registry.mark_exhausted(model)
            except Exception as e:
                logger.warning(f"Phone lookup failed on {model}: {e}")

        if self.fallback is None or self.registry.is_exhausted(self.fallback_key):
            return None

        self._sleep(self.call_delay)
        try:
            return parse_phone_response(self.fallback.complete(prompt, self.fallback_model))
        except (QuotaExceededError, ModelUnavailableError) as e:
            logger.warning(f"Phone lookup: {self.fallback_key} unavailable ({e})")
            self.registry.mark_exhausted(self.fallback_key)
        except Exception as e:
            logger.warning(f"Phone lookup failed on {self.fallback_key}: {e}")
        return None


def build_default_chain(registry: Optional[ModelExhaustionRegistry] = None) -> PersonnelResearchChain:
    """Chain from environment keys; a provider without a key is left out."""
    primary = GeminiProvider() if os.getenv("GEMINI_API_KEY") else None
    fallback = GroqProvider() if os.getenv("GROQ_API_KEY") else None
    if primary is None and fallback is None:
        logger.warning("Neither GEMINI_API_KEY nor GROQ_API_KEY is set; research will fail")
    return PersonnelResearchChain(
        primary=primary,
        fallback=fallback,
        fallback_model=os.getenv("GROQ_MODEL") or DEFAULT_GROQ_MODEL,
        registry=registry,
    )


# ---------------------------------------------------------------------------
# Venue-level orchestration
# ---------------------------------------------------------------------------

def _campaign_notes(campaign_id: str) -> List[str]:
    """Distinct custom notes across the campaign's rules."""
    notes = []
    for rule in db.list_campaign_rules(campaign_id):
        note = (rule.get("custom_notes") or "").strip()
        if note and note not in notes:
            notes.append(note)
    return notes


def research_venue(venue_id: str, chain: PersonnelResearchChain) -> Dict:
    """
    Research one stored venue and persist the outcome.

    Returns:
        {"venue", "aborted": True, "reason", "message"} when skipped for no
        phone, else {"venue", "personnelFound", "personnel", "modelUsed"}
    """
    if not venue_id:
        raise ValidationError("Missing venueId")

    venue = db.get_venue(venue_id)
    if not venue:
        raise NotFoundError("Venue not found")

    campaign = db.get_campaign(venue["campaign_id"]) or {}
    product_description = campaign.get("product_description") or DEFAULT_PRODUCT_DESCRIPTION

    phone = venue.get("phone")
    if not phone:
        logger.info(f"No phone stored for \"{venue['name']}\", researching...")
        phone = chain.find_phone(venue["name"], venue.get("address") or "", venue.get("types") or [])
        if phone:
            logger.info(f"Found phone for \"{venue['name']}\": {phone}")
            db.update_venue(venue_id, phone=phone)

    if not phone:
        logger.info(f"Aborting research: no phone found for \"{venue['name']}\"")
        db.update_venue(venue_id, status="skipped", ai_research_raw=NO_PHONE_NOTE)
        return {
            "venue": venue["name"],
            "aborted": True,
            "reason": "no_phone",
            "message": "No phone number found. Research aborted to save quota.",
        }

    result = chain.research(
        {**venue, "phone": phone},
        product_description,
        notes=_campaign_notes(venue["campaign_id"]),
    )

    inserted = [db.insert_venue_personnel(venue_id, person) for person in result.personnel]
    db.update_venue(venue_id, status="researched", ai_research_raw=result.raw_response)
    logger.info(f"\"{venue['name']}\": {len(inserted)} personnel via {result.model_used}")

    return {
        "venue": venue["name"],
        "personnelFound": len(inserted),
        "personnel": inserted,
        "modelUsed": result.model_used,
    }


def research_venues(venue_ids: List[str], chain: PersonnelResearchChain) -> Dict:
    """
    Research venues one after another.

    Per-venue failures are collected; the batch stops once every AI provider
    is exhausted since nothing after that can succeed.
    """
    researched = 0
    skipped = 0
    errors: List[str] = []

    for venue_id in venue_ids:
        try:
            outcome = research_venue(venue_id, chain)
        except AllProvidersExhaustedError as e:
            errors.append(f"{venue_id}: {e}")
            logger.error(f"Stopping batch research: {e}")
            break
        except Exception as e:
            logger.warning(f"Research failed for venue {venue_id}: {e}")
            errors.append(f"{venue_id}: {e}")
            continue
        if outcome.get("aborted"):
            skipped += 1
        else:
            researched += 1

    return {
        "researched": researched,
        "skipped": skipped,
        "total": len(venue_ids),
        "errors": errors,
    }
