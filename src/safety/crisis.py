"""Crisis-language detection and the fixed emergency resource texts.

Classification is a pure lexical check over two keyword tiers. Matching is
case-insensitive substring matching with no negation handling, so
"I don't want to kill myself" still classifies as severe. That sensitivity
is intentional; changing it changes who gets the emergency response.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

# Severe tier: chat is disabled and only emergency resources are returned.
SEVERE_CRISIS_KEYWORDS: tuple[str, ...] = (
    "suicide",
    "kill myself",
    "end my life",
    "commit suicide",
    "suicidal",
    "want to die",
    "end it all",
    "better off dead",
    "no reason to live",
    "planning to die",
    "going to kill",
    "hang myself",
    "jump off",
    "overdose on purpose",
)

# Concern tier: the conversation continues with resources appended.
CRISIS_KEYWORDS: tuple[str, ...] = (
    # Self-harm indicators
    "hurt myself",
    "self harm",
    "cut myself",
    "overdose",
    # Severe distress
    "can't go on",
    "give up on life",
    "hopeless",
    "worthless",
    "no point in living",
)


class CrisisSeverity(StrEnum):
    NONE = "none"
    CONCERN = "concern"
    SEVERE = "severe"


@dataclass(frozen=True)
class CrisisVerdict:
    """Classification of a single message."""

    severity: CrisisSeverity
    matched: str | None = None

    @property
    def is_crisis(self) -> bool:
        """True for both tiers (severe implies concern)."""
        return self.severity is not CrisisSeverity.NONE

    @property
    def is_severe(self) -> bool:
        return self.severity is CrisisSeverity.SEVERE


def _first_match(text: str, keywords: tuple[str, ...]) -> str | None:
    for keyword in keywords:
        if keyword in text:
            return keyword
    return None


def is_severe_crisis(message: str) -> bool:
    """True if *message* contains a severe-tier keyword."""
    return _first_match(message.lower(), SEVERE_CRISIS_KEYWORDS) is not None


def is_crisis(message: str) -> bool:
    """True if *message* contains any crisis keyword from either tier."""
    lowered = message.lower()
    return (
        _first_match(lowered, CRISIS_KEYWORDS) is not None
        or _first_match(lowered, SEVERE_CRISIS_KEYWORDS) is not None
    )


def classify(message: str) -> CrisisVerdict:
    """Classify *message* into none / concern / severe.

    The severe tier is checked first. Never raises; non-string input is
    treated as an empty message.
    """
    if not isinstance(message, str) or not message:
        return CrisisVerdict(CrisisSeverity.NONE)

    lowered = message.lower()
    severe = _first_match(lowered, SEVERE_CRISIS_KEYWORDS)
    if severe:
        return CrisisVerdict(CrisisSeverity.SEVERE, matched=severe)

    concern = _first_match(lowered, CRISIS_KEYWORDS)
    if concern:
        return CrisisVerdict(CrisisSeverity.CONCERN, matched=concern)

    return CrisisVerdict(CrisisSeverity.NONE)


# -- Resources ---------------------------------------------------------------


@dataclass(frozen=True)
class Hotline:
    name: str
    number: str
    hours: str


HOTLINES: tuple[Hotline, ...] = (
    Hotline("AASRA - 24/7 Suicide Prevention", "91-9820466726", "24/7"),
    Hotline("Vandrevala Foundation", "1860-2662-345 / 1800-2333-330", "24/7"),
    Hotline("iCall - Psychological Support", "9152987821", "Mon-Sat, 8 AM - 10 PM"),
    Hotline("NIMHANS Crisis Helpline", "080-46110007", "Mon-Sat, 9 AM - 5:30 PM"),
)

CAMPUS_RESOURCES: tuple[Hotline, ...] = (
    Hotline("Campus Counseling Center", "Visit the Student Welfare Office", "During college hours"),
    Hotline("Emergency Services", "108 (Ambulance)", "24/7"),
)

INTERNATIONAL_HELPLINES = "https://findahelpline.com"


def severe_emergency_text() -> str:
    """Fixed reply for a severe crisis. Chat is disabled after this."""
    lines = [
        "🚨 **EMERGENCY - PLEASE SEEK IMMEDIATE HELP** 🚨",
        "",
        "I'm deeply concerned about what you've shared. "
        "**This chat cannot provide the urgent support you need right now.**",
        "",
        "**Please contact one of these resources IMMEDIATELY:**",
        "",
        "**24/7 Crisis Hotlines (Call NOW):**",
    ]
    lines += [f"• **{h.name}**: **{h.number}** ({h.hours})" for h in HOTLINES]
    lines += [
        "",
        "**Emergency Services:**",
        "• **Call 108** for immediate medical assistance",
        "• Visit the nearest hospital emergency room",
        "• Contact campus security or go to the Student Welfare Office",
        "",
        "**Please tell someone you trust right now:**",
        "• A friend or family member",
        "• Your roommate or hostel warden",
        "• A professor or counselor",
        "",
        f"Outside India, find a local helpline at {INTERNATIONAL_HELPLINES}",
        "",
        "**Your life matters. Professional help is available. You are not alone.**",
        "",
        "*This chat is temporarily disabled for your safety. Please use the resources above.*",
    ]
    return "\n".join(lines)


def emergency_resources_text() -> str:
    """Resource block appended verbatim to replies for concern-tier messages."""
    lines = [
        "🚨 **IMMEDIATE HELP AVAILABLE** 🚨",
        "",
        "I'm concerned about your safety. Please reach out to one of these resources right now:",
        "",
        "**24/7 Crisis Hotlines:**",
    ]
    lines += [f"• **{h.name}**: {h.number} ({h.hours})" for h in HOTLINES]
    lines += ["", "**Campus Resources:**"]
    lines += [f"• **{r.name}**: {r.number} ({r.hours})" for r in CAMPUS_RESOURCES]
    lines += [
        "",
        "**If this is an emergency:**",
        "• Call **108** for immediate medical assistance",
        "• Visit the nearest hospital emergency room",
        "• Contact campus security or a trusted friend/family member",
        "",
        "**You are not alone. Help is available, and people care about you.**",
    ]
    return "\n".join(lines)


def crisis_prompt_addition() -> str:
    """Extra system instructions for replies to concern-tier messages."""
    return (
        "CRITICAL SAFETY ALERT: the student's message contains indicators of "
        "potential self-harm or severe distress.\n"
        "You must:\n"
        "1. Express immediate concern and empathy.\n"
        "2. Strongly encourage them to contact crisis resources now.\n"
        "3. Emphasise that their life has value and help is available.\n"
        "4. Suggest they speak with a trusted person (friend, family, counselor) right now.\n"
        "5. Avoid generic advice; this needs professional support.\n"
        "Crisis hotline details are attached to your reply automatically, "
        "so do not list phone numbers yourself."
    )
