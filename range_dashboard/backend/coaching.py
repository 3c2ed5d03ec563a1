# backend/coaching.py
"""
Coaching advice for a finished session.

A fixed tip table picks what applies to the shooter's level and numbers, and a
chat-completion model turns that plus the raw session data into the final
ordered list of tips.
"""
import asyncio
import json
import re
from typing import List, Sequence

import aiohttp # type: ignore
from . import config
from .state import Shot, Metrics

BEGINNER_TIPS = [
    "Focus on aligning your sights properly.",
    "Practice your stance for better stability.",
    "Dry fire practice can help improve trigger control.",
]

INTERMEDIATE_TIPS = [
    "Work on reducing trigger anticipation.",
    "Refine your grip for better recoil management.",
    "Incorporate breathing techniques for steadier aim.",
]

ADVANCED_TIPS = [
    "Practice rapid target acquisition.",
    "Analyze your shot patterns to identify subtle errors.",
    "Experiment with different shooting positions for versatility.",
]

SYSTEM_PROMPT = (
    "You are an experienced marksmanship coach. You review one practice session "
    "at a time and give short, specific, actionable tips. "
    'Reply with JSON only: {"coachingAdvice": ["tip", ...]}.'
)

# Threshold triggers, in image px / shots per minute
WIDE_GROUP_PX = 80.0
LARGE_OFFSET_PX = 60.0
ERRATIC_CONSISTENCY_PX = 20.0
HURRIED_CADENCE = 30.0


def applicable_tips(skill_level: str, metrics: Metrics) -> List[str]:
    """Tips for this skill level plus any the session's numbers call for."""
    level = (skill_level or "").strip().lower()
    if level == "beginner":
        tips = list(BEGINNER_TIPS)
    elif level == "intermediate":
        tips = list(INTERMEDIATE_TIPS)
    else:
        tips = list(ADVANCED_TIPS)

    if metrics.group_size > WIDE_GROUP_PX:
        tips.append("Practice dry firing to improve trigger control and reduce movement.")
    if metrics.group_offset > LARGE_OFFSET_PX:
        tips.append("Your group is off center: confirm your zero and adjust your sights.")
    if metrics.consistency > ERRATIC_CONSISTENCY_PX:
        tips.append("Focus on consistent sight alignment and trigger pull.")
    if metrics.cadence > HURRIED_CADENCE:
        tips.append("Slow down and settle the sights before each shot.")
    return tips


def build_prompt(shots: Sequence[Shot], metrics: Metrics, skill_level: str) -> str:
    coords = [{"x": round(s.x, 1), "y": round(s.y, 1)} for s in shots]
    tips = applicable_tips(skill_level, metrics)
    return (
        "Analyze the following shooting session data to provide personalized coaching advice.\n\n"
        "Shooting Session Data:\n"
        f"Shots: {json.dumps(coords)}\n"
        f"Metrics: {json.dumps(metrics.to_dict())}\n"
        f"User Skill Level: {skill_level}\n\n"
        "Tips that apply to this shooter:\n"
        + "\n".join(f"- {t}" for t in tips)
        + "\n\nBased on the user's skill level and shooting data, choose the most relevant "
        "of these tips and explain what to work on next."
    )


def parse_advice(text: str) -> List[str]:
    """Pull the tip list out of a model reply (JSON, or a bullet/numbered list)."""
    text = (text or "").strip()
    if not text:
        return []

    # models sometimes wrap JSON in a code fence
    fenced = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    candidate = fenced.group(1) if fenced else text
    try:
        data = json.loads(candidate)
    except ValueError:
        data = None

    if isinstance(data, dict):
        data = data.get("coachingAdvice") or data.get("advice") or []
    if isinstance(data, list):
        return [str(t).strip() for t in data if str(t).strip()]

    tips = []
    for line in text.splitlines():
        line = re.sub(r"^\s*(?:[-*•]|\d+[.)])\s*", "", line).strip()
        if line:
            tips.append(line)
    return tips


async def generate_advice(shots: Sequence[Shot], metrics: Metrics, skill_level: str = None) -> List[str]:
    """
    Ask the coaching model for an ordered list of tips.

    Returns [] if the call fails. Without an API key the tip table is used as is.
    """
    skill_level = skill_level or config.DEFAULT_SKILL_LEVEL
    if not config.COACH_API_KEY:
        print("[COACH] COACH_API_KEY not set - using built-in tips")
        return applicable_tips(skill_level, metrics)

    payload = {
        "model": config.COACH_MODEL,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_prompt(shots, metrics, skill_level)},
        ],
        "temperature": 0.4,
    }
    headers = {
        "Authorization": f"Bearer {config.COACH_API_KEY}",
        "Content-Type": "application/json",
    }

    try:
        timeout = aiohttp.ClientTimeout(total=config.HTTP_TIMEOUT_S * 2)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(config.COACH_API_URL, json=payload, headers=headers) as resp:
                if resp.status != 200:
                    print(f"[COACH] Coaching API error: HTTP {resp.status} {await resp.text()}")
                    return []
                data = await resp.json(content_type=None)
        content = data["choices"][0]["message"]["content"]
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        print(f"[COACH] Coaching request failed: {e}")
        return []
    except (KeyError, IndexError, TypeError) as e:
        print(f"[COACH] Unexpected coaching response: {e}")
        return []

    advice = parse_advice(content)
    print(f"[COACH] Generated {len(advice)} tip(s) for {skill_level} shooter")
    return advice
