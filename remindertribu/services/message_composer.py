"""Reminder texts sent to members (Italian, like the rest of the member base)."""

from __future__ import annotations

from typing import Any

from remindertribu.models.records import NAME_FIELDS, MemberRecord

FALLBACK_GREETING = "Ciao"


def first_name(member: MemberRecord) -> str | None:
    for key in NAME_FIELDS:
        value = member.get(key)
        if value is None:
            continue
        tokens = str(value).split()
        if tokens:
            return tokens[0]
    return None


def compose_message(member: MemberRecord, days_left: int) -> str:
    name = (first_name(member) or FALLBACK_GREETING).upper()
    plan = member.plan_label
    if days_left > 0:
        return f"{name}, promemoria: il tuo {plan} scade tra {days_left} giorno/i. Vuoi rinnovare ora? 💪"
    if days_left == 0:
        return f"{name}, promemoria: il tuo {plan} scade OGGI. Vuoi rinnovare ora? 💪"
    return f"{name}, promemoria: il tuo {plan} è scaduto da {abs(days_left)} giorno/i. Vuoi riattivarlo? 💪"


def template_components(member: MemberRecord, days_left: int) -> list[dict[str, Any]]:
    """Body parameters for the approved reminder template: name, days, plan."""
    return [
        {
            "type": "body",
            "parameters": [
                {"type": "text", "text": first_name(member) or ""},
                {"type": "text", "text": str(days_left)},
                {"type": "text", "text": member.plan_label},
            ],
        }
    ]
