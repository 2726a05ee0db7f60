"""Tests for reminder message texts."""
from remindertribu.models.records import MemberRecord
from remindertribu.services.message_composer import compose_message, first_name, template_components


def _member(**data):
    return MemberRecord(id="m1", data=data)


def test_future_expiry_message():
    text = compose_message(_member(nome="Giulia Maria", plan="Open Gym"), 2)
    assert text.startswith("GIULIA,")
    assert "Open Gym" in text
    assert "scade tra 2 giorno" in text
    assert "rinnovare" in text


def test_expiry_today_message():
    text = compose_message(_member(nome="Luca", plan="Pilates"), 0)
    assert "scade OGGI" in text
    assert "Pilates" in text


def test_expired_message_uses_absolute_days():
    text = compose_message(_member(nome="Luca", tesseramento="Annuale"), -4)
    assert "scaduto da 4 giorno" in text
    assert "riattivarlo" in text
    assert "Annuale" in text


def test_fallbacks_for_name_and_plan():
    text = compose_message(_member(), 3)
    assert text.startswith("CIAO,")
    assert "il tuo tesseramento" in text


def test_first_name_prefers_nome_then_full_name():
    assert first_name(_member(fullName="Anna Rossi")) == "Anna"
    assert first_name(_member(nome="  ", fullName="Anna Rossi")) == "Anna"
    assert first_name(_member(cognome="Bianchi")) == "Bianchi"
    assert first_name(_member()) is None


def test_template_components_carry_name_days_plan():
    components = template_components(_member(nome="Sara", plan="Crossfit"), 5)
    params = [p["text"] for p in components[0]["parameters"]]
    assert params == ["Sara", "5", "Crossfit"]
