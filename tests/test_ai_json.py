import pytest

from app.services.ai_json import AIJSONError, parse_ai_json


def test_plain_json():
    assert parse_ai_json('{"hook": "Stop scrolling"}') == {"hook": "Stop scrolling"}


def test_fenced_json():
    text = '```json\n{"scenes": [{"title": "Intro"}]}\n```'
    assert parse_ai_json(text)["scenes"][0]["title"] == "Intro"


def test_fenced_block_inside_prose():
    text = 'Here is the strategy:\n```json\n{"cta": "Download now"}\n```\nLet me know!'
    assert parse_ai_json(text) == {"cta": "Download now"}


def test_first_balanced_object_in_prose():
    text = 'Sure! {"optimized_prompt": "Close-up {of} a phone", "negative_prompt": "blur"} Hope it helps.'
    data = parse_ai_json(text, required_keys=("optimized_prompt",))
    assert data["optimized_prompt"] == "Close-up {of} a phone"


def test_array_reply():
    assert parse_ai_json('Insights: [{"type": "info", "message": "ok"}]') == [{"type": "info", "message": "ok"}]


@pytest.mark.parametrize("text", ["", "   ", "no json here", "{broken"])
def test_unparseable_reply_raises(text):
    with pytest.raises(AIJSONError):
        parse_ai_json(text)


def test_missing_required_key_raises():
    with pytest.raises(AIJSONError, match="cta"):
        parse_ai_json('{"hook": "x"}', required_keys=("hook", "cta"))


def test_required_keys_need_an_object():
    with pytest.raises(AIJSONError):
        parse_ai_json("[1, 2]", required_keys=("scenes",))
