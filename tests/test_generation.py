import asyncio
import json
import logging

import pytest

from fakes import (
    HARASSMENT_VERDICT,
    PNG_BYTES,
    SAFE_VERDICT,
    THREE_OPTIONS,
    FakeGemini,
    make_generator,
    png_image,
)
from wingman.errors import ContentRejected, ErrorKind, GenerationFailed
from wingman.generation import REPLY_SCHEMA, SCREENSHOT_ONLY_INSTRUCTION, SPEECHLESS_MESSAGE


def test_text_only_request_quotes_message_without_image_part():
    gemini = FakeGemini(SAFE_VERDICT, THREE_OPTIONS)
    response = asyncio.run(make_generator(gemini).generate_replies("Ki koro?"))

    assert [option.title for option in response.options] == ["Playful", "Sweet", "Cool"]
    generation_call = gemini.calls[1]
    assert generation_call["model"] == "replies-model"
    assert generation_call["response_schema"] == REPLY_SCHEMA
    parts = generation_call["parts"]
    assert len(parts) == 2
    assert "Desi Wingman" in parts[0]["text"]
    assert parts[1] == {"text": 'Her message text: "Ki koro?"'}
    assert all("data" not in part for part in parts)


def test_image_only_request_adds_screenshot_instruction():
    gemini = FakeGemini(THREE_OPTIONS)
    asyncio.run(make_generator(gemini).generate_replies("", png_image()))

    assert len(gemini.calls) == 1
    parts = gemini.calls[0]["parts"]
    assert parts[1] == {"mime_type": "image/png", "data": PNG_BYTES}
    assert parts[2] == {"text": SCREENSHOT_ONLY_INSTRUCTION}
    assert len(parts) == 3


def test_image_and_text_request_has_no_fallback_instruction():
    gemini = FakeGemini(SAFE_VERDICT, THREE_OPTIONS)
    asyncio.run(make_generator(gemini).generate_replies("What's up?", png_image()))

    parts = gemini.calls[1]["parts"]
    assert parts[2] == {"text": 'Her message text: "What\'s up?"'}
    assert {"text": SCREENSHOT_ONLY_INSTRUCTION} not in parts


def test_rejected_text_never_reaches_generation():
    gemini = FakeGemini(HARASSMENT_VERDICT)
    with pytest.raises(ContentRejected) as excinfo:
        asyncio.run(make_generator(gemini).generate_replies("something nasty"))

    assert excinfo.value.kind is ErrorKind.CONTENT_REJECTED
    assert "inappropriate" in excinfo.value.message
    assert len(gemini.calls) == 1


def test_moderation_outage_fails_open():
    gemini = FakeGemini(ConnectionError("moderation down"), THREE_OPTIONS)
    response = asyncio.run(make_generator(gemini).generate_replies("Ki koro?"))
    assert len(response.options) == 3


@pytest.mark.parametrize("raw", ['{"options": []}', '{"something": "else"}'])
def test_missing_or_empty_options_fail(raw):
    gemini = FakeGemini(SAFE_VERDICT, raw)
    with pytest.raises(GenerationFailed) as excinfo:
        asyncio.run(make_generator(gemini).generate_replies("Ki koro?"))
    assert excinfo.value.message == SPEECHLESS_MESSAGE


def test_non_json_response_fails():
    gemini = FakeGemini(SAFE_VERDICT, "Sure! Here are some replies")
    with pytest.raises(GenerationFailed) as excinfo:
        asyncio.run(make_generator(gemini).generate_replies("Ki koro?"))
    assert excinfo.value.kind is ErrorKind.GENERATION_FAILED


def test_option_missing_reply_fails():
    gemini = FakeGemini(SAFE_VERDICT, json.dumps({"options": [{"title": "Playful"}]}))
    with pytest.raises(GenerationFailed):
        asyncio.run(make_generator(gemini).generate_replies("Ki koro?"))


def test_transport_failure_is_wrapped():
    gemini = FakeGemini(SAFE_VERDICT, RuntimeError("503 model overloaded"))
    with pytest.raises(GenerationFailed) as excinfo:
        asyncio.run(make_generator(gemini).generate_replies("Ki koro?"))
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert "Wingman" in excinfo.value.message


def test_fewer_than_three_options_are_accepted_with_warning(caplog):
    raw = json.dumps({"options": [{"title": "Cool", "reply": "Chill, tumi?"}]})
    gemini = FakeGemini(SAFE_VERDICT, raw)
    with caplog.at_level(logging.WARNING, logger="wingman.generation"):
        response = asyncio.run(make_generator(gemini).generate_replies("Ki koro?"))

    assert len(response.options) == 1
    assert "expected 3" in caplog.text


def test_json_wrapped_in_code_fence_is_parsed():
    gemini = FakeGemini(SAFE_VERDICT, "```json\n" + THREE_OPTIONS + "\n```")
    response = asyncio.run(make_generator(gemini).generate_replies("Ki koro?"))
    assert len(response.options) == 3
