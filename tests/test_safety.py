import asyncio

import pytest

from fakes import HARASSMENT_VERDICT, SAFE_VERDICT, FakeGemini, make_safety
from wingman.errors import ContentRejected, ErrorKind
from wingman.safety import VERDICT_SCHEMA


@pytest.mark.parametrize("text", ["", "   ", "\n\t "])
def test_blank_text_skips_model_call(text):
    gemini = FakeGemini()
    asyncio.run(make_safety(gemini).check_content(text))
    assert gemini.calls == []


def test_clean_text_passes_with_schema_constrained_call():
    gemini = FakeGemini(SAFE_VERDICT)
    asyncio.run(make_safety(gemini).check_content("Ki koro?"))

    assert len(gemini.calls) == 1
    call = gemini.calls[0]
    assert call["model"] == "moderation-model"
    assert call["response_schema"] == VERDICT_SCHEMA
    assert call["parts"][0]["text"].endswith("Ki koro?")


def test_positive_verdict_raises_content_rejected_with_reason():
    gemini = FakeGemini(HARASSMENT_VERDICT)
    with pytest.raises(ContentRejected) as excinfo:
        asyncio.run(make_safety(gemini).check_content("something nasty"))

    assert excinfo.value.kind is ErrorKind.CONTENT_REJECTED
    assert excinfo.value.reason == "harassment"
    assert "inappropriate" in excinfo.value.message
    assert "harassment" in excinfo.value.message


def test_positive_verdict_without_reason():
    gemini = FakeGemini('{"inappropriate": true}')
    with pytest.raises(ContentRejected) as excinfo:
        asyncio.run(make_safety(gemini).check_content("something nasty"))
    assert excinfo.value.reason is None


def test_transport_error_fails_open():
    gemini = FakeGemini(ConnectionError("network down"))
    asyncio.run(make_safety(gemini).check_content("Ki koro?"))
    assert len(gemini.calls) == 1


@pytest.mark.parametrize("raw", ["not json at all", '{"reason": "no flag"}', '{"inappropriate": "maybe"}'])
def test_malformed_verdict_fails_open(raw):
    gemini = FakeGemini(raw)
    asyncio.run(make_safety(gemini).check_content("Ki koro?"))
