"""Unit tests for the Bedrock JSON client helpers."""

import base64
from datetime import date

import pytest
from langchain_core.language_models import FakeListChatModel

from desk_backend.services import llm_client
from desk_backend.services.llm_client import (
    BedrockJsonClient,
    build_file_search_parse_prompt,
    decode_bedrock_key,
    get_bedrock_llm,
    parse_llm_json,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ('{"keyword": "배너"}', {"keyword": "배너"}),
        ('설명입니다 ```json\n{"keyword": "배너", "senderOnly": true}\n``` 끝', {"keyword": "배너", "senderOnly": True}),
        ("JSON 없음", None),
        ("{깨진 json}", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_llm_json(raw, expected):
    assert parse_llm_json(raw) == expected


def test_prompt_contains_today_and_query():
    prompt = build_file_search_parse_prompt("한달전쯤 김철수 기획서", date(2025, 3, 14))
    assert "2025-03-14" in prompt
    assert "한달전쯤 김철수 기획서" in prompt
    assert '"dateRange"' in prompt


def test_decode_bedrock_key():
    encoded = base64.b64encode(b"AKIA123:secret/xyz").decode()
    assert decode_bedrock_key(encoded) == ("AKIA123", "secret/xyz")
    assert decode_bedrock_key("plain:text") == ("plain", "text")


async def test_client_without_llm_is_unavailable():
    client = BedrockJsonClient(None)
    assert not client.available
    with pytest.raises(RuntimeError):
        await client.generate_json("prompt")


async def test_client_returns_model_text():
    client = BedrockJsonClient(FakeListChatModel(responses=['{"keyword": "시안"}']))
    assert client.available
    assert parse_llm_json(await client.generate_json("prompt")) == {"keyword": "시안"}


def test_llm_disabled_by_env(monkeypatch):
    monkeypatch.setenv("SEARCH_LLM_ENABLED", "false")
    assert get_bedrock_llm() is None


def test_llm_without_credentials_is_none(monkeypatch):
    monkeypatch.setenv("SEARCH_LLM_ENABLED", "true")
    for name in ("AWS_BEARER_TOKEN_BEDROCK", "AWS_BEDROCK_API_KEY", "AWS_ACCESS_KEY_ID", "AWS_PROFILE"):
        monkeypatch.delenv(name, raising=False)
    assert get_bedrock_llm() is None


def test_get_llm_client_survives_init_failure(monkeypatch):
    def boom():
        raise RuntimeError("no region")

    monkeypatch.setattr(llm_client, "_LLM_CLIENT", None)
    monkeypatch.setattr(llm_client, "get_bedrock_llm", boom)
    client = llm_client.get_llm_client()
    assert not client.available
