import pytest

from codeshui_gateway.llm import GenerationRequest, from_wire_response, get_adapter, to_wire_request
from codeshui_gateway.llm.errors import NotReadyError, VendorError
from codeshui_gateway.settings import GatewayConfig


def _request(provider, model, credential="k" * 30, prompt="Say hi", system_prompt=None, endpoint=None):
    config = GatewayConfig(
        provider=provider,
        model=model,
        credential=credential,
        endpoint=endpoint,
    )
    return GenerationRequest(prompt=prompt, system_prompt=system_prompt, config=config)


def test_google_request_puts_key_in_url():
    wire = to_wire_request("google", _request("google", "gemini-pro", credential="validkeylongerthan20chars"))
    assert wire.method == "POST"
    assert wire.url == (
        "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"
        "?key=validkeylongerthan20chars"
    )
    assert "Authorization" not in wire.headers
    assert wire.body["contents"] == [{"parts": [{"text": "Say hi"}]}]
    assert wire.body["generationConfig"] == {"temperature": 0.1, "maxOutputTokens": 4000}


def test_google_stream_request_uses_stream_method():
    wire = to_wire_request("google", _request("google", "gemini-pro"), stream=True)
    assert ":streamGenerateContent?key=" in wire.url


def test_anthropic_request_shape():
    wire = to_wire_request("anthropic", _request("anthropic", "claude-3-haiku", credential="sk-ant-secret"))
    assert wire.url == "https://api.anthropic.com/v1/messages"
    assert wire.headers["x-api-key"] == "sk-ant-secret"
    assert wire.headers["anthropic-version"] == "2023-06-01"
    assert wire.body == {
        "model": "claude-3-haiku",
        "max_tokens": 4000,
        "messages": [{"role": "user", "content": "Say hi"}],
    }


def test_openai_request_uses_system_prompt_and_bearer():
    wire = to_wire_request("openai", _request("openai", "gpt-4", credential="sk-abc", system_prompt="Be terse."))
    assert wire.url == "https://api.openai.com/v1/chat/completions"
    assert wire.headers["Authorization"] == "Bearer sk-abc"
    assert wire.body["messages"] == [
        {"role": "system", "content": "Be terse."},
        {"role": "user", "content": "Say hi"},
    ]
    assert wire.body["temperature"] == 0.1
    assert wire.body["max_tokens"] == 4000
    assert "stream" not in wire.body


def test_openai_default_system_prompt():
    wire = to_wire_request("openai", _request("openai", "gpt-4"))
    assert wire.body["messages"][0] == {"role": "system", "content": "You are a helpful coding assistant."}


def test_system_prompt_is_folded_for_single_message_vendors():
    wire = to_wire_request("anthropic", _request("anthropic", "claude-2.1", system_prompt="You review code."))
    assert wire.body["messages"][0]["content"] == "You review code.\n\nSay hi"


def test_ollama_request_shape():
    wire = to_wire_request("ollama", _request("ollama", "codellama", credential=None))
    assert wire.url == "http://127.0.0.1:11434/api/generate"
    assert wire.body["stream"] is False
    assert wire.body["options"] == {"temperature": 0.1, "top_p": 0.9, "top_k": 40}


def test_custom_endpoint_is_used_and_required():
    request = _request("custom", "my-model", endpoint="https://llm.internal/v1/")
    wire = to_wire_request("custom", request, stream=True)
    assert wire.url == "https://llm.internal/v1/chat/completions"
    assert wire.body["stream"] is True

    with pytest.raises(NotReadyError):
        to_wire_request("custom", _request("custom", "my-model"))


@pytest.mark.parametrize(
    "provider, body, expected",
    [
        ("anthropic", {"content": [{"type": "text", "text": "Hello!"}]}, "Hello!"),
        ("openai", {"choices": [{"message": {"role": "assistant", "content": "Hello!"}}]}, "Hello!"),
        ("google", {"candidates": [{"content": {"parts": [{"text": "Hello!"}]}}]}, "Hello!"),
        ("ollama", {"response": "Hello!", "done": True}, "Hello!"),
    ],
)
def test_from_wire_response_extracts_content(provider, body, expected):
    assert from_wire_response(provider, body).content == expected


def test_usage_is_passed_through_verbatim():
    usage = {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5}
    result = from_wire_response("openai", {"choices": [{"message": {"content": "ok"}}], "usage": usage})
    assert result.usage == usage
    assert result.to_dict() == {"content": "ok", "usage": usage}


def test_google_result_has_no_usage():
    result = from_wire_response("google", {"candidates": [{"content": {"parts": [{"text": "x"}]}}]})
    assert result.usage is None
    assert result.to_dict() == {"content": "x"}


@pytest.mark.parametrize(
    "provider, body",
    [
        ("anthropic", {"content": []}),
        ("openai", {"choices": []}),
        ("google", {"candidates": [{"finishReason": "SAFETY"}]}),
        ("openai", ["not", "an", "object"]),
    ],
)
def test_missing_content_path_is_vendor_error(provider, body):
    with pytest.raises(VendorError) as excinfo:
        from_wire_response(provider, body, model="m")
    assert excinfo.value.provider == provider
    assert excinfo.value.model == "m"


def test_unknown_vendor_is_rejected():
    with pytest.raises(ValueError):
        get_adapter("cohere")
