from __future__ import annotations

import pytest

from websearch.agents import summarizer as summarizer_module
from websearch.agents.summarizer import (
    Summarizer,
    build_model_chain,
    build_prompt,
    select_context_size,
)
from websearch.errors import AllModelsFailedError, ModelError
from websearch.llm_client import GenerationChunk
from websearch.models.documents import FetchedDocument


class FakeInferenceClient:
    """Scripted per-model streams; an exception in a script is raised at that point."""

    def __init__(self, scripts: dict[str, list]):
        self.scripts = scripts
        self.calls: list[dict] = []

    async def generate(self, *, model, prompt, options):
        self.calls.append({"model": model, "prompt": prompt, "options": options})
        if model not in self.scripts:
            raise ConnectionError(f"model '{model}' not found")
        for item in self.scripts[model]:
            if isinstance(item, BaseException):
                raise item
            yield item


def _ok(*fragments: str, eval_count: int | None = None) -> list:
    return [GenerationChunk(text=f) for f in fragments] + [GenerationChunk(text="", done=True, eval_count=eval_count)]


def _docs(*texts: str) -> list[FetchedDocument]:
    return [FetchedDocument(source_url=f"https://s{i}.example.com", text=t) for i, t in enumerate(texts)]


async def _collect(summarizer: Summarizer, query: str, documents) -> list[str]:
    return [fragment async for fragment in summarizer.summarize(query, documents)]


@pytest.mark.asyncio
async def test_first_model_streams_answer():
    client = FakeInferenceClient({"A": _ok("Qubits ", "are ", "neat.", eval_count=42)})
    summarizer = Summarizer(client, default_model="A", fallbacks=["B"])

    fragments = await _collect(summarizer, "what is a qubit", _docs("Qubits hold superpositions."))

    assert fragments == ["Qubits ", "are ", "neat."]
    result = summarizer.last_result
    assert result is not None
    assert result.text == "Qubits are neat."
    assert result.model == "A"
    assert result.tokens == 42
    assert [call["model"] for call in client.calls] == ["A"]


@pytest.mark.asyncio
async def test_falls_back_through_chain_trying_each_model_once():
    client = FakeInferenceClient(
        {
            "A": [ConnectionError("connection refused")],
            "B": [RuntimeError("model requires more memory")],
            "C": _ok("answer from C"),
        }
    )
    summarizer = Summarizer(client, default_model="A", fallbacks=["B", "C"])

    fragments = await _collect(summarizer, "q", _docs("some source text"))

    assert fragments == ["answer from C"]
    assert [call["model"] for call in client.calls] == ["A", "B", "C"]
    assert summarizer.last_result.model == "C"
    assert [attempt.model for attempt in summarizer.failed_attempts] == ["A", "B"]


@pytest.mark.asyncio
async def test_all_models_failing_raises_with_hints():
    last = RuntimeError("C is broken")
    client = FakeInferenceClient({"A": [RuntimeError("A down")], "C": [last]})
    summarizer = Summarizer(client, default_model="A", fallbacks=["B", "C"])

    with pytest.raises(AllModelsFailedError) as exc_info:
        await _collect(summarizer, "q", _docs("text"))

    error = exc_info.value
    assert error.attempted_models == ["A", "B", "C"]
    assert error.__cause__ is last
    assert "ollama serve" in str(error)
    assert "ollama pull" in str(error)
    assert summarizer.last_result is None
    assert [call["model"] for call in client.calls] == ["A", "B", "C"]


@pytest.mark.asyncio
async def test_failure_after_output_is_not_retried_on_next_model():
    client = FakeInferenceClient(
        {
            "A": [GenerationChunk(text="Partial "), RuntimeError("stream dropped")],
            "B": _ok("should never be used"),
        }
    )
    summarizer = Summarizer(client, default_model="A", fallbacks=["B"])
    received: list[str] = []

    with pytest.raises(ModelError) as exc_info:
        async for fragment in summarizer.summarize("q", _docs("text")):
            received.append(fragment)

    assert not isinstance(exc_info.value, AllModelsFailedError)
    assert exc_info.value.model == "A"
    assert received == ["Partial "]
    assert [call["model"] for call in client.calls] == ["A"]


@pytest.mark.asyncio
async def test_token_count_falls_back_to_fragment_count():
    client = FakeInferenceClient({"A": _ok("one", "two", "three")})
    summarizer = Summarizer(client, default_model="A", fallbacks=[])

    await _collect(summarizer, "q", _docs("text"))

    assert summarizer.last_result.tokens == 3


@pytest.mark.asyncio
async def test_empty_documents_still_generate_with_no_sources_notice():
    client = FakeInferenceClient({"A": _ok("general answer")})
    summarizer = Summarizer(client, default_model="A", fallbacks=[])

    fragments = await _collect(summarizer, "obscure question", [])

    assert fragments == ["general answer"]
    prompt = client.calls[0]["prompt"]
    assert "obscure question" in prompt
    assert "No sources could be retrieved" in prompt


@pytest.mark.asyncio
async def test_generation_options_follow_context_tier():
    client = FakeInferenceClient({"A": _ok("x")})
    summarizer = Summarizer(client, default_model="A", fallbacks=[])

    await _collect(summarizer, "q", _docs("y" * 20_000))

    options = client.calls[0]["options"]
    assert options["num_ctx"] == 8192
    assert options["temperature"] == 0.7
    assert options["num_predict"] == 2048


def test_prompt_contains_query_and_attributed_sources():
    docs = _docs("First source body.", "Second source body.")

    prompt = build_prompt("what is a qubit", docs)

    assert "what is a qubit" in prompt
    assert "Source: https://s0.example.com\nFirst source body." in prompt
    assert "Source: https://s1.example.com\nSecond source body." in prompt


@pytest.mark.parametrize(
    ("total_chars", "expected"),
    [(0, 4096), (8_000, 4096), (8_001, 8192), (32_000, 8192), (32_001, 16384), (160_000, 16384)],
)
def test_select_context_size_tiers(total_chars, expected):
    assert select_context_size(total_chars) == expected


def test_context_size_is_monotonic():
    sizes = [select_context_size(n) for n in range(0, 200_000, 500)]
    assert sizes == sorted(sizes)
    assert sorted(set(sizes)) == [4096, 8192, 16384]


def test_build_model_chain_puts_configured_model_first_without_duplicates():
    chain = build_model_chain("llama3.2:3b")

    assert chain[0] == "llama3.2:3b"
    assert chain.count("llama3.2:3b") == 1
    assert set(chain) == set(summarizer_module.DEFAULT_FALLBACK_MODELS)


def test_build_model_chain_skips_blank_names():
    assert build_model_chain("custom", ["", " a ", "custom", "a"]) == ["custom", "a"]
