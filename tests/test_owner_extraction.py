import json

import httpx
import pytest

from leadsleuth.extractors.owner import OpenAIOwnerExtractor, RegexOwnerExtractor, build_owner_extractor
from leadsleuth.models import OwnerGuess
from leadsleuth.settings import Settings

from conftest import make_http

ABOUT_TEXT = (
    "Acme HVAC has served Austin since 1998. The company is owned and operated by John Smith, "
    "a licensed master technician."
)


def completion(content):
    def handler(request):
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    return handler


@pytest.mark.asyncio
async def test_ai_answer_in_fenced_block(guard):
    requests = []

    def handler(request):
        requests.append(request)
        return completion('```json\n{"name": "Jane Roe", "title": "CEO"}\n```')(request)

    async with make_http(handler) as http:
        extractor = OpenAIOwnerExtractor("sk-test", http, guard)
        guess = await extractor.extract(ABOUT_TEXT)

    assert guess == OwnerGuess(name="Jane Roe", title="CEO", method="ai")
    [request] = requests
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4o-mini"
    assert body["temperature"] == 0
    assert ABOUT_TEXT in body["messages"][1]["content"]


@pytest.mark.asyncio
async def test_ai_null_answer_is_kept(guard):
    async with make_http(completion('{"name": null, "title": null}')) as http:
        guess = await OpenAIOwnerExtractor("sk-test", http, guard).extract(ABOUT_TEXT)

    assert guess == OwnerGuess(method="ai")


@pytest.mark.asyncio
async def test_api_failure_falls_back_to_regex(guard, sleep):
    async with make_http(lambda request: httpx.Response(500)) as http:
        guess = await OpenAIOwnerExtractor("sk-test", http, guard).extract(ABOUT_TEXT)

    assert guess == OwnerGuess(name="John Smith", title="Owner", method="regex")
    # Server errors are retried before giving up
    assert sleep.await_count == 3


@pytest.mark.asyncio
async def test_unparseable_answer_falls_back_to_regex(guard):
    async with make_http(completion("The owner is John Smith.")) as http:
        guess = await OpenAIOwnerExtractor("sk-test", http, guard).extract(ABOUT_TEXT)

    assert guess.method == "regex"
    assert guess.name == "John Smith"


@pytest.mark.asyncio
async def test_short_text_skips_api(guard):
    def handler(request):
        raise AssertionError("API should not be called")

    async with make_http(handler) as http:
        guess = await OpenAIOwnerExtractor("sk-test", http, guard).extract("Owner: Bo Li")

    assert guess.method == "regex"


@pytest.mark.parametrize(
    "mode, api_key, expected",
    [
        ("auto", None, RegexOwnerExtractor),
        ("auto", "sk-test", OpenAIOwnerExtractor),
        ("ai", None, RegexOwnerExtractor),
        ("ai", "sk-test", OpenAIOwnerExtractor),
        ("regex", "sk-test", RegexOwnerExtractor),
    ],
)
def test_build_owner_extractor(guard, mode, api_key, expected):
    settings = Settings(_env_file=None, owner_extraction=mode, openai_api_key=api_key)
    extractor = build_owner_extractor(settings, http=None, guard=guard)
    assert type(extractor) is expected
