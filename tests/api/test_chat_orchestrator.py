import pytest
from unittest.mock import AsyncMock, MagicMock

from api.errors import ChatCompletionError, RateLimitExceeded
from api.middleware.rate_limiter import TokenBucketRateLimiter
from api.models import ChatTurn, ResultBundle, ScoredResult
from api.orchestrators.chat_orchestrator import ChatOrchestrator

ANSWER = (
    "Selon le Code civil et la jurisprudence, voici la réponse :\n"
    "L'Article 1240 du Code civil dispose que : « Tout fait quelconque... »"
)


@pytest.fixture
def bundle(article_factory):
    article = article_factory("1240", 1.0, content="Tout fait quelconque de l'homme...")
    return ResultBundle(
        query="Que dit l'article 1240 ?",
        articles=[ScoredResult(document=article, similarity=1.0, exact_match=True)],
    )


@pytest.fixture
def engine(bundle):
    engine = MagicMock()
    engine.search = AsyncMock(return_value=bundle)
    engine.aclose = AsyncMock()
    return engine


@pytest.fixture
def chat_client():
    client = MagicMock()
    client.complete = AsyncMock(return_value=ANSWER)
    client.aclose = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_answer_grounds_prompt_on_retrieved_sources(engine, chat_client):
    """
    Tests that the formatted sources reach the system prompt and citations are linked.
    """
    orchestrator = ChatOrchestrator(engine, chat_client)

    result = await orchestrator.answer("user-1", "Que dit l'article 1240 ?")

    engine.search.assert_awaited_once_with("Que dit l'article 1240 ?", None)
    messages = chat_client.complete.await_args.args[0]
    assert messages[0]["role"] == "system"
    assert "1. Article 1240 du Code civil" in messages[0]["content"]
    assert messages[-1] == {"role": "user", "content": "Que dit l'article 1240 ?"}

    assert result.answer == ANSWER
    assert result.bundle.total_sources == 1
    assert "SOURCES JURIDIQUES VÉRIFIÉES" in result.context
    assert [r.article_number for r in result.references] == ["1240"]


@pytest.mark.asyncio
async def test_answer_includes_history(engine, chat_client):
    orchestrator = ChatOrchestrator(engine, chat_client)
    history = [ChatTurn(role="user", content="Bonjour"), ChatTurn(role="assistant", content="Bonjour !")]

    await orchestrator.answer("user-1", "Et l'article 1241 ?", history)

    roles = [m["role"] for m in chat_client.complete.await_args.args[0]]
    assert roles == ["system", "user", "assistant", "user"]


@pytest.mark.asyncio
async def test_answer_without_sources(engine, chat_client):
    """
    Tests that an empty bundle still produces an answer, with the no-sources notice.
    """
    engine.search.return_value = ResultBundle.empty("Bonjour")
    orchestrator = ChatOrchestrator(engine, chat_client)

    result = await orchestrator.answer("user-1", "Bonjour")

    assert result.context == ""
    system_prompt = chat_client.complete.await_args.args[0][0]["content"]
    assert "Aucune source juridique spécifique" in system_prompt


@pytest.mark.asyncio
async def test_rate_limited_identity_is_rejected_before_retrieval(engine, chat_client):
    limiter = TokenBucketRateLimiter(capacity=1, window_seconds=60)
    orchestrator = ChatOrchestrator(engine, chat_client, limiter)

    await orchestrator.answer("user-1", "question")
    with pytest.raises(RateLimitExceeded):
        await orchestrator.answer("user-1", "question")

    assert engine.search.await_count == 1
    await orchestrator.answer("user-2", "question")


@pytest.mark.asyncio
async def test_blank_message_rejected(engine, chat_client):
    orchestrator = ChatOrchestrator(engine, chat_client)

    with pytest.raises(ValueError):
        await orchestrator.answer("user-1", "   ")

    engine.search.assert_not_awaited()


@pytest.mark.asyncio
async def test_chat_failure_propagates(engine, chat_client):
    chat_client.complete.side_effect = ChatCompletionError("Mistral API error: 500")
    orchestrator = ChatOrchestrator(engine, chat_client)

    with pytest.raises(ChatCompletionError):
        await orchestrator.answer("user-1", "question")


@pytest.mark.asyncio
async def test_orchestrator_closes_collaborators(engine, chat_client):
    async with ChatOrchestrator(engine, chat_client):
        pass

    engine.aclose.assert_awaited_once()
    chat_client.aclose.assert_awaited_once()
