"""
Unit tests for the OpenAI-backed ticket classifier
"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from app.core.exceptions import ClassifierResponseError, ClassifierUnavailableError
from app.services.classifier import DisabledClassifier, OpenAIClassifier, build_classifier


def completion(content):
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    return client


class TestOpenAIClassifier:
    @pytest.mark.asyncio
    async def test_classify_success(self, mock_client):
        mock_client.chat.completions.create.return_value = completion(
            '{"priority": "critical", "helpfulNotes": "Outage", "relatedSkills": ["Kubernetes"]}'
        )
        classifier = OpenAIClassifier(api_key="test", model="test-model", client=mock_client)

        result = await classifier.classify("Site down", "Everything returns 502")

        assert result.priority == "critical"
        assert result.related_skills == ["Kubernetes"]
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "Site down" in kwargs["messages"][-1]["content"]
        assert "Everything returns 502" in kwargs["messages"][-1]["content"]

    @pytest.mark.asyncio
    async def test_classify_invalid_reply(self, mock_client):
        mock_client.chat.completions.create.return_value = completion("I think this is high priority")
        classifier = OpenAIClassifier(api_key="test", client=mock_client)

        with pytest.raises(ClassifierResponseError):
            await classifier.classify("Site down", "")

    @pytest.mark.asyncio
    async def test_classify_no_choices(self, mock_client):
        response = MagicMock()
        response.choices = []
        mock_client.chat.completions.create.return_value = response
        classifier = OpenAIClassifier(api_key="test", client=mock_client)

        with pytest.raises(ClassifierResponseError):
            await classifier.classify("Site down", "")


@pytest.mark.asyncio
async def test_disabled_classifier_raises():
    with pytest.raises(ClassifierUnavailableError):
        await DisabledClassifier().classify("title", "description")


def test_build_classifier_without_api_key():
    assert isinstance(build_classifier(), DisabledClassifier)


def test_model_defaults_to_current_settings(monkeypatch, mock_client):
    from app.core.config import settings

    monkeypatch.setattr(settings, "CLASSIFIER_MODEL", "gpt-test-late")

    classifier = OpenAIClassifier(api_key="test", client=mock_client)

    assert classifier.model == "gpt-test-late"
