"""
Test Suite for OllamaGenerationService

The chat model is injected as a mock.
"""

import pytest
from unittest.mock import Mock, patch

from news_chat.errors import GenerationError
from news_chat.generation.ollama_generator import OllamaGenerationService


class TestGenerate:
    """Test prompt completion."""

    def test_returns_stripped_content(self):
        llm = Mock()
        llm.invoke.return_value = Mock(content="  The answer.  \n")
        service = OllamaGenerationService(llm=llm)

        assert service.generate("prompt") == "The answer."
        llm.invoke.assert_called_once_with("prompt")

    def test_model_error_becomes_generation_error(self):
        llm = Mock()
        llm.invoke.side_effect = ConnectionError("ollama down")
        service = OllamaGenerationService(llm=llm)

        with pytest.raises(GenerationError):
            service.generate("prompt")

    def test_empty_completion_is_an_error(self):
        llm = Mock()
        llm.invoke.return_value = Mock(content="   ")
        service = OllamaGenerationService(llm=llm)

        with pytest.raises(GenerationError):
            service.generate("prompt")


class TestConstruction:
    """Test the default chat model wiring."""

    def test_builds_chat_ollama_from_settings(self):
        with patch('news_chat.generation.ollama_generator.ChatOllama') as chat_cls:
            OllamaGenerationService(
                model="llama3.1:8b",
                base_url="http://ollama:11434",
                temperature=0.2,
                max_tokens=256,
                timeout=12
            )

        chat_cls.assert_called_once_with(
            model="llama3.1:8b",
            temperature=0.2,
            base_url="http://ollama:11434",
            num_predict=256,
            client_kwargs={'timeout': 12}
        )
