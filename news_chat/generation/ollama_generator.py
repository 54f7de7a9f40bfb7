"""
Ollama Generation Service

Completes prompts with a local chat model through LangChain's ChatOllama.
"""

import logging
from typing import Optional, Any

from langchain_ollama import ChatOllama

from ..errors import GenerationError

logger = logging.getLogger(__name__)


class OllamaGenerationService:
    """Generation provider: generate(prompt) -> completion text."""

    def __init__(
        self,
        model: str = "llama3.1:latest",
        base_url: str = "http://localhost:11434",
        temperature: float = 0.7,
        max_tokens: int = 1024,
        timeout: int = 30,
        llm: Optional[Any] = None
    ):
        """
        Initialize the generation service.

        Args:
            model: Ollama chat model name
            base_url: Base URL for Ollama service
            temperature: LLM temperature (higher = more creative)
            max_tokens: Maximum tokens in the completion
            timeout: Request timeout in seconds
            llm: Pre-built chat model exposing invoke(); built from the
                settings above when omitted
        """
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        self.llm = llm or ChatOllama(
            model=model,
            temperature=temperature,
            base_url=base_url,
            num_predict=max_tokens,
            client_kwargs={'timeout': timeout}
        )

    def generate(self, prompt: str) -> str:
        """
        Generate a completion for a prompt.

        Args:
            prompt: Complete prompt text

        Returns:
            Completion text

        Raises:
            GenerationError: If the model call fails or returns nothing
        """
        try:
            response = self.llm.invoke(prompt)
        except Exception as e:
            raise GenerationError(f"Error generating answer with {self.model}: {e}")

        # Extract content from response
        text = response.content if hasattr(response, 'content') else str(response)
        if not isinstance(text, str) or not text.strip():
            raise GenerationError(f"Empty completion from {self.model}")
        return text.strip()
