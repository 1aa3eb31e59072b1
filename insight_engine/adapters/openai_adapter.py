"""
LLM provider adapter for the insight engine.

Implements the LLMProvider interface on top of the OpenAI Responses and
Embeddings APIs.
"""

import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError
import logfire

from insight_engine.interfaces.providers.llm import LLMProvider

# Setup logger for this module
logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = "gpt-4.1-mini"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-large"
DEFAULT_EMBEDDING_DIMENSIONS = 3072
DEFAULT_TIMEOUT_SECONDS = 30.0


class OpenAIAdapter(LLMProvider):
    """OpenAI implementation of LLMProvider."""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        logfire_api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout)

        self.logfire = False
        if logfire_api_key:
            try:
                logfire.configure(token=logfire_api_key)
                self.logfire = True
                logfire.instrument_openai(self.client)
                logger.info(
                    "Logfire configured and OpenAI client instrumented successfully."
                )
            except Exception as e:
                logger.error(f"Failed to configure Logfire: {e}")
                self.logfire = False

        self.text_model = model or DEFAULT_TEXT_MODEL
        self.embedding_model = DEFAULT_EMBEDDING_MODEL
        self.embedding_dimensions = DEFAULT_EMBEDDING_DIMENSIONS

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        model: Optional[str] = None,
        system_prompt: str = "",
    ) -> str:  # pragma: no cover
        """Generate text using the OpenAI Responses API."""
        request_params: Dict[str, Any] = {
            "model": model or self.text_model,
            "input": prompt,
            "temperature": temperature,
            "max_output_tokens": max_tokens,
        }
        if system_prompt:
            request_params["instructions"] = system_prompt

        try:
            response = await self.client.responses.create(**request_params)
            return response.output_text or ""
        except OpenAIError as e:
            logger.error(f"OpenAI API error during text generation: {e}")
            raise
        except Exception as e:
            logger.exception(f"Error in generate: {e}")
            raise

    async def embed_text(
        self, text: str, model: Optional[str] = None, dimensions: Optional[int] = None
    ) -> List[float]:  # pragma: no cover
        """Generate an embedding for the given text using OpenAI."""
        if not text:
            raise ValueError("Text cannot be empty")

        try:
            text = text.replace("\n", " ")
            response = await self.client.embeddings.create(
                input=[text],
                model=model or self.embedding_model,
                dimensions=dimensions or self.embedding_dimensions,
            )
            if response.data and response.data[0].embedding:
                return response.data[0].embedding
            raise ValueError("Failed to retrieve embedding from OpenAI response")
        except OpenAIError as e:
            logger.error(f"OpenAI API error during embedding: {e}")
            raise
        except Exception as e:
            logger.exception(f"Error generating embedding: {e}")
            raise
