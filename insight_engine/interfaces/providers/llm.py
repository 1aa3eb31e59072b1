from abc import ABC, abstractmethod
from typing import List, Optional


class LLMProvider(ABC):
    """Interface for text-generation and embedding providers."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        model: Optional[str] = None,
        system_prompt: str = "",
    ) -> str:
        """Generate raw text for a prompt.

        Raises on transport failures and timeouts; callers decide how to degrade.
        """
        pass

    @abstractmethod
    async def embed_text(
        self, text: str, model: Optional[str] = None, dimensions: Optional[int] = None
    ) -> List[float]:
        """
        Generate an embedding for the given text.

        Args:
            text: The text to embed.
            model: The embedding model to use.
            dimensions: Optional desired output dimensions for the embedding.

        Returns:
            A list of floats representing the embedding vector.
        """
        pass
