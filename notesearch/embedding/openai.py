import openai

from notesearch.constants import REQUEST_TIMEOUT
from notesearch.embedding.base import EmbeddingProvider, ProviderEmbedding
from notesearch.errors import EmbeddingError


class OpenAIEmbeddingProvider(EmbeddingProvider):
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        # SDK retries are off: EmbeddingClient owns the retry policy
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def embed(self, text: str, model: str) -> ProviderEmbedding:
        response = await self._client.embeddings.create(
            model=model,
            input=text,
            encoding_format="float",
        )
        if not response.data:
            raise EmbeddingError("Empty embedding returned from provider")

        usage = response.usage
        return ProviderEmbedding(
            vector=response.data[0].embedding,
            total_tokens=usage.total_tokens if usage else None,
        )

    async def close(self) -> None:
        await self._client.close()
