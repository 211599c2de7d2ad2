"""Cliente centralizado para interactuar con OpenAI."""

from functools import lru_cache

from openai import AsyncOpenAI

from zapdesk.core.config import settings


@lru_cache(maxsize=1)
def get_openai_client() -> AsyncOpenAI:
    """Crea un cliente asíncrono reutilizable."""
    if not settings.openai_api_key:
        msg = "OPENAI_API_KEY is not configured"
        raise RuntimeError(msg)
    return AsyncOpenAI(api_key=settings.openai_api_key)


async def count_models(client: AsyncOpenAI | None = None) -> int:
    """Lista los modelos visibles para la API key; sirve como prueba de conectividad."""
    client = client or get_openai_client()
    page = await client.models.list()
    return len(page.data)
