from app.ai.config import load_ai_config
from app.ai.providers.openai_provider import OpenAIProvider
from app.ai.types import AIClient, ModelCredentials
from app.core.config import settings


def get_ai_client(credentials: ModelCredentials, *, model: str | None = None) -> AIClient:
    cfg = load_ai_config()

    if cfg.provider == "openai":
        return OpenAIProvider(
            model=model or cfg.model,
            api_key=credentials.api_key,
            project_id=credentials.project_id,
            base_url=cfg.base_url,
            timeout_s=cfg.timeout_s,
            max_retries=cfg.max_retries,
        )

    raise ValueError(f"Unsupported AI_PROVIDER='{cfg.provider}'")


def get_platform_ai_client() -> AIClient | None:
    """Client on the platform key, used for resume structuring only. None when not configured."""
    api_key = (settings.openai_api_key or "").strip()
    if not api_key:
        return None
    return get_ai_client(ModelCredentials(api_key=api_key), model=settings.resume_model)
