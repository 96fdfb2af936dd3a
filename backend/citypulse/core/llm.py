"""
LLM factory for the AG-UI agent. Returns a LangChain chat model based on LITELLM_MODE.

  proxy   → ChatOpenAI pointed at the LiteLLM proxy container (dev default)
  library → ChatLiteLLM using the litellm library in-process (production)
"""

from langchain_core.language_models.chat_models import BaseChatModel

from citypulse.core.config import get_settings


def get_chat_model(
    *,
    model: str | None = None,
    streaming: bool = False,
    temperature: float = 0.2,
) -> BaseChatModel:
    settings = get_settings()
    model_name = model or settings.primary_model

    if settings.litellm_mode == "library":
        from langchain_community.chat_models import ChatLiteLLM

        return ChatLiteLLM(
            model=model_name,
            streaming=streaming,
            temperature=temperature,
        )

    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        base_url=settings.litellm_base_url,
        api_key=settings.litellm_master_key or "not-set",
        model=model_name,
        streaming=streaming,
        temperature=temperature,
    )
