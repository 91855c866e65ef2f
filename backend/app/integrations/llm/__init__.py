from .openrouter_client import OpenRouterClient, DEFAULT_MODEL, get_llm_client

__all__ = ["OpenRouterClient", "DEFAULT_MODEL", "get_llm_client"]
