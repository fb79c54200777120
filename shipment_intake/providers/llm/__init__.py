"""LLM provider adapters.

Two concrete implementations of ILLMProvider:
    - OpenAILLMProvider — gpt-4o-mini (also any OpenAI-compatible API)
    - OllamaLLMProvider — local models via an Ollama server

main.py picks OpenAI when OPENAI_API_KEY is set and falls back to Ollama.
"""

from shipment_intake.providers.llm.ollama_provider import OllamaLLMProvider
from shipment_intake.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider", "OllamaLLMProvider"]
