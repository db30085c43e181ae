from backend.cvtailor.core.errors import ModelError


class NullPromptInvoker:
    """Non-None default when no provider is configured. Fails only when called."""
    def invoke(self, template, inputs):
        raise ModelError("LLM not configured. Set OPENAI_API_KEY or GEMINI_API_KEY.")
