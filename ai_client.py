import logging

import google.generativeai as genai

from retry import RetryPolicy

logger = logging.getLogger(__name__)


class AINotConfigured(Exception):
    pass


class GeminiClient:
    """Thin async wrapper around a Gemini model, guarded by a RetryPolicy."""

    def __init__(self, api_key, model_name="gemini-2.5-flash", policy=None):
        self.api_key = api_key
        self.model_name = model_name
        self.policy = policy or RetryPolicy()
        self._model = None
        if api_key:
            genai.configure(api_key=api_key)
            self._model = genai.GenerativeModel(model_name)
        else:
            logger.warning("GEMINI_API_KEY is not set; AI routes will answer 503.")

    async def generate(self, parts) -> str:
        """Send prompt parts (text and/or PIL images) and return the reply text."""
        if self._model is None:
            raise AINotConfigured("GEMINI_API_KEY is not configured")

        async def call():
            return await self._model.generate_content_async(parts)

        response = await self.policy.run(call)
        try:
            text = response.text
        except ValueError:
            # blocked or empty candidate
            logger.warning("Gemini returned no text part: %s", getattr(response, "prompt_feedback", None))
            text = ""
        return (text or "").strip()
