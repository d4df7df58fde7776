"""
Caption Suggestion Proxy.

Wraps a single text-generation call. OpenAI is used when OPENAI_API_KEY is
configured; otherwise Gemini is the fallback provider.
"""

import logging
from typing import Optional

# --- OPENAI IMPORTS ---
from openai import OpenAI

# --- GEMINI IMPORTS ---
import google.genai as genai
from google.genai import types

from postdesk.errors import UpstreamGenerationError

CAPTION_PROMPT = (
    "Write an Instagram/TikTok caption for an electrical business. "
    "Focus on engagement, clarity, and relevance. Context: {prompt_text}"
)
MAX_OUTPUT_TOKENS = 50
TEMPERATURE = 0.7


def build_prompt(prompt_text: str) -> str:
    return CAPTION_PROMPT.format(prompt_text=prompt_text.strip())


class CaptionGenerator:
    """
    Generates social captions through OpenAI or Gemini.

    Args:
        openai_api_key (str, optional): Enables the OpenAI provider.
        gemini_api_key (str, optional): Enables the Gemini provider when no
            OpenAI key is given.
        openai_model, gemini_model (str): Model names per provider.
    """

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        openai_model: str = "gpt-4o-mini",
        gemini_model: str = "gemini-2.0-flash",
    ):
        self.openai_client = None
        self.gemini_client = None
        self.openai_model = openai_model
        self.gemini_model = gemini_model
        self.active_service = None

        # 1. Try to initialize OpenAI first
        if openai_api_key:
            try:
                self.openai_client = OpenAI(api_key=openai_api_key)
                self.active_service = "openai"
                logging.info("[AI] Initialized OpenAI client.")
            except Exception as e:
                logging.warning(f"[AI] OpenAI client initialization failed: {e}. Trying fallback.")

        # 2. If OpenAI failed, try Gemini
        if self.active_service is None and gemini_api_key:
            try:
                self.gemini_client = genai.Client(api_key=gemini_api_key)
                self.active_service = "gemini"
                logging.info("[AI] Initialized Gemini client.")
            except Exception as e:
                logging.warning(f"[AI] Gemini client initialization failed: {e}.")

    def suggest(self, prompt_text: str) -> str:
        """
        Return a caption for the given context text.

        The call is made once; there is no retry and no caching.

        Raises:
            UpstreamGenerationError: No provider is configured or the provider
                call failed.
        """
        if self.active_service is None:
            raise UpstreamGenerationError("AI service is not configured.")

        prompt = build_prompt(prompt_text)
        try:
            if self.active_service == "openai":
                response = self.openai_client.chat.completions.create(
                    model=self.openai_model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=MAX_OUTPUT_TOKENS,
                    temperature=TEMPERATURE,
                )
                text = response.choices[0].message.content
            else:
                response = self.gemini_client.models.generate_content(
                    model=self.gemini_model,
                    contents=prompt,
                    config=types.GenerateContentConfig(
                        max_output_tokens=MAX_OUTPUT_TOKENS,
                        temperature=TEMPERATURE,
                    ),
                )
                text = response.text
        except Exception as e:
            raise UpstreamGenerationError(f"{self.active_service} request failed: {e}") from e

        return (text or "").strip()
