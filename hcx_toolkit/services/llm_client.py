"""LLM backends used by the InsurancePlan converter.

All clients expose ``generate_json(prompt) -> str`` and return the raw reply
text; parsing is left to :mod:`hcx_toolkit.services.ai_output`.
"""
from __future__ import annotations

import json
import logging

from openai import OpenAI

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

MOCK_BUNDLE = {
    "resourceType": "Bundle",
    "type": "collection",
    "entry": [
        {
            "resource": {
                "resourceType": "InsurancePlan",
                "status": "active",
                "name": "Mock Health Plan",
                "type": [
                    {
                        "coding": [
                            {
                                "system": "http://terminology.hl7.org/CodeSystem/insurance-plan-type",
                                "code": "medical",
                                "display": "Medical",
                            }
                        ]
                    }
                ],
            }
        }
    ],
}


class OpenAIClient:
    def __init__(self, settings: Settings):
        if not settings.OPENAI_API_KEY:
            raise RuntimeError("OPENAI_API_KEY is required when LLM_PROVIDER is 'openai'")
        self._client = OpenAI(api_key=settings.OPENAI_API_KEY)
        self.model = settings.OPENAI_DEFAULT_MODEL
        self.temperature = settings.LLM_TEMPERATURE
        self.max_tokens = settings.LLM_MAX_OUTPUT_TOKENS

    def generate_json(self, prompt: str) -> str:
        completion = self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_format={"type": "json_object"},
        )
        return completion.choices[0].message.content or ""


class VertexAIClient:
    def __init__(self, settings: Settings):
        if not settings.GOOGLE_PROJECT_ID:
            raise RuntimeError("GOOGLE_PROJECT_ID is required when LLM_PROVIDER is 'google'")
        if not settings.GOOGLE_LOCATION_ID:
            raise RuntimeError("GOOGLE_LOCATION_ID is required when LLM_PROVIDER is 'google'")

        import vertexai
        from vertexai.generative_models import GenerationConfig, GenerativeModel

        vertexai.init(project=settings.GOOGLE_PROJECT_ID, location=settings.GOOGLE_LOCATION_ID)
        self.model = GenerativeModel(settings.GEMINI_MODEL_NAME)
        self.generation_config = GenerationConfig(
            temperature=settings.LLM_TEMPERATURE,
            top_p=0.9,
            max_output_tokens=settings.LLM_MAX_OUTPUT_TOKENS,
            response_mime_type="application/json",
        )

    def generate_json(self, prompt: str) -> str:
        response = self.model.generate_content(prompt, generation_config=self.generation_config)
        candidates = list(response.candidates or [])
        text = ""
        if candidates and candidates[0].content.parts:
            text = candidates[0].content.parts[0].text or ""
        if not text:
            finish_reason = candidates[0].finish_reason.name if candidates else "UNKNOWN"
            raise RuntimeError(f"Empty response from Vertex AI. Finish Reason: {finish_reason}")
        return text


class MockLLMClient:
    def generate_json(self, prompt: str) -> str:
        logger.info("Mock LLM answering prompt of %d chars", len(prompt))
        return json.dumps(MOCK_BUNDLE)


def get_llm_client(settings: Settings | None = None):
    settings = settings or get_settings()
    provider = (settings.LLM_PROVIDER or "openai").lower()
    if provider == "openai":
        return OpenAIClient(settings)
    if provider == "google":
        return VertexAIClient(settings)
    if provider == "mock":
        return MockLLMClient()
    raise RuntimeError(f"Unsupported or misconfigured LLM provider: {settings.LLM_PROVIDER}")
