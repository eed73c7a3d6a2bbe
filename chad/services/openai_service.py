"""
OpenAI completion service
"""
from openai import AsyncOpenAI, OpenAIError
from typing import Dict, List, Optional
import logging

from chad.config import ESTIMATE_MAX_TOKENS, ESTIMATE_TEMPERATURE, OPENAI_MODEL
from chad.exceptions import CompletionServiceError, MacroEstimateError
from chad.utils.extractors import parse_json_object

logger = logging.getLogger(__name__)

MACRO_FIELDS = ("calories", "protein", "carbs", "fats")


class OpenAIService:
    """Text completion service backed by OpenAI chat completions.

    Built once at startup and shared by every component that needs it.
    """

    def __init__(self, api_key: str, model: str = OPENAI_MODEL, client: Optional[AsyncOpenAI] = None):
        """Initialize the OpenAI client"""
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model
        logger.info(f"OpenAI client initialized (model {self.model})")

    async def complete(
        self,
        system_prompt: str,
        messages: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
        json_mode: bool = False
    ) -> str:
        """
        Run one chat completion.

        Args:
            system_prompt: instruction block placed first
            messages: prior turns as {role, content}
            temperature: sampling temperature
            max_tokens: completion token budget
            json_mode: ask the API for a JSON object response

        Returns:
            Completion text

        Raises:
            CompletionServiceError: on any API failure or an empty completion
        """
        request = {
            "model": self.model,
            "messages": [{"role": "system", "content": system_prompt}] + [
                {"role": msg["role"], "content": msg["content"]} for msg in messages
            ],
            "temperature": temperature,
            "max_tokens": max_tokens
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**request)
        except OpenAIError as e:
            logger.error(f"Completion request failed: {e}")
            raise CompletionServiceError(str(e)) from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            logger.error("Completion service returned an empty response")
            raise CompletionServiceError("Empty completion")

        return content

    async def estimate_macros(self, food_name: str, weight: float, unit: str) -> Dict:
        """
        Estimate macros for a single food item.

        Returns:
            {"calories": int, "protein": float, "carbs": float, "fats": float}

        Raises:
            MacroEstimateError: when the reply is not a JSON object with four numbers
            CompletionServiceError: when the call itself fails
        """
        prompt = f"""You are a nutrition expert. Estimate the nutritional information for the following food item.

Food: {food_name}
Amount: {weight} {unit}

Provide accurate estimates for:
- Calories (integer)
- Protein in grams (decimal)
- Carbs in grams (decimal)
- Fats in grams (decimal)

Respond ONLY with a JSON object in this exact format (no markdown, no extra text):
{{"calories": 250, "protein": 30.5, "carbs": 0.0, "fats": 12.0}}"""

        text = await self.complete(
            "You are a nutrition expert who provides accurate macro estimates. "
            "Always respond with only valid JSON, no markdown formatting.",
            [{"role": "user", "content": prompt}],
            temperature=ESTIMATE_TEMPERATURE,
            max_tokens=ESTIMATE_MAX_TOKENS
        )

        macros = parse_json_object(text)
        if macros is None:
            raise MacroEstimateError("Invalid response format from AI")

        for field in MACRO_FIELDS:
            value = macros.get(field)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                logger.error(f"Macro estimate field {field!r} is not numeric: {value!r}")
                raise MacroEstimateError("Invalid macro data from AI")

        result = {
            "calories": int(round(macros["calories"])),
            "protein": round(macros["protein"], 1),
            "carbs": round(macros["carbs"], 1),
            "fats": round(macros["fats"], 1)
        }
        logger.info(f"Estimated macros for {weight} {unit} {food_name}: {result}")
        return result
