"""Gemini provider: text completions and image generation."""
import logging
from typing import Any, Dict, List, Optional
from google import genai
from google.genai import types
from app.core.config import settings
from app.core.errors import UpstreamProviderError
from app.core.prompts import parse_json_response, prepare_history

logger = logging.getLogger(__name__)

# Initialize Gemini client (lazy loaded)
_gemini_client = None


def _get_gemini_client():
    """Lazy load Gemini client with request timeout. Client is stateless (HTTP), no lock needed."""
    global _gemini_client
    if _gemini_client is None:
        if not settings.gemini_api_key:
            raise UpstreamProviderError("Gemini API key not configured. Please set GEMINI_API_KEY in environment.")
        timeout_ms = settings.llm_timeout_seconds * 1000
        _gemini_client = genai.Client(
            api_key=settings.gemini_api_key,
            http_options=types.HttpOptions(timeout=timeout_ms),
        )
        logger.info("Gemini client initialized (timeout=%ss)", settings.llm_timeout_seconds)
    return _gemini_client


def _history_to_contents(history_formatted: List[Dict]) -> List[types.Content]:
    """
    Convert prepare_history() output to Gemini Content list.
    history_formatted: list of {"role": "user"|"model", "parts": [content]}
    """
    contents = []
    for msg in history_formatted:
        role = msg.get("role", "user")
        parts = msg.get("parts", [])
        text = parts[0] if parts else ""
        contents.append(
            types.Content(
                role=role,
                parts=[types.Part.from_text(text=text)],
            )
        )
    return contents


def _build_contents(
    user_prompt: str,
    history: Optional[List[Dict[str, str]]],
    extra_context: Optional[str],
) -> List[types.Content]:
    contents = _history_to_contents(prepare_history(history or [], settings.llm_history_max_messages))
    parts = [types.Part.from_text(text=user_prompt)]
    if extra_context:
        parts.append(types.Part.from_text(text=extra_context))
    contents.append(types.Content(role="user", parts=parts))
    return contents


def _build_safety_settings() -> List[types.SafetySetting]:
    """Block only HIGH probability harmful content."""
    return [
        types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_ONLY_HIGH)
        for category in (
            types.HarmCategory.HARM_CATEGORY_HARASSMENT,
            types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
            types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
            types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
        )
    ]


def _extract_text(response) -> str:
    """Join the text parts of the first candidate. Raises UpstreamProviderError when empty."""
    if (
        response.candidates is None
        or len(response.candidates) == 0
        or response.candidates[0].content is None
        or not response.candidates[0].content.parts
    ):
        raise UpstreamProviderError("No response content from Gemini")

    candidate = response.candidates[0]
    finish_reason_str = str(getattr(candidate, "finish_reason", None) or "UNKNOWN")
    logger.debug(f"Gemini finish_reason: {finish_reason_str}")
    if "MAX_TOKENS" in finish_reason_str:
        logger.warning(f"Response truncated due to MAX_TOKENS (current: {settings.llm_max_tokens})")
    elif "SAFETY" in finish_reason_str or "RECITATION" in finish_reason_str:
        logger.warning(f"Response affected by filters: {finish_reason_str}")

    text_parts = [part.text for part in candidate.content.parts if getattr(part, "text", None)]
    if not text_parts:
        raise UpstreamProviderError("No text content in Gemini response parts")
    return "".join(text_parts).strip()


def complete(
    system_prompt: str,
    user_prompt: str,
    attachments: Optional[str] = None,
    history: Optional[List[Dict[str, str]]] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    json_mode: bool = False,
) -> str:
    """
    Run one completion and return the reply text.

    Args:
        system_prompt: System instruction (persona, language, verification)
        user_prompt: The current user turn
        attachments: Optional context appended to the user turn (e.g. uploaded file URLs)
        history: Previous turns as {"role": "user"|"assistant", "content": str}
        json_mode: Ask Gemini for application/json output

    Raises:
        UpstreamProviderError: on any provider failure or empty response
    """
    try:
        client = _get_gemini_client()
        contents = _build_contents(user_prompt, history, attachments)
        config_dict = {
            "system_instruction": system_prompt,
            "max_output_tokens": max_tokens or settings.llm_max_tokens,
            "temperature": settings.llm_temperature if temperature is None else temperature,
            "safety_settings": _build_safety_settings(),
        }
        if json_mode:
            config_dict["response_mime_type"] = "application/json"

        logger.info(f"Calling Gemini with model: {settings.llm_model} ({len(contents)} content items)")
        response = client.models.generate_content(
            model=settings.llm_model,
            contents=contents,
            config=types.GenerateContentConfig(**config_dict),
        )
        text = _extract_text(response)
        logger.info(f"Gemini response length: {len(text)} characters")
        return text
    except UpstreamProviderError:
        raise
    except Exception as e:
        logger.error(f"Gemini completion error: {e}", exc_info=True)
        raise UpstreamProviderError("The AI provider failed to respond.") from e


def complete_json(
    system_prompt: str,
    user_prompt: str,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> Dict[str, Any]:
    """JSON-mode completion parsed into a dict."""
    text = complete(
        system_prompt,
        user_prompt,
        temperature=temperature,
        max_tokens=max_tokens,
        json_mode=True,
    )
    try:
        return parse_json_response(text)
    except ValueError as e:
        logger.error(f"Gemini returned unparseable JSON: {text[:200]}")
        raise UpstreamProviderError("The AI provider returned an invalid response.") from e


def generate_image(prompt: str) -> tuple[bytes, str]:
    """
    Generate one image. Returns (image_bytes, mime_type).

    Raises:
        UpstreamProviderError: on provider failure or when no image comes back
    """
    try:
        client = _get_gemini_client()
        logger.info(f"Calling Gemini image model: {settings.image_model}")
        response = client.models.generate_images(
            model=settings.image_model,
            prompt=prompt,
            config=types.GenerateImagesConfig(number_of_images=1),
        )
        if not response.generated_images:
            raise UpstreamProviderError("Image generation returned no images")
        image = response.generated_images[0].image
        if image is None or not image.image_bytes:
            raise UpstreamProviderError("Image generation returned an empty image")
        return image.image_bytes, image.mime_type or "image/png"
    except UpstreamProviderError:
        raise
    except Exception as e:
        logger.error(f"Gemini image generation error: {e}", exc_info=True)
        raise UpstreamProviderError("Failed to generate image") from e
