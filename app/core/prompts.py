"""Prompt templates for LLM interactions."""
import json
import re
from typing import Dict, List, Optional

# Persona shared by chat turns and follow-ups
SYSTEM_PROMPT_TEMPLATE = """You are {bot_name}, a friendly and helpful AI assistant with an Indian personality.
Respond in {language} language.{language_rule}
- When responding, be polite, helpful, and provide complete answers
- Include relevant cultural context when appropriate, especially related to Indian culture
- If you don't know the answer, admit it rather than making things up"""

LANGUAGE_RULES = {
    "english": "",
    "hindi": " आप हिंदी में उत्तर देंगे।",
    "hinglish": " You should mix Hindi and English (Hinglish) in your responses in a natural way.",
}

# Premium users get the triple-pass instruction
ENHANCED_VERIFICATION_TEMPLATE = """
- You have ENHANCED VERIFICATION enabled ({passes}x check).
- Take extra time to verify answers through multiple reasoning paths:
  1. Check factual accuracy and sources
  2. Verify logical consistency and completeness
  3. Consider edge cases and potential issues
- Mark your confidence level at the end of the answer"""

MEMORY_TEMPLATE = """
Things the user asked you to remember:
{notes}"""

ATTACHMENTS_TEMPLATE = "These files were uploaded for reference: {urls}. Please analyze them if needed."

FOLLOW_UP_TEMPLATE = """You are {bot_name}, a friendly and helpful AI assistant.
You previously responded with: "{original_message}"
The user is asking for clarification with: "{follow_up}"

Please provide a clearer, simpler explanation in {language} language. Address the specific concerns or confusion the user expressed."""

IMAGE_STYLE_SUFFIX = ", with subtle Indian cultural elements, vibrant colors"
IMAGE_THEME_WORDS = ("indian", "india", "desi")

CODE_REVIEW_PROMPT = """You are a code review expert.
Review the following {language} code and check for errors, bugs, or potential issues.
Respond ONLY in valid JSON format with these keys:
{{
  "isValid": boolean,
  "suggestions": string[],
  "errorMessage": string (empty if not applicable)
}}"""

GAME_DESIGNER_PROMPT = "You are a creative video game designer specializing in 2D games."

GAME_CONCEPT_PROMPT = """Create a fun and engaging 2D game concept based on this prompt: "{prompt}".
Respond ONLY in valid JSON format with these keys:
{{
  "title": string,
  "description": string,
  "gameType": string,
  "mainCharacter": string,
  "objective": string,
  "visualStyle": string
}}"""

GAME_DEVELOPER_PROMPT = "You are an expert JavaScript game developer specializing in HTML5 canvas games."

GAME_CODE_PROMPT = """Create a playable HTML5 canvas game based on this concept:
Title: {title}
Description: {description}
Game Type: {game_type}
Main Character: {main_character}
Objective: {objective}
Visual Style: {visual_style}

Generate a complete, playable HTML and JavaScript game using the Canvas API.
The game should be fun, bug-free, and fully functional in a modern browser.
Include simple controls (arrow keys or WASD).
Include the complete JS, CSS, and HTML needed to run the game."""

GAME_THUMBNAIL_PROMPT = (
    'Create a vibrant, appealing thumbnail image for a 2D game titled "{title}". '
    "The game is a {game_type} with {visual_style} style. It features {main_character} as the main character."
)

COMPOSER_PROMPT = "You are a skilled music composer with expertise in multiple genres."

MUSIC_CONCEPT_PROMPT = """Create a musical composition concept based on this prompt: "{prompt}"{genre_context}.
The piece should be approximately {duration} seconds long.
Respond ONLY in valid JSON format with these keys:
{{
  "title": string,
  "description": string,
  "mood": string,
  "instruments": string[],
  "tempo": string,
  "structure": string
}}"""

MIDI_PROGRAMMER_PROMPT = "You are an expert music composer and MIDI programmer."

MUSIC_COMPOSITION_PROMPT = """Create a detailed MIDI composition description for this music concept:
Title: {title}
Description: {description}
Mood: {mood}
Instruments: {instruments}
Tempo: {tempo}
Structure: {structure}

Provide a measure-by-measure breakdown with notes, chord progressions, and dynamics.
This should be detailed enough that a musician could recreate the piece."""


def get_system_instruction(
    language: str = "english",
    bot_name: str = "Desi AI",
    enhanced_verification: bool = False,
    memory_notes: Optional[List[str]] = None,
) -> str:
    """Returns the system string to be used in Gemini model config (system_instruction)."""
    instruction = SYSTEM_PROMPT_TEMPLATE.format(
        bot_name=bot_name,
        language=language,
        language_rule=LANGUAGE_RULES.get(language, ""),
    )
    if enhanced_verification:
        instruction += ENHANCED_VERIFICATION_TEMPLATE.format(passes=3)
    if memory_notes:
        notes = "\n".join(f"- {note}" for note in memory_notes)
        instruction += MEMORY_TEMPLATE.format(notes=notes)
    return instruction


def get_follow_up_instruction(
    original_message: str,
    follow_up: str,
    language: str = "english",
    bot_name: str = "Desi AI",
) -> str:
    return FOLLOW_UP_TEMPLATE.format(
        bot_name=bot_name,
        original_message=original_message,
        follow_up=follow_up,
        language=language,
    )


def attachments_context(urls: Optional[List[str]]) -> Optional[str]:
    """Extra user-turn text pointing the model at uploaded files."""
    if not urls:
        return None
    return ATTACHMENTS_TEMPLATE.format(urls=", ".join(urls))


def enhance_image_prompt(prompt: str) -> str:
    """Add Indian styling unless the prompt already asks for it."""
    lowered = prompt.lower()
    if any(word in lowered for word in IMAGE_THEME_WORDS):
        return prompt
    return prompt + IMAGE_STYLE_SUFFIX


def prepare_history(conversation_history: List[Dict[str, str]], max_messages: int = 10) -> List[Dict[str, str]]:
    """
    Format history for Gemini: list of {"role": "user"|"model", "parts": [content]}.
    Maps assistant -> model. Keeps the last `max_messages` messages.
    """
    formatted = []
    recent = (conversation_history or [])[-max_messages:] if max_messages > 0 else []
    for msg in recent:
        role = "user" if msg.get("role") == "user" else "model"
        content = msg.get("content", "")
        formatted.append({"role": role, "parts": [content]})
    return formatted


def parse_json_response(response_text: str) -> Dict[str, any]:
    """
    Parse a JSON object from a model response. Handles optional markdown code fences.
    Raises ValueError when no JSON object can be recovered.
    """
    clean = re.sub(r"```(?:json)?\s?|\s?```", "", (response_text or "").strip()).strip()
    try:
        data = json.loads(clean)
    except ValueError:
        # Models sometimes wrap the object in prose
        start, end = clean.find("{"), clean.rfind("}")
        if start < 0 or end <= start:
            raise ValueError("Model response did not contain a JSON object")
        data = json.loads(clean[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("Model response JSON is not an object")
    return data
