"""
Clients for the hosted generative-language API that analyzes journal entries.
"""
import json
import logging
from typing import List, Dict, Any, Sequence

import requests
from marshmallow import Schema, fields, validate, EXCLUDE, ValidationError as SchemaError

from backend.moodflow.errors import AnalysisError
from backend.moodflow.services.aggregation import entry_field, entry_mood
from backend.moodflow.utils.keywords import extract_keywords

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
SENTIMENTS = ['Positive', 'Negative', 'Neutral', 'Mixed']
TRIGGER_ENTRY_LIMIT = 20
RECOMMENDATION_ENTRY_LIMIT = 10


class EmotionSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    emotion = fields.String(required=True, validate=validate.Length(min=1))
    score = fields.Integer(required=True, strict=True, validate=validate.Range(min=0, max=100))


class AnalysisResultSchema(Schema):
    """Structure every analysis must conform to before it is attached to an entry."""
    class Meta:
        unknown = EXCLUDE

    overall_sentiment = fields.String(required=True, data_key="overallSentiment",
                                      validate=validate.OneOf(SENTIMENTS))
    emotions = fields.List(fields.Nested(EmotionSchema), required=True)
    summary = fields.String(required=True)
    keywords = fields.List(fields.String(), required=True)


class TriggersSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    positive = fields.List(fields.String(), required=True)
    negative = fields.List(fields.String(), required=True)


class RecommendationsSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    recommendations = fields.List(fields.String(), required=True)


# Gemini response schemas (OpenAPI subset accepted by generationConfig.responseSchema)
ANALYSIS_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "overallSentiment": {
            "type": "STRING",
            "description": "The overall sentiment of the text. Can be 'Positive', 'Negative', 'Neutral', or 'Mixed'.",
            "enum": SENTIMENTS,
        },
        "emotions": {
            "type": "ARRAY",
            "description": "A list of detected emotions and their scores from 0 to 100.",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "emotion": {"type": "STRING", "description": "The name of the emotion (e.g., Joy, Sadness, Anger, Anxiety)."},
                    "score": {"type": "INTEGER", "description": "A score from 0 to 100 representing the intensity of the emotion."},
                },
                "required": ["emotion", "score"],
            },
        },
        "summary": {
            "type": "STRING",
            "description": "A short, compassionate, one or two-sentence summary of the user's emotional state based on the journal entry.",
        },
        "keywords": {
            "type": "ARRAY",
            "description": "A list of 3-5 main keywords or topics from the text.",
            "items": {"type": "STRING"},
        },
    },
    "required": ["overallSentiment", "emotions", "summary", "keywords"],
}

TRIGGERS_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "positive": {
            "type": "ARRAY",
            "description": "A list of 3-5 keywords or short themes associated with positive moods.",
            "items": {"type": "STRING"},
        },
        "negative": {
            "type": "ARRAY",
            "description": "A list of 3-5 keywords or short themes associated with negative moods.",
            "items": {"type": "STRING"},
        },
    },
    "required": ["positive", "negative"],
}

RECOMMENDATIONS_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "recommendations": {
            "type": "ARRAY",
            "description": "A list of 2-3 personalized self-care recommendation strings.",
            "items": {"type": "STRING"},
        },
    },
    "required": ["recommendations"],
}


def to_analysis_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a raw analysis dict and return it in its stored (wire) shape."""
    schema = AnalysisResultSchema()
    return schema.dump(schema.load(data))


class AnalysisClient:
    """Capability interface for journal text analysis.

    Implementations either return data conforming to the schemas above or
    raise AnalysisError.
    """

    def analyze(self, text: str) -> Dict[str, Any]:
        raise NotImplementedError

    def analyze_triggers(self, entries: Sequence[Any]) -> Dict[str, List[str]]:
        raise NotImplementedError

    def recommend(self, entries: Sequence[Any]) -> List[str]:
        raise NotImplementedError


class GeminiAnalysisClient(AnalysisClient):
    """Calls the Gemini generateContent endpoint with a strict JSON response schema."""

    def __init__(self, api_key: str, model_name: str = "gemini-2.5-flash", timeout: int = 60):
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout
        self.api_url = f"{GEMINI_API_BASE}/{model_name}:generateContent"
        logger.info(f"Using analysis model: {self.model_name}")

    def get_headers(self) -> Dict[str, str]:
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json"
        }

    def _generate(self, prompt: str, response_schema: Dict[str, Any]) -> Any:
        """Send a prompt and return the decoded JSON the model produced.

        Raises:
            AnalysisError: On transport failure or a non-JSON reply.
        """
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": response_schema,
            },
        }

        try:
            logger.debug(f"Sending request to {self.api_url} with prompt length: {len(prompt)}")
            response = requests.post(
                self.api_url,
                headers=self.get_headers(),
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.Timeout:
            logger.error("Request to Gemini API timed out.")
            raise AnalysisError("AI analysis timed out. Please try again later.")
        except requests.exceptions.RequestException as e:
            status = e.response.status_code if e.response is not None else 'N/A'
            logger.error(f"Error calling Gemini API (Status: {status}): {e}")
            raise AnalysisError("Failed to get AI analysis. Please try again later.")
        except ValueError as e:
            logger.error(f"Gemini API returned a non-JSON body: {e}")
            raise AnalysisError("Failed to get AI analysis. Please try again later.")

        try:
            text = result["candidates"][0]["content"]["parts"][0]["text"]
            return json.loads(text.strip())
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Unexpected Gemini response format: {e}; body: {result}")
            raise AnalysisError("Failed to get AI analysis. Please try again later.")

    def analyze(self, text: str) -> Dict[str, Any]:
        prompt = "\n".join([
            "Analyze the following journal entry as a compassionate mental health assistant.",
            "Provide a detailed analysis of the user's emotional state.",
            "",
            "Journal Entry:",
            f'"{text}"',
            "",
            "Return the analysis in the specified JSON format.",
        ])
        data = self._generate(prompt, ANALYSIS_RESPONSE_SCHEMA)
        try:
            return to_analysis_payload(data)
        except SchemaError as e:
            logger.error(f"Analysis response does not match schema: {e.messages}")
            raise AnalysisError("Failed to get AI analysis. Please try again later.")

    def analyze_triggers(self, entries: Sequence[Any]) -> Dict[str, List[str]]:
        entries_text = "\n---\n".join(
            f"Date: {entry_field(e, 'date')}, Mood: {entry_mood(e).value}, Text: {entry_field(e, 'text')}"
            for e in list(entries)[:TRIGGER_ENTRY_LIMIT]
        )
        prompt = "\n".join([
            "As a mental health data analyst, analyze the following journal entries. Identify recurring keywords "
            "or themes that are strongly correlated with positive moods (Awesome, Good) and negative moods (Bad, Terrible).",
            "Do not include generic words like 'feel', 'good', 'bad', 'day'. Focus on specific triggers or topics.",
            "",
            "Journal Entries:",
            entries_text,
            "",
            "Return the analysis in the specified JSON format.",
        ])
        data = self._generate(prompt, TRIGGERS_RESPONSE_SCHEMA)
        try:
            return TriggersSchema().load(data)
        except SchemaError as e:
            logger.error(f"Trigger response does not match schema: {e.messages}")
            raise AnalysisError("Failed to get AI trigger analysis.")

    def recommend(self, entries: Sequence[Any]) -> List[str]:
        lines = []
        for e in list(entries)[:RECOMMENDATION_ENTRY_LIMIT]:
            analysis = entry_field(e, 'analysis') or {}
            summary = analysis.get('summary') or (entry_field(e, 'text') or '')[:50]
            lines.append(f"Date: {entry_field(e, 'date')}, Mood: {entry_mood(e).value}, Summary: {summary}")
        prompt = "\n".join([
            "Act as a compassionate wellness coach. Based on the user's recent journal entries, provide 2-3 simple, "
            "actionable, and personalized self-care recommendations.",
            "Frame your suggestions gently and encouragingly.",
            "",
            "Recent Entries:",
            "\n---\n".join(lines),
            "",
            "Return the recommendations in the specified JSON format.",
        ])
        data = self._generate(prompt, RECOMMENDATIONS_RESPONSE_SCHEMA)
        try:
            return RecommendationsSchema().load(data)["recommendations"]
        except SchemaError as e:
            logger.error(f"Recommendation response does not match schema: {e.messages}")
            raise AnalysisError("Failed to get AI recommendations.")


class PlaceholderAnalysisClient(AnalysisClient):
    """Offline stand-in used when no API key is configured."""

    def analyze(self, text: str) -> Dict[str, Any]:
        logger.info("No API key, returning placeholder analysis")
        return {
            "overallSentiment": "Neutral",
            "emotions": [{"emotion": "Contemplative", "score": 70}],
            "summary": "This is a placeholder analysis as the API key is missing. The entry seems reflective.",
            "keywords": extract_keywords(text) or ["placeholder", "analysis"],
        }

    def analyze_triggers(self, entries: Sequence[Any]) -> Dict[str, List[str]]:
        logger.info("No API key, returning placeholder triggers")
        return {
            "positive": ["family time", "weekends", "new project"],
            "negative": ["work deadlines", "mondays", "commute"],
        }

    def recommend(self, entries: Sequence[Any]) -> List[str]:
        logger.info("No API key, returning placeholder recommendations")
        return [
            "You often feel good after mentioning 'walks'. Consider scheduling a short walk this week.",
            "It seems your mood is lower on Mondays. Preparing for the week on Sunday might help ease the transition.",
            "Celebrate your recent positive streak! Treat yourself to something you enjoy.",
        ]


def get_analysis_client(config: Dict[str, Any]) -> AnalysisClient:
    api_key = config.get('GEMINI_API_KEY')
    if not api_key:
        logger.warning("GEMINI_API_KEY not set. Using placeholder analysis; AI features will not work.")
        return PlaceholderAnalysisClient()
    return GeminiAnalysisClient(
        api_key=api_key,
        model_name=config.get('GEMINI_MODEL_NAME', 'gemini-2.5-flash'),
        timeout=config.get('ANALYSIS_TIMEOUT', 60),
    )
