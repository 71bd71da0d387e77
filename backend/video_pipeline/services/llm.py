"""Abstraction layer around the Ollama REST API.

Used for three things: turning a raw Whisper transcript into readable
paragraphs, writing the lesson summary, and embedding transcript chunks.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import httpx

from video_pipeline.config import settings
from video_pipeline.exceptions import LLMServiceError, MissingTranscriptError

logger = logging.getLogger(__name__)

FORMAT_SYSTEM_PROMPT = """You are a transcript formatter. Your job is to take raw transcription text and format it into readable paragraphs.

IMPORTANT RULES:
1. DO NOT change any words - keep the exact same words from the input
2. DO NOT add, remove, or substitute any words
3. DO NOT correct grammar or fix speech patterns
4. ONLY add paragraph breaks where natural topic transitions or pauses occur
5. Each paragraph should be 2-4 sentences for readability
6. Return only the formatted transcript, no additional commentary"""

SUMMARY_SYSTEM_PROMPT = """You are an expert at creating concise, informative video summaries for an online learning platform. Your summaries help learners quickly understand what a video covers and decide if it's relevant to their learning goals.

Create a well-structured summary with these exact sections:

## About This Video
A concise 1-2 sentence overview of what the video covers and its main purpose.

## What You'll Learn
- 3-5 specific, actionable learning outcomes
- Each bullet should start with an action verb (Learn, Understand, Build, Implement, etc.)
- Be specific about skills or concepts covered

## Key Takeaways
- 3-5 most important concepts or insights from the video
- Focus on memorable, practical points learners should remember
- These should be things learners can apply immediately

IMPORTANT:
- Keep the entire summary under 300 words
- Use clear, accessible language suitable for developers of all levels
- Be specific and avoid vague statements
- Format using markdown with ## headers and - for bullet points"""

PROMPT_TEMPLATES = {
    "format_transcript": "Please format this transcript into paragraphs without changing any words:\n\n{transcript}",
    "summary": "Please create a structured summary for this video transcript:\n\n{transcript}",
}


async def _post(path: str, payload: dict) -> dict:
    url = f"{settings.OLLAMA_URL}{path}"
    started = time.monotonic()
    async with httpx.AsyncClient(timeout=settings.LLM_TIMEOUT) as client:
        try:
            response = await client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = e.response.text if e.response is not None else ""
            logger.error("LLM request to %s failed with HTTP %s: %s", url, e.response.status_code, body)
            raise LLMServiceError(f"LLM request failed: {e.response.status_code} - {body}") from e
        except httpx.RequestError as e:
            logger.error("LLM request to %s failed: %s", url, e)
            raise LLMServiceError(f"LLM request failed: {e}") from e
    logger.debug("LLM call %s completed in %.0fms", path, (time.monotonic() - started) * 1000)
    return response.json()


async def generate_text(
    prompt: str,
    system: Optional[str] = None,
    model: Optional[str] = None,
    temperature: float = 0.0,
) -> str:
    payload = {
        "model": model or settings.OLLAMA_DEFAULT_MODEL,
        "prompt": prompt,
        "stream": False,
        "options": {"temperature": temperature},
    }
    if system:
        payload["system"] = system
    data = await _post("/api/generate", payload)
    text = (data.get("response") or "").strip()
    if not text:
        raise LLMServiceError("LLM returned an empty response")
    return text


async def format_transcript_into_paragraphs(raw_transcript: str) -> str:
    """Add paragraph breaks to a raw transcript without changing its words."""
    logger.info("Formatting transcript into paragraphs (%d characters)", len(raw_transcript))
    return await generate_text(
        PROMPT_TEMPLATES["format_transcript"].format(transcript=raw_transcript),
        system=FORMAT_SYSTEM_PROMPT,
        temperature=0.0,
    )


async def generate_summary_from_transcript(transcript: str) -> str:
    """Markdown summary with About / What You'll Learn / Key Takeaways sections."""
    if not transcript or not transcript.strip():
        raise MissingTranscriptError("Transcript is empty or invalid")
    logger.info("Generating summary from transcript (%d characters)", len(transcript))
    return await generate_text(
        PROMPT_TEMPLATES["summary"].format(transcript=transcript),
        system=SUMMARY_SYSTEM_PROMPT,
        temperature=0.3,
    )


async def generate_embeddings(texts: list[str], model: Optional[str] = None) -> list[list[float]]:
    if not texts:
        return []
    data = await _post("/api/embed", {"model": model or settings.OLLAMA_EMBED_MODEL, "input": texts})
    embeddings = data.get("embeddings") or []
    if len(embeddings) != len(texts):
        raise LLMServiceError(f"Expected {len(texts)} embeddings, got {len(embeddings)}")
    return embeddings
