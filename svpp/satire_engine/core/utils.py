"""
Utility functions for the Satire Engine.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from satire_engine.core.config import MAX_SHOT_SECONDS

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SCRIPT_TAG_PATTERN = re.compile(
    r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE
)


def generate_id() -> str:
    """Generate a unique id for a stored entity."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_shot_duration(seconds: float) -> bool:
    """True when a shot fits the 8 second generation window."""
    return 0 < seconds <= MAX_SHOT_SECONDS


def validate_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def sanitize_input(text: str) -> str:
    """Strip ``<script>`` blocks from user supplied text."""
    return SCRIPT_TAG_PATTERN.sub("", text)


def is_empty_or_whitespace(text: Optional[str]) -> bool:
    return not text or not text.strip()


def truncate_text(text: str, max_length: int) -> str:
    """Truncate text to ``max_length`` characters, ending with an ellipsis."""
    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - 3)] + "..."


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block from an LLM reply."""
    text = text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()
    return text


def generate_veo3_prompt(
    shot_type: str,
    subject: str,
    action: str,
    camera_angle: str,
    lighting: str,
    mood: str,
    style: str,
    duration: float,
) -> str:
    """Build a single-line Veo3 prompt from shot brief fields."""
    duration_text = f"{duration:g}"
    return (
        f"For Veo3: {shot_type} shot of {subject} {action}, "
        f"{camera_angle} camera angle, {lighting} lighting, "
        f"{mood} mood, {style} style, {duration_text}s duration"
    )


def extract_text_from_html(html_content: str, max_words: int = 2000) -> str:
    """
    Extract and clean readable text from HTML.

    Args:
        html_content: Raw HTML content
        max_words: Maximum number of words to keep

    Returns:
        Cleaned text content
    """
    soup = BeautifulSoup(html_content, "html.parser")

    for element in soup(["script", "style", "nav", "footer", "header", "aside"]):
        element.decompose()

    text = soup.get_text()
    lines = (line.strip() for line in text.splitlines())
    chunks = (phrase.strip() for line in lines for phrase in line.split("  "))
    text = " ".join(chunk for chunk in chunks if chunk)

    words = text.split()
    if len(words) > max_words:
        text = " ".join(words[:max_words])
        logger.info(f"Truncated HTML content from {len(words)} to {max_words} words")

    return text


def fetch_article(url: str, timeout: float = 10) -> Dict[str, str]:
    """
    Fetch a news article page and extract its title and body text.

    Args:
        url: Article URL
        timeout: Request timeout in seconds

    Returns:
        Dictionary with ``title``, ``content``, ``source`` and ``url``

    Raises:
        ValueError: If the URL is invalid or the page cannot be fetched
    """
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid URL: {url}")

    logger.info(f"Fetching article from URL: {url}")
    try:
        headers = {
            "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
        }
        response = requests.get(url, headers=headers, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ValueError(f"Failed to fetch URL {url}: {e}")

    soup = BeautifulSoup(response.text, "html.parser")
    title = soup.title.string.strip() if soup.title and soup.title.string else parsed.netloc
    content = extract_text_from_html(response.text)

    return {
        "title": title,
        "content": content,
        "source": parsed.netloc,
        "url": url,
    }
