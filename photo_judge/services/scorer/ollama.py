"""Ollama vision scorer.

Sends photos as base64 images to a local Ollama server's ``/api/chat``
endpoint and parses the juror-style text answer into scores.

The scorer is an explicit object: callers construct it with
``ScorerSettings`` (and optionally a shared ``aiohttp.ClientSession``)
and pass it to the batch driver.
"""

import asyncio
import base64
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from photo_judge.models.config import ScorerSettings
from photo_judge.models.scoring import CriteriaPrompt, Criterion, PhotoScores
from photo_judge.models.sets import SetAnalysis, SetPhotoScore
from photo_judge.observability.metrics import ANALYSIS_DURATION
from photo_judge.services.scorer.base import PathLike, VisionScorer
from photo_judge.services.scorer.exceptions import (
    BackendUnreachableError,
    ScorerOverloadedError,
    ScorerResponseError,
)
from photo_judge.services.scorer.prompt_builder import build_analysis_prompt
from photo_judge.services.scorer.response_parser import parse_analysis_response
from photo_judge.services.set_analyzer import build_set_prompt, parse_set_response

logger = structlog.get_logger()

# Sets carry several images and a longer answer
SET_MAX_TOKENS = 2000


def encode_image(photo_path: PathLike) -> str:
    return base64.b64encode(Path(photo_path).read_bytes()).decode("ascii")


class OllamaVisionScorer(VisionScorer):
    """Score photos with a vision model served by Ollama."""

    def __init__(
        self,
        settings: Optional[ScorerSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize scorer.

        Args:
            settings: Host, model and sampling settings
            session: Shared session; one is created lazily when omitted
        """
        self.settings = settings or ScorerSettings()
        self._session = session
        self._owns_session = session is None

    @property
    def name(self) -> str:
        return "ollama"

    @property
    def model(self) -> str:
        return self.settings.model

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            # No total limit: per-photo budgets are enforced by the caller
            timeout = aiohttp.ClientTimeout(total=None, sock_connect=10)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the session if this scorer created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "OllamaVisionScorer":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(ScorerOverloadedError),
        reraise=True,
    )
    async def _chat(self, prompt: str, images: List[str], max_tokens: int) -> str:
        """POST one chat request and return the answer text.

        Raises:
            BackendUnreachableError: Connection refused / host unknown
            ScorerOverloadedError: 5xx answer (retried)
            ScorerResponseError: Other error status or malformed body
        """
        payload: Dict[str, Any] = {
            "model": self.settings.model,
            "messages": [{"role": "user", "content": prompt, "images": images}],
            "stream": False,
            "options": {
                "temperature": self.settings.temperature,
                "num_predict": max_tokens,
            },
        }
        url = f"{self.settings.host.rstrip('/')}/api/chat"
        session = await self._get_session()

        try:
            async with session.post(url, json=payload) as response:
                if response.status >= 500:
                    text = await response.text()
                    logger.warning(
                        "ollama_server_error", status=response.status, body=text[:200]
                    )
                    raise ScorerOverloadedError(
                        f"Ollama server error: {response.status}",
                        status=response.status,
                        backend=self.name,
                    )
                if response.status != 200:
                    text = await response.text()
                    logger.error("ollama_api_error", status=response.status, body=text)
                    raise ScorerResponseError(
                        f"Ollama request failed: {response.status} {text[:200]}",
                        status=response.status,
                        backend=self.name,
                    )
                data = await response.json()

        except aiohttp.ClientConnectionError as e:
            logger.error("ollama_unreachable", host=self.settings.host, error=str(e))
            raise BackendUnreachableError(
                f"Cannot connect to Ollama at {self.settings.host}: {e}",
                backend=self.name,
            ) from e
        except aiohttp.ContentTypeError as e:
            raise ScorerResponseError(
                f"Ollama returned a non-JSON body: {e}", backend=self.name
            ) from e

        try:
            return data["message"]["content"]
        except (KeyError, TypeError) as e:
            raise ScorerResponseError(
                "Ollama response has no message content", backend=self.name
            ) from e

    async def analyze(
        self, photo_path: PathLike, criteria_prompt: CriteriaPrompt
    ) -> PhotoScores:
        """Score one photo.

        Args:
            photo_path: Path to the photo
            criteria_prompt: Frozen batch prompt

        Returns:
            PhotoScores parsed from the model answer
        """
        path = Path(photo_path)
        image = await asyncio.to_thread(encode_image, path)
        prompt = build_analysis_prompt(criteria_prompt)

        start = time.monotonic()
        answer = await self._chat(prompt, [image], self.settings.max_tokens)
        duration = time.monotonic() - start
        ANALYSIS_DURATION.observe(duration)

        scores = parse_analysis_response(answer, criteria_prompt)
        logger.debug(
            "photo_analyzed",
            photo=path.name,
            model=self.settings.model,
            criteria=len(scores.individual),
            duration_seconds=round(duration, 2),
        )
        return scores

    async def analyze_set(
        self,
        photo_paths: Sequence[PathLike],
        criteria_prompt: CriteriaPrompt,
        set_criteria: Optional[Sequence[Criterion]] = None,
        individual_results: Sequence[SetPhotoScore] = (),
    ) -> SetAnalysis:
        """Evaluate several photos in a single multi-image request.

        Args:
            photo_paths: Photos in set order
            criteria_prompt: Batch prompt (title and theme)
            set_criteria: Set criteria, defaults applied when None
            individual_results: Individual scores, same order as photos

        Returns:
            SetAnalysis parsed from the model answer
        """
        images = [await asyncio.to_thread(encode_image, p) for p in photo_paths]
        prompt = build_set_prompt(
            criteria_prompt, len(images), set_criteria, individual_results
        )
        answer = await self._chat(prompt, images, SET_MAX_TOKENS)
        return parse_set_response(answer, set_criteria)

    async def check_status(self) -> bool:
        """Check that Ollama answers and has the configured model pulled."""
        url = f"{self.settings.host.rstrip('/')}/api/tags"
        session = await self._get_session()

        try:
            async with session.get(
                url, timeout=aiohttp.ClientTimeout(total=10)
            ) as response:
                if response.status != 200:
                    return False
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("ollama_status_check_failed", error=str(e))
            return False

        names = {m.get("name", "") for m in data.get("models", [])}
        available = self.settings.model in names or any(
            n.split(":")[0] == self.settings.model for n in names
        )
        if not available:
            logger.warning(
                "ollama_model_missing",
                model=self.settings.model,
                hint=f"ollama pull {self.settings.model}",
            )
        return available
